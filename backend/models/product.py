# backend/models/product.py
from sqlalchemy import Column, Integer, String, Float, ForeignKey, CheckConstraint, JSON, DateTime, func
from sqlalchemy.orm import relationship
from database import Base

# Catalog entry; the purchasable units are its variants
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String)
    category = Column(String, index=True)
    images = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")


# A single SKU (fixed color/size) with its own price and stock count
class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)

    price = Column(Float, CheckConstraint("price >= 0"), nullable=False)
    stock = Column(Integer, CheckConstraint("stock >= 0"), nullable=False, default=0)

    color = Column(String, nullable=True)
    size = Column(String, nullable=True)

    product = relationship("Product", back_populates="variants")
