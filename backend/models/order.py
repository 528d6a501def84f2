# backend/models/order.py
import enum
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from database import Base

# Lifecycle states of an order
class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

ORDER_STATUSES = [s.value for s in OrderStatus]


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    status = Column(String(50), nullable=False, default=OrderStatus.PENDING.value, index=True)
    # Charged amount: shipping included, discount already subtracted
    total = Column(Float, nullable=False, default=0)
    shipping_address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)
    payment_method = Column(String(50), default="credit_card")

    # Coupon applied at checkout, if any
    coupon_code = Column(String(50), nullable=True)
    discount_amount = Column(Float, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User")
    shipping_address = relationship("Address")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    invoice = relationship("Invoice", back_populates="order", uselist=False, cascade="all, delete-orphan")


# Snapshot of a purchased variant; price is frozen at purchase time
class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    product_variant_id = Column(Integer, ForeignKey("product_variants.id"), index=True, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")
    variant = relationship("ProductVariant")
