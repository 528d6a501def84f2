# backend/models/stock.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from database import Base

# Movement classification
MOVEMENT_OUT = "OUT"
MOVEMENT_IN = "IN"
MOVEMENT_ADJUSTMENT = "ADJUSTMENT"


# Append-only record of every change to a variant's stock
class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    product_variant_id = Column(Integer, ForeignKey("product_variants.id"), index=True, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Signed quantity delta (negative for OUT)
    qty = Column(Integer, nullable=False)
    type = Column(String, nullable=False)
    reason = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    variant = relationship("ProductVariant")
    user = relationship("User")
