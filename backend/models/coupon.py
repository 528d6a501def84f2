# backend/models/coupon.py
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, func
from database import Base

# Time-bounded percentage discount code, reusable until it expires
class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    discount_percentage = Column(
        Integer,
        CheckConstraint("discount_percentage >= 1 AND discount_percentage <= 100"),
        nullable=False,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
