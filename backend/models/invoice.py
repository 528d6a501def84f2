from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, func, Enum
from sqlalchemy.orm import relationship
from database import Base
import enum

# Enum for invoice payment states
class PaymentStatus(str, enum.Enum):
    PAID = "paid"
    CANCELLED = "cancelled"

# Billing record created once per order; only the payment status changes, on cancellation
class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, index=True, nullable=False)
    amount = Column(Float, nullable=False)
    billing_address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PAID, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="invoice")
    billing_address = relationship("Address")

    @property
    def full_number(self) -> str:
        return f"INV-{self.id:06d}" if self.id else "INV-DRAFT"
