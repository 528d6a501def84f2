# schemas/invoice.py
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from schemas.order import AddressOut, OrderItemOut


class InvoiceCustomer(BaseModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


# Order, invoice, both addresses, customer and lines in one document
class InvoiceResponse(BaseModel):
    invoice_id: int
    invoice_number: str
    invoice_amount: float
    invoice_date: Optional[datetime] = None
    payment_status: str

    order_id: int
    order_status: str
    payment_method: Optional[str] = None
    coupon_code: Optional[str] = None
    subtotal: float
    discount_amount: float
    shipping_cost: float

    customer: InvoiceCustomer
    billing_address: Optional[AddressOut] = None
    shipping_address: Optional[AddressOut] = None
    items: List[OrderItemOut]
