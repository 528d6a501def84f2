import math
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime


def _to_number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) or math.isinf(number) else number


# Input schema for a single order line; accepts camelCase or snake_case keys
class OrderItemCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_variant_id: int
    quantity: int = Field(default=1, ge=1)
    price: Optional[float] = Field(default=None, ge=0)

    # Malformed or zero quantities fall back to 1
    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value):
        number = _to_number(value)
        if not number:
            return 1
        # Fractions below 1 truncate to 0 and also fall back to 1
        return int(number) or 1

    # Malformed prices are treated as absent and looked up server-side
    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value):
        return _to_number(value)


# Input schema for placing an order
class OrderCreatePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: List[OrderItemCreate] = []
    shipping_address_id: Optional[int] = None
    billing_address_id: Optional[int] = None
    total: Optional[float] = None
    payment_method: str = "credit_card"
    coupon_code: Optional[str] = None

    @field_validator("total", mode="before")
    @classmethod
    def _coerce_total(cls, value):
        return _to_number(value)


class ProductSummary(BaseModel):
    id: int
    name: str
    images: Optional[List[str]] = None


# Live variant data joined at read time
class VariantSummary(BaseModel):
    id: int
    price: float
    color: Optional[str] = None
    size: Optional[str] = None
    product: Optional[ProductSummary] = None


class AddressOut(BaseModel):
    id: int
    street: str
    city: str
    state: Optional[str] = None
    country: str
    postal_code: str
    is_default: bool = False

    model_config = ConfigDict(from_attributes=True)


# Output schema for an individual order line item
class OrderItemOut(BaseModel):
    id: int
    product_variant_id: int
    quantity: int
    price: float
    line_total: float
    product_variant: Optional[VariantSummary] = None


# Output schema representing the full order details
class OrderResponse(BaseModel):
    id: int
    user_id: int
    status: str
    total: float
    shipping_address_id: int
    payment_method: Optional[str] = None
    coupon_code: Optional[str] = None
    discount_amount: float = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut]
    shipping_address: Optional[AddressOut] = None


# Admin listing adds the customer identity
class AdminOrderResponse(OrderResponse):
    user_email: Optional[str] = None
    user_first_name: Optional[str] = None
    user_last_name: Optional[str] = None


# Result of a checkout; warnings name secondary effects that did not happen
class OrderCreateResponse(OrderResponse):
    subtotal: float
    shipping_cost: float
    warnings: List[str] = []


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: str


class OrderCancelResponse(BaseModel):
    message: str
    order: OrderResponse
