from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional

# Request schema for adding a variant to the cart
class CartAddItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_variant_id: int
    quantity: int = Field(default=1, ge=1)

# Request schema for updating cart item quantity
class CartUpdateItem(BaseModel):
    quantity: int = Field(ge=1)

# Response schema for a single cart line item
class CartItemOut(BaseModel):
    id: int
    product_variant_id: int
    product_id: Optional[int] = None
    name: str
    color: Optional[str] = None
    size: Optional[str] = None
    quantity: int
    unit_price: float
    line_total: float
    in_stock: int

# Response schema for the cart summary; shipping is an estimate before coupons
class CartOut(BaseModel):
    id: int
    items: List[CartItemOut]
    subtotal: float
    shipping_cost: float
    total: float
