# backend/schemas/stock.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional, Literal

# Allowed types for stock movements
StockMovementType = Literal["IN", "OUT", "ADJUSTMENT"]

# Admin edit of a variant; color/size are frozen once the variant was ordered
class VariantUpdate(BaseModel):
    price: Optional[float] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    color: Optional[str] = None
    size: Optional[str] = None
    reason: Optional[str] = None

class VariantOut(BaseModel):
    id: int
    product_id: int
    price: float
    stock: int
    color: Optional[str] = None
    size: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

# Schema for returning stock movement details
class StockMovementResponse(BaseModel):
    id: int
    created_at: datetime
    product_variant_id: int
    order_id: Optional[int] = None
    user_id: Optional[int] = None
    qty: int
    type: StockMovementType
    reason: Optional[str] = None
    product_name: str
    user_email: str

# Paginated response for stock movement history
class StockMovementPage(BaseModel):
    items: List[StockMovementResponse]
    total: int
    page: int
    page_size: int
