from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime


# Input schema for creating or replacing a coupon; ranges are checked by the route
class CouponPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: Optional[str] = None
    discount_percentage: Optional[int] = None
    expires_at: Optional[datetime] = None


class CouponOut(BaseModel):
    id: int
    code: str
    discount_percentage: int
    expires_at: datetime
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CouponValidation(BaseModel):
    valid: bool
    coupon: Optional[CouponOut] = None
    message: Optional[str] = None


class CouponDeleted(BaseModel):
    message: str
    coupon: CouponOut
