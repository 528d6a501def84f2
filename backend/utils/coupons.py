# backend/utils/coupons.py
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from models.coupon import Coupon

REASON_NOT_FOUND = "not found"
REASON_EXPIRED = "expired"


@dataclass
class CouponCheck:
    valid: bool
    coupon: Optional[Coupon] = None
    reason: Optional[str] = None


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(coupon: Coupon, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return _as_utc(now) > _as_utc(coupon.expires_at)


def get_coupon_by_code(db: Session, code: str) -> Optional[Coupon]:
    # Exact, case-sensitive match
    return db.query(Coupon).filter(Coupon.code == code).first()


def validate_coupon(db: Session, code: str, now: Optional[datetime] = None) -> CouponCheck:
    """Look a code up and check its expiry. Read-only: nothing is redeemed."""
    coupon = get_coupon_by_code(db, code)
    if coupon is None:
        return CouponCheck(valid=False, reason=REASON_NOT_FOUND)
    if is_expired(coupon, now):
        return CouponCheck(valid=False, coupon=coupon, reason=REASON_EXPIRED)
    return CouponCheck(valid=True, coupon=coupon)
