# backend/routes/coupons.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database import get_db
from models.coupon import Coupon
from models.users import User
from schemas.coupon import CouponPayload, CouponOut, CouponValidation, CouponDeleted
from utils.audit import write_log
from utils.coupons import validate_coupon, get_coupon_by_code, REASON_NOT_FOUND
from utils.tokenJWT import require_admin

router = APIRouter(prefix="/coupons", tags=["Coupons"])

def _check_payload(payload: CouponPayload) -> None:
    if not payload.code or not payload.code.strip():
        raise HTTPException(status_code=400, detail="Coupon code is required")
    if payload.discount_percentage is None or not 1 <= payload.discount_percentage <= 100:
        raise HTTPException(status_code=400, detail="Discount percentage must be between 1 and 100")
    if payload.expires_at is None:
        raise HTTPException(status_code=400, detail="Expiration date is required")

def _get_coupon(db: Session, coupon_id: int) -> Coupon:
    coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon


# Public check used by the checkout page before placing an order
@router.get("/validate/{code}", response_model=CouponValidation)
def check_coupon(code: str, db: Session = Depends(get_db)):
    check = validate_coupon(db, code)
    if check.valid:
        return CouponValidation(valid=True, coupon=CouponOut.model_validate(check.coupon))

    if check.reason == REASON_NOT_FOUND:
        body = CouponValidation(valid=False, message="Coupon not found")
        return JSONResponse(status_code=404, content=body.model_dump(mode="json"))

    body = CouponValidation(valid=False, message="Coupon has expired", coupon=CouponOut.model_validate(check.coupon))
    return JSONResponse(status_code=400, content=body.model_dump(mode="json"))


@router.get("", response_model=List[CouponOut])
def list_coupons(db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    return db.query(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()


@router.get("/{coupon_id}", response_model=CouponOut)
def get_coupon(coupon_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    return _get_coupon(db, coupon_id)


@router.post("", response_model=CouponOut, status_code=status.HTTP_201_CREATED)
def create_coupon(
    payload: CouponPayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    _check_payload(payload)
    code = payload.code.strip()
    if get_coupon_by_code(db, code):
        raise HTTPException(status_code=400, detail="A coupon with this code already exists")

    coupon = Coupon(code=code, discount_percentage=payload.discount_percentage, expires_at=payload.expires_at)
    db.add(coupon)
    db.commit()
    db.refresh(coupon)

    write_log(db, user_id=current_user.id, action="COUPON_CREATE", resource="coupons", resource_id=coupon.id,
              request=request, meta={"code": coupon.code, "discount_percentage": coupon.discount_percentage})
    return coupon


@router.put("/{coupon_id}", response_model=CouponOut)
def update_coupon(
    coupon_id: int,
    payload: CouponPayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    _check_payload(payload)
    coupon = _get_coupon(db, coupon_id)

    code = payload.code.strip()
    # Renaming must not collide with another coupon
    if code != coupon.code and get_coupon_by_code(db, code):
        raise HTTPException(status_code=400, detail="A coupon with this code already exists")

    coupon.code = code
    coupon.discount_percentage = payload.discount_percentage
    coupon.expires_at = payload.expires_at
    db.commit()
    db.refresh(coupon)

    write_log(db, user_id=current_user.id, action="COUPON_UPDATE", resource="coupons", resource_id=coupon.id,
              request=request, meta={"code": coupon.code, "discount_percentage": coupon.discount_percentage})
    return coupon


@router.delete("/{coupon_id}", response_model=CouponDeleted)
def delete_coupon(
    coupon_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    coupon = _get_coupon(db, coupon_id)
    deleted = CouponOut.model_validate(coupon)
    db.delete(coupon)
    db.commit()

    write_log(db, user_id=current_user.id, action="COUPON_DELETE", resource="coupons", resource_id=coupon_id,
              request=request, meta={"code": deleted.code})
    return CouponDeleted(message="Coupon deleted successfully", coupon=deleted)
