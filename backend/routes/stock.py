# backend/routes/stock.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session, joinedload
from typing import Optional

from database import get_db
from models.stock import StockMovement
from models.product import ProductVariant
from models.users import User
from utils.tokenJWT import require_admin
from utils.audit import write_log
from utils import stock_ledger
import schemas.stock as stock_schemas

router = APIRouter(prefix="/stock", tags=["Stock"])


@router.get("/movements", response_model=stock_schemas.StockMovementPage)
def list_movements(
    variant_id: Optional[int] = Query(None),
    order_id: Optional[int] = Query(None),
    type: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    query = db.query(StockMovement).options(
        joinedload(StockMovement.variant).joinedload(ProductVariant.product),
        joinedload(StockMovement.user),
    )
    if variant_id is not None:
        query = query.filter(StockMovement.product_variant_id == variant_id)
    if order_id is not None:
        query = query.filter(StockMovement.order_id == order_id)
    if type:
        query = query.filter(StockMovement.type == type.upper())

    query = query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
    total = query.count()
    rows = query.offset((page - 1) * page_size).limit(page_size).all()

    items = [{
        "id": m.id,
        "created_at": m.created_at,
        "product_variant_id": m.product_variant_id,
        "order_id": m.order_id,
        "user_id": m.user_id,
        "qty": m.qty,
        "type": m.type,
        "reason": m.reason,
        "product_name": m.variant.product.name if m.variant and m.variant.product else "Unknown",
        "user_email": m.user.email if m.user else "System",
    } for m in rows]

    return {"items": items, "total": total, "page": page, "page_size": page_size}


# Direct edit of price/stock (and color/size while the variant was never ordered)
@router.patch("/variants/{variant_id}", response_model=stock_schemas.VariantOut)
def update_variant(
    variant_id: int,
    payload: stock_schemas.VariantUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    variant = db.query(ProductVariant).filter(ProductVariant.id == variant_id).first()
    if not variant:
        raise HTTPException(status_code=404, detail="Product variant not found")

    before = {"price": variant.price, "stock": variant.stock, "color": variant.color, "size": variant.size}
    stock_ledger.set_variant(
        db, variant,
        price=payload.price, stock=payload.stock, color=payload.color, size=payload.size,
        user_id=current_user.id, reason=payload.reason,
    )
    db.commit()
    db.refresh(variant)

    write_log(db, user_id=current_user.id, action="VARIANT_UPDATE", resource="stock", resource_id=variant.id,
              request=request, meta={"before": before, "changes": payload.model_dump(exclude_none=True)})
    return variant
