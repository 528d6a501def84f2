# backend/utils/stock_ledger.py
"""
Stock changes for product variants.

All functions only stage changes on the session; the caller owns the
transaction and decides when to commit or roll back.
"""
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from models.order import OrderItem
from models.product import ProductVariant
from models.stock import StockMovement, MOVEMENT_OUT, MOVEMENT_IN, MOVEMENT_ADJUSTMENT

logger = logging.getLogger(__name__)


class InsufficientStockError(Exception):
    def __init__(self, variant_id: int, requested: int, available: Optional[int] = None):
        self.variant_id = variant_id
        self.requested = requested
        self.available = available
        super().__init__(f"Not enough stock for variant {variant_id}")


def _record(db: Session, variant_id: int, qty: int, movement_type: str, reason: str,
            order_id: Optional[int] = None, user_id: Optional[int] = None) -> None:
    db.add(StockMovement(
        product_variant_id=variant_id, order_id=order_id, user_id=user_id,
        qty=qty, type=movement_type, reason=reason,
    ))


def decrement(db: Session, variant_id: int, qty: int, *, order_id=None, user_id=None) -> None:
    """Take `qty` units out of stock, or raise if fewer are left."""
    updated = (
        db.query(ProductVariant)
        .filter(ProductVariant.id == variant_id, ProductVariant.stock >= qty)
        .update({ProductVariant.stock: ProductVariant.stock - qty}, synchronize_session=False)
    )
    if updated == 0:
        available = db.query(ProductVariant.stock).filter(ProductVariant.id == variant_id).scalar()
        raise InsufficientStockError(variant_id, qty, available)

    _record(db, variant_id, -qty, MOVEMENT_OUT, "Order placed", order_id, user_id)


def restore(db: Session, variant_id: int, qty: int, *, order_id=None, user_id=None) -> None:
    """Put `qty` units back after a cancellation."""
    updated = (
        db.query(ProductVariant)
        .filter(ProductVariant.id == variant_id)
        .update({ProductVariant.stock: ProductVariant.stock + qty}, synchronize_session=False)
    )
    if updated == 0:
        # Variant deleted since the order was placed; nothing to restore into
        logger.warning(f"Cannot restore stock: variant {variant_id} no longer exists (order {order_id})")
        return

    _record(db, variant_id, qty, MOVEMENT_IN, "Order cancelled", order_id, user_id)


def has_been_ordered(db: Session, variant_id: int) -> bool:
    return db.query(OrderItem.id).filter(OrderItem.product_variant_id == variant_id).first() is not None


def set_variant(db: Session, variant: ProductVariant, *, price=None, stock=None, color=None, size=None,
                user_id=None, reason=None) -> ProductVariant:
    """
    Admin edit of a variant. Once a variant appears on an order, color and size
    are frozen so historical order lines keep their meaning.
    """
    attrs_change = (
        (color is not None and color != (variant.color or "")) or
        (size is not None and size != (variant.size or ""))
    )
    if attrs_change and has_been_ordered(db, variant.id):
        raise HTTPException(
            status_code=400,
            detail="Variant has been ordered; only price and stock can be changed",
        )

    if price is not None:
        variant.price = price
    if color is not None:
        variant.color = color
    if size is not None:
        variant.size = size

    if stock is not None and stock != variant.stock:
        delta = stock - variant.stock
        variant.stock = stock
        _record(db, variant.id, delta, MOVEMENT_ADJUSTMENT, reason or "Manual adjustment", user_id=user_id)

    return variant
