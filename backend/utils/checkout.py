# backend/utils/checkout.py
"""
Order placement from a cart snapshot.

Everything that can reject the order is checked before the first write.
The order, its items, the stock decrements and the invoice are then committed
as one transaction. Clearing the cart runs in a savepoint inside that
transaction: if it fails, only the savepoint is rolled back and the failure is
reported in ``CheckoutResult.warnings``.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models.address import Address
from models.cart import Cart, CartItem
from models.invoice import Invoice, PaymentStatus
from models.order import Order, OrderItem, OrderStatus
from models.product import ProductVariant
from models.users import User
from schemas.order import OrderCreatePayload, OrderItemCreate
from utils import stock_ledger
from utils.coupons import validate_coupon
from utils.pricing import compute_subtotal, compute_totals, round2

logger = logging.getLogger(__name__)

WARNING_CART_CLEAR_FAILED = "cart_clear_failed"


@dataclass
class CheckoutResult:
    order: Order
    subtotal: float
    shipping_cost: float
    warnings: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.warnings


def owned_address(db: Session, address_id: int, user_id: int) -> Optional[Address]:
    return db.query(Address).filter(Address.id == address_id, Address.user_id == user_id).first()


def _load_variants(db: Session, items: List[OrderItemCreate]) -> Dict[int, ProductVariant]:
    ids = {item.product_variant_id for item in items}
    variants = {v.id: v for v in db.query(ProductVariant).filter(ProductVariant.id.in_(ids)).all()}
    for item in items:
        if item.product_variant_id not in variants:
            raise HTTPException(status_code=404, detail=f"Product variant {item.product_variant_id} not found")
    return variants


def _check_stock(items: List[OrderItemCreate], variants: Dict[int, ProductVariant]) -> None:
    # The same variant may appear on several lines
    requested: Dict[int, int] = {}
    for item in items:
        requested[item.product_variant_id] = requested.get(item.product_variant_id, 0) + item.quantity

    for variant_id, qty in requested.items():
        if variants[variant_id].stock < qty:
            raise HTTPException(status_code=400, detail=f"Not enough stock for variant {variant_id}")


def _unit_price(item: OrderItemCreate, variant: ProductVariant) -> float:
    if settings.TRUST_CLIENT_PRICING and item.price:
        return round2(item.price)
    return round2(variant.price or 0)


def _clear_cart_items(db: Session, user_id: int) -> int:
    cart = db.query(Cart).filter(Cart.user_id == user_id).first()
    if cart is None:
        return 0
    return db.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session=False)


def place_order(db: Session, user: User, payload: OrderCreatePayload) -> CheckoutResult:
    # 1. Validate the request
    if not payload.items:
        raise HTTPException(status_code=400, detail="No items in order")
    if not payload.shipping_address_id:
        raise HTTPException(status_code=400, detail="Shipping address is required")
    if not owned_address(db, payload.shipping_address_id, user.id):
        raise HTTPException(status_code=400, detail="Invalid shipping address")

    billing_address_id = payload.billing_address_id or payload.shipping_address_id
    if payload.billing_address_id and not owned_address(db, payload.billing_address_id, user.id):
        raise HTTPException(status_code=400, detail="Invalid billing address")

    variants = _load_variants(db, payload.items)
    _check_stock(payload.items, variants)

    # 2. Price the order
    prices = [_unit_price(item, variants[item.product_variant_id]) for item in payload.items]
    subtotal = compute_subtotal(zip(prices, (item.quantity for item in payload.items)))

    coupon = None
    if payload.coupon_code:
        check = validate_coupon(db, payload.coupon_code)
        if check.valid:
            coupon = check.coupon
        else:
            # Coupon errors belong to the validation endpoint; checkout goes on without it
            logger.info(f"Ignoring coupon {payload.coupon_code!r} for user {user.id}: {check.reason}")

    totals = compute_totals(subtotal, coupon.discount_percentage if coupon else 0)
    charged_total = totals.total
    if settings.TRUST_CLIENT_PRICING and payload.total:
        charged_total = round2(payload.total)

    logger.info(
        f"Placing order for user {user.id}: subtotal={totals.subtotal} discount={totals.discount_amount} "
        f"shipping={totals.shipping_cost} total={charged_total} coupon={coupon.code if coupon else None}"
    )

    # 3. Order, items, stock and invoice in one transaction
    try:
        order = Order(
            user_id=user.id,
            status=OrderStatus.PENDING.value,
            total=charged_total,
            shipping_address_id=payload.shipping_address_id,
            payment_method=payload.payment_method,
            coupon_code=coupon.code if coupon else None,
            discount_amount=totals.discount_amount,
        )
        db.add(order)
        db.flush()

        db.add_all([
            OrderItem(
                order_id=order.id,
                product_variant_id=item.product_variant_id,
                quantity=item.quantity,
                price=price,
            )
            for item, price in zip(payload.items, prices)
        ])

        for item in payload.items:
            stock_ledger.decrement(db, item.product_variant_id, item.quantity, order_id=order.id, user_id=user.id)

        db.add(Invoice(
            order_id=order.id,
            amount=charged_total,
            billing_address_id=billing_address_id,
            payment_status=PaymentStatus.PAID,
        ))
        db.flush()
    except stock_ledger.InsufficientStockError as e:
        # Another checkout took the stock between validation and decrement
        db.rollback()
        logger.warning(f"Checkout for user {user.id} aborted: {e} (requested {e.requested}, left {e.available})")
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Checkout for user {user.id} failed, nothing was saved")
        raise HTTPException(status_code=500, detail=f"Error creating order: {e}")

    # 4. Cart clearing must not block the order
    warnings: List[str] = []
    try:
        with db.begin_nested():
            cleared = _clear_cart_items(db, user.id)
        logger.info(f"Order {order.id}: cleared {cleared} cart item(s)")
    except SQLAlchemyError as e:
        logger.error(f"Order {order.id}: cart for user {user.id} was not cleared: {e}")
        warnings.append(WARNING_CART_CLEAR_FAILED)

    db.commit()
    db.refresh(order)

    return CheckoutResult(
        order=order,
        subtotal=totals.subtotal,
        shipping_cost=totals.shipping_cost,
        warnings=warnings,
    )
