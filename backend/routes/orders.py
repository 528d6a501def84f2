# backend/routes/orders.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session, joinedload
import logging

from database import get_db
from utils.tokenJWT import get_current_user, require_admin
from utils.audit import write_log
from utils.checkout import place_order
from utils.pdf import generate_invoice_pdf, get_pdf_path
from utils.pricing import round2
from utils import stock_ledger
from models.log import LOG_SUCCESS, LOG_PARTIAL, LOG_FAIL
from models.users import User
from models.product import ProductVariant
from models.order import Order, OrderItem, OrderStatus, ORDER_STATUSES
from models.invoice import Invoice, PaymentStatus
from schemas.order import (
    OrderResponse, AdminOrderResponse, OrderCreateResponse, OrderCreatePayload,
    OrderStatusPatch, OrderCancelResponse, OrderItemOut, VariantSummary, ProductSummary, AddressOut,
)
from schemas.invoice import InvoiceResponse, InvoiceCustomer

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)

# Order with items, live variant/product data and shipping address
def _order_query(db: Session):
    return db.query(Order).options(
        joinedload(Order.items).joinedload(OrderItem.variant).joinedload(ProductVariant.product),
        joinedload(Order.shipping_address),
    )

# Map OrderItem model to OrderItemOut; price/quantity frozen, product data live
def _item_to_out(it: OrderItem) -> OrderItemOut:
    variant_out = None
    if it.variant:
        product = it.variant.product
        variant_out = VariantSummary(
            id=it.variant.id,
            price=it.variant.price,
            color=it.variant.color,
            size=it.variant.size,
            product=ProductSummary(id=product.id, name=product.name, images=product.images) if product else None,
        )
    return OrderItemOut(
        id=it.id,
        product_variant_id=it.product_variant_id,
        quantity=it.quantity,
        price=it.price,
        line_total=round2(it.price * it.quantity),
        product_variant=variant_out,
    )

def _order_fields(order: Order) -> dict:
    return dict(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        total=round2(order.total),
        shipping_address_id=order.shipping_address_id,
        payment_method=order.payment_method,
        coupon_code=order.coupon_code,
        discount_amount=round2(order.discount_amount or 0),
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=[_item_to_out(it) for it in order.items],
        shipping_address=AddressOut.model_validate(order.shipping_address) if order.shipping_address else None,
    )

def _order_to_out(order: Order) -> OrderResponse:
    return OrderResponse(**_order_fields(order))

def _owned_order(db: Session, order_id: int, user: User) -> Order:
    order = _order_query(db).filter(Order.id == order_id, Order.user_id == user.id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order

def _invoice_order(db: Session, order_id: int, user: User) -> Order:
    # Admins may read any invoice, customers only their own
    order = _order_query(db).options(
        joinedload(Order.user),
        joinedload(Order.invoice).joinedload(Invoice.billing_address),
    ).filter(Order.id == order_id).first()

    if not order or not order.invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    if order.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Not authorized to access this invoice")
    return order


# Place an order from the submitted cart snapshot
@router.post("", response_model=OrderCreateResponse, status_code=201)
def create_order(
    payload: OrderCreatePayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        result = place_order(db, current_user, payload)
    except HTTPException as e:
        write_log(
            db, user_id=current_user.id, action="ORDER_CREATE", resource="orders", status=LOG_FAIL,
            request=request, meta={"reason": e.detail, "status_code": e.status_code, "items": len(payload.items)},
        )
        raise

    write_log(
        db, user_id=current_user.id, action="ORDER_CREATE", resource="orders", resource_id=result.order.id,
        status=LOG_SUCCESS if result.complete else LOG_PARTIAL, request=request,
        meta={"total": result.order.total, "items": len(payload.items),
              "coupon": result.order.coupon_code, "warnings": result.warnings},
    )

    order = _order_query(db).filter(Order.id == result.order.id).first()
    return OrderCreateResponse(
        **_order_fields(order),
        subtotal=result.subtotal,
        shipping_cost=result.shipping_cost,
        warnings=result.warnings,
    )


# List the caller's orders, newest first
@router.get("", response_model=List[OrderResponse])
@router.get("/my-orders", response_model=List[OrderResponse])
def list_my_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    orders = _order_query(db).filter(Order.user_id == current_user.id).order_by(
        Order.created_at.desc(), Order.id.desc()
    ).all()
    return [_order_to_out(o) for o in orders]


# All orders with customer identity (Admin only)
@router.get("/admin/all", response_model=List[AdminOrderResponse])
def list_all_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    orders = _order_query(db).options(joinedload(Order.user)).order_by(
        Order.created_at.desc(), Order.id.desc()
    ).all()
    return [
        AdminOrderResponse(
            **_order_fields(o),
            user_email=o.user.email if o.user else None,
            user_first_name=o.user.first_name if o.user else None,
            user_last_name=o.user.last_name if o.user else None,
        )
        for o in orders
    ]


# Get details of one of the caller's orders
@router.get("/{order_id}", response_model=OrderResponse)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _order_to_out(_owned_order(db, order_id, current_user))


# Set any valid status (Admin only); no transition graph is enforced
@router.patch("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    if payload.status not in ORDER_STATUSES:
        raise HTTPException(
            status_code=400,
            detail={"message": "Invalid status", "valid_statuses": ORDER_STATUSES},
        )

    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    old_status = order.status
    order.status = payload.status
    db.commit()
    write_log(db, user_id=current_user.id, action="ORDER_STATUS_CHANGE", resource="orders", resource_id=order.id,
              request=request, meta={"old": old_status, "new": payload.status})

    return _order_to_out(_order_query(db).filter(Order.id == order_id).first())


# Cancel a pending order, put its stock back and void the invoice payment
@router.post("/{order_id}/cancel", response_model=OrderCancelResponse)
def cancel_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    order = _owned_order(db, order_id, current_user)
    if order.status != OrderStatus.PENDING.value:
        raise HTTPException(
            status_code=400,
            detail={"message": "Only pending orders can be cancelled", "current_status": order.status},
        )

    # Guarded update so two concurrent cancels cannot both restore stock
    updated = db.query(Order).filter(
        Order.id == order.id, Order.status == OrderStatus.PENDING.value
    ).update({Order.status: OrderStatus.CANCELLED.value}, synchronize_session=False)
    if updated == 0:
        db.rollback()
        raise HTTPException(status_code=400, detail={"message": "Only pending orders can be cancelled"})

    for item in order.items:
        stock_ledger.restore(db, item.product_variant_id, item.quantity,
                             order_id=order.id, user_id=current_user.id)
    db.query(Invoice).filter(Invoice.order_id == order.id).update(
        {Invoice.payment_status: PaymentStatus.CANCELLED}, synchronize_session=False
    )
    db.commit()
    logger.info(f"Order {order.id} cancelled, stock restored for {len(order.items)} item(s)")

    write_log(db, user_id=current_user.id, action="ORDER_CANCEL", resource="orders", resource_id=order.id,
              request=request, meta={"items": len(order.items)})

    db.expire_all()
    refreshed = _order_query(db).filter(Order.id == order_id).first()
    return OrderCancelResponse(message="Order cancelled successfully", order=_order_to_out(refreshed))


# Invoice document for an order
@router.get("/{order_id}/invoice", response_model=InvoiceResponse)
def get_order_invoice(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    order = _invoice_order(db, order_id, current_user)
    invoice = order.invoice
    items = [_item_to_out(it) for it in order.items]
    subtotal = round2(sum(it.line_total for it in items))
    discount = round2(order.discount_amount or 0)

    return InvoiceResponse(
        invoice_id=invoice.id,
        invoice_number=invoice.full_number,
        invoice_amount=round2(invoice.amount),
        invoice_date=invoice.created_at,
        payment_status=invoice.payment_status.value,
        order_id=order.id,
        order_status=order.status,
        payment_method=order.payment_method,
        coupon_code=order.coupon_code,
        subtotal=subtotal,
        discount_amount=discount,
        shipping_cost=round2(max(invoice.amount - (subtotal - discount), 0)),
        customer=InvoiceCustomer(
            id=order.user.id, email=order.user.email,
            first_name=order.user.first_name, last_name=order.user.last_name,
        ),
        billing_address=AddressOut.model_validate(invoice.billing_address) if invoice.billing_address else None,
        shipping_address=AddressOut.model_validate(order.shipping_address) if order.shipping_address else None,
        items=items,
    )


# Download the invoice as PDF, rendering it on first request
@router.get("/{order_id}/invoice/pdf")
def download_invoice_pdf(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    order = _invoice_order(db, order_id, current_user)
    pdf_path = get_pdf_path(order.invoice)

    # Cached per invoice, order, creation time and payment status
    if not pdf_path.exists():
        try:
            generate_invoice_pdf(order, pdf_path)
        except OSError as e:
            logger.exception(f"Could not render invoice PDF for order {order.id}")
            raise HTTPException(status_code=500, detail=f"Could not generate PDF: {e}")

    return FileResponse(path=pdf_path, media_type="application/pdf", filename=f"{order.invoice.full_number}.pdf")
