# backend/routes/cart.py
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session, joinedload
from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log
from utils.pricing import round2, compute_subtotal, compute_totals
from models.users import User
from models.product import ProductVariant
from models.cart import Cart, CartItem
from schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartItemOut

router = APIRouter(prefix="/cart", tags=["Cart"])

def _get_or_create_cart(db: Session, user_id: int) -> Cart:
    # One cart per user, created on first access
    cart = db.query(Cart).options(
        joinedload(Cart.items).joinedload(CartItem.variant).joinedload(ProductVariant.product)
    ).filter(Cart.user_id == user_id).first()
    if not cart:
        cart = Cart(user_id=user_id)
        db.add(cart)
        db.commit()
        db.refresh(cart)
    return cart

def _cart_to_out(cart: Cart) -> CartOut:
    items_out = []
    for it in cart.items:
        variant = it.variant
        # Cart shows live prices; they are frozen only when the order is placed
        unit_price = round2(variant.price) if variant else 0.0
        items_out.append(CartItemOut(
            id=it.id,
            product_variant_id=it.product_variant_id,
            product_id=variant.product_id if variant else None,
            name=variant.product.name if variant and variant.product else "",
            color=variant.color if variant else None,
            size=variant.size if variant else None,
            quantity=it.quantity,
            unit_price=unit_price,
            line_total=round2(unit_price * it.quantity),
            in_stock=variant.stock if variant else 0,
        ))

    if not items_out:
        return CartOut(id=cart.id, items=[], subtotal=0.0, shipping_cost=0.0, total=0.0)

    totals = compute_totals(compute_subtotal((i.unit_price, i.quantity) for i in items_out))
    return CartOut(
        id=cart.id,
        items=items_out,
        subtotal=totals.subtotal,
        shipping_cost=totals.shipping_cost,
        total=totals.total,
    )

def _get_variant(db: Session, variant_id: int) -> ProductVariant:
    variant = db.query(ProductVariant).filter(ProductVariant.id == variant_id).first()
    if not variant:
        raise HTTPException(status_code=404, detail="Product variant not found")
    return variant

def _own_item(db: Session, cart: Cart, item_id: int) -> CartItem:
    item = db.query(CartItem).filter(CartItem.id == item_id, CartItem.cart_id == cart.id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return item

def _reload(db: Session, user_id: int) -> CartOut:
    db.expire_all()
    return _cart_to_out(_get_or_create_cart(db, user_id))

@router.get("", response_model=CartOut)
def get_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _cart_to_out(_get_or_create_cart(db, current_user.id))

@router.post("/items", response_model=CartOut, status_code=status.HTTP_201_CREATED)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = _get_or_create_cart(db, current_user.id)
    variant = _get_variant(db, payload.product_variant_id)

    item = db.query(CartItem).filter(
        CartItem.cart_id == cart.id, CartItem.product_variant_id == variant.id
    ).first()
    new_qty = payload.quantity + (item.quantity if item else 0)

    # Validate stock for the merged quantity
    if new_qty > variant.stock:
        raise HTTPException(
            status_code=400,
            detail={"message": "Not enough stock available", "available": variant.stock,
                    "in_cart": item.quantity if item else 0, "requested": payload.quantity},
        )

    if item:
        item.quantity = new_qty
    else:
        db.add(CartItem(cart_id=cart.id, product_variant_id=variant.id, quantity=payload.quantity))
    db.commit()

    write_log(db, user_id=current_user.id, action="CART_ADD", resource="cart", resource_id=cart.id,
              request=request, meta={"product_variant_id": variant.id, "quantity": payload.quantity})
    return _reload(db, current_user.id)

@router.patch("/items/{item_id}", response_model=CartOut)
def update_cart_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = _get_or_create_cart(db, current_user.id)
    item = _own_item(db, cart, item_id)

    variant = _get_variant(db, item.product_variant_id)
    if payload.quantity > variant.stock:
        raise HTTPException(
            status_code=400,
            detail={"message": "Not enough stock available", "available": variant.stock,
                    "requested": payload.quantity},
        )

    item.quantity = payload.quantity
    db.commit()

    write_log(db, user_id=current_user.id, action="CART_UPDATE", resource="cart", resource_id=cart.id,
              request=request, meta={"item_id": item_id, "quantity": payload.quantity})
    return _reload(db, current_user.id)

@router.delete("/items/{item_id}", response_model=CartOut)
def delete_cart_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = _get_or_create_cart(db, current_user.id)
    item = _own_item(db, cart, item_id)

    db.delete(item)
    db.commit()

    write_log(db, user_id=current_user.id, action="CART_DELETE", resource="cart", resource_id=cart.id,
              request=request, meta={"item_id": item_id})
    return _reload(db, current_user.id)
