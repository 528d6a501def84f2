# backend/utils/pricing.py
"""Currency arithmetic shared by the cart view and the checkout."""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple

from config import settings


def round2(value) -> float:
    """Round a currency amount half-up to 2 decimal places."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def compute_subtotal(lines: Iterable[Tuple[float, int]]) -> float:
    """Sum of unit price x quantity over (price, quantity) pairs."""
    return round2(sum(price * qty for price, qty in lines))


def compute_discount(subtotal: float, discount_percentage: int) -> float:
    discount = round2(subtotal * discount_percentage / 100)
    # 100% coupons may round a hair above the subtotal
    return min(max(discount, 0.0), subtotal)


def compute_shipping(amount: float) -> float:
    """Flat-rate shipping, free from the configured threshold up."""
    return 0.0 if amount >= settings.FREE_SHIPPING_THRESHOLD else settings.SHIPPING_COST


@dataclass
class OrderTotals:
    subtotal: float
    discount_amount: float
    shipping_cost: float
    total: float


def compute_totals(subtotal: float, discount_percentage: int = 0) -> OrderTotals:
    discount = compute_discount(subtotal, discount_percentage) if discount_percentage else 0.0
    after_discount = round2(subtotal - discount)
    shipping = compute_shipping(after_discount)
    return OrderTotals(
        subtotal=subtotal,
        discount_amount=discount,
        shipping_cost=shipping,
        total=round2(after_discount + shipping),
    )
