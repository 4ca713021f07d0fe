# Overview: Service-layer operations for quotes; encapsulates pricing and snapshot logic.

"""
Quote Engine

WHY: A quote freezes what the buyer is about to pay. It copies the cart's
lines at snapshot time and prices them once; nothing about it changes
afterwards, so the order placed from it charges exactly what was shown.

PRICING (placeholders until real tax/shipping rules exist):
- subtotal    = sum(price * quantity)
- discount    = subtotal * rate, for a known promo code, else 0
- tax         = (subtotal - discount) * 8.25%
- shipping    = flat 10.00
- grand_total = subtotal - discount + tax + shipping

LIFECYCLE:
- expires_at = created_at + 24h
- The source cart is left untouched; abandoning a quote loses nothing
- The engine never auto-expires or deletes quotes. Callers compare now
  against expires_at (see is_expired); order placement retires the quote
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from ..extensions import db
from ..errors import EmptyCartError, ForbiddenError, NotFoundError, ValidationError
from ..ids import new_id
from ..models import Cart, Quote, QuoteItem
from businesscart.time_utils import utcnow


TAX_RATE = Decimal("0.0825")
FLAT_SHIPPING = Decimal("10.00")
QUOTE_TTL = timedelta(hours=24)

# promo code -> fraction of subtotal discounted
PROMOTIONS = {
    "SAVE10": Decimal("0.10"),
}

MONEY_PLACES = Decimal("0.0001")


@dataclass(frozen=True)
class QuoteTotals:
    subtotal: Decimal
    discount: Decimal
    shipping_cost: Decimal
    tax_amount: Decimal
    grand_total: Decimal


def _round(amount: Decimal) -> Decimal:
    return amount.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def calculate_discount(subtotal: Decimal, promo_code: str | None) -> Decimal:
    if not promo_code:
        return Decimal("0")
    if not isinstance(promo_code, str):
        raise ValidationError("promoCode must be a string")
    rate = PROMOTIONS.get(promo_code.strip().upper())
    if rate is None:
        raise ValidationError(f"Unknown promo code: {promo_code}")
    return subtotal * rate


def calculate_tax(taxable: Decimal) -> Decimal:
    return taxable * TAX_RATE


def calculate_shipping(subtotal: Decimal) -> Decimal:
    return FLAT_SHIPPING


def calculate_totals(lines, promo_code: str | None = None) -> QuoteTotals:
    """Price a list of cart lines. Pure; no database access."""
    subtotal = sum(
        (Decimal(line.price) * line.quantity for line in lines),
        Decimal("0"),
    )
    discount = calculate_discount(subtotal, promo_code)
    taxable = subtotal - discount
    tax = calculate_tax(taxable)
    shipping = calculate_shipping(subtotal)
    return QuoteTotals(
        subtotal=_round(subtotal),
        discount=_round(discount),
        shipping_cost=_round(shipping),
        tax_amount=_round(tax),
        grand_total=_round(taxable + tax + shipping),
    )


def create_quote(cart: Cart, promo_code: str | None = None, now: datetime | None = None) -> Quote:
    """
    Snapshot a non-empty cart into a persisted, priced quote.

    Args:
        cart: Source cart (read only)
        promo_code: Optional promotion code
        now: Creation time override (defaults to utcnow)

    Returns:
        The persisted Quote

    Raises:
        EmptyCartError: If the cart has no items (nothing is persisted)
        ValidationError: If the promo code is unknown
    """
    lines = list(cart.items)
    if not lines:
        raise EmptyCartError()

    totals = calculate_totals(lines, promo_code)
    created_at = now or utcnow()

    quote = Quote(
        id=new_id(),
        cart_id=cart.id,
        buyer_id=cart.buyer_id,
        seller_id=cart.seller_id,
        subtotal=totals.subtotal,
        discount=totals.discount,
        shipping_cost=totals.shipping_cost,
        tax_amount=totals.tax_amount,
        grand_total=totals.grand_total,
        promo_code=promo_code.strip().upper() if promo_code else None,
        created_at=created_at,
        expires_at=created_at + QUOTE_TTL,
        items=[
            QuoteItem(
                item_id=line.id,
                product_id=line.product_id,
                name=line.name,
                price=line.price,
                quantity=line.quantity,
            )
            for line in lines
        ],
    )

    db.session.add(quote)
    db.session.commit()
    return quote


def get_quote(quote_id: str) -> Quote:
    """
    Raises:
        NotFoundError: If the quote does not exist (or was retired)
    """
    quote = db.session.get(Quote, quote_id) if quote_id else None
    if not quote:
        raise NotFoundError("Quote not found")
    return quote


def get_quote_for_buyer(quote_id: str, buyer_id: str) -> Quote:
    """Load a quote and require that it belongs to buyer_id."""
    quote = get_quote(quote_id)
    if quote.buyer_id != buyer_id:
        raise ForbiddenError("Forbidden")
    return quote


def is_expired(quote: Quote, now: datetime | None = None) -> bool:
    return (now or utcnow()) >= quote.expires_at
