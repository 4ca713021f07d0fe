# Overview: Service-layer operations for orders; encapsulates the order placement saga.

"""
Order Ledger

WHY: An order is the durable record that money was taken for a quote. It is
written once and never updated.

PLACEMENT SAGA (keyed by quote id):
1. Load the quote; it must belong to the buyer
2. Reject quotes that already produced an order (no second charge) and
   quotes past expires_at
3. Charge the gateway for grand_total. A decline changes nothing
4. Insert the Order and its CheckoutCleanup record in one transaction
5. Best-effort cleanup: clear the buyer's cart for the seller, delete the
   quote. Each step is idempotent and commits on its own; a failure is
   logged and left on the CheckoutCleanup row for reconcile_cleanups()
   to retry. Cleanup failures never roll back the order.

Nothing here retries internally. Retrying a declined or failed request is the
caller's decision.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..errors import ConflictError, ForbiddenError, QuoteExpiredError, StorageError
from ..ids import new_id
from ..models import CheckoutCleanup, Order, OrderItem, Quote
from . import cart_service, quote_service
from .access_scope import RESOURCE_ORDERS, resolve_filter
from .payment_service import DemoPaymentGateway, normalize_method
from businesscart.time_utils import utcnow


# =============================================================================
# CLEANUP STEPS
# =============================================================================

def _delete_quote(quote_id: str) -> None:
    """Retire the source quote. Deleting an already-deleted quote is a no-op."""
    quote = db.session.get(Quote, quote_id)
    if quote is not None:
        db.session.delete(quote)
    db.session.commit()


def run_cleanup(cleanup: CheckoutCleanup) -> bool:
    """
    Run both compensation steps for a placed order.

    Returns True when the cleanup is complete.
    """
    quote_id = cleanup.quote_id
    buyer_id = cleanup.buyer_id
    seller_id = cleanup.seller_id
    errors = []

    try:
        cart_service.clear_cart(buyer_id, seller_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        errors.append(f"clear_cart: {exc.__class__.__name__}")
        current_app.logger.warning(
            "Deferred cart cleanup for quote %s (buyer %s, seller %s)",
            quote_id, buyer_id, seller_id, exc_info=True,
        )

    try:
        _delete_quote(quote_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        errors.append(f"delete_quote: {exc.__class__.__name__}")
        current_app.logger.warning("Deferred quote deletion for quote %s", quote_id, exc_info=True)

    try:
        record = db.session.get(CheckoutCleanup, quote_id)
        record.attempts = (record.attempts or 0) + 1
        if errors:
            record.last_error = "; ".join(errors)[:255]
        else:
            record.last_error = None
            record.completed_at = utcnow()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning("Could not record cleanup state for quote %s", quote_id, exc_info=True)
        return False

    return not errors


def reconcile_cleanups(limit: int | None = None) -> dict:
    """
    Retry cleanup for every order whose cart/quote were never cleaned up.

    Returns:
        {"processed": n, "completed": n, "pending": n}
    """
    query = (
        db.session.query(CheckoutCleanup)
        .filter(CheckoutCleanup.completed_at.is_(None))
        .order_by(CheckoutCleanup.created_at.asc())
    )
    if limit:
        query = query.limit(limit)

    pending = query.all()
    completed = 0
    for cleanup in pending:
        if run_cleanup(cleanup):
            completed += 1

    return {
        "processed": len(pending),
        "completed": completed,
        "pending": len(pending) - completed,
    }


# =============================================================================
# ORDER PLACEMENT
# =============================================================================

def place_order(
    quote_id: str,
    buyer_id: str,
    payment_token: str,
    payment_method: str | None = None,
    gateway=None,
    now: datetime | None = None,
) -> Order:
    """
    Charge for a quote and record the order.

    Args:
        quote_id: Quote to purchase
        buyer_id: Authenticated buyer; must own the quote
        payment_token: Client payment token
        payment_method: Gateway method (defaults to stripe)
        gateway: Object with charge(amount, method, token) -> transaction id
        now: Placement time override (defaults to utcnow)

    Returns:
        The persisted Order

    Raises:
        NotFoundError: Quote absent
        ForbiddenError: Quote belongs to another buyer
        ConflictError: An order already exists for the quote
        QuoteExpiredError: Quote is past expires_at
        PaymentDeclinedError: Gateway declined; nothing was written
        StorageError: Order could not be persisted after the charge
    """
    gateway = gateway or DemoPaymentGateway()
    method = normalize_method(payment_method)
    placed_at = now or utcnow()

    quote = quote_service.get_quote(quote_id)
    if quote.buyer_id != buyer_id:
        raise ForbiddenError("Forbidden")

    existing = db.session.query(Order).filter_by(quote_id=quote.id).first()
    if existing:
        cleanup = db.session.get(CheckoutCleanup, quote.id)
        if cleanup is not None and cleanup.completed_at is None:
            run_cleanup(cleanup)
        raise ConflictError(
            "An order has already been placed for this quote",
            details={"orderId": existing.id},
        )

    if quote_service.is_expired(quote, placed_at):
        raise QuoteExpiredError()

    transaction_id = gateway.charge(quote.grand_total, method, payment_token)

    order_id = new_id()
    order = Order(
        id=order_id,
        quote_id=quote.id,
        buyer_id=quote.buyer_id,
        seller_id=quote.seller_id,
        subtotal=quote.subtotal,
        discount=quote.discount,
        shipping_cost=quote.shipping_cost,
        tax_amount=quote.tax_amount,
        grand_total=quote.grand_total,
        payment_method=method,
        transaction_id=transaction_id,
        created_at=placed_at,
        items=[
            OrderItem(
                product_id=item.product_id,
                name=item.name,
                price=item.price,
                quantity=item.quantity,
            )
            for item in quote.items
        ],
    )
    cleanup = CheckoutCleanup(
        quote_id=quote.id,
        order_id=order_id,
        buyer_id=quote.buyer_id,
        seller_id=quote.seller_id,
        attempts=0,
    )

    db.session.add(order)
    db.session.add(cleanup)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.error(
            "Concurrent order for quote %s; charge %s (%s) was not recorded and needs a refund",
            quote_id, transaction_id, method,
        )
        winner = db.session.query(Order).filter_by(quote_id=quote.id).first()
        details = {"transactionId": transaction_id, "paymentMethod": method}
        if winner:
            details["orderId"] = winner.id
        raise ConflictError("An order has already been placed for this quote", details=details)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "Failed to persist order for quote %s after charge %s", quote_id, transaction_id,
        )
        raise StorageError()

    current_app.logger.info(
        "Placed order %s for quote %s (buyer %s, seller %s, tx %s)",
        order_id, quote_id, buyer_id, order.seller_id, transaction_id,
    )

    run_cleanup(cleanup)
    return db.session.get(Order, order_id)


# =============================================================================
# ORDER QUERIES
# =============================================================================

def get_orders(role, subject_id: str, associated_company_ids=None) -> list[Order]:
    """Orders visible to the caller, newest first."""
    scope = resolve_filter(role, subject_id, associated_company_ids, RESOURCE_ORDERS)
    return (
        db.session.query(Order)
        .filter(scope)
        .order_by(Order.created_at.desc())
        .all()
    )


def get_visible_order(order_id: str, role, subject_id: str, associated_company_ids=None) -> Order | None:
    """A single order if it exists and is visible to the caller."""
    scope = resolve_filter(role, subject_id, associated_company_ids, RESOURCE_ORDERS)
    return (
        db.session.query(Order)
        .filter(Order.id == order_id)
        .filter(scope)
        .first()
    )
