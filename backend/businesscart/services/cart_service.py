# Overview: Service-layer operations for carts; encapsulates business logic and database work.

"""
Cart Store

WHY: A buyer keeps one mutable cart per seller. Quotes snapshot it, order
placement clears it.

INVARIANTS:
- One cart per (buyer_id, seller_id), enforced by a unique constraint
- One line per product within a cart, enforced by a unique constraint
- Quantities are positive integers; setting a quantity of 0 removes the line
- total_price == sum(price * quantity) after every mutation. The total is
  rewritten by a single UPDATE ... SET total_price = (SELECT SUM(...)), never
  taken from the caller

CONCURRENCY:
- add_item is a single conditional increment
  (UPDATE cart_items SET quantity = quantity + n WHERE cart/product match).
  Only when no line matched is a new line inserted; if a concurrent request
  wins that insert, the unique constraint rejects ours and the increment is
  applied to the winner's line. No read-modify-write of quantities.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Cart, CartItem
from ..validation import parse_money, parse_quantity, require_string
from businesscart.time_utils import utcnow


def normalize_line(item: dict) -> dict:
    """Validate one incoming cart line and return it with canonical types."""
    if not isinstance(item, dict):
        raise ValidationError("Invalid cart item")
    return {
        "product_id": require_string(item.get("product_id"), "product_id", max_length=32),
        "name": require_string(item.get("name"), "name", max_length=255),
        "price": parse_money(item.get("price"), "price"),
        "quantity": parse_quantity(item.get("quantity")),
    }


def empty_cart_view(buyer_id: str, seller_id: str) -> dict:
    """Response body for a cart that was never persisted."""
    return {
        "id": None,
        "buyerId": buyer_id,
        "sellerId": seller_id,
        "items": [],
        "totalPrice": 0.0,
        "updatedAt": None,
    }


def find_cart(buyer_id: str, seller_id: str) -> Cart | None:
    return db.session.query(Cart).filter_by(buyer_id=buyer_id, seller_id=seller_id).first()


def get_cart(buyer_id: str, seller_id: str) -> Cart:
    """
    Load the cart for (buyer, seller).

    Raises:
        NotFoundError: If no cart has been persisted for the key
    """
    cart = find_cart(buyer_id, seller_id)
    if not cart:
        raise NotFoundError("Cart not found")
    return cart


def _ensure_cart(buyer_id: str, seller_id: str) -> Cart:
    """Return the cart row for the key, creating it if absent (commits)."""
    cart = find_cart(buyer_id, seller_id)
    if cart:
        return cart

    cart = Cart(buyer_id=buyer_id, seller_id=seller_id, total_price=Decimal("0"))
    db.session.add(cart)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request created the same cart first
        db.session.rollback()
        cart = db.session.query(Cart).filter_by(buyer_id=buyer_id, seller_id=seller_id).one()
    return cart


def _recompute_total(cart_id: str) -> None:
    line_sum = (
        select(func.coalesce(func.sum(CartItem.price * CartItem.quantity), 0))
        .where(CartItem.cart_id == cart_id)
        .scalar_subquery()
    )
    db.session.execute(
        update(Cart)
        .where(Cart.id == cart_id)
        .values(total_price=line_sum, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )


def _reload(cart_id: str) -> Cart:
    return db.session.get(Cart, cart_id, populate_existing=True)


def _find_line(cart: Cart, item_id: str) -> CartItem:
    item = db.session.query(CartItem).filter_by(id=item_id, cart_id=cart.id).first()
    if not item:
        raise NotFoundError("Item not found in cart")
    return item


def add_item(buyer_id: str, seller_id: str, item: dict) -> Cart:
    """
    Add a product line to the (buyer, seller) cart.

    If the product is already in the cart its quantity is incremented by the
    requested amount; otherwise a new line with a fresh id is appended.

    Args:
        buyer_id: Buyer account id
        seller_id: Seller (company) account id
        item: {"product_id", "name", "price", "quantity"}

    Returns:
        The updated Cart

    Raises:
        ValidationError: If the line is malformed
    """
    line = normalize_line(item)
    cart = _ensure_cart(buyer_id, seller_id)
    cart_id = cart.id

    increment = (
        update(CartItem)
        .where(CartItem.cart_id == cart_id, CartItem.product_id == line["product_id"])
        .values(quantity=CartItem.quantity + line["quantity"])
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(increment)
    if result.rowcount == 0:
        db.session.add(CartItem(
            cart_id=cart_id,
            product_id=line["product_id"],
            name=line["name"],
            price=line["price"],
            quantity=line["quantity"],
        ))
        try:
            db.session.flush()
        except IntegrityError:
            # Lost the insert race for this product; fold into the winner's line
            db.session.rollback()
            db.session.execute(increment)

    _recompute_total(cart_id)
    db.session.commit()
    return _reload(cart_id)


def set_item_quantity(buyer_id: str, seller_id: str, item_id: str, quantity) -> Cart:
    """
    Replace the quantity of an existing line. A quantity of 0 removes it.

    Raises:
        NotFoundError: If the cart or the item does not exist
        ValidationError: If quantity is negative or not an integer
    """
    qty = parse_quantity(quantity, allow_zero=True)
    cart = get_cart(buyer_id, seller_id)
    item = _find_line(cart, item_id)

    if qty == 0:
        db.session.delete(item)
    else:
        item.quantity = qty
    db.session.flush()

    _recompute_total(cart.id)
    db.session.commit()
    return _reload(cart.id)


def remove_item(buyer_id: str, seller_id: str, item_id: str) -> Cart:
    """
    Remove a line from the cart.

    Raises:
        NotFoundError: If the cart or the item does not exist
    """
    cart = get_cart(buyer_id, seller_id)
    item = _find_line(cart, item_id)

    db.session.delete(item)
    db.session.flush()

    _recompute_total(cart.id)
    db.session.commit()
    return _reload(cart.id)


def clear_cart(buyer_id: str, seller_id: str) -> Cart:
    """
    Empty the cart. Creates an empty cart row if none exists, so clearing a
    never-created cart succeeds.
    """
    cart = _ensure_cart(buyer_id, seller_id)
    cart_id = cart.id

    db.session.query(CartItem).filter_by(cart_id=cart_id).delete(synchronize_session=False)
    _recompute_total(cart_id)
    db.session.commit()
    return _reload(cart_id)


def save_cart(buyer_id: str, seller_id: str, items: list[dict]) -> Cart:
    """
    Upsert the whole cart for (buyer, seller) with the given lines.

    Lines for the same product are merged. The total is always recomputed
    from the lines; a caller-supplied total is ignored.
    """
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    merged: dict[str, dict] = {}
    for raw in items:
        line = normalize_line(raw)
        existing = merged.get(line["product_id"])
        if existing:
            existing["quantity"] += line["quantity"]
        else:
            merged[line["product_id"]] = line

    cart = _ensure_cart(buyer_id, seller_id)
    cart_id = cart.id

    db.session.query(CartItem).filter_by(cart_id=cart_id).delete(synchronize_session=False)
    for line in merged.values():
        db.session.add(CartItem(cart_id=cart_id, **line))
    db.session.flush()

    _recompute_total(cart_id)
    db.session.commit()
    return _reload(cart_id)
