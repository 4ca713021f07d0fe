from __future__ import annotations

from ..extensions import db
from ..ids import new_id
from businesscart.time_utils import to_utc_z, utcnow


def _money(value) -> float:
    return float(value) if value is not None else 0.0


class Cart(db.Model):
    """
    Mutable per-(buyer, seller) cart.

    total_price is derived: it is rewritten from the item rows after every
    mutation and never accepted from a caller.
    """
    __tablename__ = "carts"
    __table_args__ = (
        db.UniqueConstraint("buyer_id", "seller_id", name="uq_carts_buyer_seller"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    buyer_id = db.Column(db.String(32), nullable=False, index=True)
    seller_id = db.Column(db.String(32), nullable=False, index=True)
    total_price = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "CartItem",
        backref="cart",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CartItem.added_at",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "buyerId": self.buyer_id,
            "sellerId": self.seller_id,
            "items": [item.to_dict() for item in self.items],
            "totalPrice": _money(self.total_price),
            "updatedAt": to_utc_z(self.updated_at),
        }


class CartItem(db.Model):
    """One product line in a cart; at most one line per product."""
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        db.CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    cart_id = db.Column(db.String(32), db.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    added_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "name": self.name,
            "price": _money(self.price),
            "quantity": self.quantity,
        }


class Quote(db.Model):
    """
    Immutable, time-boxed priced snapshot of a cart.

    cart_id is a plain reference to the source cart's identity, not a foreign
    key: the cart keeps changing after the snapshot is taken.
    """
    __tablename__ = "quotes"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    cart_id = db.Column(db.String(32), nullable=False)
    buyer_id = db.Column(db.String(32), nullable=False, index=True)
    seller_id = db.Column(db.String(32), nullable=False, index=True)

    subtotal = db.Column(db.Numeric(14, 4), nullable=False)
    discount = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    shipping_cost = db.Column(db.Numeric(14, 4), nullable=False)
    tax_amount = db.Column(db.Numeric(14, 4), nullable=False)
    grand_total = db.Column(db.Numeric(14, 4), nullable=False)
    promo_code = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    items = db.relationship(
        "QuoteItem",
        backref="quote",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="QuoteItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cartId": self.cart_id,
            "buyerId": self.buyer_id,
            "sellerId": self.seller_id,
            "items": [item.to_dict() for item in self.items],
            "subtotal": _money(self.subtotal),
            "discount": _money(self.discount),
            "shippingCost": _money(self.shipping_cost),
            "taxAmount": _money(self.tax_amount),
            "grandTotal": _money(self.grand_total),
            "promoCode": self.promo_code,
            "createdAt": to_utc_z(self.created_at),
            "expiresAt": to_utc_z(self.expires_at),
        }


class QuoteItem(db.Model):
    __tablename__ = "quote_items"

    id = db.Column(db.Integer, primary_key=True)
    quote_id = db.Column(db.String(32), db.ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = db.Column(db.String(32), nullable=False)
    product_id = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.item_id,
            "productId": self.product_id,
            "name": self.name,
            "price": _money(self.price),
            "quantity": self.quantity,
        }


class Order(db.Model):
    """
    Finalized purchase. Written once by order placement, never updated.

    quote_id is unique: a quote yields at most one order.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("quote_id", name="uq_orders_quote_id"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    quote_id = db.Column(db.String(32), nullable=False)
    buyer_id = db.Column(db.String(32), nullable=False, index=True)
    seller_id = db.Column(db.String(32), nullable=False, index=True)

    subtotal = db.Column(db.Numeric(14, 4), nullable=False)
    discount = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    shipping_cost = db.Column(db.Numeric(14, 4), nullable=False)
    tax_amount = db.Column(db.Numeric(14, 4), nullable=False)
    grand_total = db.Column(db.Numeric(14, 4), nullable=False)

    payment_method = db.Column(db.String(32), nullable=False)
    transaction_id = db.Column(db.String(128), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "quoteId": self.quote_id,
            "buyerId": self.buyer_id,
            "sellerId": self.seller_id,
            "items": [item.to_dict() for item in self.items],
            "subtotal": _money(self.subtotal),
            "discount": _money(self.discount),
            "shippingCost": _money(self.shipping_cost),
            "taxAmount": _money(self.tax_amount),
            "grandTotal": _money(self.grand_total),
            "payment": {
                "method": self.payment_method,
                "transactionId": self.transaction_id,
            },
            "createdAt": to_utc_z(self.created_at),
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(32), db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "name": self.name,
            "price": _money(self.price),
            "quantity": self.quantity,
        }


class CheckoutCleanup(db.Model):
    """
    Pending compensation for a placed order: clear the buyer's cart for the
    seller and delete the source quote.

    Written in the same transaction as the order. completed_at stays NULL
    until both steps have succeeded; the reconciliation sweep retries rows
    that are still open. Both steps are idempotent, so re-running is safe.
    """
    __tablename__ = "checkout_cleanups"

    quote_id = db.Column(db.String(32), primary_key=True)
    order_id = db.Column(db.String(32), nullable=False, unique=True)
    buyer_id = db.Column(db.String(32), nullable=False)
    seller_id = db.Column(db.String(32), nullable=False)

    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    def to_dict(self) -> dict:
        return {
            "quote_id": self.quote_id,
            "order_id": self.order_id,
            "buyer_id": self.buyer_id,
            "seller_id": self.seller_id,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
        }
