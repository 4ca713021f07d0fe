"""
Quote engine tests.

Verifies pricing (tax on subtotal less discount, flat shipping), snapshot
semantics, the 24h expiry window and ownership checks.
"""

from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from businesscart.errors import EmptyCartError, ForbiddenError, NotFoundError, ValidationError
from businesscart.models import Quote
from businesscart.services import cart_service, quote_service
from businesscart.time_utils import utcnow


BUYER = "buyer-1"
SELLER = "seller-1"


def _line(price, quantity):
    return SimpleNamespace(price=Decimal(price), quantity=quantity)


def _fill_cart():
    cart_service.add_item(BUYER, SELLER, {"product_id": "p1", "name": "Widget", "price": "10.00", "quantity": 2})
    return cart_service.add_item(BUYER, SELLER, {"product_id": "p2", "name": "Gadget", "price": "2.50", "quantity": 2})


class TestCalculateTotals:

    def test_ten_by_two_and_five_by_one(self):
        totals = quote_service.calculate_totals([_line("10", 2), _line("5", 1)])
        assert totals.subtotal == Decimal("25")
        assert totals.tax_amount == Decimal("2.0625")
        assert totals.shipping_cost == Decimal("10.00")
        assert totals.grand_total == Decimal("37.0625")

    def test_reference_cart(self):
        totals = quote_service.calculate_totals([_line("10.00", 2), _line("2.50", 2)])
        assert totals.subtotal == Decimal("25.0000")
        assert totals.discount == Decimal("0")
        assert totals.tax_amount == Decimal("2.0625")
        assert totals.shipping_cost == Decimal("10.00")
        assert totals.grand_total == Decimal("37.0625")

    def test_promo_discount_reduces_taxable_amount(self):
        totals = quote_service.calculate_totals([_line("10.00", 2), _line("2.50", 2)], promo_code="save10")
        assert totals.discount == Decimal("2.5000")
        # (25 - 2.5) * 0.0825 = 1.85625
        assert totals.tax_amount == Decimal("1.8563")
        assert totals.grand_total == Decimal("34.3563")

    def test_unknown_promo_rejected(self):
        with pytest.raises(ValidationError):
            quote_service.calculate_totals([_line("1.00", 1)], promo_code="FREESTUFF")

    def test_grand_total_identity(self):
        totals = quote_service.calculate_totals([_line("19.99", 3), _line("0.01", 7)])
        assert totals.grand_total == (
            totals.subtotal - totals.discount + totals.tax_amount + totals.shipping_cost
        ).quantize(Decimal("0.0001"))


class TestCreateQuote:

    def test_ten_by_two_and_five_by_one(self, db_session):
        cart_service.add_item(BUYER, SELLER, {"product_id": "p1", "name": "Widget", "price": "10", "quantity": 2})
        cart = cart_service.add_item(BUYER, SELLER, {"product_id": "p2", "name": "Gizmo", "price": "5", "quantity": 1})

        quote = quote_service.create_quote(cart)

        assert quote.subtotal == Decimal("25")
        assert quote.tax_amount == Decimal("2.0625")
        assert quote.shipping_cost == Decimal("10.00")
        assert quote.grand_total == Decimal("37.0625")
        assert quote.expires_at - quote.created_at == timedelta(hours=24)

    def test_snapshot(self, db_session):
        cart = _fill_cart()
        now = utcnow()
        quote = quote_service.create_quote(cart, now=now)

        assert quote.buyer_id == BUYER
        assert quote.seller_id == SELLER
        assert quote.cart_id == cart.id
        assert quote.grand_total == Decimal("37.0625")
        assert quote.expires_at == now + timedelta(hours=24)
        assert sorted((i.product_id, i.quantity) for i in quote.items) == [("p1", 2), ("p2", 2)]

    def test_cart_is_left_untouched(self, db_session):
        cart = _fill_cart()
        quote_service.create_quote(cart)
        cart = cart_service.get_cart(BUYER, SELLER)
        assert len(cart.items) == 2
        assert cart.total_price == Decimal("25.00")

    def test_later_cart_changes_do_not_alter_quote(self, db_session):
        cart = _fill_cart()
        quote_id = quote_service.create_quote(cart).id

        cart_service.add_item(BUYER, SELLER, {"product_id": "p1", "name": "Widget", "price": "10.00", "quantity": 5})

        quote = quote_service.get_quote(quote_id)
        assert quote.subtotal == Decimal("25.0000")
        assert {i.product_id: i.quantity for i in quote.items}["p1"] == 2

    def test_empty_cart_persists_nothing(self, db_session):
        cart = cart_service.clear_cart(BUYER, SELLER)
        with pytest.raises(EmptyCartError):
            quote_service.create_quote(cart)
        assert db_session.query(Quote).count() == 0

    def test_promo_code_normalized(self, db_session):
        quote = quote_service.create_quote(_fill_cart(), promo_code=" save10 ")
        assert quote.promo_code == "SAVE10"
        assert quote.discount == Decimal("2.5000")


class TestQuoteLookup:

    def test_missing_quote(self, db_session):
        with pytest.raises(NotFoundError):
            quote_service.get_quote("missing")

    def test_owner_only(self, db_session):
        quote = quote_service.create_quote(_fill_cart())
        assert quote_service.get_quote_for_buyer(quote.id, BUYER).id == quote.id
        with pytest.raises(ForbiddenError):
            quote_service.get_quote_for_buyer(quote.id, "someone-else")

    def test_is_expired(self, db_session):
        now = utcnow()
        quote = quote_service.create_quote(_fill_cart(), now=now)
        assert not quote_service.is_expired(quote, now + timedelta(hours=23))
        assert quote_service.is_expired(quote, now + timedelta(hours=24))
