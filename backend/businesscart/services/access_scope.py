# Overview: Role-to-filter resolution shared by every list/read path.

"""
Access Scope Resolution

Maps (role, subject id, associated company ids, resource) to a SQLAlchemy
boolean clause that the caller ANDs into its query. Building the clause never
touches the database.

VISIBILITY:
- accounts: admin sees all; a company sees itself plus every customer that
  registered with its customer code; customers and partners see themselves.
- products: admin sees all; a company sees its own listings; customers and
  partners see listings of the companies they are associated with.
- orders:   admin sees all; a company sees orders it sold; customers and
  partners see orders they bought. Never seller-scoped for buyers.

An unknown role resolves to a match-nothing clause so the request yields an
empty result instead of an error.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from sqlalchemy import false, or_, select, true

from ..models import Account, AccountCustomerCode, Order, Product


class Role(str, Enum):
    ADMIN = "admin"
    COMPANY = "company"
    CUSTOMER = "customer"
    PARTNER = "partner"

    @classmethod
    def parse(cls, value) -> "Role | None":
        """Return the Role for value, or None when it is outside the enum."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


RESOURCE_ACCOUNTS = "accounts"
RESOURCE_PRODUCTS = "products"
RESOURCE_ORDERS = "orders"


def _accounts_filter(role: Role, subject_id: str, associated: list[str]):
    if role is Role.ADMIN:
        return true()
    if role is Role.COMPANY:
        customers_of_company = select(AccountCustomerCode.account_id).where(
            AccountCustomerCode.code_id == subject_id
        )
        return or_(Account.id == subject_id, Account.id.in_(customers_of_company))
    if role is Role.CUSTOMER or role is Role.PARTNER:
        return Account.id == subject_id
    raise AssertionError(f"Unhandled role: {role!r}")


def _products_filter(role: Role, subject_id: str, associated: list[str]):
    if role is Role.ADMIN:
        return true()
    if role is Role.COMPANY:
        return Product.seller_id == subject_id
    if role is Role.CUSTOMER or role is Role.PARTNER:
        if not associated:
            return false()
        return Product.seller_id.in_(associated)
    raise AssertionError(f"Unhandled role: {role!r}")


def _orders_filter(role: Role, subject_id: str, associated: list[str]):
    if role is Role.ADMIN:
        return true()
    if role is Role.COMPANY:
        return Order.seller_id == subject_id
    if role is Role.CUSTOMER or role is Role.PARTNER:
        return Order.buyer_id == subject_id
    raise AssertionError(f"Unhandled role: {role!r}")


_RESOURCE_FILTERS = {
    RESOURCE_ACCOUNTS: _accounts_filter,
    RESOURCE_PRODUCTS: _products_filter,
    RESOURCE_ORDERS: _orders_filter,
}


def resolve_filter(
    role,
    subject_id: str,
    associated_company_ids: Iterable[str] | None,
    resource: str,
):
    """
    Build the visibility predicate for a role over a resource.

    Args:
        role: Role member or its string value
        subject_id: Authenticated account id
        associated_company_ids: Company ids from the caller's claims
        resource: "accounts", "products" or "orders"

    Returns:
        SQLAlchemy boolean clause; match-nothing for unknown roles/resources.
    """
    parsed = Role.parse(role)
    builder = _RESOURCE_FILTERS.get(resource)
    if parsed is None or builder is None or not subject_id:
        return false()
    return builder(parsed, subject_id, list(associated_company_ids or []))


def scope_for(claims, resource: str):
    """resolve_filter using an authenticated Claims object."""
    return resolve_filter(
        claims.role,
        claims.subject_id,
        claims.associated_company_ids,
        resource,
    )
