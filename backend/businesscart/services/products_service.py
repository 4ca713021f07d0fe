# backend/businesscart/services/products_service.py
"""
Products Service with Role Scoping

SCOPING: Every read goes through access_scope.
- list_products / get_product only return listings visible to the caller
- create_product: company accounts list under their own id; admins must
  name the seller explicitly
- update_product / delete_product: owning company or admin only
"""
from __future__ import annotations

from ..extensions import db
from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..models import Account, Product
from ..validation import ModelValidationPolicy, validate_payload
from .access_scope import RESOURCE_PRODUCTS, Role, scope_for
from businesscart.time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {"name", "description", "price", "image"}

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    required_on_create={"name", "price"},
)


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _require_owner(product: Product, claims) -> None:
    if claims.role is Role.ADMIN:
        return
    if claims.role is Role.COMPANY and product.seller_id == claims.subject_id:
        return
    raise ForbiddenError("Forbidden")


def list_products(claims, seller_id: str | None = None) -> dict:
    """
    Products visible to the caller.

    Args:
        claims: Authenticated Claims
        seller_id: Optional narrowing to a single seller (still scoped)

    Returns:
        Dict with 'items' and 'count'.
    """
    query = db.session.query(Product).filter(scope_for(claims, RESOURCE_PRODUCTS))
    if seller_id:
        query = query.filter(Product.seller_id == seller_id)
    products = query.order_by(Product.name.asc(), Product.id.asc()).all()
    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }


def get_product(product_id: str, claims) -> Product:
    """
    Raises:
        NotFoundError: If the product does not exist or is outside the caller's scope
    """
    product = (
        db.session.query(Product)
        .filter(Product.id == product_id)
        .filter(scope_for(claims, RESOURCE_PRODUCTS))
        .first()
    )
    if not product:
        raise NotFoundError("Product not found")
    return product


def get_purchasable_product(product_id: str, seller_id: str, claims) -> Product:
    """
    Resolve a product a buyer is adding to its cart for seller_id.

    Name and price on the cart line always come from here, never from the
    request body.
    """
    product = get_product(product_id, claims)
    if product.seller_id != seller_id:
        raise ValidationError("Product does not belong to this seller")
    return product


def create_product(*, payload: dict, claims) -> Product:
    """
    Create a product listing.

    Company accounts always sell as themselves. Admins pass sellerId, which
    must be an existing company account.

    Raises:
        ForbiddenError: Caller is not a company or admin
        ValidationError: Invalid fields or unknown seller
    """
    payload = dict(payload or {})
    seller_id = payload.pop("sellerId", None)

    if claims.role is Role.COMPANY:
        seller_id = claims.subject_id
    elif claims.role is Role.ADMIN:
        if not seller_id:
            raise ValidationError("sellerId required")
        seller = db.session.get(Account, seller_id)
        if not seller or seller.role != Role.COMPANY.value:
            raise ValidationError("sellerId must reference a company account")
    else:
        raise ForbiddenError("Forbidden")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)

    product = Product(seller_id=seller_id)
    apply_product_patch(product, patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: str, payload: dict, claims) -> Product:
    product = get_product(product_id, claims)
    _require_owner(product, claims)

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    apply_product_patch(product, patch)
    product.updated_at = utcnow()
    db.session.commit()
    return product


def delete_product(product_id: str, claims) -> None:
    """
    Delete a listing. Carts and quotes keep their own snapshot of name and
    price, so deleting a product never rewrites them.
    """
    product = get_product(product_id, claims)
    _require_owner(product, claims)

    db.session.delete(product)
    db.session.commit()
