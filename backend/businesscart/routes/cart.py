# Overview: Flask API routes for the buyer's per-seller cart; parses input and returns JSON responses.

# backend/businesscart/routes/cart.py
"""
Cart API routes

Every route is keyed by (caller, companyId). companyId is the seller's
account id. Line name and price are always taken from the catalog; a
client-supplied price is ignored.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import BusinessCartError, ValidationError
from ..validation import require_json_object
from ..services import cart_service, products_service
from ..decorators import require_auth


cart_bp = Blueprint("cart", __name__, url_prefix="/cart")


def _seller_id(data: dict | None = None) -> str:
    seller_id = (data or {}).get("companyId") or request.args.get("companyId")
    if not seller_id or not isinstance(seller_id, str):
        raise ValidationError("companyId required")
    return seller_id


def _catalog_line(product_id, seller_id: str, quantity) -> dict:
    if not product_id or not isinstance(product_id, str):
        raise ValidationError("productId required")
    product = products_service.get_purchasable_product(product_id, seller_id, g.claims)
    return {
        "product_id": product.id,
        "name": product.name,
        "price": product.price,
        "quantity": quantity,
    }


@cart_bp.get("")
@require_auth
def get_cart_route():
    """Current cart for companyId; a never-created cart reads as empty."""
    try:
        seller_id = _seller_id()
        cart = cart_service.find_cart(g.claims.subject_id, seller_id)
        if cart is None:
            return jsonify({"cart": cart_service.empty_cart_view(g.claims.subject_id, seller_id)}), 200
        return jsonify({"cart": cart.to_dict()}), 200
    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code


@cart_bp.post("")
@require_auth
def add_item_route():
    """
    Add a product to the cart, accumulating quantity for a product already
    in it.

    Body: {"companyId", "entity": {"productId", "quantity"}}
    (a flat {"companyId", "productId", "quantity"} is accepted too)
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        seller_id = _seller_id(data)
        entity = data.get("entity") if isinstance(data.get("entity"), dict) else data

        line = _catalog_line(entity.get("productId"), seller_id, entity.get("quantity", 1))
        cart = cart_service.add_item(g.claims.subject_id, seller_id, line)

        return jsonify({"cart": cart.to_dict()}), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.put("")
@require_auth
def save_cart_route():
    """
    Replace the whole cart.

    Body: {"companyId", "items": [{"productId", "quantity"}, ...]}
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        seller_id = _seller_id(data)
        items = data.get("items")
        if not isinstance(items, list):
            raise ValidationError("items must be a list")

        lines = [
            _catalog_line(item.get("productId"), seller_id, item.get("quantity"))
            for item in items
            if isinstance(item, dict)
        ]
        if len(lines) != len(items):
            raise ValidationError("Invalid cart item")

        cart = cart_service.save_cart(g.claims.subject_id, seller_id, lines)
        return jsonify({"cart": cart.to_dict()}), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to save cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.put("/<item_id>")
@require_auth
def update_item_route(item_id: str):
    """
    Set a line's quantity. A quantity of 0 removes the line.

    Body: {"quantity"}; companyId in body or query string.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        seller_id = _seller_id(data)
        cart = cart_service.set_item_quantity(
            g.claims.subject_id, seller_id, item_id, data.get("quantity"),
        )
        return jsonify({"cart": cart.to_dict()}), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/<item_id>")
@require_auth
def remove_item_route(item_id: str):
    try:
        seller_id = _seller_id()
        cart = cart_service.remove_item(g.claims.subject_id, seller_id, item_id)
        return jsonify({"cart": cart.to_dict()}), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to remove cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("")
@require_auth
def clear_cart_route():
    try:
        seller_id = _seller_id()
        cart = cart_service.clear_cart(g.claims.subject_id, seller_id)
        return jsonify({"cart": cart.to_dict()}), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to clear cart")
        return jsonify({"error": "Internal server error"}), 500
