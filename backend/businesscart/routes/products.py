# Overview: Flask API routes for product listings; parses input and returns JSON responses.

# backend/businesscart/routes/products.py
from flask import Blueprint, request, jsonify, g, current_app

from ..errors import BusinessCartError
from ..services import products_service
from ..decorators import require_auth


products_bp = Blueprint("products", __name__, url_prefix="/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    List products visible to the caller.

    Query: companyId (optional) narrows to one seller.
    """
    seller_id = request.args.get("companyId") or None
    return jsonify(products_service.list_products(g.claims, seller_id=seller_id)), 200


@products_bp.get("/<product_id>")
@require_auth
def get_product_route(product_id: str):
    try:
        product = products_service.get_product(product_id, g.claims)
        return jsonify({"product": product.to_dict()}), 200
    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.post("")
@require_auth
def create_product_route():
    try:
        product = products_service.create_product(payload=request.get_json(silent=True), claims=g.claims)
        return jsonify({"product": product.to_dict()}), 201

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<product_id>")
@require_auth
def update_product_route(product_id: str):
    try:
        product = products_service.update_product(product_id, request.get_json(silent=True), g.claims)
        return jsonify({"product": product.to_dict()}), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<product_id>")
@require_auth
def delete_product_route(product_id: str):
    try:
        products_service.delete_product(product_id, g.claims)
        return "", 204

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
