# Overview: Flask API routes for quotes; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import BusinessCartError, ValidationError
from ..validation import require_json_object
from ..services import cart_service, quote_service
from ..decorators import require_auth


quotes_bp = Blueprint("quotes", __name__, url_prefix="/quotes")


@quotes_bp.post("")
@require_auth
def create_quote_route():
    """
    Snapshot the caller's cart for companyId into a priced quote.

    Body: {"companyId", "promoCode" (optional)}
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        seller_id = data.get("companyId")
        if not seller_id or not isinstance(seller_id, str):
            raise ValidationError("companyId required")

        cart = cart_service.get_cart(g.claims.subject_id, seller_id)
        quote = quote_service.create_quote(cart, promo_code=data.get("promoCode"))

        return jsonify({"quote": quote.to_dict()}), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create quote")
        return jsonify({"error": "Internal server error"}), 500


@quotes_bp.get("/<quote_id>")
@require_auth
def get_quote_route(quote_id: str):
    try:
        quote = quote_service.get_quote_for_buyer(quote_id, g.claims.subject_id)
        return jsonify({"quote": quote.to_dict()}), 200
    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
