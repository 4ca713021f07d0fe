# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/businesscart/routes/orders.py
"""
Order API routes

POST /orders runs the placement saga (see order_service). A declined
payment answers 502 and leaves the quote and cart untouched, so the client
may retry with another token.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import BusinessCartError, ValidationError
from ..validation import require_json_object
from ..services import order_service
from ..decorators import require_auth


orders_bp = Blueprint("orders", __name__, url_prefix="/orders")


@orders_bp.post("")
@require_auth
def place_order_route():
    """
    Pay for a quote and record the order.

    Body: {"quoteId", "paymentToken", "paymentMethod" (optional, default stripe)}
    """
    quote_id = None
    try:
        data = require_json_object(request.get_json(silent=True))
        quote_id = data.get("quoteId")
        payment_token = data.get("paymentToken")

        if not quote_id or not payment_token:
            raise ValidationError("quoteId and paymentToken required")
        if not isinstance(quote_id, str) or not isinstance(payment_token, str):
            raise ValidationError("quoteId and paymentToken must be strings")

        order = order_service.place_order(
            quote_id=quote_id,
            buyer_id=g.claims.subject_id,
            payment_token=payment_token,
            payment_method=data.get("paymentMethod"),
            gateway=current_app.extensions["payment_gateway"],
        )

        return jsonify({"order": order.to_dict()}), 200

    except BusinessCartError as e:
        if e.status_code >= 500:
            current_app.logger.warning("Order placement failed for quote %s: %s", quote_id, e.message)
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_auth
def list_orders_route():
    """Orders visible to the caller: sold (company), bought (customer/partner), all (admin)."""
    claims = g.claims
    orders = order_service.get_orders(claims.role, claims.subject_id, claims.associated_company_ids)
    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200


@orders_bp.get("/<order_id>")
@require_auth
def get_order_route(order_id: str):
    claims = g.claims
    order = order_service.get_visible_order(
        order_id, claims.role, claims.subject_id, claims.associated_company_ids,
    )
    if not order:
        return jsonify({"error": "Order not found"}), 404
    return jsonify({"order": order.to_dict()}), 200
