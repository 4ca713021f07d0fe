# Overview: Flask API routes for onboarding codes; admin only.

from flask import Blueprint, request, jsonify, current_app

from ..errors import BusinessCartError
from ..validation import require_json_object
from ..services import auth_service
from ..services.access_scope import Role
from ..decorators import require_auth, require_role


codes_bp = Blueprint("codes", __name__, url_prefix="/codes")


@codes_bp.post("")
@require_auth
@require_role(Role.ADMIN)
def create_code_route():
    """
    Issue an onboarding code.

    Body: companyCode, customerCode, partnerCode (optional)
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        code = auth_service.create_code(
            company_code=data.get("companyCode"),
            customer_code=data.get("customerCode"),
            partner_code=data.get("partnerCode"),
        )
        return jsonify({"code": code.to_dict()}), 201

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create code")
        return jsonify({"error": "Internal server error"}), 500


@codes_bp.get("/<value>")
@require_auth
@require_role(Role.ADMIN)
def get_code_route(value: str):
    try:
        code = auth_service.find_code(value)
        return jsonify({"code": code.to_dict()}), 200
    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
