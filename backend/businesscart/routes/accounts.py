# Overview: Flask API routes for account and auth operations; parses input and returns JSON responses.

# backend/businesscart/routes/accounts.py
"""
Account API routes

SECURITY FEATURES:
- Password strength validation on registration
- Company/partner codes claimed atomically; admin accounts are CLI-only
- Refresh tokens rotate on every use
- Logout blacklists the access token until it expires
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import BusinessCartError
from ..validation import require_json_object
from ..services import account_service, auth_service
from ..services.token_service import get_token_issuer
from ..decorators import require_auth


accounts_bp = Blueprint("accounts", __name__, url_prefix="/accounts")


@accounts_bp.post("/register")
def register_route():
    """
    Self-register a company, customer or partner account.

    Body:
        name, email, password, role
        companyCode   (company)
        customerCodes (customer; list, a single customerCode is accepted too)
        partnerCode   (partner, optional)
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        role = data.get("role")

        customer_codes = data.get("customerCodes")
        if customer_codes is None and data.get("customerCode"):
            customer_codes = [data.get("customerCode")]

        code = data.get("companyCode") if role == "company" else data.get("partnerCode")

        account = auth_service.register_account(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=role,
            code=code,
            customer_codes=customer_codes,
        )

        current_app.logger.info("Registered %s account %s", account.role, account.id)
        return jsonify({"account": account.to_dict()}), 201

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register account")
        return jsonify({"error": "Internal server error"}), 500


@accounts_bp.post("/login")
def login_route():
    """
    Authenticate and issue an access/refresh token pair.

    The access token goes in the Authorization header of protected routes.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        account = auth_service.authenticate(email, password)
        access_token, refresh_token = get_token_issuer().issue_for_account(account)

        return jsonify({
            "accessToken": access_token,
            "refreshToken": refresh_token,
            "account": account.to_dict(),
        }), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to log in")
        return jsonify({"error": "Internal server error"}), 500


@accounts_bp.post("/refresh")
def refresh_route():
    """Exchange a refresh token for a new pair. The old refresh token is consumed."""
    try:
        data = require_json_object(request.get_json(silent=True))
        access_token, refresh_token = get_token_issuer().refresh(data.get("refreshToken"))
        return jsonify({"accessToken": access_token, "refreshToken": refresh_token}), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to refresh token")
        return jsonify({"error": "Internal server error"}), 500


@accounts_bp.post("/logout")
@require_auth
def logout_route():
    try:
        data = require_json_object(request.get_json(silent=True))
        get_token_issuer().logout(g.access_token, data.get("refreshToken"))
        return jsonify({"message": "Logged out"}), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to log out")
        return jsonify({"error": "Internal server error"}), 500


@accounts_bp.get("")
@require_auth
def list_accounts_route():
    """Accounts visible to the caller (see access_scope)."""
    accounts = account_service.list_accounts(g.claims)
    return jsonify({"items": [a.to_dict() for a in accounts], "count": len(accounts)}), 200


@accounts_bp.get("/<account_id>")
@require_auth
def get_account_route(account_id: str):
    try:
        account = account_service.get_account(account_id, g.claims)
        return jsonify({"account": account.to_dict()}), 200
    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code


@accounts_bp.patch("/<account_id>")
@require_auth
def update_account_route(account_id: str):
    try:
        account = account_service.update_account(account_id, request.get_json(silent=True), g.claims)
        return jsonify({"account": account.to_dict()}), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update account")
        return jsonify({"error": "Internal server error"}), 500


@accounts_bp.delete("/<account_id>")
@require_auth
def delete_account_route(account_id: str):
    try:
        account_service.delete_account(account_id, g.claims)
        return jsonify({"message": "Account deleted"}), 200

    except BusinessCartError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete account")
        return jsonify({"error": "Internal server error"}), 500
