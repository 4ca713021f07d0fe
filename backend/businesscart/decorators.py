# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import AuthError
from .services.access_scope import Role
from .services.token_service import get_token_issuer


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization") or ""
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_auth(f):
    """
    Require a valid access token.

    Sets the following Flask g attributes:
    - g.claims: The verified Claims (subject, role, company, associated ids)
    - g.access_token: The raw bearer token (needed for logout)

    SECURITY: Returns 401 if:
    - No Authorization header, or scheme is not Bearer
    - Bad signature, malformed claims or expired token
    - Token was revoked on logout
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        try:
            claims = get_token_issuer().verify(token)
        except AuthError as e:
            return jsonify({"error": e.message}), 401

        g.claims = claims
        g.access_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: Role):
    """
    Require the caller's role to be one of roles. Use after @require_auth.
    """
    allowed = {Role(r) for r in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            claims = getattr(g, "claims", None)
            if claims is None:
                return jsonify({"error": "Authentication required"}), 401

            if claims.role not in allowed:
                return jsonify({"error": "Forbidden"}), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
