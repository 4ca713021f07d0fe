# Overview: Domain error taxonomy shared by services and routes.

"""
Error taxonomy for the checkout core.

Every domain failure is raised as a BusinessCartError subclass carrying the
HTTP status it maps to. Routes catch BusinessCartError and answer with
{"error": message}; anything else is logged and answered with a generic 500
so storage-layer detail never reaches the client.
"""


class BusinessCartError(Exception):
    """Base class for all domain errors."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(BusinessCartError, ValueError):
    """400-level input problem."""
    status_code = 400


class AuthError(BusinessCartError):
    """Missing or unusable credential."""
    status_code = 401


class InvalidCredentialsError(AuthError):
    pass


class TokenInvalidError(AuthError):
    """Bad signature, malformed token, or malformed claims."""


class TokenExpiredError(AuthError):
    pass


class TokenRevokedError(AuthError):
    """Access token was blacklisted on logout."""


class RefreshTokenNotFoundError(AuthError):
    """Refresh token unknown to the server (never issued or already rotated)."""


class ForbiddenError(BusinessCartError):
    """Authenticated but not allowed (role-insufficient or not the owner)."""
    status_code = 403


class NotFoundError(BusinessCartError):
    status_code = 404


class ConflictError(BusinessCartError, ValueError):
    """409-level business rule conflict (e.g., duplicate onboarding code)."""
    status_code = 409


class EmptyCartError(BusinessCartError):
    status_code = 400

    def __init__(self, message: str = "Cart is empty", details: dict | None = None):
        super().__init__(message, details)


class QuoteExpiredError(BusinessCartError):
    status_code = 400

    def __init__(self, message: str = "Quote has expired", details: dict | None = None):
        super().__init__(message, details)


class PaymentDeclinedError(BusinessCartError):
    """Gateway rejected the charge. A request-level failure, not a system fault."""
    status_code = 502

    def __init__(self, message: str = "Payment declined", details: dict | None = None):
        super().__init__(message, details)


class StorageError(BusinessCartError):
    """Persistence failure; message is always generic."""
    status_code = 500

    def __init__(self, message: str = "Internal server error", details: dict | None = None):
        super().__init__(message, details)
