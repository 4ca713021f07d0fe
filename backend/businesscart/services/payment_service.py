# Overview: Service-layer payment gateway stub; deterministic charge simulation.

"""
Payment Gateway (demo)

WHY: Order placement needs a charge step with a real success/decline
contract, but no real gateway integration. The demo gateway is stateless and
deterministic: each supported method has exactly one sentinel token that
succeeds; every other token declines.

CONTRACT:
- charge(amount, method, token) -> transaction id
- PaymentDeclinedError on decline or unsupported method
- No retries, no partial captures. Retrying is the caller's decision.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from ..errors import PaymentDeclinedError, ValidationError


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

METHOD_STRIPE = "stripe"
METHOD_AMAZON_PAY = "amazon_pay"

VALID_PAYMENT_METHODS = [
    METHOD_STRIPE,
    METHOD_AMAZON_PAY,
]

DEFAULT_PAYMENT_METHOD = METHOD_STRIPE

# Sentinel token accepted per method, and the transaction id prefix it yields
SENTINEL_TOKENS = {
    METHOD_STRIPE: ("tok_stripe_valid", "stripe_tx"),
    METHOD_AMAZON_PAY: ("amz_pay_valid", "amazon_tx"),
}


def normalize_method(method: str | None) -> str:
    """Lower-case a payment method name, defaulting to stripe."""
    if method is None or str(method).strip() == "":
        return DEFAULT_PAYMENT_METHOD
    return str(method).strip().lower()


class DemoPaymentGateway:
    """Stateless charge simulator."""

    def charge(self, amount: Decimal, method: str, token: str) -> str:
        """
        Charge amount using the given method and token.

        Args:
            amount: Amount to capture (must be positive)
            method: Payment method name (stripe, amazon_pay)
            token: Client-side payment token

        Returns:
            Transaction id, e.g. "stripe_tx_<hex>"

        Raises:
            ValidationError: If amount is not positive
            PaymentDeclinedError: If the method is unsupported or the token is rejected
        """
        if amount is None or Decimal(amount) <= 0:
            raise ValidationError("Payment amount must be positive")

        method = normalize_method(method)
        sentinel = SENTINEL_TOKENS.get(method)
        if sentinel is None:
            raise PaymentDeclinedError(f"Unsupported payment method: {method}")

        valid_token, prefix = sentinel
        if token != valid_token:
            raise PaymentDeclinedError("Payment declined: invalid payment token")

        return f"{prefix}_{uuid.uuid4().hex}"
