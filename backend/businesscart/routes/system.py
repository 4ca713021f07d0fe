# backend/businesscart/routes/system.py
"""
System health endpoint.

Reports database reachability and the state of the checkout cleanup
backlog (orders whose cart/quote cleanup is still pending).
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Account, CheckoutCleanup, Order
from businesscart.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        account_count = db.session.query(Account).count()
        order_count = db.session.query(Order).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "accounts": account_count,
                "orders": order_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_checkout_cleanup_health() -> dict:
    """
    Pending checkout cleanups mean orders were placed but their cart/quote
    were not yet cleared. Reported as degraded; `flask orders reconcile`
    drains them.
    """
    start_time = time.time()
    try:
        pending = db.session.query(CheckoutCleanup).filter(
            CheckoutCleanup.completed_at.is_(None)
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000

        result = {
            "status": "degraded" if pending else "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"pending_cleanups": pending},
        }
        if pending:
            result["warning"] = f"{pending} checkout cleanup(s) pending reconciliation"
        return result
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Checkout cleanup health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Checkout cleanup check error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    cleanup_health = check_checkout_cleanup_health()

    all_checks = [database_health, cleanup_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "checkout_cleanup": cleanup_health,
        }
    }

    return response, http_status
