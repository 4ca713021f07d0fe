# Overview: Service-layer operations for account records; scoped reads and self-service updates.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..models import Account, RefreshToken
from ..models.accounts import ACCOUNT_STATUSES
from ..validation import ModelValidationPolicy, enforce_rules_account_update, validate_payload
from .access_scope import RESOURCE_ACCOUNTS, Role, scope_for
from businesscart.time_utils import utcnow


SELF_UPDATE_POLICY = ModelValidationPolicy(writable_fields={"name", "email"})
ADMIN_UPDATE_POLICY = ModelValidationPolicy(writable_fields={"name", "email", "account_status"})


def list_accounts(claims) -> list[Account]:
    return (
        db.session.query(Account)
        .filter(scope_for(claims, RESOURCE_ACCOUNTS))
        .order_by(Account.created_at.asc(), Account.id.asc())
        .all()
    )


def get_account(account_id: str, claims) -> Account:
    """
    Raises:
        NotFoundError: Unknown account or outside the caller's scope
    """
    account = (
        db.session.query(Account)
        .filter(Account.id == account_id)
        .filter(scope_for(claims, RESOURCE_ACCOUNTS))
        .first()
    )
    if not account:
        raise NotFoundError("Account not found")
    return account


def update_account(account_id: str, payload: dict, claims) -> Account:
    """
    Patch an account. Callers may edit themselves; admins may edit anyone
    and may also change account_status.
    """
    if not claims.is_admin and account_id != claims.subject_id:
        raise ForbiddenError("Forbidden")

    account = get_account(account_id, claims)

    payload = dict(payload or {})
    if "accountStatus" in payload:
        payload["account_status"] = payload.pop("accountStatus")

    policy = ADMIN_UPDATE_POLICY if claims.is_admin else SELF_UPDATE_POLICY
    patch = validate_payload(model=Account, payload=payload, policy=policy, partial=True)
    enforce_rules_account_update(patch)

    if "account_status" in patch and patch["account_status"] not in ACCOUNT_STATUSES:
        raise ValidationError(f"account_status must be one of: {', '.join(ACCOUNT_STATUSES)}")

    for k, v in patch.items():
        setattr(account, k, v)
    if account.role == Role.COMPANY.value and "name" in patch:
        account.company_name = patch["name"]
    account.updated_at = utcnow()

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already registered")
    return account


def delete_account(account_id: str, claims) -> None:
    """Admin-only hard delete. Orders referencing the account are kept."""
    if not claims.is_admin:
        raise ForbiddenError("Forbidden")
    if account_id == claims.subject_id:
        raise ValidationError("Cannot delete your own account")

    account = get_account(account_id, claims)
    db.session.query(RefreshToken).filter_by(account_id=account.id).delete(synchronize_session=False)
    db.session.delete(account)
    db.session.commit()
