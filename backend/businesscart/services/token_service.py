# Overview: Service-layer operations for access/refresh tokens; encapsulates signing, verification and revocation.

"""
Token Issuance and Verification

Access and refresh credentials are HS256 JWTs signed with separate secrets.
The payload shape is fixed:

    {"user": {"id", "role", "company_id", "associate_company_ids"},
     "exp": <unix seconds>, "iat": <unix seconds>, "jti": <random hex>}

The payload is decoded exactly once (in require_auth) into a frozen Claims
object; nothing downstream re-parses the token.

SECURITY FEATURES:
- Access tokens live 72 hours, refresh tokens 7 days
- Refresh tokens are persisted as SHA-256 hashes and deleted on use
  (rotation) or logout, so a consumed refresh token can never re-issue
- Logout blacklists the access token (hashed) until its own expiry
- Associated company ids are re-derived from the account on every issue,
  never copied from client input
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt
from flask import current_app

from ..extensions import db
from ..models import Account, BlacklistedToken, RefreshToken
from ..errors import (
    AuthError,
    RefreshTokenNotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
)
from .access_scope import Role
from businesscart.time_utils import from_timestamp, to_timestamp, utcnow


ACCESS_TOKEN_TTL = timedelta(hours=72)
REFRESH_TOKEN_TTL = timedelta(days=7)
SIGNING_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Claims:
    """Typed payload of a verified credential."""
    subject_id: str
    role: Role
    company_id: str | None
    associated_company_ids: tuple[str, ...]
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are signed, high-entropy strings; a fast one-way hash is enough.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def claims_for_account(account: Account) -> tuple[str, Role, str | None, list[str]]:
    """
    Derive (subject_id, role, company_id, associated_company_ids) from the
    stored account.

    - company: company_id is the account itself
    - customer: associated ids are exactly its customer codes' code ids
    - partner: company and associated id come from the claimed partner code
    - admin: no company context
    """
    role = Role(account.role)
    if role is Role.ADMIN:
        return account.id, role, None, []
    if role is Role.COMPANY:
        return account.id, role, account.id, []
    if role is Role.CUSTOMER:
        return account.id, role, None, account.associated_company_ids()
    if role is Role.PARTNER:
        if account.partner_code_id:
            return account.id, role, account.partner_code_id, [account.partner_code_id]
        return account.id, role, None, []
    raise AssertionError(f"Unhandled role: {role!r}")


class TokenIssuer:
    """Signs, verifies, rotates and revokes credentials."""

    def __init__(self, access_secret: str, refresh_secret: str):
        if not access_secret or not refresh_secret:
            raise ValueError("Both access and refresh signing secrets are required")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret

    # ------------------------------------------------------------------
    # encode / decode
    # ------------------------------------------------------------------

    def _encode(
        self,
        subject_id: str,
        role: Role | str,
        company_id: str | None,
        associated_company_ids,
        secret: str,
        ttl: timedelta,
    ) -> tuple[str, datetime]:
        now = utcnow()
        expires_at = now + ttl
        payload = {
            "user": {
                "id": subject_id,
                "role": Role(role).value,
                "company_id": company_id,
                "associate_company_ids": list(associated_company_ids or []),
            },
            "exp": to_timestamp(expires_at),
            "iat": to_timestamp(now),
            "jti": secrets.token_hex(16),
        }
        token = jwt.encode(payload, secret, algorithm=SIGNING_ALGORITHM)
        return token, from_timestamp(payload["exp"])

    def _decode(self, token: str, secret: str) -> Claims:
        if not isinstance(token, str):
            raise TokenInvalidError("Invalid token")
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[SIGNING_ALGORITHM],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError:
            raise TokenInvalidError("Invalid token")

        user = payload.get("user")
        if not isinstance(user, dict):
            raise TokenInvalidError("Invalid token claims")

        subject_id = user.get("id")
        role = Role.parse(user.get("role"))
        if not isinstance(subject_id, str) or not subject_id or role is None:
            raise TokenInvalidError("Invalid token claims")

        associated = user.get("associate_company_ids") or []
        if not isinstance(associated, list) or not all(isinstance(i, str) for i in associated):
            raise TokenInvalidError("Invalid token claims")

        return Claims(
            subject_id=subject_id,
            role=role,
            company_id=user.get("company_id") or None,
            associated_company_ids=tuple(associated),
            expires_at=from_timestamp(payload["exp"]),
        )

    # ------------------------------------------------------------------
    # issue
    # ------------------------------------------------------------------

    def issue_access(
        self,
        subject_id: str,
        role: Role | str,
        company_id: str | None = None,
        associated_company_ids=(),
    ) -> str:
        token, _ = self._encode(
            subject_id, role, company_id, associated_company_ids,
            self._access_secret, ACCESS_TOKEN_TTL,
        )
        return token

    def issue_refresh(
        self,
        subject_id: str,
        role: Role | str,
        company_id: str | None = None,
        associated_company_ids=(),
        *,
        commit: bool = True,
    ) -> str:
        """Sign a refresh token and persist its hash server-side."""
        token, expires_at = self._encode(
            subject_id, role, company_id, associated_company_ids,
            self._refresh_secret, REFRESH_TOKEN_TTL,
        )
        db.session.add(RefreshToken(
            account_id=subject_id,
            token_hash=hash_token(token),
            expires_at=expires_at,
        ))
        if commit:
            db.session.commit()
        return token

    def issue_for_account(self, account: Account, *, commit: bool = True) -> tuple[str, str]:
        """Issue an (access, refresh) pair from the account's stored state."""
        subject_id, role, company_id, associated = claims_for_account(account)
        access = self.issue_access(subject_id, role, company_id, associated)
        refresh = self.issue_refresh(subject_id, role, company_id, associated, commit=commit)
        return access, refresh

    # ------------------------------------------------------------------
    # verify / revoke / rotate
    # ------------------------------------------------------------------

    def verify(self, token: str) -> Claims:
        """
        Verify an access token.

        Raises:
            TokenInvalidError: bad signature or malformed claims
            TokenExpiredError: past exp
            TokenRevokedError: blacklisted on logout
        """
        if not token:
            raise TokenInvalidError("Invalid token")

        claims = self._decode(token, self._access_secret)

        revoked = db.session.query(BlacklistedToken.id).filter_by(
            token_hash=hash_token(token)
        ).first()
        if revoked:
            raise TokenRevokedError("Token has been revoked")

        return claims

    def revoke(self, access_token: str) -> Claims:
        """
        Blacklist an access token until its natural expiry.

        Returns the claims of the revoked token.
        """
        claims = self.verify(access_token)
        db.session.add(BlacklistedToken(
            token_hash=hash_token(access_token),
            expires_at=claims.expires_at,
        ))
        db.session.commit()
        return claims

    def refresh(self, refresh_token: str) -> tuple[str, str]:
        """
        Rotate a refresh token: the presented token is deleted and a fresh
        (access, refresh) pair is issued in the same transaction.

        Raises:
            TokenExpiredError: token past its expiry
            RefreshTokenNotFoundError: unknown or already consumed
            TokenInvalidError: bad signature
        """
        if not refresh_token:
            raise RefreshTokenNotFoundError("Refresh token required")

        claims = self._decode(refresh_token, self._refresh_secret)
        token_hash = hash_token(refresh_token)

        record = db.session.query(RefreshToken).filter_by(token_hash=token_hash).first()
        if not record or record.account_id != claims.subject_id:
            raise RefreshTokenNotFoundError("Invalid or expired refresh token")

        if record.expires_at < utcnow():
            db.session.delete(record)
            db.session.commit()
            raise TokenExpiredError("Invalid or expired refresh token")

        # Conditional delete: a concurrent rotation of the same token loses here
        deleted = db.session.query(RefreshToken).filter_by(
            token_hash=token_hash
        ).delete(synchronize_session=False)
        if deleted != 1:
            db.session.rollback()
            raise RefreshTokenNotFoundError("Invalid or expired refresh token")

        account = db.session.get(Account, claims.subject_id)
        if not account or account.account_status != "active":
            db.session.commit()
            raise AuthError("Account is not active")

        pair = self.issue_for_account(account, commit=False)
        db.session.commit()
        return pair

    def logout(self, access_token: str, refresh_token: str | None = None) -> Claims:
        """Blacklist the access token and drop the caller's refresh token."""
        claims = self.verify(access_token)
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise TokenInvalidError("Invalid refresh token")
        if refresh_token:
            db.session.query(RefreshToken).filter_by(
                token_hash=hash_token(refresh_token),
                account_id=claims.subject_id,
            ).delete(synchronize_session=False)
        db.session.add(BlacklistedToken(
            token_hash=hash_token(access_token),
            expires_at=claims.expires_at,
        ))
        db.session.commit()
        return claims


def get_token_issuer() -> TokenIssuer:
    """The issuer constructed by the app factory for the current app."""
    return current_app.extensions["token_issuer"]


def cleanup_expired_tokens(now: datetime | None = None) -> tuple[int, int]:
    """
    Delete refresh and blacklist rows past their expiry.

    Returns (refresh_tokens_deleted, blacklisted_tokens_deleted).
    Run this periodically; expired blacklist rows no longer matter because
    the token itself fails verification.
    """
    cutoff = now or utcnow()
    refresh_deleted = db.session.query(RefreshToken).filter(
        RefreshToken.expires_at < cutoff
    ).delete(synchronize_session=False)
    blacklist_deleted = db.session.query(BlacklistedToken).filter(
        BlacklistedToken.expires_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return refresh_deleted, blacklist_deleted
