from __future__ import annotations

from ..extensions import db
from businesscart.time_utils import to_utc_z, utcnow


class RefreshToken(db.Model):
    """
    Server-side record of an issued refresh token.

    Only the SHA-256 hash of the token is stored. The row is deleted when the
    token is used (rotation) or on logout, so a presented token that has no
    row is either forged or already consumed.
    """
    __tablename__ = "refresh_tokens"

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.String(32), db.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
        }


class BlacklistedToken(db.Model):
    """Access token revoked on logout; honoured until its natural expiry."""
    __tablename__ = "blacklisted_tokens"

    id = db.Column(db.Integer, primary_key=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
