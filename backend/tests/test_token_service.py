"""
Token issuer tests.

Verifies signing/verification, claim derivation per role, blacklist on
revoke, refresh rotation and expired-row cleanup.
"""

import time
from datetime import timedelta

import jwt
import pytest
from businesscart.errors import (
    RefreshTokenNotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
)
from businesscart.models import BlacklistedToken, RefreshToken
from businesscart.services.access_scope import Role
from businesscart.services.token_service import (
    TokenIssuer,
    claims_for_account,
    cleanup_expired_tokens,
    hash_token,
)
from businesscart.time_utils import utcnow


@pytest.fixture
def issuer(app):
    return app.extensions["token_issuer"]


class TestIssueAndVerify:

    def test_round_trip(self, issuer):
        token = issuer.issue_access("acct-1", Role.CUSTOMER, None, ["co-1", "co-2"])
        claims = issuer.verify(token)

        assert claims.subject_id == "acct-1"
        assert claims.role is Role.CUSTOMER
        assert claims.company_id is None
        assert claims.associated_company_ids == ("co-1", "co-2")
        assert claims.expires_at > utcnow() + timedelta(hours=71)

    def test_payload_shape(self, issuer):
        token = issuer.issue_access("acct-1", "company", "acct-1")
        payload = jwt.decode(token, "test-access-secret", algorithms=["HS256"])
        assert payload["user"] == {
            "id": "acct-1",
            "role": "company",
            "company_id": "acct-1",
            "associate_company_ids": [],
        }
        assert "exp" in payload

    def test_tokens_are_unique(self, issuer):
        assert issuer.issue_access("acct-1", "admin") != issuer.issue_access("acct-1", "admin")

    def test_wrong_secret(self, issuer):
        other = TokenIssuer("another-secret", "another-refresh")
        with pytest.raises(TokenInvalidError):
            issuer.verify(other.issue_access("acct-1", "admin"))

    def test_garbage(self, issuer):
        with pytest.raises(TokenInvalidError):
            issuer.verify("not-a-jwt")
        with pytest.raises(TokenInvalidError):
            issuer.verify("")

    def test_expired(self, issuer):
        token = jwt.encode(
            {"user": {"id": "acct-1", "role": "admin"}, "exp": int(time.time()) - 60},
            "test-access-secret",
            algorithm="HS256",
        )
        with pytest.raises(TokenExpiredError):
            issuer.verify(token)

    def test_unknown_role_in_payload(self, issuer):
        token = jwt.encode(
            {"user": {"id": "acct-1", "role": "superuser"}, "exp": int(time.time()) + 60},
            "test-access-secret",
            algorithm="HS256",
        )
        with pytest.raises(TokenInvalidError):
            issuer.verify(token)

    def test_refresh_token_is_not_an_access_token(self, issuer, db_session):
        refresh = issuer.issue_refresh("acct-1", "admin")
        with pytest.raises(TokenInvalidError):
            issuer.verify(refresh)

    def test_secrets_required(self):
        with pytest.raises(ValueError):
            TokenIssuer("", "x")


class TestClaimsForAccount:

    def test_company(self, company_a):
        subject_id, role, company_id, associated = claims_for_account(company_a)
        assert role is Role.COMPANY
        assert company_id == subject_id == company_a.id
        assert associated == []

    def test_customer(self, customer, code_a):
        _, role, company_id, associated = claims_for_account(customer)
        assert role is Role.CUSTOMER
        assert company_id is None
        assert associated == [code_a.id]

    def test_partner(self, partner, code_a):
        _, role, company_id, associated = claims_for_account(partner)
        assert role is Role.PARTNER
        assert company_id == code_a.id
        assert associated == [code_a.id]

    def test_admin(self, admin):
        _, role, company_id, associated = claims_for_account(admin)
        assert role is Role.ADMIN
        assert company_id is None
        assert associated == []


class TestRevokeAndRefresh:

    def test_revoke(self, issuer, db_session):
        token = issuer.issue_access("acct-1", "admin")
        claims = issuer.revoke(token)

        row = db_session.query(BlacklistedToken).filter_by(token_hash=hash_token(token)).one()
        assert row.expires_at == claims.expires_at
        with pytest.raises(TokenRevokedError):
            issuer.verify(token)

    def test_refresh_rotates(self, issuer, customer):
        _, refresh = issuer.issue_for_account(customer)

        access2, refresh2 = issuer.refresh(refresh)
        assert issuer.verify(access2).subject_id == customer.id
        assert refresh2 != refresh

        with pytest.raises(RefreshTokenNotFoundError):
            issuer.refresh(refresh)

        # The rotated token still works exactly once
        issuer.refresh(refresh2)

    def test_refresh_unknown(self, issuer, customer):
        forged = issuer._encode(customer.id, "customer", None, [], "test-refresh-secret", timedelta(days=1))[0]
        with pytest.raises(RefreshTokenNotFoundError):
            issuer.refresh(forged)

    def test_refresh_with_access_token(self, issuer, customer):
        access, _ = issuer.issue_for_account(customer)
        with pytest.raises(TokenInvalidError):
            issuer.refresh(access)

    def test_refresh_expired_record(self, issuer, customer, db_session):
        _, refresh = issuer.issue_for_account(customer)
        record = db_session.query(RefreshToken).filter_by(token_hash=hash_token(refresh)).one()
        record.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        with pytest.raises(TokenExpiredError):
            issuer.refresh(refresh)
        assert db_session.query(RefreshToken).filter_by(token_hash=hash_token(refresh)).count() == 0

    def test_logout(self, issuer, customer, db_session):
        access, refresh = issuer.issue_for_account(customer)
        issuer.logout(access, refresh)

        with pytest.raises(TokenRevokedError):
            issuer.verify(access)
        with pytest.raises(RefreshTokenNotFoundError):
            issuer.refresh(refresh)


class TestCleanup:

    def test_cleanup_expired_tokens(self, issuer, customer, db_session):
        past = utcnow() - timedelta(days=1)
        db_session.add(RefreshToken(account_id=customer.id, token_hash="a" * 64, expires_at=past))
        db_session.add(BlacklistedToken(token_hash="b" * 64, expires_at=past))
        db_session.commit()
        issuer.issue_for_account(customer)

        assert cleanup_expired_tokens() == (1, 1)
        assert db_session.query(RefreshToken).count() == 1
        assert db_session.query(BlacklistedToken).count() == 0
