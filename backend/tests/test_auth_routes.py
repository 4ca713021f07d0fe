"""
Registration, login, token and onboarding-code route tests.
"""

import pytest
from conftest import PASSWORD, auth_headers, get_auth_token

from sqlalchemy import update

from businesscart.extensions import db
from businesscart.models import Account, Code


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/accounts"),
            ("GET", "/accounts/abc"),
            ("POST", "/accounts/logout"),
            ("POST", "/codes"),
            ("GET", "/products"),
            ("GET", "/cart?companyId=x"),
            ("POST", "/cart"),
            ("POST", "/quotes"),
            ("GET", "/quotes/abc"),
            ("POST", "/orders"),
            ("GET", "/orders"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_non_bearer_scheme(self, client):
        resp = client.get("/orders", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 401

    def test_invalid_token(self, client):
        resp = client.get("/orders", headers=auth_headers("garbage"))
        assert resp.status_code == 401

    def test_scheme_is_case_insensitive(self, client, customer_headers):
        token = customer_headers["Authorization"].split(" ", 1)[1]
        resp = client.get("/orders", headers={"Authorization": f"bearer {token}"})
        assert resp.status_code == 200


# =============================================================================
# REGISTRATION
# =============================================================================


class TestRegister:

    def test_company_claims_code(self, client, db_session, code_a):
        code_id = code_a.id
        resp = client.post("/accounts/register", json={
            "name": "Acme Corp",
            "email": "Owner@Acme.test",
            "password": PASSWORD,
            "role": "company",
            "companyCode": "ACME-CO",
        })
        assert resp.status_code == 201
        account = resp.json["account"]
        assert account["id"] == code_id
        assert account["email"] == "owner@acme.test"
        assert account["company"]["companyCode"] == "ACME-CO"
        assert db_session.get(Code, code_id, populate_existing=True).is_claimed is True

    def test_company_code_single_use(self, client, company_a):
        resp = client.post("/accounts/register", json={
            "name": "Copycat",
            "email": "copy@cat.test",
            "password": PASSWORD,
            "role": "company",
            "companyCode": "ACME-CO",
        })
        assert resp.status_code == 400

    def test_customer_with_codes(self, client, code_a, code_b):
        resp = client.post("/accounts/register", json={
            "name": "Carol",
            "email": "carol@buyer.test",
            "password": PASSWORD,
            "role": "customer",
            "customerCodes": ["ACME-CU", "BETA-CU"],
        })
        assert resp.status_code == 201
        codes = resp.json["account"]["customer"]["customerCodes"]
        assert {c["customerCode"] for c in codes} == {"ACME-CU", "BETA-CU"}

    def test_customer_codes_are_reusable(self, client, customer):
        resp = client.post("/accounts/register", json={
            "name": "Erin",
            "email": "erin@buyer.test",
            "password": PASSWORD,
            "role": "customer",
            "customerCode": "ACME-CU",
        })
        assert resp.status_code == 201

    def test_customer_invalid_code(self, client, code_a):
        resp = client.post("/accounts/register", json={
            "name": "Carol",
            "email": "carol@buyer.test",
            "password": PASSWORD,
            "role": "customer",
            "customerCodes": ["NOPE"],
        })
        assert resp.status_code == 400

    def test_partner_claims_partner_code_only(self, client, db_session, code_a):
        code_id = code_a.id
        resp = client.post("/accounts/register", json={
            "name": "Pat",
            "email": "pat@partner.test",
            "password": PASSWORD,
            "role": "partner",
            "partnerCode": "ACME-PA",
        })
        assert resp.status_code == 201
        code = db_session.get(Code, code_id, populate_existing=True)
        assert code.partner_is_claimed is True
        assert code.is_claimed is False

    @pytest.mark.parametrize("role", ["admin", "superuser", None])
    def test_role_not_self_registrable(self, client, role):
        resp = client.post("/accounts/register", json={
            "name": "Mallory",
            "email": "mallory@evil.test",
            "password": PASSWORD,
            "role": role,
        })
        assert resp.status_code == 400

    def test_duplicate_email(self, client, customer):
        resp = client.post("/accounts/register", json={
            "name": "Carol again",
            "email": "carol@buyer.test",
            "password": PASSWORD,
            "role": "customer",
            "customerCodes": ["ACME-CU"],
        })
        assert resp.status_code == 409

    def test_weak_password(self, client, code_a):
        resp = client.post("/accounts/register", json={
            "name": "Carol",
            "email": "carol@buyer.test",
            "password": "password",
            "role": "customer",
            "customerCodes": ["ACME-CU"],
        })
        assert resp.status_code == 400
        assert "Password" in resp.json["error"]

    def test_company_code_claimed_directly(self, client, db_session, code_a):
        db_session.execute(update(Code).where(Code.id == code_a.id).values(is_claimed=True))
        db_session.commit()

        resp = client.post("/accounts/register", json={
            "name": "Acme Corp",
            "email": "owner@acme.test",
            "password": PASSWORD,
            "role": "company",
            "companyCode": "ACME-CO",
        })
        assert resp.status_code == 400
        assert db_session.query(Account).count() == 0

    @pytest.mark.parametrize("role,body,claimed_column", [
        ("company", {"companyCode": "ACME-CO"}, "is_claimed"),
        ("partner", {"partnerCode": "ACME-PA"}, "partner_is_claimed"),
    ])
    def test_code_claimed_by_competing_registration(self, client, db_session, code_a, monkeypatch,
                                                    role, body, claimed_column):
        code_id = code_a.id
        real_execute = db.session.execute

        def competing_execute(statement, *args, **kwargs):
            # The code passes the lookup, then another registration claims it first
            if getattr(statement, "table", None) is Code.__table__:
                real_execute(update(Code).where(Code.id == code_id).values({claimed_column: True}))
            return real_execute(statement, *args, **kwargs)

        monkeypatch.setattr(db.session, "execute", competing_execute)
        resp = client.post("/accounts/register", json=dict({
            "name": "Late",
            "email": "late@acme.test",
            "password": PASSWORD,
            "role": role,
        }, **body))
        monkeypatch.undo()

        assert resp.status_code == 400
        assert "already-claimed" in resp.json["error"]
        assert db_session.query(Account).filter_by(email="late@acme.test").count() == 0

    @pytest.mark.parametrize("customer_codes", [[{"a": 1}], [1], ["ACME-CU", None], "ACME-CU"])
    def test_customer_codes_must_be_strings(self, client, code_a, customer_codes):
        resp = client.post("/accounts/register", json={
            "name": "Carol",
            "email": "carol@buyer.test",
            "password": PASSWORD,
            "role": "customer",
            "customerCodes": customer_codes,
        })
        assert resp.status_code == 400

    def test_company_code_must_be_string(self, client, code_a):
        resp = client.post("/accounts/register", json={
            "name": "Acme Corp",
            "email": "owner@acme.test",
            "password": PASSWORD,
            "role": "company",
            "companyCode": {"value": "ACME-CO"},
        })
        assert resp.status_code == 400

    @pytest.mark.parametrize("body", [[1, 2], "register", 7])
    def test_body_must_be_object(self, client, body):
        resp = client.post("/accounts/register", json=body)
        assert resp.status_code == 400
        assert resp.json["error"] == "Invalid JSON payload"


# =============================================================================
# LOGIN / REFRESH / LOGOUT
# =============================================================================


class TestSession:

    def test_login(self, client, customer):
        resp = client.post("/accounts/login", json={"email": "carol@buyer.test", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json["accessToken"]
        assert resp.json["refreshToken"]

    def test_login_wrong_password(self, client, customer):
        resp = client.post("/accounts/login", json={"email": "carol@buyer.test", "password": "Wrong123!"})
        assert resp.status_code == 401

    def test_login_unknown_email(self, client):
        resp = client.post("/accounts/login", json={"email": "ghost@nowhere.test", "password": PASSWORD})
        assert resp.status_code == 401

    def test_login_missing_fields(self, client):
        assert client.post("/accounts/login", json={}).status_code == 400

    @pytest.mark.parametrize("body,status", [
        (["carol@buyer.test", PASSWORD], 400),
        ({"email": ["carol@buyer.test"], "password": PASSWORD}, 401),
        ({"email": "carol@buyer.test", "password": 123456789}, 401),
    ])
    def test_login_malformed_body(self, client, customer, body, status):
        assert client.post("/accounts/login", json=body).status_code == status

    def test_refresh_malformed_body(self, client):
        assert client.post("/accounts/refresh", json=["token"]).status_code == 400
        assert client.post("/accounts/refresh", json={"refreshToken": {"t": 1}}).status_code == 401

    def test_logout_malformed_refresh_token(self, client, customer_headers):
        resp = client.post("/accounts/logout", json={"refreshToken": 42}, headers=customer_headers)
        assert resp.status_code == 401

    def test_refresh_rotation(self, client, customer):
        login = client.post("/accounts/login", json={"email": "carol@buyer.test", "password": PASSWORD})
        refresh = login.json["refreshToken"]

        first = client.post("/accounts/refresh", json={"refreshToken": refresh})
        assert first.status_code == 200
        assert first.json["accessToken"]

        replay = client.post("/accounts/refresh", json={"refreshToken": refresh})
        assert replay.status_code == 401

    def test_logout_revokes_access_token(self, client, customer):
        token = get_auth_token(client, "carol@buyer.test", PASSWORD)
        headers = auth_headers(token)

        assert client.get("/orders", headers=headers).status_code == 200
        assert client.post("/accounts/logout", headers=headers).status_code == 200
        assert client.get("/orders", headers=headers).status_code == 401


# =============================================================================
# ONBOARDING CODES
# =============================================================================


class TestCodes:

    def test_admin_creates_code(self, client, admin_headers):
        resp = client.post("/codes", json={
            "companyCode": "GAMMA-CO",
            "customerCode": "GAMMA-CU",
        }, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json["code"]["isClaimed"] is False

    def test_duplicate_code(self, client, admin_headers, code_a):
        resp = client.post("/codes", json={
            "companyCode": "NEW-CO",
            "customerCode": "ACME-CO",
        }, headers=admin_headers)
        assert resp.status_code == 409

    def test_missing_fields(self, client, admin_headers):
        resp = client.post("/codes", json={"companyCode": "X"}, headers=admin_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize("body", [
        ["GAMMA-CO", "GAMMA-CU"],
        {"companyCode": 1, "customerCode": "GAMMA-CU"},
        {"companyCode": "GAMMA-CO", "customerCode": "GAMMA-CU", "partnerCode": ["P"]},
    ])
    def test_malformed_body(self, client, admin_headers, body):
        assert client.post("/codes", json=body, headers=admin_headers).status_code == 400

    @pytest.mark.parametrize("headers_fixture", ["company_a_headers", "customer_headers", "partner_headers"])
    def test_non_admin_forbidden(self, client, request, headers_fixture):
        headers = request.getfixturevalue(headers_fixture)
        resp = client.post("/codes", json={"companyCode": "X", "customerCode": "Y"}, headers=headers)
        assert resp.status_code == 403

    def test_lookup(self, client, admin_headers, code_a):
        resp = client.get("/codes/ACME-CU", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["code"]["companyCode"] == "ACME-CO"

        assert client.get("/codes/NOPE", headers=admin_headers).status_code == 404
