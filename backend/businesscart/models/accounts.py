from __future__ import annotations

from ..extensions import db
from ..ids import new_id
from businesscart.time_utils import to_utc_z, utcnow

ACCOUNT_ACTIVE = "active"
ACCOUNT_PENDING = "pending"
ACCOUNT_SUSPENDED = "suspended"
ACCOUNT_INACTIVE = "inactive"

ACCOUNT_STATUSES = (ACCOUNT_ACTIVE, ACCOUNT_PENDING, ACCOUNT_SUSPENDED, ACCOUNT_INACTIVE)


class Code(db.Model):
    """
    Pre-issued onboarding code.

    One row binds a company code, the customer code its buyers register with,
    and an optional partner code. The row id doubles as the company's account
    id once the company code is claimed, which is what lets customer and
    partner accounts reference "their" company by code id.

    Company and partner codes are single-use; customer codes never are.
    """
    __tablename__ = "codes"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    company_code = db.Column(db.String(64), nullable=False, unique=True)
    customer_code = db.Column(db.String(64), nullable=False, unique=True)
    partner_code = db.Column(db.String(64), nullable=True, unique=True)

    is_claimed = db.Column(db.Boolean, nullable=False, default=False)
    partner_is_claimed = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "companyCode": self.company_code,
            "customerCode": self.customer_code,
            "partnerCode": self.partner_code,
            "isClaimed": self.is_claimed,
            "partnerIsClaimed": self.partner_is_claimed,
            "createdAt": to_utc_z(self.created_at),
        }


class Account(db.Model):
    """
    Unified account for every role.

    Role-specific payload lives in nullable columns (company_*, partner_*)
    and, for customers, in AccountCustomerCode rows. The customer's
    associated-company list is always re-derived from those rows when a
    token is issued; it is never accepted from the client.
    """
    __tablename__ = "accounts"
    __table_args__ = (
        db.Index("ix_accounts_role", "role"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(16), nullable=False)
    account_status = db.Column(db.String(16), nullable=False, default=ACCOUNT_ACTIVE)

    # company payload
    company_name = db.Column(db.String(255), nullable=True)
    company_code_id = db.Column(db.String(32), nullable=True)
    company_code = db.Column(db.String(64), nullable=True)
    company_status = db.Column(db.String(32), nullable=True)

    # partner payload
    partner_code_id = db.Column(db.String(32), nullable=True)
    partner_code = db.Column(db.String(64), nullable=True)
    partner_status = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer_codes = db.relationship(
        "AccountCustomerCode",
        backref="account",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def associated_company_ids(self) -> list[str]:
        """Company ids this account may buy from (customer code ids)."""
        return [entry.code_id for entry in self.customer_codes]

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "accountStatus": self.account_status,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if self.company_code_id is not None:
            data["company"] = {
                "name": self.company_name,
                "companyCodeId": self.company_code_id,
                "companyCode": self.company_code,
                "status": self.company_status,
            }
        if self.customer_codes:
            data["customer"] = {
                "customerCodes": [entry.to_dict() for entry in self.customer_codes],
            }
        if self.partner_status is not None:
            data["partner"] = {
                "partnerCodeId": self.partner_code_id,
                "partnerCode": self.partner_code,
                "status": self.partner_status,
            }
        return data


class AccountCustomerCode(db.Model):
    """A customer's association with one company through its customer code."""
    __tablename__ = "account_customer_codes"
    __table_args__ = (
        db.UniqueConstraint("account_id", "code_id", name="uq_account_customer_code"),
        db.Index("ix_account_customer_codes_code_id", "code_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.String(32), db.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    code_id = db.Column(db.String(32), nullable=False)
    customer_code = db.Column(db.String(64), nullable=False)

    def to_dict(self) -> dict:
        return {"codeId": self.code_id, "customerCode": self.customer_code}
