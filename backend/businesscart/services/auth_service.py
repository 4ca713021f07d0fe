# Overview: Service-layer operations for auth; encapsulates onboarding codes, registration and login.

"""
Accounts, Onboarding Codes and Authentication

WHY: Every account is bound to a role at registration time and, for
company/customer/partner roles, to a pre-issued onboarding code. The code is
what ties a customer or partner to the company whose catalog they may buy
from.

ONBOARDING:
- company:  needs an unclaimed company code. The claim is a conditional
            UPDATE (is_claimed false -> true) so two registrations can never
            claim the same code. The company account takes the code's id.
- customer: needs one or more customer codes. Customer codes are never
            claimed; each one becomes an {code_id, customer_code} entry.
- partner:  may present an unclaimed partner code (same conditional claim).
- admin:    not self-registrable; created through the CLI.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper, lower, digit and special char required
"""

import re

import bcrypt
from flask import current_app
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, InvalidCredentialsError, NotFoundError, ValidationError
from ..models import Account, AccountCustomerCode, Code
from ..models.accounts import ACCOUNT_ACTIVE
from .access_scope import Role
from businesscart.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


SELF_REGISTRABLE_ROLES = (Role.COMPANY, Role.CUSTOMER, Role.PARTNER)


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash verifies False.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


# =============================================================================
# ONBOARDING CODES
# =============================================================================

def create_code(company_code: str, customer_code: str, partner_code: str | None = None) -> Code:
    """
    Issue an onboarding code row.

    Raises:
        ValidationError: If company or customer code is missing or not a string
        ConflictError: If any of the code values already exists in any column
    """
    for value in (company_code, customer_code, partner_code):
        if value is not None and not isinstance(value, str):
            raise ValidationError("Code values must be strings")

    company_code = (company_code or "").strip()
    customer_code = (customer_code or "").strip()
    partner_code = (partner_code or "").strip() or None

    if not company_code or not customer_code:
        raise ValidationError("companyCode and customerCode are required")

    values = {company_code, customer_code}
    if partner_code:
        values.add(partner_code)
    if len(values) != (3 if partner_code else 2):
        raise ValidationError("Code values must be distinct")

    # A code value must be unique across all three columns, not just its own
    duplicate = db.session.query(Code.id).filter(or_(
        Code.company_code.in_(values),
        Code.customer_code.in_(values),
        Code.partner_code.in_(values),
    )).first()
    if duplicate:
        raise ConflictError("Code already exists")

    code = Code(
        company_code=company_code,
        customer_code=customer_code,
        partner_code=partner_code,
        is_claimed=False,
        partner_is_claimed=False,
    )
    db.session.add(code)
    db.session.commit()
    return code


def find_code(value: str) -> Code:
    """Look up a code row by any of its three code values."""
    code = db.session.query(Code).filter(or_(
        Code.company_code == value,
        Code.customer_code == value,
        Code.partner_code == value,
    )).first()
    if not code:
        raise NotFoundError("Code not found")
    return code


def _claim(code_column, claimed_column, value: str) -> Code | None:
    """Atomically flip a code's claimed flag. Returns the code if we won the claim."""
    code = db.session.query(Code).filter(code_column == value).first()
    if not code:
        return None
    result = db.session.execute(
        update(Code)
        .where(Code.id == code.id, claimed_column.is_(False))
        .values({claimed_column.key: True})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None
    return code


# =============================================================================
# REGISTRATION / LOGIN
# =============================================================================

def register_account(
    name: str,
    email: str,
    password: str,
    role: str,
    code: str | None = None,
    customer_codes: list[str] | None = None,
) -> Account:
    """
    Register a company, customer or partner account.

    Args:
        name: Display name (company name for company accounts)
        email: Login email, unique across accounts
        password: Password meeting strength requirements
        role: "company", "customer" or "partner"
        code: Company code (company) or partner code (partner, optional)
        customer_codes: Customer codes (customer, at least one)

    Returns:
        Created Account

    Raises:
        ValidationError: Invalid role, missing/invalid/claimed code, weak password
        ConflictError: Email already registered
    """
    parsed_role = Role.parse(role)
    if parsed_role not in SELF_REGISTRABLE_ROLES:
        raise ValidationError("Invalid role")

    for value in (name, email, code):
        if value is not None and not isinstance(value, str):
            raise ValidationError("name, email and codes must be strings")

    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email or "@" not in email:
        raise ValidationError("name and a valid email are required")

    if db.session.query(Account.id).filter_by(email=email).first():
        raise ConflictError("Email already registered")

    password_hash = hash_password(password)

    account = Account(
        name=name,
        email=email,
        password_hash=password_hash,
        role=parsed_role.value,
        account_status=ACCOUNT_ACTIVE,
    )

    if parsed_role is Role.COMPANY:
        if not code:
            raise ValidationError("companyCode required")
        claimed = _claim(Code.company_code, Code.is_claimed, code)
        if not claimed:
            db.session.rollback()
            raise ValidationError("Invalid or already-claimed company code")
        # The company account and its code share one id
        account.id = claimed.id
        account.company_name = name
        account.company_code_id = claimed.id
        account.company_code = claimed.company_code
        account.company_status = "pending_setup"

    elif parsed_role is Role.CUSTOMER:
        if not customer_codes or not isinstance(customer_codes, list):
            raise ValidationError("At least one customerCode required")
        seen = set()
        for value in customer_codes:
            if not isinstance(value, str):
                raise ValidationError("customerCodes must be a list of strings")
            code_row = db.session.query(Code).filter_by(customer_code=value).first()
            if not code_row:
                raise ValidationError(f"Invalid customer code: {value}")
            if code_row.id in seen:
                continue
            seen.add(code_row.id)
            account.customer_codes.append(AccountCustomerCode(
                code_id=code_row.id,
                customer_code=code_row.customer_code,
            ))

    elif parsed_role is Role.PARTNER:
        account.partner_status = "pending"
        if code:
            claimed = _claim(Code.partner_code, Code.partner_is_claimed, code)
            if not claimed:
                db.session.rollback()
                raise ValidationError("Invalid or already-claimed partner code")
            account.partner_code_id = claimed.id
            account.partner_code = claimed.partner_code

    db.session.add(account)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race on the email or the company id
        db.session.rollback()
        raise ConflictError("Account already exists")
    return account


def create_admin(name: str, email: str, password: str) -> Account:
    """Create an admin account (CLI only)."""
    email = (email or "").strip().lower()
    if db.session.query(Account.id).filter_by(email=email).first():
        raise ConflictError("Email already registered")

    account = Account(
        name=(name or "").strip() or "Administrator",
        email=email,
        password_hash=hash_password(password),
        role=Role.ADMIN.value,
        account_status=ACCOUNT_ACTIVE,
    )
    db.session.add(account)
    db.session.commit()
    return account


def authenticate(email: str, password: str) -> Account:
    """
    Verify credentials.

    Returns the Account on success.

    Raises:
        InvalidCredentialsError: Unknown email, wrong password or inactive account
    """
    if not isinstance(email, str) or not isinstance(password, str):
        raise InvalidCredentialsError("Invalid credentials")

    email = email.strip().lower()
    account = db.session.query(Account).filter_by(email=email).first()

    if not account or not verify_password(password, account.password_hash):
        raise InvalidCredentialsError("Invalid credentials")

    if account.account_status != ACCOUNT_ACTIVE:
        raise InvalidCredentialsError("Invalid credentials")

    account.updated_at = utcnow()
    db.session.commit()
    return account
