# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every sale must be attributable to the cashier who recorded it.
Uses bcrypt for password hashing.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters required
- authenticate() returns None for unknown email, wrong password and
  deactivated accounts alike, so callers cannot enumerate users
- Session tokens managed separately (see session_service.py)
"""

import logging
import re

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..validation import ValidationError, ConflictError
from posbuzz.time_utils import utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72  # bcrypt ignores anything past 72 bytes

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet requirements."""
    pass


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_email(email) -> str:
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("email is required")
    normalized = normalize_email(email)
    if len(normalized) > 255 or not EMAIL_RE.match(normalized):
        raise ValidationError("email must be a valid email address")
    return normalized


def validate_password_strength(password) -> None:
    """
    Validate password meets requirements.

    Requirements:
    - Minimum 6 characters
    - At most 72 bytes once UTF-8 encoded (bcrypt limit)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or not password:
        raise PasswordValidationError("password is required")

    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise PasswordValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including
    malformed hashes). bcrypt.checkpw() is timing-safe.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def register_user(email, password, name=None) -> User:
    """
    Create new user with bcrypt password hashing.

    Args:
        email: Login identifier, unique case-insensitively
        password: Password meeting requirements
        name: Optional display name

    Returns:
        Created User object

    Raises:
        ValidationError: If email/password/name are malformed
        ConflictError: If a user with this email already exists
    """
    normalized_email = validate_email(email)
    validate_password_strength(password)

    if name is not None:
        if not isinstance(name, str):
            raise ValidationError("name must be a string")
        name = name.strip() or None
        if name and len(name) > 120:
            raise ValidationError("name exceeds max length 120")

    existing = db.session.query(User).filter_by(email=normalized_email).first()
    if existing:
        raise ConflictError("A user with this email already exists")

    user = User(
        email=normalized_email,
        name=name,
        password_hash=hash_password(password),
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.session.rollback()
        raise ConflictError("A user with this email already exists")

    logger.info("Registered user id=%s email=%s", user.id, user.email)
    return user


def authenticate(email, password) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None

    user = db.session.query(User).filter(
        User.email == normalize_email(email),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
