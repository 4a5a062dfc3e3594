"""Password policy, password hashing and one-time verification codes."""

import re
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import bcrypt

from wynngrid_accounts.config import settings

PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&"
PASSWORD_MIN_LENGTH = 6
PASSWORD_REQUIREMENTS_MESSAGE = (
    "Password must be at least 6 characters long and include at least one "
    "uppercase letter, one lowercase letter, one special character, and one number."
)

# Letters, digits and the special characters only; one of each class required.
_PASSWORD_PATTERN = re.compile(
    r"(?=.*[a-z])(?=.*[A-Z])(?=.*[0-9])(?=.*[@$!%*?&])[A-Za-z0-9@$!%*?&]{6,}",
    re.ASCII,
)

# bcrypt only reads the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72

OTP_LENGTH = 6


def is_valid_password(password: str | None) -> bool:
    """Check a candidate password against the password policy."""
    if not password:
        return False
    return _PASSWORD_PATTERN.fullmatch(password) is not None


def _encode_password(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a plain-text password with bcrypt using the configured cost factor."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode_password(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a candidate password against a stored bcrypt hash.

    Accounts without a stored hash (Google sign-in) never match, and a
    malformed hash is treated as a mismatch.
    """
    if not password_hash or password is None:
        return False
    try:
        return bcrypt.checkpw(_encode_password(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


@dataclass(frozen=True)
class OneTimeCode:
    """A numeric verification code and the moment it stops being valid."""

    code: str
    expires_at: datetime


def generate_otp() -> str:
    """Return a uniformly random 6-digit code, leading zeros included."""
    return f"{secrets.randbelow(10**OTP_LENGTH):0{OTP_LENGTH}d}"


def new_one_time_code(now: datetime | None = None) -> OneTimeCode:
    """
    Generate a fresh verification code.

    Args:
        now: Issue time (defaults to the current UTC time)

    Returns:
        OneTimeCode expiring after the configured OTP lifetime
    """
    issued_at = now or datetime.now(UTC)
    return OneTimeCode(
        code=generate_otp(),
        expires_at=issued_at + timedelta(minutes=settings.otp_ttl_minutes),
    )
