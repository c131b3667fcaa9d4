"""
Password Security Module
bcrypt hashing for registry users
"""

from typing import Optional

from passlib.context import CryptContext
from loguru import logger


pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=12
)

MIN_PASSWORD_LENGTH = 6
# bcrypt only reads the first 72 bytes
MAX_PASSWORD_BYTES = 72


def password_problem(password: str) -> Optional[str]:
    """
    Reason a new user's password is refused, or None if it can be used.

    Example:
        >>> password_problem("abc")
        'Password must be at least 6 characters'
    """
    if not password:
        return "Password is required"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
    return None


def hash_password(password: str) -> str:
    """
    Hash a registry user's password with bcrypt.

    Raises:
        ValueError: If the password is empty
    """
    if not password:
        raise ValueError("Password cannot be empty")

    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a login attempt against the stored hash"""
    if not plain_password or not hashed_password:
        return False

    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.warning(f"Unreadable password hash: {e}")
        return False
