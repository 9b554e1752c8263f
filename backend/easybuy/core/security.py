"""
Password hashing utilities.
"""

import logging

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

# Password hashing context with bcrypt
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against its hash.

    Rows that do not hold a recognizable hash (legacy plaintext passwords)
    never verify.
    """
    if not plain_password or not hashed_password:
        return False
    try:
        result: bool = pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        logger.warning("Stored password is not a recognized hash")
        return False
    return result


def get_password_hash(password: str) -> str:
    """Hash a password for storage."""
    hashed: str = pwd_context.hash(password)
    return hashed
