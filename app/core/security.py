"""Password hashing and verification (Argon2id) plus credential input limits."""

import logging
from functools import lru_cache

from argon2 import PasswordHasher, Type
from argon2.exceptions import HashingError as Argon2HashingError
from argon2.exceptions import InvalidHashError, VerificationError

from app.core.config import get_settings
from app.core.errors import HashingError

logger = logging.getLogger(__name__)

# Min/max lengths for email and password validation.
EMAIL_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 100


@lru_cache
def get_password_hasher() -> PasswordHasher:
    """Return the process-wide Argon2id hasher built from settings."""
    settings = get_settings()
    return PasswordHasher(
        time_cost=settings.ARGON2_TIME_COST,
        memory_cost=settings.ARGON2_MEMORY_COST_KIB,
        parallelism=settings.ARGON2_PARALLELISM,
        type=Type.ID,
    )


def hash_password(plain_password: str, hasher: PasswordHasher | None = None) -> str:
    """
    Hash a plain-text password for storage.

    Output is a PHC string ($argon2id$v=19$...) with a fresh random salt, so
    hashing the same password twice yields different strings.
    Raises HashingError if the underlying library fails.
    """
    hasher = hasher or get_password_hasher()
    try:
        return hasher.hash(plain_password)
    except Argon2HashingError as e:
        raise HashingError(f"Password hashing failed: {e}") from e


def verify_password(
    plain_password: str, hashed: str, hasher: PasswordHasher | None = None
) -> bool:
    """
    Verify a plain password against a stored hash.

    Returns False on mismatch. Raises HashingError when the stored hash is not
    a valid Argon2 encoding; callers treat that as a failed login but log it
    separately.
    """
    hasher = hasher or get_password_hasher()
    try:
        return hasher.verify(hashed, plain_password)
    except InvalidHashError as e:
        raise HashingError("Stored password hash is malformed") from e
    except VerificationError:
        return False


def needs_rehash(hashed: str, hasher: PasswordHasher | None = None) -> bool:
    """True when the stored hash was produced with weaker parameters than current settings."""
    hasher = hasher or get_password_hasher()
    try:
        return hasher.check_needs_rehash(hashed)
    except (InvalidHashError, ValueError):
        logger.warning("Could not parse stored hash parameters for rehash check")
        return False
