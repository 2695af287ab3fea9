"""bcrypt password hashing for stored credentials."""

import logging

import bcrypt

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
# bcrypt ignores everything past the first 72 bytes of a secret
MAX_SECRET_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_SECRET_BYTES]


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of ``password`` using a cost factor of 10."""
    hashed = bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("ascii")


def compare_password(password: str, hashed: str) -> bool:
    """Check ``password`` against a stored bcrypt hash.

    Never raises: malformed hashes or unexpected input yield ``False``.
    """
    try:
        return bcrypt.checkpw(_encode(password), hashed.encode("ascii"))
    except Exception:
        logger.warning("password comparison failed", exc_info=True)
        return False
