"""Password hashing."""

import logging

import bcrypt

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


def _encode(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(plaintext: str) -> str:
    """Return a salted bcrypt digest for ``plaintext``."""
    digest = bcrypt.hashpw(_encode(plaintext), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return digest.decode("ascii")


def verify_password(plaintext: str, digest: str) -> bool:
    """
    Check ``plaintext`` against a stored bcrypt digest.

    A corrupted or non-bcrypt digest is treated as a mismatch.
    """
    if not plaintext or not digest:
        return False

    try:
        return bcrypt.checkpw(_encode(plaintext), digest.encode("ascii"))
    except (ValueError, TypeError, UnicodeEncodeError) as e:
        logger.warning(f"Stored password digest could not be checked: {e}")
        return False
