"""
Security helpers: bcrypt password hashing, generated passwords, password-reset tokens and
ObjectId parsing for ids coming from paths, tokens and log entries.
"""

import hashlib
import secrets
import string
from typing import Any, Optional, Tuple

import bcrypt
from bson import ObjectId
from bson.errors import InvalidId

BCRYPT_ROUNDS = 10
GENERATED_PASSWORD_LENGTH = 10
RESET_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    """Return the bcrypt hash of `password` as a UTF-8 string."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """Constant-time check of `password` against a stored bcrypt hash. Malformed hashes never match."""
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    """Random password for accounts created by an administrator (letters and digits)."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def hash_token(token: str) -> str:
    """One-way hash used to store reset tokens; presented tokens are compared by re-hashing."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_reset_token() -> Tuple[str, str]:
    """
    Create a password-reset token.

    Returns:
        Tuple of `(raw_token, token_hash)`. Only the hash is persisted; the raw token goes in
        the email link.
    """
    raw = secrets.token_hex(RESET_TOKEN_BYTES)
    return raw, hash_token(raw)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse `value` into an `ObjectId`, returning `None` when it is missing or malformed."""
    if isinstance(value, ObjectId):
        return value
    if not value:
        return None
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None
