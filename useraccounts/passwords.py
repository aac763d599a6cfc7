"""Salted password hashing."""

import hashlib
import hmac
import secrets

from .exceptions import AuthenticationFailed

SALT_BYTES = 16


def generate_salt() -> str:
    """Generate a random per-user salt."""
    return secrets.token_hex(SALT_BYTES)


def hash_password(password: str, salt: str) -> str:
    """Generate a secure hash of a password, keyed with ``salt``."""
    return hmac.new(salt.encode('utf-8'), password.encode('utf-8'),
                    hashlib.sha256).hexdigest()


def check_password(password: str, salt: str, encrypted: str) -> None:
    """Check a password against a salted hash."""
    if not hmac.compare_digest(hash_password(password, salt), encrypted):
        raise AuthenticationFailed('Incorrect password')
