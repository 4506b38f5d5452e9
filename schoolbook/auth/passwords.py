"""scrypt password hashes stored as ``<hex digest>.<hex salt>``.

Parameters match Node's ``crypto.scrypt`` defaults so existing hashes verify.
"""

from __future__ import annotations

import hashlib
import secrets

SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
KEY_LENGTH = 64
SALT_BYTES = 16


def _derive(password: str, salt: str) -> bytes:
    # The hex salt string itself is the salt input, not its decoded bytes
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_LENGTH,
    )


def hash_password(password: str) -> str:
    salt = secrets.token_hex(SALT_BYTES)
    return f"{_derive(password, salt).hex()}.{salt}"


def verify_password(supplied: str, stored: str) -> bool:
    """Constant-time check of ``supplied`` against a stored ``hash.salt``."""
    digest, sep, salt = stored.partition(".")
    if not sep or not digest or not salt:
        return False
    try:
        expected = bytes.fromhex(digest)
    except ValueError:
        return False
    return secrets.compare_digest(expected, _derive(supplied, salt))
