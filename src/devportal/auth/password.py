"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor (rounds=12) takes ~100ms per hash on modern hardware.

Accounts imported from the previous deployment carry unsalted SHA-256
hex digests. Those are still verified, and auto-upgraded to bcrypt on
successful login.
"""

import hashlib
import secrets

import bcrypt

BCRYPT_ROUNDS = 12


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a bcrypt or legacy SHA-256 hash."""
    if _is_legacy_hash(password_hash):
        return _verify_legacy(password, password_hash)
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


def needs_upgrade(password_hash: str) -> bool:
    """Check if a password hash should be upgraded to bcrypt."""
    return _is_legacy_hash(password_hash)


def legacy_hash(password: str) -> str:
    """The previous deployment's format: unsalted SHA-256, hex encoded."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def _is_legacy_hash(password_hash: str) -> bool:
    return not password_hash.startswith("$2")


def _verify_legacy(password: str, password_hash: str) -> bool:
    return secrets.compare_digest(legacy_hash(password), password_hash)
