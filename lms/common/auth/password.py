"""
Password Utilities

This module provides salted password hashing, verification and the
strength policy applied to administrator accounts.
"""

import hashlib
import re
import secrets
from typing import List, Optional, Tuple

HASH_ALGORITHM = "pbkdf2_sha256"
HASH_ITERATIONS = 100000

MIN_PASSWORD_LENGTH = 6
ADMIN_MIN_PASSWORD_LENGTH = 12
SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")


def _derive(password: str, salt: str, iterations: int) -> str:
    key = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode(),
        salt.encode(),
        iterations,
        dklen=32
    )
    return key.hex()


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """
    Hash a password using PBKDF2 with SHA-256.

    Args:
        password: The password to hash
        salt: Optional salt to use (if None, a new salt will be generated)

    Returns:
        Encoded hash in the form ``pbkdf2_sha256$<iterations>$<salt>$<hash>``
    """
    if salt is None:
        salt = secrets.token_hex(16)
    digest = _derive(password, salt, HASH_ITERATIONS)
    return f"{HASH_ALGORITHM}${HASH_ITERATIONS}${salt}${digest}"


def verify_password(password: str, encoded: str) -> bool:
    """
    Verify that a password matches a stored hash.

    Args:
        password: The password to verify
        encoded: The stored encoded hash

    Returns:
        True if the password matches, False otherwise
    """
    try:
        algorithm, iterations, salt, digest = encoded.split("$", 3)
    except (AttributeError, ValueError):
        return False
    if algorithm != HASH_ALGORITHM or not iterations.isdigit():
        return False

    calculated = _derive(password, salt, int(iterations))
    return secrets.compare_digest(calculated, digest)


def password_policy_errors(password: str) -> List[str]:
    """List every strength rule the password breaks."""
    errors = []
    if len(password) < ADMIN_MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {ADMIN_MIN_PASSWORD_LENGTH} characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    if not SPECIAL_CHARACTERS.search(password):
        errors.append("Password must contain at least one special character")
    return errors


def validate_admin_password(password: str) -> Tuple[bool, Optional[str]]:
    """
    Check a password against the administrator policy.

    Returns:
        ``(True, None)`` when valid, otherwise ``(False, message)``
    """
    errors = password_policy_errors(password)
    if errors:
        return False, f"Admin password requirements: {', '.join(errors)}"
    return True, None
