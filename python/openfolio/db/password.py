"""Password protection for SQLite project files.

Only a salted PBKDF2-HMAC-SHA256 hash is stored; the project content
itself is not encrypted. The hash gates opening the file in the
application.

"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from dataclasses import dataclass

PASSWORD_ITERATIONS = 210_000
_SALT_BYTES = 16
_HASH_BYTES = 32


@dataclass(frozen=True)
class PasswordConfig:
    """Stored password verifier.

    Attributes:
        salt: Base64-encoded random salt.
        hash: Base64-encoded derived key.
        iterations: PBKDF2 iteration count used for ``hash``.

    """

    salt: str
    hash: str
    iterations: int = PASSWORD_ITERATIONS


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, iterations, dklen=_HASH_BYTES
    )


def create_password_config(password: str) -> PasswordConfig:
    """Derive a new verifier for ``password`` with a fresh salt.

    Args:
        password: Plain-text password; surrounding whitespace is ignored.

    Returns:
        The verifier to store with the project.

    Raises:
        ValueError: If the password is empty or blank.

    """
    trimmed = password.strip()
    if not trimmed:
        msg = "Password must not be empty"
        raise ValueError(msg)

    salt = secrets.token_bytes(_SALT_BYTES)
    derived = _derive(trimmed, salt, PASSWORD_ITERATIONS)
    return PasswordConfig(
        salt=base64.b64encode(salt).decode("ascii"),
        hash=base64.b64encode(derived).decode("ascii"),
        iterations=PASSWORD_ITERATIONS,
    )


def verify_password(password: str, config: PasswordConfig) -> bool:
    """Check ``password`` against a stored verifier in constant time.

    Unlike :func:`create_password_config`, the candidate is compared as
    typed; only the stored password was trimmed.
    """
    salt = base64.b64decode(config.salt)
    expected = base64.b64decode(config.hash)
    actual = _derive(password, salt, config.iterations or PASSWORD_ITERATIONS)
    return hmac.compare_digest(actual, expected)
