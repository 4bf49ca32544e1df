"""Salted PBKDF2 password hashing."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets

logger = logging.getLogger(__name__)

ALGORITHM = "pbkdf2_sha256"


class PasswordHasher:
    """Encodes hashes as ``pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>``.

    The iteration count is stored per hash, so raising it only affects
    new passwords.
    """

    def __init__(self, iterations: int = 260_000, salt_bytes: int = 16) -> None:
        self.iterations = iterations
        self.salt_bytes = salt_bytes

    def hash(self, password: str) -> str:
        salt = secrets.token_bytes(self.salt_bytes)
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, self.iterations)
        return f"{ALGORITHM}${self.iterations}${salt.hex()}${digest.hex()}"

    def verify(self, password: str, encoded: str) -> bool:
        try:
            algorithm, iterations, salt_hex, digest_hex = encoded.split("$")
            if algorithm != ALGORITHM:
                return False
            digest = hashlib.pbkdf2_hmac(
                "sha256",
                password.encode("utf-8"),
                bytes.fromhex(salt_hex),
                int(iterations),
            )
        except ValueError:
            logger.warning("Malformed password hash encountered")
            return False
        return hmac.compare_digest(digest.hex(), digest_hex)
