"""Salted PBKDF2 password hashing."""

import base64
import hashlib
import hmac
import secrets

from change_monitor.core.interfaces import ICredentialHasher

ALGORITHM = "pbkdf2_sha256"


class Pbkdf2CredentialHasher(ICredentialHasher):
    """
    Hashes passwords with PBKDF2-HMAC-SHA256.

    Encoded form: ``pbkdf2_sha256$<iterations>$<salt>$<hash>`` with base64
    salt and hash, so the iteration count can change without breaking
    existing hashes.
    """

    def __init__(self, iterations: int = 260000, salt_bytes: int = 16):
        self.iterations = iterations
        self.salt_bytes = salt_bytes

    def hash(self, password: str) -> str:
        salt = secrets.token_bytes(self.salt_bytes)
        digest = self._derive(password, salt, self.iterations)
        return "$".join((ALGORITHM, str(self.iterations), _b64(salt), _b64(digest)))

    def verify(self, password: str, encoded: str) -> bool:
        try:
            algorithm, iterations, salt, expected = encoded.split("$")
            if algorithm != ALGORITHM:
                return False
            digest = self._derive(password, base64.b64decode(salt), int(iterations))
        except (ValueError, TypeError):
            return False
        return hmac.compare_digest(_b64(digest), expected)

    @staticmethod
    def _derive(password: str, salt: bytes, iterations: int) -> bytes:
        return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")
