"""
Encryption for secrets stored in the settings table (the provider token).
"""

import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from commentguard.config import settings

logger = logging.getLogger(__name__)


def derive_key(secret: str) -> bytes:
    """Fernet key (urlsafe base64 of 32 bytes) from an arbitrary secret string."""
    digest = hashlib.sha256(f"commentguard_encryption_key_{secret}".encode()).digest()
    return base64.urlsafe_b64encode(digest)


class TokenCipher:
    def __init__(self, secret: Optional[str] = None):
        self._fernet = Fernet(derive_key(secret if secret is not None else settings.secret_key))

    def encrypt(self, value: str) -> str:
        if not value:
            return value
        return self._fernet.encrypt(value.encode()).decode()

    def decrypt(self, value: str) -> str:
        """
        Decrypt a stored value.
        Values that are not valid ciphertext for this key (plaintext from an
        older install, or a rotated secret) are returned unchanged.
        """
        if not value:
            return value
        try:
            return self._fernet.decrypt(value.encode()).decode()
        except InvalidToken:
            logger.debug("Stored token is not ciphertext for the current key, using as-is")
            return value


def mask_secret(value: str) -> str:
    """Show the first and last 4 characters only (all bullets when 8 or fewer)."""
    if not value:
        return ""
    if len(value) <= 8:
        return "•" * len(value)
    return value[:4] + "•" * (len(value) - 8) + value[-4:]
