"""
Symmetric encryption for stored provider API keys
"""

import base64
import hashlib
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ..core.exceptions import ConfigurationError, StorageError
from ..core.interfaces import SecretCipher
from ..core.logging import get_logger

logger = get_logger(__name__)


def derive_fernet_key(passphrase: str) -> bytes:
    """Fernet key from an arbitrary passphrase (SHA-256, urlsafe base64)"""
    digest = hashlib.sha256(passphrase.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class EncryptionService(SecretCipher):
    """
    Fernet-based cipher for user secrets

    The same passphrase must be configured on every instance that reads
    the credential store.
    """

    def __init__(self, passphrase: Optional[str] = None):
        """
        Args:
            passphrase: Encryption passphrase (will read ENCRYPTION_KEY if not provided)
        """
        passphrase = passphrase or os.environ.get("ENCRYPTION_KEY")
        if not passphrase:
            raise ConfigurationError("Encryption key is required (set ENCRYPTION_KEY)")

        self._fernet = Fernet(derive_fernet_key(passphrase))

    def encrypt(self, plain_text: str) -> str:
        return self._fernet.encrypt(plain_text.encode("utf-8")).decode("ascii")

    def decrypt(self, cipher_text: str) -> str:
        try:
            return self._fernet.decrypt(cipher_text.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            raise StorageError("Stored secret could not be decrypted") from e
