"""
Management of user-supplied provider API keys
"""

from typing import List

from ..core.exceptions import ValidationError
from ..core.interfaces import CredentialStore, SecretCipher
from ..core.logging import get_logger

logger = get_logger(__name__)


class ApiKeyManager:
    """Encrypts and stores the API keys users bring for their providers"""

    def __init__(self, store: CredentialStore, cipher: SecretCipher):
        self.store = store
        self.cipher = cipher

    async def store_key(self, user_id: str, provider: str, api_key: str) -> None:
        """
        Store or replace a user's key for a provider

        Raises:
            ValidationError: Blank provider name or key
        """
        if not provider or not provider.strip():
            raise ValidationError("Provider name is required")
        if not api_key or not api_key.strip():
            raise ValidationError("API key is required")

        await self.store.put(user_id, provider.strip(), self.cipher.encrypt(api_key.strip()))
        logger.info(f"Stored API key for user {user_id}, provider {provider.strip()}")

    async def delete_key(self, user_id: str, provider: str) -> bool:
        deleted = await self.store.delete(user_id, provider)
        if deleted:
            logger.info(f"Deleted API key for user {user_id}, provider {provider}")
        return deleted

    async def list_providers(self, user_id: str) -> List[str]:
        return await self.store.list_providers(user_id)
