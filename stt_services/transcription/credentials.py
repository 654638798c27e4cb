"""
Per-user credential resolution for transcription providers
"""

from ..core.interfaces import CredentialStore, SecretCipher
from ..core.logging import get_logger
from ..core.models import CredentialStatus, ProviderDescriptor, ResolvedCredential

logger = get_logger(__name__)


class CredentialResolver:
    """
    Looks up and decrypts the secret a user stored for a provider

    Plaintext lives only in the returned value; nothing is cached.
    """

    def __init__(self, store: CredentialStore, cipher: SecretCipher):
        self.store = store
        self.cipher = cipher

    async def resolve(self, user_id: str, descriptor: ProviderDescriptor) -> ResolvedCredential:
        """
        Resolve the credential for (user, provider)

        Args:
            user_id: Owning user
            descriptor: Provider being attempted

        Returns:
            ResolvedCredential with NOT_REQUIRED, FOUND or NOT_FOUND status
        """
        if not descriptor.requires_credential:
            return ResolvedCredential(CredentialStatus.NOT_REQUIRED)

        try:
            encrypted = await self.store.get(user_id, descriptor.name)
        except Exception as e:
            logger.error(
                f"Error retrieving API key for user {user_id}, provider {descriptor.name}: {e}"
            )
            return ResolvedCredential(CredentialStatus.NOT_FOUND)

        if not encrypted:
            return ResolvedCredential(CredentialStatus.NOT_FOUND)

        try:
            secret = self.cipher.decrypt(encrypted)
        except Exception as e:
            logger.error(
                f"Stored API key for user {user_id}, provider {descriptor.name} "
                f"could not be decrypted: {type(e).__name__}"
            )
            return ResolvedCredential(CredentialStatus.NOT_FOUND)

        if not secret:
            return ResolvedCredential(CredentialStatus.NOT_FOUND)

        return ResolvedCredential(CredentialStatus.FOUND, secret)
