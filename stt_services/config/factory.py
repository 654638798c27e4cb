"""
Service factory for creating configured service instances
"""

from decimal import Decimal
from typing import Dict, Optional, Type

from ..core.exceptions import ConfigurationError
from ..core.interfaces import (
    CredentialStore,
    PreferenceStore,
    SecretCipher,
    TranscriptionProvider,
    UsageLogStore,
)
from ..core.logging import get_logger
from ..security.encryption import EncryptionService
from ..security.keys import ApiKeyManager
from ..storage.local import LocalCredentialStore, LocalPreferenceStore, LocalUsageLog
from ..storage.memory import InMemoryCredentialStore, InMemoryPreferenceStore, InMemoryUsageLog
from ..transcription.credentials import CredentialResolver
from ..transcription.providers.claude import ClaudeHaikuProvider
from ..transcription.providers.groq import GroqWhisperProvider
from ..transcription.providers.openai import OpenAIWhisperProvider
from ..transcription.providers.whisper_cpp import WhisperCppProvider
from ..transcription.registry import ProviderRegistry
from ..transcription.service import TranscriptionService
from ..transcription.usage import UsageRecorder
from .settings import ProviderConfig, Settings

logger = get_logger(__name__)


class ServiceFactory:
    """
    Factory for creating configured service instances

    Stores and the cipher are created once per factory so every service
    built from it shares the same state.
    """

    # Registry of available providers
    TRANSCRIPTION_PROVIDERS: Dict[str, Type[TranscriptionProvider]] = {
        "GroqWhisper": GroqWhisperProvider,
        "WhisperCpp": WhisperCppProvider,
        "OpenAIWhisper": OpenAIWhisperProvider,
        "ClaudeHaiku": ClaudeHaikuProvider,
    }

    STORAGE_BACKENDS = ("memory", "local")

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize service factory

        Args:
            settings: Configuration settings, uses environment if None
        """
        self.settings = settings or Settings.from_env()
        self._credential_store: Optional[CredentialStore] = None
        self._preference_store: Optional[PreferenceStore] = None
        self._usage_store: Optional[UsageLogStore] = None
        self._cipher: Optional[SecretCipher] = None

        logger.info(
            f"ServiceFactory initialized with {len(self.settings.get_enabled_providers())} "
            f"enabled providers"
        )

    def create_transcription_provider(self, provider_name: str) -> TranscriptionProvider:
        """
        Create a transcription provider instance

        Args:
            provider_name: Provider name

        Returns:
            Configured TranscriptionProvider instance
        """
        if provider_name not in self.TRANSCRIPTION_PROVIDERS:
            available = ", ".join(self.TRANSCRIPTION_PROVIDERS.keys())
            raise ConfigurationError(
                f"Unknown transcription provider: {provider_name}. Available: {available}"
            )

        config = self.settings.get_transcription_config(provider_name)
        if not config.enabled:
            raise ConfigurationError(f"Transcription provider '{provider_name}' is disabled")

        provider_class = self.TRANSCRIPTION_PROVIDERS[provider_name]

        try:
            return self._instantiate(provider_name, provider_class, config)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Failed to create transcription provider '{provider_name}': {str(e)}")
            raise ConfigurationError(f"Transcription provider creation failed: {str(e)}")

    @staticmethod
    def _instantiate(
        provider_name: str,
        provider_class: Type[TranscriptionProvider],
        config: ProviderConfig,
    ) -> TranscriptionProvider:
        if provider_class is GroqWhisperProvider:
            return provider_class(
                api_key=config.get("api_key"),
                endpoint=config.get("endpoint"),
                model=config.get("model", GroqWhisperProvider.DEFAULT_MODEL),
                request_timeout=float(config.get("request_timeout", 60.0)),
            )
        elif provider_class is WhisperCppProvider:
            return provider_class(
                endpoint=config.get("endpoint"),
                model=config.get("model", "base"),
                request_timeout=float(config.get("request_timeout", 300.0)),
            )
        elif provider_class is OpenAIWhisperProvider:
            return provider_class(
                endpoint=config.get("endpoint"),
                model=config.get("model", "whisper-1"),
                request_timeout=float(config.get("request_timeout", 60.0)),
            )
        elif provider_class is ClaudeHaikuProvider:
            return provider_class()
        else:
            # Generic instantiation
            return provider_class(**config.config)

    def create_provider_registry(self) -> ProviderRegistry:
        """
        Build the registry from every enabled provider

        Providers that fail to initialize are left out with an error log.
        """
        providers = []
        for name in self.settings.get_enabled_providers():
            if name not in self.TRANSCRIPTION_PROVIDERS:
                logger.warning(f"Skipping unknown transcription provider in configuration: {name}")
                continue
            try:
                providers.append(self.create_transcription_provider(name))
            except ConfigurationError as e:
                logger.error(f"Transcription provider {name} not registered: {e}")

        registry = ProviderRegistry(providers)
        logger.info(f"Created provider registry: {registry.names}")
        return registry

    def create_credential_store(self) -> CredentialStore:
        if self._credential_store is None:
            if self._storage_backend() == "local":
                self._credential_store = LocalCredentialStore(self.settings.storage_path)
            else:
                self._credential_store = InMemoryCredentialStore()
        return self._credential_store

    def create_preference_store(self) -> PreferenceStore:
        if self._preference_store is None:
            if self._storage_backend() == "local":
                self._preference_store = LocalPreferenceStore(self.settings.storage_path)
            else:
                self._preference_store = InMemoryPreferenceStore()
        return self._preference_store

    def create_usage_store(self) -> UsageLogStore:
        if self._usage_store is None:
            if self._storage_backend() == "local":
                self._usage_store = LocalUsageLog(self.settings.storage_path)
            else:
                self._usage_store = InMemoryUsageLog()
        return self._usage_store

    def _storage_backend(self) -> str:
        backend = self.settings.storage_backend
        if backend not in self.STORAGE_BACKENDS:
            available = ", ".join(self.STORAGE_BACKENDS)
            raise ConfigurationError(f"Unknown storage backend: {backend}. Available: {available}")
        return backend

    def create_cipher(self) -> SecretCipher:
        if self._cipher is None:
            self._cipher = EncryptionService(self.settings.encryption_key)
        return self._cipher

    def create_api_key_manager(self) -> ApiKeyManager:
        return ApiKeyManager(self.create_credential_store(), self.create_cipher())

    def provider_pricing(self) -> Dict[str, Optional[Decimal]]:
        """Cost per minute for every known provider class"""
        pricing = {}
        for name, provider_class in self.TRANSCRIPTION_PROVIDERS.items():
            pricing[name] = getattr(provider_class, "COST_PER_MINUTE", None)
        return pricing

    def create_transcription_service(
        self, registry: Optional[ProviderRegistry] = None
    ) -> TranscriptionService:
        """
        Create a transcription service wired to the configured collaborators

        Args:
            registry: Prebuilt registry, built from settings if None

        Returns:
            Configured TranscriptionService instance
        """
        registry = registry if registry is not None else self.create_provider_registry()

        return TranscriptionService(
            registry=registry,
            credential_resolver=CredentialResolver(
                self.create_credential_store(), self.create_cipher()
            ),
            preference_store=self.create_preference_store(),
            usage_recorder=UsageRecorder(self.create_usage_store(), self.provider_pricing()),
            default_provider=self.settings.default_provider,
            fallback_order=self.settings.fallback_chain,
            stream_queue_size=self.settings.stream_queue_size,
            record_failed_attempts=self.settings.record_failed_attempts,
        )

    def get_available_providers(self) -> dict:
        """
        Get information about all known providers

        Returns:
            Dictionary with provider information
        """
        return {
            "available": list(self.TRANSCRIPTION_PROVIDERS.keys()),
            "default": self.settings.default_provider,
            "fallback_chain": list(self.settings.fallback_chain),
            "enabled": list(self.settings.get_enabled_providers().keys()),
        }

    def validate_configuration(self) -> dict:
        """
        Validate current configuration and return status

        Returns:
            Dictionary with validation results
        """
        results = {"valid": True, "errors": [], "warnings": [], "provider_status": {}}

        for name in self.settings.get_enabled_providers():
            try:
                provider = self.create_transcription_provider(name)
                results["provider_status"][name] = {"status": "valid"}
                if not provider.describe().supports_audio:
                    results["warnings"].append(f"{name}: does not support audio transcription")
            except ConfigurationError as e:
                results["warnings"].append(f"{name}: {str(e)}")
                results["provider_status"][name] = {"status": "error", "error": str(e)}

        if self.settings.default_provider not in self.TRANSCRIPTION_PROVIDERS:
            results["warnings"].append(
                f"Default provider {self.settings.default_provider} is not a known provider"
            )

        unknown = [
            name for name in self.settings.fallback_chain if name not in self.TRANSCRIPTION_PROVIDERS
        ]
        if unknown:
            results["warnings"].append(f"Unknown providers in fallback chain: {', '.join(unknown)}")

        valid_providers = [
            name
            for name, status in results["provider_status"].items()
            if status["status"] == "valid"
        ]
        if not valid_providers:
            results["valid"] = False
            results["errors"].append("No transcription providers could be created")

        try:
            self.create_cipher()
        except ConfigurationError as e:
            results["valid"] = False
            results["errors"].append(f"encryption: {str(e)}")

        try:
            self._storage_backend()
        except ConfigurationError as e:
            results["valid"] = False
            results["errors"].append(f"storage: {str(e)}")

        return results

    @classmethod
    def register_transcription_provider(
        cls, name: str, provider_class: Type[TranscriptionProvider]
    ):
        """
        Register a new transcription provider

        Args:
            name: Provider name
            provider_class: Provider class
        """
        cls.TRANSCRIPTION_PROVIDERS[name] = provider_class
        logger.info(f"Registered transcription provider: {name}")
