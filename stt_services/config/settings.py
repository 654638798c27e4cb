"""
Configuration settings for transcription services
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.exceptions import ConfigurationError
from ..core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FALLBACK_CHAIN = ["GroqWhisper", "WhisperCpp", "OpenAIWhisper"]


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.environ.get(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ProviderConfig:
    """Configuration for a transcription provider"""
    provider_type: str
    enabled: bool = True
    config: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with default"""
        value = self.config.get(key)
        return default if value is None else value


@dataclass
class Settings:
    """
    Central configuration for the transcription service
    """

    # Provider selection
    default_provider: str = "GroqWhisper"
    fallback_chain: List[str] = field(default_factory=lambda: list(DEFAULT_FALLBACK_CHAIN))
    transcription_configs: Dict[str, ProviderConfig] = field(default_factory=dict)

    # Orchestration
    stream_queue_size: int = 8
    record_failed_attempts: bool = False

    # Storage and secrets
    storage_backend: str = "memory"
    storage_path: str = "./local_storage"
    encryption_key: Optional[str] = None

    # General settings
    environment: str = "production"
    log_level: str = "INFO"
    log_format: str = "json"
    service_name: str = "stt-service"

    def __post_init__(self):
        """Initialize default configurations"""
        if not self.transcription_configs:
            self.transcription_configs = self._get_default_transcription_configs()

    def _get_default_transcription_configs(self) -> Dict[str, ProviderConfig]:
        """Get default transcription provider configurations"""
        return {
            "GroqWhisper": ProviderConfig(
                provider_type="groq",
                enabled=bool(os.environ.get("GROQ_API_KEY")),
                config={
                    "api_key": os.environ.get("GROQ_API_KEY"),
                    "endpoint": os.environ.get("GROQ_ENDPOINT"),
                    "model": os.environ.get("GROQ_MODEL", "whisper-large-v3"),
                    "request_timeout": float(os.environ.get("GROQ_TIMEOUT", "60")),
                },
            ),
            "WhisperCpp": ProviderConfig(
                provider_type="whisper_cpp",
                enabled=_env_bool("WHISPER_CPP_ENABLED", True),
                config={
                    "endpoint": os.environ.get("WHISPER_CPP_ENDPOINT", "http://localhost:8080"),
                    "model": os.environ.get("WHISPER_CPP_MODEL", "base"),
                    "request_timeout": float(os.environ.get("WHISPER_CPP_TIMEOUT", "300")),
                },
            ),
            "OpenAIWhisper": ProviderConfig(
                provider_type="openai",
                enabled=True,
                config={
                    "endpoint": os.environ.get("OPENAI_ENDPOINT"),
                    "model": os.environ.get("WHISPER_MODEL", "whisper-1"),
                    "request_timeout": float(os.environ.get("OPENAI_TIMEOUT", "60")),
                },
            ),
            "ClaudeHaiku": ProviderConfig(
                provider_type="claude",
                enabled=True,
            ),
        }

    def get_transcription_config(self, provider: Optional[str] = None) -> ProviderConfig:
        """
        Get transcription provider configuration

        Args:
            provider: Provider name, uses default if None

        Returns:
            ProviderConfig for the transcription provider
        """
        provider_name = provider or self.default_provider
        if provider_name not in self.transcription_configs:
            raise ConfigurationError(f"Unknown transcription provider: {provider_name}")
        return self.transcription_configs[provider_name]

    def is_provider_enabled(self, provider_name: str) -> bool:
        provider_config = self.transcription_configs.get(provider_name)
        return provider_config.enabled if provider_config else False

    def get_enabled_providers(self) -> Dict[str, ProviderConfig]:
        """
        Get all enabled transcription providers

        Returns:
            Dictionary of enabled provider configurations
        """
        return {
            name: config
            for name, config in self.transcription_configs.items()
            if config.enabled
        }

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Create settings from environment variables

        Returns:
            Settings instance configured from environment
        """
        return cls(
            default_provider=os.environ.get("DEFAULT_TRANSCRIPTION_PROVIDER", "GroqWhisper"),
            fallback_chain=_env_list("TRANSCRIPTION_FALLBACK_CHAIN", DEFAULT_FALLBACK_CHAIN),
            stream_queue_size=int(os.environ.get("STREAM_QUEUE_SIZE", "8")),
            record_failed_attempts=_env_bool("RECORD_FAILED_ATTEMPTS", False),
            storage_backend=os.environ.get("STORAGE_BACKEND", "memory"),
            storage_path=os.environ.get("LOCAL_STORAGE_PATH", "./local_storage"),
            encryption_key=os.environ.get("ENCRYPTION_KEY"),
            environment=os.environ.get("ENVIRONMENT", "production"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            log_format=os.environ.get("LOG_FORMAT", "json"),
            service_name=os.environ.get("SERVICE_NAME", "stt-service"),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "Settings":
        """
        Load settings from JSON configuration file

        Args:
            config_path: Path to JSON configuration file

        Returns:
            Settings instance
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, "r") as f:
                config_data = json.load(f)

            if "transcription_configs" in config_data:
                config_data["transcription_configs"] = {
                    name: ProviderConfig(
                        provider_type=config.get("provider_type", name),
                        enabled=config.get("enabled", True),
                        config=config.get("config", {}),
                    )
                    for name, config in config_data["transcription_configs"].items()
                }

            return cls(**config_data)

        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in configuration file: {e}")
        except TypeError as e:
            raise ConfigurationError(f"Error loading configuration: {e}")

    def to_file(self, config_path: str, include_secrets: bool = False):
        """
        Save settings to JSON configuration file

        Args:
            config_path: Path to save configuration file
            include_secrets: Keep API keys and the encryption key in the output
        """
        config_data = {
            "default_provider": self.default_provider,
            "fallback_chain": list(self.fallback_chain),
            "stream_queue_size": self.stream_queue_size,
            "record_failed_attempts": self.record_failed_attempts,
            "storage_backend": self.storage_backend,
            "storage_path": self.storage_path,
            "encryption_key": self.encryption_key if include_secrets else None,
            "environment": self.environment,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "service_name": self.service_name,
            "transcription_configs": {
                name: {
                    "provider_type": config.provider_type,
                    "enabled": config.enabled,
                    "config": {
                        key: value
                        for key, value in config.config.items()
                        if include_secrets or key != "api_key"
                    },
                }
                for name, config in self.transcription_configs.items()
            },
        }

        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, "w") as f:
            json.dump(config_data, f, indent=2)

        logger.info(f"Configuration saved to: {config_path}")
