"""
Shared test fixtures for API testing
"""

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from stt_services.api import create_app
from stt_services.api.config import APISettings
from stt_services.config import ProviderConfig, ServiceFactory, Settings
from stt_services.core.interfaces import TranscriptionProvider
from stt_services.core.models import ProviderDescriptor, TranscriptionOutcome
from stt_services.transcription import ProviderRegistry


class StubProvider(TranscriptionProvider):
    """In-process provider returning canned text or raising a canned error"""

    def __init__(
        self,
        name: str,
        text: str = "hello from the api",
        error: Optional[Exception] = None,
        available: bool = True,
    ):
        self._name = name
        self.text = text
        self.error = error
        self.available = available
        self.calls = []

    def describe(self) -> ProviderDescriptor:
        return ProviderDescriptor(name=self._name, supported_languages=("en", "de"))

    async def is_available(self, credential=None) -> bool:
        return self.available

    async def transcribe(self, audio, credential=None, language="en"):
        self.calls.append((audio, language))
        if self.error is not None:
            raise self.error
        return TranscriptionOutcome(
            text=self.text,
            language=language,
            confidence=0.9,
            duration=0.01,
            provider=self._name,
        )


@pytest.fixture
def service_settings():
    """Service settings that never read provider config from the environment"""
    return Settings(
        default_provider="Primary",
        fallback_chain=["Primary", "Backup"],
        transcription_configs={"ClaudeHaiku": ProviderConfig(provider_type="claude")},
        encryption_key="api-test-encryption-key",
        log_format="text",
    )


@pytest.fixture
def api_settings():
    return APISettings(
        _env_file=None,
        jwt_secret_key="api-test-secret",
        rate_limit_per_minute=100,
        max_file_size=1024,
    )


@pytest.fixture
def providers():
    return {"Primary": StubProvider("Primary"), "Backup": StubProvider("Backup", text="backup text")}


@pytest.fixture
def app(api_settings, service_settings, providers):
    factory = ServiceFactory(service_settings)
    application = create_app(api_settings, factory)
    registry = ProviderRegistry(providers.values())
    application.state.transcription_service = factory.create_transcription_service(registry)
    return application


@pytest.fixture
def client(app):
    """Test client without lifespan so the stub registry stays in place"""
    return TestClient(app)


@pytest.fixture
def auth_headers(app):
    token = app.state.jwt_auth.create_access_token("user-1")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_audio():
    return ("memo.wav", b"RIFF....WAVEfmt fake audio", "audio/wav")
