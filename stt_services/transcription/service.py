"""
High-level transcription service that walks a fallback chain of providers
"""

import asyncio
import time
from dataclasses import replace
from typing import AsyncIterable, AsyncIterator, Iterable, Optional, Union

from ..core.exceptions import (
    AllProvidersFailedError,
    ProviderError,
    ProviderErrorKind,
    StreamInterruptedError,
    TranscriptionCancelledError,
    ValidationError,
)
from ..core.interfaces import PreferenceStore, TranscriptionProvider
from ..core.logging import get_logger
from ..core.models import (
    DEFAULT_LANGUAGE,
    AttemptStatus,
    ProviderAttempt,
    TranscriptionChunk,
    TranscriptionOutcome,
    TranscriptionRequest,
)
from ..core.resilience import check_cancelled, run_cancellable
from .credentials import CredentialResolver
from .registry import ProviderRegistry, build_fallback_chain
from .streaming import ReplayableAudioStream
from .usage import UsageRecorder

logger = get_logger(__name__)

DEFAULT_PROVIDER = "GroqWhisper"
DEFAULT_FALLBACK_ORDER = ("GroqWhisper", "WhisperCpp", "OpenAIWhisper")

_STREAM_END = object()


class TranscriptionService:
    """
    Orchestrates transcription across multiple providers

    Providers are tried strictly one after another in fallback-chain order.
    Individual provider failures never reach the caller; a call returns one
    outcome or raises a single terminal error.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        credential_resolver: CredentialResolver,
        preference_store: PreferenceStore,
        usage_recorder: UsageRecorder,
        default_provider: str = DEFAULT_PROVIDER,
        fallback_order: Optional[Iterable[str]] = None,
        stream_queue_size: int = 8,
        record_failed_attempts: bool = False,
    ):
        """
        Initialize transcription service

        Args:
            registry: Statically built provider registry
            credential_resolver: Resolves per-user provider secrets
            preference_store: Stored user provider preferences
            usage_recorder: Best-effort usage accounting
            default_provider: Provider used when neither request nor user prefers one
            fallback_order: Configured fallback order
            stream_queue_size: Bound on buffered chunks while streaming
            record_failed_attempts: Also account calls where every provider failed
        """
        self.registry = registry
        self.credentials = credential_resolver
        self.preferences = preference_store
        self.usage = usage_recorder
        self.default_provider = default_provider
        self.fallback_order = tuple(fallback_order or DEFAULT_FALLBACK_ORDER)
        self.stream_queue_size = stream_queue_size
        self.record_failed_attempts = record_failed_attempts

        logger.info(
            f"Initialized TranscriptionService with providers {registry.names}, "
            f"fallback order {list(self.fallback_order)}"
        )

    async def transcribe(
        self,
        audio: bytes,
        user_id: str,
        language: str = DEFAULT_LANGUAGE,
        preferred_provider: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TranscriptionOutcome:
        """
        Transcribe audio with fallback support

        Args:
            audio: Opaque audio bytes
            user_id: Owning user
            language: Requested language code
            preferred_provider: Explicit provider override for this call
            cancel_event: Set by the caller to abort the call

        Returns:
            The single TranscriptionOutcome of the first provider that produced text

        Raises:
            ValidationError: Empty audio or language
            AllProvidersFailedError: The whole chain failed
            TranscriptionCancelledError: The caller cancelled
        """
        request = TranscriptionRequest(
            audio=audio, user_id=user_id, language=language, provider=preferred_provider
        )
        return await self.transcribe_request(request, cancel_event)

    async def transcribe_request(
        self,
        request: TranscriptionRequest,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TranscriptionOutcome:
        """Transcribe a prepared TranscriptionRequest"""
        start = time.monotonic()

        logger.info(
            f"Starting transcription for user {request.user_id}, language: {request.language}, "
            f"audio size: {request.size_bytes} bytes"
        )

        preference = await self._resolve_preference(request.user_id, request.provider, cancel_event)
        chain = self.build_chain(preference)
        logger.info(f"Using provider preference {preference}, chain: {[p.name for p in chain]}")

        attempts: list[ProviderAttempt] = []
        for provider in chain:
            attempt = await self._attempt(provider, request, cancel_event)
            attempts.append(attempt)

            if not attempt.succeeded:
                continue

            outcome = replace(
                attempt.outcome,
                used_fallback=request.provider is not None
                and attempt.outcome.provider != request.provider,
            )
            elapsed = time.monotonic() - start

            logger.info(
                f"Transcription successful with {outcome.provider}: "
                f"{len(outcome.text)} chars in {elapsed * 1000:.0f}ms"
            )

            await run_cancellable(
                self.usage.record(
                    request.user_id, outcome.provider, request.language, elapsed, outcome
                ),
                cancel_event,
                "usage recording",
            )
            return outcome

        error = self._exhausted_error(attempts)
        logger.error(f"Transcription failed for user {request.user_id}: {error}")

        if self.record_failed_attempts:
            await run_cancellable(
                self.usage.record_failure(
                    request.user_id, request.language, time.monotonic() - start, error
                ),
                cancel_event,
                "usage recording",
            )

        raise error

    def build_chain(self, preferred: Optional[str]) -> list[TranscriptionProvider]:
        """Fallback chain for a preferred provider name"""
        return build_fallback_chain(preferred, self.fallback_order, self.registry)

    async def _resolve_preference(
        self,
        user_id: str,
        explicit: Optional[str],
        cancel_event: Optional[asyncio.Event],
    ) -> str:
        """Explicit override, else stored user preference, else the system default"""
        if explicit:
            return explicit

        stored = await run_cancellable(
            self._stored_preference(user_id), cancel_event, "preference lookup"
        )
        return stored or self.default_provider

    async def _stored_preference(self, user_id: str) -> Optional[str]:
        try:
            return await self.preferences.get_preferred_provider(user_id)
        except Exception as e:
            logger.warning(f"Could not load provider preference for user {user_id}: {e}")
            return None

    async def _attempt(
        self,
        provider: TranscriptionProvider,
        request: TranscriptionRequest,
        cancel_event: Optional[asyncio.Event],
    ) -> ProviderAttempt:
        """Run one provider through credential, size, probe, transcribe and validation steps"""
        descriptor = provider.describe()
        name = descriptor.name
        start = time.monotonic()

        def finish(status: AttemptStatus, **kwargs) -> ProviderAttempt:
            return ProviderAttempt(
                provider=name, status=status, elapsed_seconds=time.monotonic() - start, **kwargs
            )

        logger.info(f"Attempting transcription with {name}")

        credential = await run_cancellable(
            self.credentials.resolve(request.user_id, descriptor),
            cancel_event,
            f"{name} credential resolution",
        )
        if not credential.usable:
            logger.warning(f"No API key available for {name}, trying next provider")
            return finish(AttemptStatus.SKIPPED_NO_CREDENTIAL)

        if not descriptor.accepts_size(request.size_bytes):
            logger.warning(
                f"Audio of {request.size_bytes} bytes exceeds the {name} limit of "
                f"{descriptor.max_audio_bytes} bytes, trying next provider"
            )
            error = ProviderError(
                ProviderErrorKind.UNSUPPORTED,
                f"audio payload of {request.size_bytes} bytes exceeds limit "
                f"of {descriptor.max_audio_bytes} bytes",
                provider=name,
            )
            return finish(AttemptStatus.SKIPPED_TOO_LARGE, error=error)

        if not await self._probe(provider, credential.secret, cancel_event):
            logger.warning(f"Provider {name} is not available, trying next")
            return finish(AttemptStatus.SKIPPED_UNAVAILABLE)

        try:
            outcome = await run_cancellable(
                provider.transcribe(request.audio, credential.secret, request.language),
                cancel_event,
                f"{name} transcription",
            )
        except TranscriptionCancelledError:
            raise
        except ProviderError as e:
            logger.error(f"Provider {name} failed, trying next provider: {e}")
            return finish(AttemptStatus.FAILED, error=e)
        except Exception as e:
            logger.error(f"Provider {name} failed unexpectedly, trying next provider: {e}", exc_info=True)
            error = ProviderError(ProviderErrorKind.BAD_RESPONSE, str(e), provider=name)
            error.__cause__ = e
            return finish(AttemptStatus.FAILED, error=error)

        if outcome.provider != name:
            logger.error(f"Provider {name} reported its result as {outcome.provider}")
            error = ProviderError(
                ProviderErrorKind.BAD_RESPONSE,
                f"result attributed to {outcome.provider}",
                provider=name,
            )
            return finish(AttemptStatus.FAILED, error=error)

        if outcome.is_empty:
            logger.warning(f"Provider {name} returned empty result, trying next")
            return finish(AttemptStatus.EMPTY, outcome=outcome)

        return finish(AttemptStatus.SUCCEEDED, outcome=outcome)

    async def _probe(
        self,
        provider: TranscriptionProvider,
        credential: Optional[str],
        cancel_event: Optional[asyncio.Event],
    ) -> bool:
        try:
            return await run_cancellable(
                provider.is_available(credential),
                cancel_event,
                f"{provider.name} availability probe",
            )
        except TranscriptionCancelledError:
            raise
        except Exception as e:
            logger.warning(f"Error checking availability for provider {provider.name}: {e}")
            return False

    @staticmethod
    def _exhausted_error(attempts: list[ProviderAttempt]) -> AllProvidersFailedError:
        last_error = next(
            (attempt.error for attempt in reversed(attempts) if attempt.error is not None), None
        )

        if last_error is not None:
            return AllProvidersFailedError(
                f"All transcription providers failed. Last error: {last_error}",
                last_error=last_error,
                attempts=attempts,
            )

        if any(attempt.status == AttemptStatus.EMPTY for attempt in attempts):
            message = "All transcription providers returned empty results"
        else:
            message = "No transcription provider could be attempted"

        return AllProvidersFailedError(message, attempts=attempts)

    async def transcribe_streaming(
        self,
        audio_stream: Union[AsyncIterable[bytes], bytes],
        user_id: str,
        language: str = DEFAULT_LANGUAGE,
        preferred_provider: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[TranscriptionChunk]:
        """
        Streaming transcription with fallback until a provider starts streaming

        The audio is buffered before the first provider is tried, so every
        provider sees the whole payload and its size limit can be checked.
        Once a provider has produced a chunk the call is committed to it;
        later failures raise StreamInterruptedError instead of moving on.

        Raises:
            ValidationError: Empty audio or language
        """
        if not language or not language.strip():
            raise ValidationError("Language code is required")

        audio = ReplayableAudioStream(audio_stream)
        if isinstance(audio_stream, (bytes, bytearray)) and not audio.buffered_bytes:
            raise ValidationError("No audio data provided")

        queue: asyncio.Queue = asyncio.Queue(maxsize=self.stream_queue_size)
        producer = asyncio.create_task(
            self._produce_stream(
                queue, audio, user_id, language, preferred_provider, cancel_event
            )
        )

        try:
            while True:
                item = await run_cancellable(queue.get(), cancel_event, "streaming transcription")
                if item is _STREAM_END:
                    break
                if isinstance(item, Exception):
                    raise item
                yield item
                check_cancelled(cancel_event, "streaming transcription")
        finally:
            if not producer.done():
                producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)

    async def _produce_stream(
        self,
        queue: asyncio.Queue,
        audio: ReplayableAudioStream,
        user_id: str,
        language: str,
        preferred_provider: Optional[str],
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        try:
            await self._stream_chain(
                queue, audio, user_id, language, preferred_provider, cancel_event
            )
        except Exception as e:
            await queue.put(e)
            return
        await queue.put(_STREAM_END)

    async def _stream_chain(
        self,
        queue: asyncio.Queue,
        audio: ReplayableAudioStream,
        user_id: str,
        language: str,
        preferred_provider: Optional[str],
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        start = time.monotonic()
        size_bytes = await run_cancellable(audio.drain(), cancel_event, "audio buffering")
        if not size_bytes:
            raise ValidationError("No audio data provided")

        preference = await self._resolve_preference(user_id, preferred_provider, cancel_event)
        chain = self.build_chain(preference)
        last_error: Optional[Exception] = None

        for provider in chain:
            descriptor = provider.describe()
            name = descriptor.name

            credential = await run_cancellable(
                self.credentials.resolve(user_id, descriptor),
                cancel_event,
                f"{name} credential resolution",
            )
            if not credential.usable:
                logger.warning(f"No API key available for {name}, trying next provider")
                continue

            if not descriptor.accepts_size(size_bytes):
                logger.warning(
                    f"Audio of {size_bytes} bytes exceeds the {name} limit of "
                    f"{descriptor.max_audio_bytes} bytes, trying next provider"
                )
                last_error = ProviderError(
                    ProviderErrorKind.UNSUPPORTED,
                    f"audio payload of {size_bytes} bytes exceeds limit "
                    f"of {descriptor.max_audio_bytes} bytes",
                    provider=name,
                )
                continue

            if not await self._probe(provider, credential.secret, cancel_event):
                logger.warning(f"Provider {name} is not available for streaming")
                continue

            chunks: list[TranscriptionChunk] = []
            try:
                async for chunk in provider.transcribe_streaming(audio, credential.secret, language):
                    check_cancelled(cancel_event, f"{name} streaming")
                    await queue.put(chunk)
                    chunks.append(chunk)
            except TranscriptionCancelledError:
                raise
            except Exception as e:
                if chunks:
                    logger.error(f"Provider {name} failed mid-stream after {len(chunks)} chunks: {e}")
                    raise StreamInterruptedError(
                        f"Streaming from {name} failed after {len(chunks)} chunks: {e}",
                        last_error=e,
                    ) from e
                logger.error(f"Provider {name} streaming failed, trying next: {e}")
                last_error = e
                continue

            if not chunks:
                logger.warning(f"Provider {name} produced no chunks, trying next")
                continue

            await self._record_stream_usage(
                user_id, name, language, time.monotonic() - start, chunks, cancel_event
            )
            return

        if last_error is not None:
            raise AllProvidersFailedError(
                f"All transcription providers failed for streaming. Last error: {last_error}",
                last_error=last_error,
            )
        raise AllProvidersFailedError("All transcription providers failed for streaming")

    async def _record_stream_usage(
        self,
        user_id: str,
        provider: str,
        language: str,
        elapsed: float,
        chunks: list[TranscriptionChunk],
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        final = [chunk for chunk in chunks if chunk.is_final] or chunks
        outcome = TranscriptionOutcome(
            text=" ".join(chunk.text for chunk in final),
            language=language,
            confidence=final[-1].confidence,
            duration=elapsed,
            provider=provider,
        )
        await run_cancellable(
            self.usage.record(
                user_id, provider, language, elapsed, outcome, transaction_type="transcription_stream"
            ),
            cancel_event,
            "usage recording",
        )

    async def get_available_providers(self) -> list[str]:
        """
        Probe every registered provider without a credential

        Returns:
            Names of providers that answered as available, in registry order
        """
        providers = list(self.registry.values())
        results = await asyncio.gather(*(self._probe(p, None, None) for p in providers))
        return [provider.name for provider, available in zip(providers, results) if available]

    async def set_preferred_provider(self, user_id: str, provider: str) -> None:
        """Store the user's preferred provider; the name is accepted as-is"""
        await self.preferences.set_preferred_provider(user_id, provider)
        logger.info(f"User {user_id} preferred provider set to {provider}")

    async def get_preferred_provider(self, user_id: str) -> Optional[str]:
        """The user's stored preferred provider, if any"""
        return await self.preferences.get_preferred_provider(user_id)

    async def close(self) -> None:
        await self.registry.close()
