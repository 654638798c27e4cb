"""
Unit tests for the fallback transcription service
"""

import asyncio
import unittest
from decimal import Decimal
from typing import Optional
from unittest.mock import AsyncMock

from stt_services.core.exceptions import (
    AllProvidersFailedError,
    ProviderError,
    ProviderErrorKind,
    StreamInterruptedError,
    TranscriptionCancelledError,
    ValidationError,
)
from stt_services.core.interfaces import TranscriptionProvider
from stt_services.core.models import (
    AttemptStatus,
    ProviderDescriptor,
    TranscriptionChunk,
    TranscriptionOutcome,
    UsageStatus,
)
from stt_services.security.encryption import EncryptionService
from stt_services.storage.memory import (
    InMemoryCredentialStore,
    InMemoryPreferenceStore,
    InMemoryUsageLog,
)
from stt_services.transcription import (
    CredentialResolver,
    ProviderRegistry,
    TranscriptionService,
    UsageRecorder,
)


class FakeProvider(TranscriptionProvider):
    """Scriptable provider that records every call it receives"""

    def __init__(
        self,
        name: str,
        text: str = "hello world",
        error: Optional[Exception] = None,
        available=True,
        requires_credential: bool = False,
        max_audio_bytes: Optional[int] = None,
        confidence: float = 0.9,
        reported_name: Optional[str] = None,
        chunks: Optional[list] = None,
        stream_fail_after: Optional[int] = None,
        block: bool = False,
    ):
        self._name = name
        self.text = text
        self.error = error
        self.available = available
        self._requires_credential = requires_credential
        self.max_audio_bytes = max_audio_bytes
        self.confidence = confidence
        self.reported_name = reported_name
        self.chunks = chunks
        self.stream_fail_after = stream_fail_after
        self.block = block

        self.probe_calls = []
        self.transcribe_calls = []
        self.streamed_audio = []

    def describe(self) -> ProviderDescriptor:
        return ProviderDescriptor(
            name=self._name,
            supported_languages=("en",),
            max_audio_bytes=self.max_audio_bytes,
            requires_credential=self._requires_credential,
        )

    async def is_available(self, credential=None) -> bool:
        self.probe_calls.append(credential)
        if isinstance(self.available, Exception):
            raise self.available
        return self.available

    async def transcribe(self, audio, credential=None, language="en"):
        self.transcribe_calls.append((audio, credential, language))
        if self.block:
            await asyncio.sleep(10)
        if self.error is not None:
            raise self.error
        return TranscriptionOutcome(
            text=self.text,
            language=language,
            confidence=self.confidence,
            duration=0.01,
            provider=self.reported_name or self._name,
        )

    async def transcribe_streaming(self, audio_stream, credential=None, language="en"):
        received = bytearray()
        async for piece in audio_stream:
            received.extend(piece)
        self.streamed_audio.append(bytes(received))

        chunks = self.chunks if self.chunks is not None else [self.text]
        if self.error is not None and self.stream_fail_after is None:
            raise self.error

        for index, text in enumerate(chunks):
            if self.stream_fail_after is not None and index == self.stream_fail_after:
                raise self.error
            yield TranscriptionChunk(
                index=index,
                text=text,
                is_final=index == len(chunks) - 1,
                confidence=self.confidence,
            )


def bad_response(name):
    return ProviderError(ProviderErrorKind.BAD_RESPONSE, "malformed payload", provider=name)


async def audio_pieces(*pieces):
    for piece in pieces:
        yield piece


class ServiceTestCase(unittest.TestCase):
    """Builds a service over in-memory collaborators"""

    ORDER = ("Primary", "Local", "Secondary")

    def setUp(self):
        self.credentials = InMemoryCredentialStore()
        self.preferences = InMemoryPreferenceStore()
        self.usage_log = InMemoryUsageLog()
        self.cipher = EncryptionService("test-passphrase")

    def make_service(self, *providers, **kwargs):
        kwargs.setdefault("default_provider", "Primary")
        kwargs.setdefault("fallback_order", self.ORDER)
        preference_store = kwargs.pop("preference_store", self.preferences)
        return TranscriptionService(
            registry=ProviderRegistry(providers),
            credential_resolver=CredentialResolver(self.credentials, self.cipher),
            preference_store=preference_store,
            usage_recorder=UsageRecorder(
                self.usage_log, {"Secondary": Decimal("0.006")}
            ),
            **kwargs,
        )

    def store_key(self, user_id, provider, secret):
        asyncio.run(self.credentials.put(user_id, provider, self.cipher.encrypt(secret)))


class TestFallbackChain(ServiceTestCase):
    """Sequential fallback behaviour"""

    def test_primary_timeout_falls_back_to_local(self):
        """Primary times out, Local answers and the result is flagged as fallback"""
        primary = FakeProvider(
            "Primary", error=ProviderError(ProviderErrorKind.TIMEOUT, "timed out", "Primary")
        )
        local = FakeProvider("Local", text="hello world")
        secondary = FakeProvider("Secondary")
        service = self.make_service(primary, local, secondary)

        outcome = asyncio.run(service.transcribe(b"audio", "user-1", preferred_provider="Primary"))

        self.assertEqual(outcome.provider, "Local")
        self.assertEqual(outcome.text, "hello world")
        self.assertTrue(outcome.used_fallback)
        self.assertEqual(len(secondary.transcribe_calls), 0)

    def test_explicit_provider_success_is_not_fallback(self):
        service = self.make_service(FakeProvider("Primary"), FakeProvider("Local"))

        outcome = asyncio.run(service.transcribe(b"audio", "user-1", preferred_provider="Primary"))

        self.assertEqual(outcome.provider, "Primary")
        self.assertFalse(outcome.used_fallback)

    def test_stored_preference_does_not_set_fallback_flag(self):
        """Only an explicit request counts for used_fallback"""
        asyncio.run(self.preferences.set_preferred_provider("user-1", "Primary"))
        primary = FakeProvider("Primary", error=bad_response("Primary"))
        service = self.make_service(primary, FakeProvider("Local"))

        outcome = asyncio.run(service.transcribe(b"audio", "user-1"))

        self.assertEqual(outcome.provider, "Local")
        self.assertFalse(outcome.used_fallback)

    def test_credential_less_provider_is_skipped(self):
        """A provider needing a missing credential is skipped, not failed"""
        secondary = FakeProvider("Secondary", requires_credential=True)
        primary = FakeProvider("Primary", text="from primary")
        service = self.make_service(primary, FakeProvider("Local"), secondary)

        outcome = asyncio.run(
            service.transcribe(b"abc", "user-1", preferred_provider="Secondary")
        )

        self.assertEqual(secondary.transcribe_calls, [])
        self.assertEqual(secondary.probe_calls, [])
        self.assertEqual(outcome.provider, "Primary")
        self.assertTrue(outcome.used_fallback)

    def test_stored_credential_is_decrypted_for_provider(self):
        self.store_key("user-1", "Secondary", "sk-user-secret")
        secondary = FakeProvider("Secondary", requires_credential=True)
        service = self.make_service(secondary)

        outcome = asyncio.run(
            service.transcribe(b"abc", "user-1", preferred_provider="Secondary")
        )

        self.assertEqual(outcome.provider, "Secondary")
        self.assertEqual(secondary.probe_calls, ["sk-user-secret"])
        self.assertEqual(secondary.transcribe_calls[0][1], "sk-user-secret")

    def test_all_bad_responses_raise_wrapping_last_error(self):
        errors = [bad_response(name) for name in self.ORDER]
        providers = [FakeProvider(name, error=error) for name, error in zip(self.ORDER, errors)]
        service = self.make_service(*providers)

        with self.assertRaises(AllProvidersFailedError) as ctx:
            asyncio.run(service.transcribe(b"audio", "user-1", preferred_provider="Primary"))

        self.assertIs(ctx.exception.last_error, errors[-1])
        self.assertTrue(str(ctx.exception).startswith("All transcription providers failed"))
        self.assertEqual(
            [attempt.status for attempt in ctx.exception.attempts],
            [AttemptStatus.FAILED] * 3,
        )
        self.assertEqual(self.usage_log.records, [])

    def test_empty_results_fall_through_to_next_provider(self):
        service = self.make_service(
            FakeProvider("Primary", text="   "), FakeProvider("Local", text="real text")
        )

        outcome = asyncio.run(service.transcribe(b"audio", "user-1"))

        self.assertEqual(outcome.provider, "Local")
        self.assertEqual(outcome.text, "real text")

    def test_all_empty_results_fail(self):
        service = self.make_service(FakeProvider("Primary", text=""), FakeProvider("Local", text=""))

        with self.assertRaises(AllProvidersFailedError) as ctx:
            asyncio.run(service.transcribe(b"audio", "user-1"))

        self.assertIn("empty results", str(ctx.exception))
        self.assertIsNone(ctx.exception.last_error)

    def test_unavailable_provider_is_not_called(self):
        primary = FakeProvider("Primary", available=False)
        local = FakeProvider("Local", available=RuntimeError("probe exploded"))
        secondary = FakeProvider("Secondary")
        service = self.make_service(primary, local, secondary)

        outcome = asyncio.run(service.transcribe(b"audio", "user-1"))

        self.assertEqual(primary.transcribe_calls, [])
        self.assertEqual(local.transcribe_calls, [])
        self.assertEqual(outcome.provider, "Secondary")

    def test_nothing_attempted_message(self):
        service = self.make_service(FakeProvider("Primary", available=False))

        with self.assertRaises(AllProvidersFailedError) as ctx:
            asyncio.run(service.transcribe(b"audio", "user-1"))

        self.assertEqual(str(ctx.exception), "No transcription provider could be attempted")
        self.assertEqual(ctx.exception.attempts[0].status, AttemptStatus.SKIPPED_UNAVAILABLE)

    def test_oversized_payload_skips_provider(self):
        primary = FakeProvider("Primary", max_audio_bytes=2)
        service = self.make_service(primary)

        with self.assertRaises(AllProvidersFailedError) as ctx:
            asyncio.run(service.transcribe(b"abc", "user-1"))

        attempt = ctx.exception.attempts[0]
        self.assertEqual(attempt.status, AttemptStatus.SKIPPED_TOO_LARGE)
        self.assertEqual(attempt.provider_error.kind, ProviderErrorKind.UNSUPPORTED)
        self.assertEqual(primary.probe_calls, [])

    def test_unexpected_exception_becomes_bad_response(self):
        cause = RuntimeError("socket closed")
        service = self.make_service(FakeProvider("Primary", error=cause))

        with self.assertRaises(AllProvidersFailedError) as ctx:
            asyncio.run(service.transcribe(b"audio", "user-1"))

        last_error = ctx.exception.last_error
        self.assertIsInstance(last_error, ProviderError)
        self.assertEqual(last_error.kind, ProviderErrorKind.BAD_RESPONSE)
        self.assertIs(last_error.__cause__, cause)

    def test_outcome_attributed_to_other_provider_is_rejected(self):
        service = self.make_service(
            FakeProvider("Primary", reported_name="Impostor"), FakeProvider("Local")
        )

        outcome = asyncio.run(service.transcribe(b"audio", "user-1"))

        self.assertEqual(outcome.provider, "Local")

    def test_unregistered_preference_is_ignored(self):
        service = self.make_service(FakeProvider("Primary"), FakeProvider("Local"))

        outcome = asyncio.run(service.transcribe(b"audio", "user-1", preferred_provider="Nope"))

        self.assertEqual(outcome.provider, "Primary")
        self.assertTrue(outcome.used_fallback)

    def test_preference_store_failure_uses_default(self):
        broken_store = AsyncMock()
        broken_store.get_preferred_provider.side_effect = RuntimeError("db down")
        service = self.make_service(
            FakeProvider("Primary"),
            FakeProvider("Local"),
            default_provider="Local",
            preference_store=broken_store,
        )

        outcome = asyncio.run(service.transcribe(b"audio", "user-1"))

        self.assertEqual(outcome.provider, "Local")

    def test_empty_audio_is_rejected(self):
        primary = FakeProvider("Primary")
        service = self.make_service(primary)

        with self.assertRaises(ValidationError):
            asyncio.run(service.transcribe(b"", "user-1"))

        self.assertEqual(primary.probe_calls, [])


class TestUsageAccounting(ServiceTestCase):
    """Usage records written by the service"""

    def test_success_records_completed_usage(self):
        service = self.make_service(FakeProvider("Secondary", text="one two three"))

        asyncio.run(service.transcribe(b"audio", "user-1", preferred_provider="Secondary"))

        records = asyncio.run(self.usage_log.list_for_user("user-1"))
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].provider, "Secondary")
        self.assertEqual(records[0].status, UsageStatus.COMPLETED)
        self.assertEqual(records[0].text_length, len("one two three"))
        self.assertIsNotNone(records[0].cost)

    def test_unpriced_provider_has_no_cost(self):
        service = self.make_service(FakeProvider("Primary"))

        asyncio.run(service.transcribe(b"audio", "user-1"))

        self.assertIsNone(self.usage_log.records[0].cost)

    def test_usage_store_failure_does_not_fail_call(self):
        self.usage_log.append = AsyncMock(side_effect=RuntimeError("disk full"))
        service = self.make_service(FakeProvider("Primary"))

        outcome = asyncio.run(service.transcribe(b"audio", "user-1"))

        self.assertEqual(outcome.provider, "Primary")

    def test_failed_call_not_recorded_by_default(self):
        service = self.make_service(FakeProvider("Primary", error=bad_response("Primary")))

        with self.assertRaises(AllProvidersFailedError):
            asyncio.run(service.transcribe(b"audio", "user-1"))

        self.assertEqual(self.usage_log.records, [])

    def test_failed_call_recorded_when_enabled(self):
        service = self.make_service(
            FakeProvider("Primary", error=bad_response("Primary")),
            record_failed_attempts=True,
        )

        with self.assertRaises(AllProvidersFailedError):
            asyncio.run(service.transcribe(b"audio", "user-1"))

        record = self.usage_log.records[0]
        self.assertEqual(record.status, UsageStatus.FAILED)
        self.assertIsNone(record.cost)
        self.assertIn("malformed payload", record.error_message)


class TestCancellation(ServiceTestCase):

    def test_cancel_before_start(self):
        primary = FakeProvider("Primary")
        service = self.make_service(primary)

        async def run_test():
            event = asyncio.Event()
            event.set()
            await service.transcribe(b"audio", "user-1", cancel_event=event)

        with self.assertRaises(TranscriptionCancelledError):
            asyncio.run(run_test())

        self.assertEqual(primary.transcribe_calls, [])

    def test_cancel_during_provider_call_stops_chain(self):
        primary = FakeProvider("Primary", block=True)
        local = FakeProvider("Local")
        service = self.make_service(primary, local)

        async def run_test():
            event = asyncio.Event()
            asyncio.get_running_loop().call_later(0.05, event.set)
            await service.transcribe(b"audio", "user-1", cancel_event=event)

        with self.assertRaises(TranscriptionCancelledError):
            asyncio.run(run_test())

        self.assertEqual(len(primary.transcribe_calls), 1)
        self.assertEqual(local.transcribe_calls, [])
        self.assertEqual(self.usage_log.records, [])


class TestStreaming(ServiceTestCase):
    """Streaming transcription through the fallback chain"""

    def collect(self, service, audio, **kwargs):
        async def run_test():
            return [
                chunk
                async for chunk in service.transcribe_streaming(audio, "user-1", **kwargs)
            ]

        return asyncio.run(run_test())

    def test_streams_chunks_in_order(self):
        service = self.make_service(FakeProvider("Primary", chunks=["one", "two", "three"]))

        chunks = self.collect(service, b"audio")

        self.assertEqual([chunk.text for chunk in chunks], ["one", "two", "three"])
        self.assertEqual([chunk.index for chunk in chunks], [0, 1, 2])
        self.assertTrue(chunks[-1].is_final)

    def test_falls_back_before_first_chunk_with_full_audio(self):
        primary = FakeProvider("Primary", error=bad_response("Primary"))
        local = FakeProvider("Local", chunks=["recovered"])
        service = self.make_service(primary, local)

        chunks = self.collect(service, audio_pieces(b"ab", b"cd"))

        self.assertEqual([chunk.text for chunk in chunks], ["recovered"])
        self.assertEqual(primary.streamed_audio, [b"abcd"])
        self.assertEqual(local.streamed_audio, [b"abcd"])

    def test_failure_after_first_chunk_interrupts_stream(self):
        primary = FakeProvider(
            "Primary", chunks=["one", "two"], stream_fail_after=1, error=bad_response("Primary")
        )
        local = FakeProvider("Local")
        service = self.make_service(primary, local)

        received = []

        async def run_test():
            async for chunk in service.transcribe_streaming(b"audio", "user-1"):
                received.append(chunk.text)

        with self.assertRaises(StreamInterruptedError):
            asyncio.run(run_test())

        self.assertEqual(received, ["one"])
        self.assertEqual(local.streamed_audio, [])

    def test_all_streaming_providers_fail(self):
        service = self.make_service(
            FakeProvider("Primary", error=bad_response("Primary")),
            FakeProvider("Local", available=False),
        )

        with self.assertRaises(AllProvidersFailedError) as ctx:
            self.collect(service, b"audio")

        self.assertNotIsInstance(ctx.exception, StreamInterruptedError)
        self.assertEqual(ctx.exception.last_error.provider, "Primary")

    def test_streaming_records_usage(self):
        service = self.make_service(FakeProvider("Primary", chunks=["hello", "world"]))

        self.collect(service, b"audio")

        record = self.usage_log.records[0]
        self.assertEqual(record.transaction_type, "transcription_stream")
        self.assertEqual(record.provider, "Primary")

    def test_streaming_cancellation_between_chunks(self):
        service = self.make_service(FakeProvider("Primary", chunks=["one", "two", "three"]))
        received = []

        async def run_test():
            event = asyncio.Event()
            async for chunk in service.transcribe_streaming(b"audio", "user-1", cancel_event=event):
                received.append(chunk.text)
                event.set()

        with self.assertRaises(TranscriptionCancelledError):
            asyncio.run(run_test())

        self.assertEqual(received, ["one"])

    def test_empty_audio_bytes_rejected(self):
        primary = FakeProvider("Primary")
        service = self.make_service(primary)

        with self.assertRaises(ValidationError):
            self.collect(service, b"")

        self.assertEqual(primary.streamed_audio, [])
        self.assertEqual(primary.probe_calls, [])

    def test_empty_audio_source_rejected(self):
        primary = FakeProvider("Primary")
        service = self.make_service(primary)

        with self.assertRaises(ValidationError):
            self.collect(service, audio_pieces())

        self.assertEqual(primary.streamed_audio, [])
        self.assertEqual(primary.probe_calls, [])

    def test_oversize_stream_skips_provider(self):
        primary = FakeProvider("Primary", max_audio_bytes=4)
        local = FakeProvider("Local", chunks=["from local"])
        service = self.make_service(primary, local)

        chunks = self.collect(service, audio_pieces(b"01234", b"56789"))

        self.assertEqual([chunk.text for chunk in chunks], ["from local"])
        self.assertEqual(primary.streamed_audio, [])
        self.assertEqual(primary.probe_calls, [])
        self.assertEqual(local.streamed_audio, [b"0123456789"])

    def test_oversize_stream_everywhere(self):
        service = self.make_service(FakeProvider("Primary", max_audio_bytes=4))

        with self.assertRaises(AllProvidersFailedError) as ctx:
            self.collect(service, b"0123456789")

        self.assertEqual(ctx.exception.last_error.kind, ProviderErrorKind.UNSUPPORTED)
        self.assertEqual(ctx.exception.last_error.provider, "Primary")
        self.assertEqual(received, ["one"])


class TestProviderQueries(ServiceTestCase):

    def test_preference_round_trip(self):
        service = self.make_service(FakeProvider("Primary"))

        async def run_test():
            await service.set_preferred_provider("user-1", "Local")
            return await service.get_preferred_provider("user-1")

        self.assertEqual(asyncio.run(run_test()), "Local")

    def test_available_providers_in_registry_order(self):
        service = self.make_service(
            FakeProvider("Primary"),
            FakeProvider("Local", available=False),
            FakeProvider("Secondary", available=RuntimeError("boom")),
            FakeProvider("Extra"),
        )

        available = asyncio.run(service.get_available_providers())

        self.assertEqual(available, ["Primary", "Extra"])


if __name__ == "__main__":
    unittest.main()
