"""
Best-effort usage accounting for transcriptions
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional

from ..core.interfaces import UsageLogStore
from ..core.logging import get_logger
from ..core.models import TranscriptionOutcome, UsageRecord, UsageStatus

logger = get_logger(__name__)

COST_PRECISION = Decimal("0.000001")


class UsageRecorder:
    """
    Computes cost and appends usage records

    Never raises: accounting must not fail a transcription response.
    """

    def __init__(self, store: UsageLogStore, pricing: Optional[Mapping[str, Optional[Decimal]]] = None):
        """
        Args:
            store: Usage log collaborator
            pricing: Cost per audio minute by provider name; missing or None means unpriced
        """
        self.store = store
        self.pricing = dict(pricing or {})

    def calculate_cost(self, provider: Optional[str], duration_seconds: float) -> Optional[Decimal]:
        """Cost for a duration, or None for free/unpriced providers"""
        rate = self.pricing.get(provider) if provider else None
        if rate is None:
            return None
        minutes = Decimal(str(duration_seconds)) / Decimal(60)
        return (minutes * rate).quantize(COST_PRECISION, rounding=ROUND_HALF_UP)

    async def record(
        self,
        user_id: str,
        provider: str,
        language: str,
        duration: float,
        outcome: TranscriptionOutcome,
        transaction_type: str = "transcription",
    ) -> Optional[UsageRecord]:
        """
        Append a completed usage record

        Returns:
            The appended record, or None when persistence failed
        """
        try:
            record = UsageRecord(
                user_id=user_id,
                provider=provider,
                language=language,
                duration=duration,
                text_length=len(outcome.text),
                confidence=outcome.confidence,
                status=UsageStatus.COMPLETED,
                cost=self.calculate_cost(provider, duration),
                tokens=outcome.tokens,
                transaction_type=transaction_type,
            )
            await self.store.append(record)
            return record
        except Exception as e:
            logger.error(f"Error logging transcription usage for user {user_id}: {e}", exc_info=True)
            return None

    async def record_failure(
        self,
        user_id: str,
        language: str,
        duration: float,
        error: Exception,
        provider: Optional[str] = None,
        transaction_type: str = "transcription",
    ) -> Optional[UsageRecord]:
        """Append a failed usage record"""
        try:
            record = UsageRecord(
                user_id=user_id,
                provider=provider,
                language=language,
                duration=duration,
                text_length=0,
                confidence=0.0,
                status=UsageStatus.FAILED,
                cost=None,
                transaction_type=transaction_type,
                error_message=str(error),
            )
            await self.store.append(record)
            return record
        except Exception as e:
            logger.error(f"Error logging failed transcription for user {user_id}: {e}", exc_info=True)
            return None
