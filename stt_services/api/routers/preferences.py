"""
Provider preference router for the transcription API
"""

from fastapi import APIRouter, Depends

from ...core.exceptions import ValidationError
from ...transcription.service import TranscriptionService
from ..dependencies import get_current_user, get_transcription_service
from ..models import ProviderPreferenceRequest, ProviderPreferenceResponse

router = APIRouter()


@router.post("/provider", response_model=ProviderPreferenceResponse)
async def set_preferred_provider(
    body: ProviderPreferenceRequest,
    user_id: str = Depends(get_current_user),
    service: TranscriptionService = Depends(get_transcription_service),
):
    """Store the provider tried first for this user's transcriptions"""
    provider = body.provider.strip()
    if not provider:
        raise ValidationError("Provider name is required")

    await service.set_preferred_provider(user_id, provider)
    return ProviderPreferenceResponse(provider=provider, effective_provider=provider)


@router.get("/provider", response_model=ProviderPreferenceResponse)
async def get_preferred_provider(
    user_id: str = Depends(get_current_user),
    service: TranscriptionService = Depends(get_transcription_service),
):
    provider = await service.get_preferred_provider(user_id)
    return ProviderPreferenceResponse(
        provider=provider,
        effective_provider=provider or service.default_provider,
    )
