"""
Transcription router for the transcription API
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status

from ...core.logging import get_logger
from ...core.models import DEFAULT_LANGUAGE
from ...transcription.service import TranscriptionService
from ..config import APISettings
from ..dependencies import get_api_settings, get_current_user, get_transcription_service
from ..models import ProvidersResponse, TranscriptionResponse

logger = get_logger(__name__)

router = APIRouter()

DISCONNECT_POLL_SECONDS = 0.5


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event):
    """Set cancel_event once the client goes away"""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling transcription")
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.post("", response_model=TranscriptionResponse)
async def transcribe_file(
    request: Request,
    file: UploadFile = File(...),
    language: str = Form(DEFAULT_LANGUAGE),
    provider: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user),
    service: TranscriptionService = Depends(get_transcription_service),
    settings: APISettings = Depends(get_api_settings),
):
    """
    Transcribe an uploaded audio file

    Providers are tried in fallback order starting with the requested or
    preferred one; the response names the provider that produced the text.
    """
    content = await file.read()

    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Audio file is empty")

    if len(content) > settings.max_file_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size: {settings.max_file_size} bytes",
        )

    logger.info(f"Transcription request from user {user_id}: {file.filename}, {len(content)} bytes")

    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        outcome = await service.transcribe(
            content,
            user_id,
            language=language,
            preferred_provider=provider or None,
            cancel_event=cancel_event,
        )
    finally:
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)

    return TranscriptionResponse.from_outcome(outcome)


@router.get("/providers", response_model=ProvidersResponse)
async def list_providers(
    user_id: str = Depends(get_current_user),
    service: TranscriptionService = Depends(get_transcription_service),
):
    """
    List transcription providers

    Every registered provider is probed without a user credential
    """
    available = await service.get_available_providers()
    return ProvidersResponse(
        available=available,
        registered=service.registry.names,
        default_provider=service.default_provider,
        fallback_chain=list(service.fallback_order),
    )
