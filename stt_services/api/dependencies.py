"""
Dependency injection for the transcription API

Everything hangs off app.state, populated by create_app().
"""

from fastapi import Depends, Request

from ..security.auth import JWTAuth
from ..security.keys import ApiKeyManager
from ..security.rate_limiter import RateLimiter
from ..transcription.service import TranscriptionService
from .config import APISettings


def get_api_settings(request: Request) -> APISettings:
    return request.app.state.settings


def get_transcription_service(request: Request) -> TranscriptionService:
    """Get the shared transcription service instance"""
    return request.app.state.transcription_service


def get_api_key_manager(request: Request) -> ApiKeyManager:
    return request.app.state.api_key_manager


def get_jwt_auth(request: Request) -> JWTAuth:
    return request.app.state.jwt_auth


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


async def get_current_user(
    request: Request,
    auth: JWTAuth = Depends(get_jwt_auth),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> str:
    """Authenticated, rate-limited caller's user id"""
    user_id = await auth(request)
    return limiter(user_id)
