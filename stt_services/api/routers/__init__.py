"""
API routers
"""

from .health import router as health_router
from .keys import router as keys_router
from .preferences import router as preferences_router
from .transcription import router as transcription_router

__all__ = [
    "health_router",
    "keys_router",
    "preferences_router",
    "transcription_router",
]
