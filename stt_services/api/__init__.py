"""
HTTP API for the transcription service
"""

from .app import create_app

__all__ = ["create_app"]
