"""
Transcription provider implementations
"""

from .claude import ClaudeHaikuProvider
from .groq import GroqWhisperProvider
from .http import HTTPTranscriptionProvider
from .openai import OpenAIWhisperProvider
from .whisper_cpp import WhisperCppProvider

__all__ = [
    "HTTPTranscriptionProvider",
    "GroqWhisperProvider",
    "OpenAIWhisperProvider",
    "WhisperCppProvider",
    "ClaudeHaikuProvider",
]
