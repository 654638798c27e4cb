"""
Security utilities: secret encryption, API key management, auth and rate limiting
"""

from .auth import JWTAuth
from .encryption import EncryptionService, derive_fernet_key
from .keys import ApiKeyManager
from .rate_limiter import RateLimiter

__all__ = [
    "JWTAuth",
    "EncryptionService",
    "derive_fernet_key",
    "ApiKeyManager",
    "RateLimiter",
]
