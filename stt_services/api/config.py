"""
Configuration for the transcription HTTP API
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class APISettings(BaseSettings):
    """API configuration settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Server configuration
    service_name: str = "stt-api"
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # CORS
    cors_origins: List[str] = ["*"]

    # Security
    jwt_secret_key: Optional[str] = None
    jwt_algorithm: str = "HS256"
    rate_limit_per_minute: int = 100

    # Upload limits
    max_file_size: int = 25 * 1024 * 1024  # 25MB


@lru_cache()
def get_settings() -> APISettings:
    """Get settings instance"""
    return APISettings()
