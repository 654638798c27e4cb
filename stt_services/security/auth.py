"""
Authentication utilities
"""

import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import HTTPException, Request, status
from fastapi.security import HTTPBearer

from ..core.exceptions import AuthenticationError
from ..core.logging import get_logger

logger = get_logger(__name__)


class JWTAuth:
    """
    JWT bearer authentication

    Used as a FastAPI dependency it resolves to the caller's user id,
    taken from the token subject.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: str = "HS256",
        token_expire_hours: int = 24,
    ):
        self.secret_key = secret_key or os.environ.get("JWT_SECRET_KEY")
        self.algorithm = algorithm
        self.token_expire_hours = token_expire_hours
        self.bearer_scheme = HTTPBearer(auto_error=False)

        if not self.secret_key:
            # Generate a random secret key if none provided
            self.secret_key = secrets.token_urlsafe(32)
            logger.warning(
                "No JWT secret key configured - using random key (not suitable for production)"
            )

    def create_access_token(self, subject: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token"""
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(hours=self.token_expire_hours))

        payload = {"sub": subject, "exp": expire, "iat": now}

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.info(f"Created JWT token for subject: {subject}")

        return token

    def verify_token(self, token: str) -> dict[str, Any]:
        """
        Verify and decode JWT token

        Raises:
            AuthenticationError: Invalid, expired or subject-less token
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token expired")
            raise AuthenticationError("Token expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {str(e)}")
            raise AuthenticationError("Invalid token")

        if not payload.get("sub"):
            raise AuthenticationError("Token has no subject")

        return payload

    def get_user_id(self, token: str) -> str:
        return str(self.verify_token(token)["sub"])

    async def __call__(self, request: Request) -> str:
        """Validate the bearer token from the Authorization header"""
        credentials = await self.bearer_scheme(request)
        if not credentials:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authorization header required",
                headers={"WWW-Authenticate": "Bearer"},
            )

        try:
            return self.get_user_id(credentials.credentials)
        except AuthenticationError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            )
