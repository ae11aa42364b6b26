"""Authentication for the chat API.

Handles:
- Issuing and verifying caller tokens (JWT, HS256)
- Turning verified tokens into the UserContext the orchestrator injects
  into every tool call
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from jose import JWTError, jwt
from pydantic import BaseModel

from shared.logging import get_logger
from shared.models import UserContext

logger = get_logger(__name__)

ALGORITHM = "HS256"

ANONYMOUS_USER = UserContext(user_id="anonymous", username="anonymous", level=0)


class TokenData(BaseModel):
    """Data extracted from JWT token."""
    user_id: str
    username: Optional[str] = None
    level: int = 0
    exp: Optional[datetime] = None


class AuthConfig(BaseModel):
    """Authentication configuration."""
    secret_key: str
    token_expire_minutes: int = 60
    require_auth: bool = True


class AuthMiddleware:
    """
    Validates bearer tokens and extracts the caller's identity.

    The access level carried by the token is the only source of
    ``user_level`` seen by tools; nothing the model produces can raise it.
    """

    def __init__(self, config: AuthConfig) -> None:
        self.config = config

    def create_token(self, user: UserContext) -> str:
        """
        Create a JWT token for a user.

        Args:
            user: User context

        Returns:
            JWT token string
        """
        expire = datetime.now(timezone.utc) + timedelta(minutes=self.config.token_expire_minutes)

        payload = {
            "sub": user.user_id,
            "username": user.username,
            "level": user.level,
            "exp": expire,
        }

        return jwt.encode(payload, self.config.secret_key, algorithm=ALGORITHM)

    def verify_token(self, token: str) -> TokenData:
        """
        Verify and decode a JWT token.

        Raises:
            HTTPException: If token is invalid, expired or has no subject
        """
        try:
            payload = jwt.decode(token, self.config.secret_key, algorithms=[ALGORITHM])
        except JWTError as e:
            logger.warning("Token verification failed", error=str(e))
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user_id = payload.get("sub")
        if not user_id:
            logger.warning("Token without subject rejected")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return TokenData(
            user_id=str(user_id),
            username=payload.get("username"),
            level=int(payload.get("level") or 0),
        )

    def get_user_context(self, token_data: TokenData) -> UserContext:
        """Convert token data to user context."""
        return UserContext(
            user_id=token_data.user_id,
            username=token_data.username,
            level=token_data.level,
        )

    def authenticate(self, token: Optional[str]) -> UserContext:
        """
        Resolve the caller from an optional bearer token.

        Returns the anonymous level-0 user when authentication is disabled.
        """
        if not self.config.require_auth:
            return ANONYMOUS_USER

        if not token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return self.get_user_context(self.verify_token(token))
