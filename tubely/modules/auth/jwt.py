"""JWT bearer authentication.

Tokens are issued elsewhere; this service only verifies them and extracts
the caller's user ID from the ``sub`` claim.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from tubely.core.config import settings
from tubely.core.errors import UnauthorizedError

ALGORITHM = "HS256"


class TokenPayload(BaseModel):
    """JWT token payload structure."""

    sub: str  # User ID
    exp: datetime
    iat: datetime
    type: str = "access"


def create_access_token(
    user_id: uuid.UUID,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create an access token.

    Args:
        user_id: User UUID
        expires_delta: Token lifetime (defaults to ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        str: The encoded token
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    payload = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "type": "access",
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[TokenPayload]:
    """Decode and validate a JWT token.

    Signature and expiry are checked by python-jose.

    Returns:
        TokenPayload | None: Decoded payload if valid, None otherwise
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        return TokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            type=payload.get("type", "access"),
        )
    except (JWTError, KeyError):
        return None


def get_user_id_from_token(token: str) -> Optional[uuid.UUID]:
    """Extract user ID from a valid access token."""
    payload = decode_token(token)
    if payload is None or payload.type != "access":
        return None

    try:
        return uuid.UUID(payload.sub)
    except ValueError:
        return None


security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> uuid.UUID:
    """FastAPI dependency returning the authenticated caller's user ID.

    Raises:
        UnauthorizedError: If the bearer token is missing or invalid
    """
    if credentials is None:
        raise UnauthorizedError("Couldn't find JWT")

    user_id = get_user_id_from_token(credentials.credentials)
    if user_id is None:
        raise UnauthorizedError("Couldn't validate JWT")
    return user_id
