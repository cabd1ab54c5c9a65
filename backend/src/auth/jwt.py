"""JWT bearer token handling.

Accounts and sessions belong to the external auth provider; this service
only needs the caller's identity. Tokens are HS256-signed with JWT_SECRET.

Claims:
- sub (Subject): User ID as UUID string, the actor of every workflow call
- iat (Issued At): Unix timestamp when token was created
- exp (Expiration): Unix timestamp when token expires

Roles are deliberately not read from the token: the user_role table is the
authority, so a promotion takes effect without re-issuing tokens.

create_access_token exists for tests and operator tooling.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import jwt

from config import get_settings


def create_access_token(user_id: UUID, expires_minutes: Optional[int] = None) -> str:
    """Create a signed access token whose subject is user_id.

    Raises:
        ValueError: If JWT_SECRET is empty
    """
    settings = get_settings()
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET is not set")

    now = datetime.now(timezone.utc)
    minutes = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES

    payload = {
        'sub': str(user_id),
        'iat': int(now.timestamp()),
        'exp': int((now + timedelta(minutes=minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
    """
    settings = get_settings()
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


def actor_id_from_token(token: str) -> UUID:
    """Decode a token and return its subject as a UUID.

    Raises:
        jwt.InvalidTokenError: If the token is invalid or has no usable sub claim
    """
    payload = decode_token(token)
    subject = payload.get("sub")
    if not subject:
        raise jwt.InvalidTokenError("missing sub claim")
    try:
        return UUID(subject)
    except ValueError:
        raise jwt.InvalidTokenError("sub claim is not a UUID")
