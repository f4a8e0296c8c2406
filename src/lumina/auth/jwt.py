"""JWT token verification (and creation, for tooling and tests).

Learn: Tokens are signed with the secret shared with the main Lumina
backend. The payload carries the user id in `sub`.
"""

from datetime import datetime, timedelta, timezone

import jwt

from lumina.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(user_id: str, expires_minutes: int = 60) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": "access",
        "exp": now + timedelta(minutes=expires_minutes),
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    if not payload.get("sub"):
        raise TokenError("Token has no subject")
    return payload
