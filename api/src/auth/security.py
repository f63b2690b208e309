"""Identity provider token handling.

Users authenticate against an external identity provider which issues
signed JWTs. This module only verifies them and exposes the ``sub`` claim as
the opaque user id; it never issues tokens in production.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from src.config.settings import get_settings


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an identity provider access token.

    Validates:
    - JWT signature
    - Expiration time
    - Audience (when AUTH_AUDIENCE is configured)
    - Presence of a non-empty ``sub`` claim

    Args:
        token: JWT string

    Returns:
        Decoded payload dictionary

    Raises:
        JWTError: If token is invalid, expired, or has no subject
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
        audience=settings.auth_audience,
        options={"verify_aud": settings.auth_audience is not None},
    )

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        msg = "Token has no subject"
        raise JWTError(msg)

    return payload


def create_access_token(
    user_id: str,
    expires_delta: timedelta = timedelta(minutes=15),
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """Sign a token the way the identity provider does.

    Used for local development and tests.
    """
    settings = get_settings()
    now = datetime.now(UTC)
    claims: dict[str, Any] = {
        "sub": user_id,
        "iat": now,
        "exp": now + expires_delta,
        **(extra_claims or {}),
    }
    if settings.auth_audience is not None:
        claims.setdefault("aud", settings.auth_audience)
    return jwt.encode(claims, settings.auth_secret_key, algorithm=settings.auth_algorithm)
