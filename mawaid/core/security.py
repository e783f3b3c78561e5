"""Bearer tokens.

Tokens are issued by the auth provider and signed with the shared
``JWT_SECRET_KEY``. The ``sub`` claim is the id of the caller's profile.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from mawaid.config import settings


def issue_token(profile_id: UUID, ttl: timedelta | None = None, **claims: Any) -> str:
    """
    Sign a token for a profile.

    Used by scripts and tests; production tokens come from the auth provider.

    Args:
        profile_id: Profile the token authenticates
        ttl: Lifetime, defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``
        **claims: Extra claims to embed

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = ttl or timedelta(minutes=settings.access_token_expire_minutes)
    payload: dict[str, Any] = {
        **claims,
        "sub": str(profile_id),
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    if settings.jwt_audience:
        payload.setdefault("aud", settings.jwt_audience)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def read_profile_id(token: str) -> UUID | None:
    """Return the profile id a token was issued for, or None if it does not verify."""
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except JWTError:
        return None

    subject = claims.get("sub")
    if not isinstance(subject, str):
        return None
    try:
        return UUID(subject)
    except ValueError:
        return None
