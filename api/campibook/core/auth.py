"""Bearer token handling for the external identity provider.

Tokens are issued elsewhere; this service only verifies them with the
shared secret from settings. ``create_access_token`` exists for tooling
and tests that need to mint a token the provider would have issued.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from campibook.core.config import settings


def create_access_token(subject: str, extra: dict | None = None) -> str:
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": subject, "exp": expire, "type": "access"}
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Raises JWTError on failure."""
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    if payload.get("type") != "access":
        raise JWTError("Invalid token type")
    return payload
