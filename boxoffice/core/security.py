from datetime import datetime, timedelta, timezone
from typing import Any, Optional, cast

from jose import jwt

from boxoffice.core.settings import get_settings

settings = get_settings()


def create_access_token(
    identity: str,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict[str, Any]] = None,
) -> str:
    """Mint a bearer token whose subject is the caller identity."""
    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta
        else timedelta(minutes=settings.security.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode: dict[str, Any] = {"exp": expire, "sub": identity}

    if additional_claims:
        to_encode.update(additional_claims)

    encoded_jwt = jwt.encode(
        to_encode,
        settings.security.SECRET_KEY,
        algorithm=settings.security.JWT_ALGORITHM,
    )
    return cast(str, encoded_jwt)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry; raises jose.JWTError when invalid."""
    payload = jwt.decode(
        token,
        settings.security.SECRET_KEY,
        algorithms=[settings.security.JWT_ALGORITHM],
    )
    return cast(dict[str, Any], payload)
