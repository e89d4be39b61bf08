"""JWT utilities for owner-scoped access tokens."""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from pydantic import BaseModel

from stockgenius.config import get_settings

settings = get_settings()


class TokenData(BaseModel):
    """Token payload data.

    Attributes:
        owner_id: Identifier that scopes every collection query.
    """

    owner_id: str


def create_access_token(
    owner_id: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token for an owner.

    Args:
        owner_id: Owner identifier stored as the token subject.
        expires_delta: Optional custom expiration time.

    Returns:
        str: Encoded JWT token.
    """
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode = {
        "sub": owner_id,
        "exp": expire,
        "type": "access",
    }

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> TokenData | None:
    """Decode and validate a JWT access token.

    Args:
        token: JWT token string.

    Returns:
        TokenData | None: Token data if valid, None otherwise.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
    except JWTError:
        return None

    owner_id: str | None = payload.get("sub")
    token_type: str | None = payload.get("type")

    if owner_id is None or token_type != "access":
        return None

    return TokenData(owner_id=owner_id)
