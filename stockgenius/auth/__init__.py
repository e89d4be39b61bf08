"""Owner token handling."""

from stockgenius.auth.utils import TokenData, create_access_token, decode_access_token

__all__ = [
    "TokenData",
    "create_access_token",
    "decode_access_token",
]
