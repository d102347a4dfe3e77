"""JWT verification.

Tokens are issued by the platform's auth service; this service only
verifies them. HS* algorithms use the shared secret, RS*/ES* the public key.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jwt

from glit.config import get_settings

_public_key: str | None = None


def _verification_key() -> str:
    """Secret for HMAC algorithms, otherwise the public key loaded from disk (cached)."""
    global _public_key  # noqa: PLW0603
    settings = get_settings()
    if settings.jwt_algorithm.startswith("HS"):
        return settings.jwt_secret
    if _public_key is None:
        _public_key = Path(settings.jwt_public_key_path).read_text()
    return _public_key


def reset_keys() -> None:
    """Reset the cached public key (useful for testing)."""
    global _public_key  # noqa: PLW0603
    _public_key = None


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or lacks a subject.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _verification_key(),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not payload.get("sub"):
        msg = "Token has no subject"
        raise jwt.InvalidTokenError(msg)
    return payload
