"""
Verification of identity-provider JWTs.

Tokens are issued elsewhere; this service only checks them. The ``sub``
claim is the stable user id every other component is keyed by. HS* tokens
are checked against the shared secret, RS*/ES* tokens against a public key
loaded from disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jwt

from movibeers.config import get_settings

_public_key: str | None = None


def _verification_key() -> str:
    """Shared secret for HMAC algorithms, otherwise the cached public key."""
    global _public_key  # noqa: PLW0603
    settings = get_settings()
    if settings.jwt_algorithm.startswith("HS"):
        return settings.jwt_secret
    if _public_key is None:
        _public_key = Path(settings.jwt_public_key_path).read_text()
    return _public_key


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an identity token.

    Returns:
        Decoded payload dictionary.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no subject.
    """
    settings = get_settings()
    options: dict[str, Any] = {"require": ["sub", "exp"]}
    if settings.jwt_audience is None:
        options["verify_aud"] = False
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _verification_key(),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not str(payload.get("sub", "")).strip():
        msg = "Token has an empty subject"
        raise jwt.InvalidTokenError(msg)
    return payload
