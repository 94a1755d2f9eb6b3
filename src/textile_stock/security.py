"""API token helpers."""

from __future__ import annotations

import hashlib
import hmac
import secrets

_TOKEN_BYTES = 32


def generate_api_token() -> str:
    """Return a new random bearer token; it is shown once and never stored."""

    return secrets.token_urlsafe(_TOKEN_BYTES)


def digest_token(token: str, secret_key: str) -> str:
    """Return the keyed digest of *token* that is stored in place of the token."""

    return hmac.new(secret_key.encode(), token.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_token(token: str, stored_digest: str, secret_key: str) -> bool:
    return hmac.compare_digest(digest_token(token, secret_key), stored_digest)
