"""One-time signing token helpers."""

from __future__ import annotations

import hashlib
import secrets


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """Only this digest is persisted; the raw token lives in the emailed link."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def build_signing_url(frontend_url: str, token: str) -> str:
    return f"{frontend_url.rstrip('/')}/sign/{token}"
