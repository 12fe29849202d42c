"""PKCE (RFC 7636) verifier and S256 challenge helpers."""

from __future__ import annotations

import base64
import hashlib
import re
import secrets

# RFC 7636 section 4.1: 43-128 chars of [A-Za-z0-9-._~]
VERIFIER_PATTERN = re.compile(r"^[A-Za-z0-9\-._~]{43,128}$")


def generate_code_verifier(num_bytes: int = 64) -> str:
    """Cryptographically random code_verifier (86 chars for the default 64 bytes)."""
    verifier = secrets.token_urlsafe(num_bytes)[:128]
    if len(verifier) < 43:
        raise ValueError("code_verifier needs at least 32 random bytes")
    return verifier


def code_challenge(verifier: str) -> str:
    """base64url(SHA-256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def is_valid_verifier(verifier: object) -> bool:
    return isinstance(verifier, str) and bool(VERIFIER_PATTERN.match(verifier))
