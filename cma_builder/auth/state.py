"""Signed OAuth ``state`` carrying the PKCE verifier through the redirect.

Format: ``base64url(json_payload).base64url(hmac_sha256)``. The payload is not
secret, only tamper-evident, and there is no server-side session behind it.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time

from ..errors import InvalidStateError
from .pkce import is_valid_verifier


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _sign(encoded: str, secret: str) -> str:
    return _b64encode(hmac.new(secret.encode(), encoded.encode(), hashlib.sha256).digest())


def encode_state(verifier: str, return_to: str, secret: str, issued_at: float | None = None) -> str:
    payload = json.dumps(
        {"v": verifier, "r": return_to, "t": int(issued_at if issued_at is not None else time.time())},
        separators=(",", ":"),
    )
    encoded = _b64encode(payload.encode("utf-8"))
    return f"{encoded}.{_sign(encoded, secret)}"


def decode_state(
    state: str | None,
    secret: str,
    max_age_seconds: int | None = None,
    now: float | None = None,
) -> tuple[str, str]:
    """Verify and unpack ``state`` into ``(verifier, return_to)``.

    Raises:
        InvalidStateError: on a missing, unsigned, forged, malformed or expired state.
    """
    if not state or not isinstance(state, str):
        raise InvalidStateError("Missing OAuth state")
    if not state.isascii():
        raise InvalidStateError("OAuth state is not base64url")

    encoded, sep, signature = state.partition(".")
    if not sep or not encoded or not signature or "." in signature:
        raise InvalidStateError("OAuth state is not in signed form")

    if not hmac.compare_digest(signature.encode("utf-8"), _sign(encoded, secret).encode("ascii")):
        raise InvalidStateError("OAuth state signature mismatch")

    try:
        payload = json.loads(_b64decode(encoded).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise InvalidStateError("OAuth state payload is unreadable") from exc

    if not isinstance(payload, dict):
        raise InvalidStateError("OAuth state payload is malformed")
    verifier, return_to, issued_at = payload.get("v"), payload.get("r"), payload.get("t")
    if not is_valid_verifier(verifier):
        raise InvalidStateError("OAuth state carries an invalid code_verifier")
    if not isinstance(return_to, str) or not return_to.startswith("/"):
        raise InvalidStateError("OAuth state carries an invalid return path")
    if not isinstance(issued_at, int) or isinstance(issued_at, bool):
        raise InvalidStateError("OAuth state carries no timestamp")

    if max_age_seconds is not None:
        current = now if now is not None else time.time()
        if current - issued_at > max_age_seconds:
            raise InvalidStateError("OAuth state has expired")

    return verifier, return_to
