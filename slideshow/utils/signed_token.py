"""Stateless HMAC-signed tokens.

A token is base64(json_payload + "." + base64(hmac_sha256(payload))).
Callers put whatever claims they need in the payload; this module adds the
format version and issue time, and checks the signature on decode.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Any

_TOKEN_VERSION = 1


def _sign(payload_bytes: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()


def create_signed_token(claims: dict[str, Any], secret: str, issued_at: float | None = None) -> str:
    """Create a signed token (Base64) carrying ``claims``."""
    payload = {
        "v": _TOKEN_VERSION,
        "iat": int(time.time() if issued_at is None else issued_at),
        **claims,
    }
    payload_bytes = json.dumps(payload, separators=(",", ":")).encode()
    token_bytes = payload_bytes + b"." + base64.urlsafe_b64encode(_sign(payload_bytes, secret))
    return base64.urlsafe_b64encode(token_bytes).decode()


def decode_signed_token(token: str, secret: str) -> dict[str, Any]:
    """Decode and verify a signed token.

    Returns the full payload (including ``v`` and ``iat``). Expiry is the
    caller's concern.
    Raises ValueError on an invalid token.
    """
    try:
        token_bytes = base64.urlsafe_b64decode(token.encode())
    except (binascii.Error, ValueError):
        raise ValueError("Invalid token encoding")

    parts = token_bytes.rsplit(b".", 1)
    if len(parts) != 2:
        raise ValueError("Invalid token format")

    payload_bytes, sig_b64 = parts
    try:
        sig = base64.urlsafe_b64decode(sig_b64)
    except (binascii.Error, ValueError):
        raise ValueError("Invalid token signature encoding")

    if not hmac.compare_digest(sig, _sign(payload_bytes, secret)):
        raise ValueError("Invalid token signature")

    try:
        payload = json.loads(payload_bytes)
    except ValueError:
        raise ValueError("Invalid token payload")
    if not isinstance(payload, dict):
        raise ValueError("Invalid token payload")

    if payload.get("v") != _TOKEN_VERSION:
        raise ValueError("Unsupported token version")

    return payload
