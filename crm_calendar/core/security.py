"""
Signed payload helpers shared by the OAuth state and session tokens.

Tokens are ``urlsafe_b64(hmac_sha256(payload) + payload)`` where ``payload``
is compact, key-sorted JSON.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import time
from hashlib import sha256
from typing import Any, Dict, Optional

_SIGNATURE_LENGTH = 32


class InvalidSignatureError(Exception):
    """Raised when a signed token is malformed, tampered with, or expired."""


class SignedPayloadEncoder:
    """Encode and decode JSON payloads guarded by an HMAC signature."""

    def __init__(self, secret_key: str) -> None:
        if not secret_key:
            raise ValueError("Signing secret must be provided.")
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise InvalidSignatureError("Token is not valid base64.") from exc
        if len(decoded) <= _SIGNATURE_LENGTH:
            raise InvalidSignatureError("Token is too short.")

        signature, serialized = decoded[:_SIGNATURE_LENGTH], decoded[_SIGNATURE_LENGTH:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise InvalidSignatureError("Invalid token signature.")

        try:
            payload = json.loads(serialized)
        except ValueError as exc:
            raise InvalidSignatureError("Token payload is not JSON.") from exc
        if not isinstance(payload, dict):
            raise InvalidSignatureError("Token payload must be an object.")
        return payload


class SessionTokenVerifier:
    """
    Verify session tokens minted by the identity provider.

    The provider signs ``{"sub": <user id>, "exp": <unix seconds>}`` with the
    shared session secret.
    """

    def __init__(self, secret_key: str) -> None:
        self._encoder = SignedPayloadEncoder(secret_key)

    def issue(self, user_id: str, *, ttl_seconds: int = 3600, now: Optional[float] = None) -> str:
        """Mint a session token; used by local tooling and tests."""
        issued = time.time() if now is None else now
        return self._encoder.encode({"sub": user_id, "exp": int(issued + ttl_seconds)})

    def verify(self, token: str, *, now: Optional[float] = None) -> str:
        """Return the user id carried by ``token``."""
        payload = self._encoder.decode(token)
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidSignatureError("Session token has no subject.")

        expires_at = payload.get("exp")
        if not isinstance(expires_at, (int, float)):
            raise InvalidSignatureError("Session token has no expiry.")
        current = time.time() if now is None else now
        if expires_at <= current:
            raise InvalidSignatureError("Session token has expired.")
        return subject


__all__ = ["InvalidSignatureError", "SessionTokenVerifier", "SignedPayloadEncoder"]
