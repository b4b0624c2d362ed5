"""
Secure framing boundary.

Wraps outbound command payloads and unwraps inbound feedback and
credential payloads. The router only depends on the FrameCodec
contract; plaintext deployments run without a codec at all.

Frame format (SignedFrameCodec):
    {"payload": "<base64 utf-8 text>", "mac": "<hex HMAC-SHA256>"}
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from abc import ABC, abstractmethod

from angle_relay.errors import DecodeError, EncodeError


class FrameCodec(ABC):
    """Encode/decode contract for the secure framing boundary."""

    @abstractmethod
    def encode(self, plaintext: str) -> str:
        """Wrap plaintext into an opaque token. Raises EncodeError."""
        ...

    @abstractmethod
    def decode(self, token: str) -> str:
        """Unwrap a token back to plaintext. Raises DecodeError."""
        ...


class SignedFrameCodec(FrameCodec):
    """
    Shared-key authenticated frames.

    Tampering with either field, or a token made with another key,
    fails the MAC check and raises DecodeError.
    """

    def __init__(self, key: str | bytes):
        if isinstance(key, str):
            key = key.encode()
        if not key:
            raise ValueError("Framing key must not be empty")
        self._key = key

    def _mac(self, data: bytes) -> str:
        return hmac.new(self._key, data, hashlib.sha256).hexdigest()

    def encode(self, plaintext: str) -> str:
        if not isinstance(plaintext, str):
            raise EncodeError(f"Cannot frame {type(plaintext).__name__}")
        try:
            data = plaintext.encode("utf-8")
        except UnicodeEncodeError as e:
            raise EncodeError(str(e)) from e
        return json.dumps({
            "payload": base64.b64encode(data).decode("ascii"),
            "mac": self._mac(data),
        })

    def decode(self, token: str) -> str:
        try:
            frame = json.loads(token)
        except (TypeError, ValueError, RecursionError) as e:
            raise DecodeError(f"Frame is not JSON: {e}") from e

        if not isinstance(frame, dict):
            raise DecodeError("Frame is not an object")
        payload = frame.get("payload")
        mac = frame.get("mac")
        if not isinstance(payload, str) or not isinstance(mac, str):
            raise DecodeError("Frame is missing payload or mac")

        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Bad payload encoding: {e}") from e

        if not hmac.compare_digest(self._mac(data), mac):
            raise DecodeError("MAC mismatch")

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(str(e)) from e
