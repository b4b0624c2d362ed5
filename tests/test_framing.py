"""
Unit tests for the secure framing boundary.
"""

import base64
import json

import pytest

from angle_relay.comm import SignedFrameCodec
from angle_relay.errors import DecodeError, EncodeError


class TestRoundTrip:
    """decode(encode(x)) == x."""

    @pytest.mark.parametrize("text", [
        "25",
        "-50",
        "RESET",
        '{"cmd": "12"}',
        '{"name": "Sean", "password": "bayar10rb"}',
        "",
        "sudut 90°",
    ])
    def test_round_trip(self, codec, text):
        assert codec.decode(codec.encode(text)) == text

    def test_token_is_json_text(self, codec):
        """Tokens are JSON objects so they travel as WebSocket text."""
        frame = json.loads(codec.encode("25"))

        assert set(frame) == {"payload", "mac"}


class TestTampering:
    """Corrupted or foreign frames raise DecodeError."""

    def test_modified_payload(self, codec):
        frame = json.loads(codec.encode("25"))
        frame["payload"] = base64.b64encode(b"50").decode()

        with pytest.raises(DecodeError):
            codec.decode(json.dumps(frame))

    def test_modified_mac(self, codec):
        frame = json.loads(codec.encode("25"))
        frame["mac"] = "0" * len(frame["mac"])

        with pytest.raises(DecodeError):
            codec.decode(json.dumps(frame))

    def test_other_key(self, codec):
        token = SignedFrameCodec("another-key").encode("25")

        with pytest.raises(DecodeError):
            codec.decode(token)

    @pytest.mark.parametrize("token", [
        "25",
        "not json at all",
        "[1, 2]",
        '{"payload": "MjU="}',
        '{"payload": 5, "mac": "00"}',
        '{"payload": "***", "mac": "00"}',
        pytest.param("[" * 100000, id="deep-nest"),
    ])
    def test_malformed(self, codec, token):
        with pytest.raises(DecodeError):
            codec.decode(token)


class TestConstruction:
    """Tests for codec setup and encode errors."""

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            SignedFrameCodec("")

    def test_bytes_key(self):
        codec = SignedFrameCodec(b"test-key")

        assert SignedFrameCodec("test-key").decode(codec.encode("7")) == "7"

    def test_encode_non_text(self, codec):
        with pytest.raises(EncodeError):
            codec.encode(25)
