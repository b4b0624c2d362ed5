"""
Controller credentials.

Controllers authenticate with their first message, either as JSON:
    {"name": "...", "password": "..."}
or in URL form:
    name=...&password=...
"""

from __future__ import annotations

import hmac
import json
import logging
from dataclasses import dataclass

from angle_relay import config
from angle_relay.errors import AuthError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Identity and shared secret of a controller."""

    name: str
    password: str

    def matches(self, other: Credentials) -> bool:
        """Exact comparison of both fields."""
        name_ok = hmac.compare_digest(self.name.encode(), other.name.encode())
        password_ok = hmac.compare_digest(self.password.encode(), other.password.encode())
        return name_ok and password_ok

    def __repr__(self):
        return f"Credentials(name={self.name!r}, password=***)"


def configured_credentials() -> Credentials:
    """Credentials the relay accepts, from config."""
    return Credentials(config.DEVICE_NAME, config.DEVICE_PASSWORD)


def _split_form(payload: str) -> dict:
    """Split "name=x&password=y" on raw separators; values are compared as sent."""
    fields = {}
    for part in payload.split("&"):
        key, sep, value = part.partition("=")
        if key and sep and value:
            fields[key] = value
    return fields


def parse_credentials(payload: str) -> Credentials:
    """
    Parse a credential payload.

    Raises:
        AuthError: payload is neither JSON nor URL form, or lacks a field
    """
    try:
        data = json.loads(payload)
    except (ValueError, RecursionError):
        logger.debug("Auth JSON parse failed, trying URL format")
        if "=" not in payload:
            raise AuthError("Invalid authentication format")
        data = _split_form(payload)

    if not isinstance(data, dict):
        raise AuthError("Credential payload is not an object")

    name = data.get("name")
    password = data.get("password")
    if not isinstance(name, str) or not isinstance(password, str):
        raise AuthError("Credential payload needs string 'name' and 'password'")

    return Credentials(name, password)
