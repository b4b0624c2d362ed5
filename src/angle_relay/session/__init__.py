"""
Session Layer - controller authentication and liveness.
"""

from .credentials import Credentials, configured_credentials, parse_credentials
from .device_session import DeviceSession, SessionState

__all__ = [
    "Credentials",
    "configured_credentials",
    "parse_credentials",
    "DeviceSession",
    "SessionState",
]
