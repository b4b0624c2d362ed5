"""
Relay Layer - routes operator setpoints and controller feedback.
"""

from .observers import ObserverRegistry
from .router import MessageRouter, parse_number

__all__ = ["ObserverRegistry", "MessageRouter", "parse_number"]
