"""
Web Layer - WebSocket relay and status API.

Provides:
- WebSocket endpoint shared by operators and the controller
- Status and parameter endpoints
"""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]
