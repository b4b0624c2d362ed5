"""
Device session - the single authenticated controller slot.

States:
- UNAUTHENTICATED: No controller, or controller has not sent valid credentials
- AUTHENTICATED: Controller known, no operator setpoint yet
- TRACKING: Controller known and a setpoint is active

Closing the controller connection from any state returns to a fresh
UNAUTHENTICATED slot and clears the PID target, so a controller that
reconnects never resumes driving toward a stale setpoint.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Optional

from angle_relay.control import PidEngine, PidOutput
from angle_relay.errors import AuthError
from angle_relay.session.credentials import Credentials, configured_credentials, parse_credentials

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Controller session state."""

    UNAUTHENTICATED = auto()
    AUTHENTICATED = auto()
    TRACKING = auto()


class DeviceSession:
    """
    Authentication and liveness of the one actuator controller.

    Owns the PID engine. A new connection presenting valid credentials
    takes the slot over without evicting anything.

    Usage:
        session = DeviceSession(PidEngine())
        session.authenticate('{"name": "...", "password": "..."}', "10.0.0.7")
        session.set_target(math.radians(90))
        session.update_measurement(0.0)
        out = session.compute_command()
    """

    def __init__(self, engine: Optional[PidEngine] = None, credentials: Optional[Credentials] = None):
        self.engine = engine or PidEngine()
        self.credentials = credentials or configured_credentials()
        self.authenticated = False
        self.peer: Optional[str] = None
        self.has_target = False

    @property
    def state(self) -> SessionState:
        if not self.authenticated:
            return SessionState.UNAUTHENTICATED
        if self.has_target:
            return SessionState.TRACKING
        return SessionState.AUTHENTICATED

    @property
    def target_angle(self) -> Optional[float]:
        return self.engine.state.target_angle

    @property
    def current_angle(self) -> float:
        return self.engine.state.current_angle

    def authenticate(self, payload: str, peer: str):
        """
        Authenticate a controller from its credential message.

        Args:
            payload: Plaintext credential message
            peer: Network address of the connection

        Raises:
            AuthError: malformed payload or credential mismatch
        """
        offered = parse_credentials(payload)
        if not self.credentials.matches(offered):
            raise AuthError(f"Credential mismatch for '{offered.name}' from {peer}")

        if self.authenticated and self.peer != peer:
            logger.warning(f"Controller {peer} supersedes session of {self.peer}")

        self.authenticated = True
        self.peer = peer
        logger.info(f"Controller authenticated from {peer}")

    def set_target(self, angle: float, now: Optional[float] = None):
        """Set a new target (rad) and clear transient PID history."""
        self.engine.reset(now)
        self.engine.state.target_angle = angle
        self.has_target = True

    def update_measurement(self, angle: float):
        """Record the latest measured angle (rad)."""
        self.engine.state.current_angle = angle

    def compute_command(self, now: Optional[float] = None) -> PidOutput:
        """Run one PID step against the current target and measurement."""
        state = self.engine.state
        return self.engine.compute(state.target_angle, state.current_angle, now)

    def close(self):
        """Tear down the session (controller disconnected)."""
        if self.authenticated:
            logger.info(f"Controller session closed: {self.peer}")
        self.authenticated = False
        self.has_target = False
        self.peer = None
        self.engine.state.target_angle = None

    def snapshot(self) -> dict:
        """Session and PID state for the status API."""
        state = self.engine.state
        return {
            "state": self.state.name,
            "authenticated": self.authenticated,
            "peer": self.peer,
            "has_target": self.has_target,
            "target_angle": state.target_angle,
            "current_angle": state.current_angle,
            "integral": state.integral.value,
        }
