"""
Runtime tunable parameters with JSON persistence.

One Parameters instance is shared by the web layer and the router.
The web interface can inspect and modify values at runtime; PID gains
are read when the session is built, so gain changes apply on the next
start. Single-threaded asyncio means no locks needed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from angle_relay import config

logger = logging.getLogger(__name__)

PARAMS_FILE = Path(__file__).parent / "params.json"

DOWNLINK_MODES = ("socket", "datagram")
INTEGRAL_MODES = ("scalar", "windowed")

# Read by the router on every setpoint; everything else is read once at startup
LIVE_FIELDS = ("reset_on_setpoint", "reset_settle_s")


@dataclass
class Parameters:
    """Runtime tunable parameters."""

    # PID gains
    kp: float = config.PID_KP
    ki: float = config.PID_KI
    kd: float = config.PID_KD

    # Output limits (PWM magnitude)
    min_pwm: int = config.MIN_PWM
    max_pwm: int = config.MAX_PWM

    # Deadband radius around target (rad)
    stop_margin: float = config.STOP_MARGIN

    # Integral term
    integral_mode: str = "windowed"
    integral_window: int = config.INTEGRAL_WINDOW
    max_integral: float = config.MAX_INTEGRAL
    large_error_cutoff: float = config.LARGE_ERROR_CUTOFF

    # Skip computations closer together than this (s); 0 disables
    min_dt: float = 0.0

    # Downlink: "socket" replies on the controller's WebSocket,
    # "datagram" sends UDP to the controller's address
    downlink: str = "datagram"
    command_port: int = config.COMMAND_PORT

    # Secure framing of commands and feedback
    secure_framing: bool = True

    # Send RESET and wait before the first command of a new setpoint
    reset_on_setpoint: bool = False
    reset_settle_s: float = config.RESET_SETTLE_S

    def update(self, **kwargs):
        """Update parameters from dict (e.g., from web API)."""
        for key, value in kwargs.items():
            if hasattr(self, key):
                expected_type = type(getattr(self, key))
                try:
                    if expected_type is bool and isinstance(value, str):
                        value = value.strip().lower() in ("1", "true", "yes", "on")
                    setattr(self, key, expected_type(value))
                except (TypeError, ValueError):
                    logger.warning(f"Invalid value for {key}: {value}")

        if self.downlink not in DOWNLINK_MODES:
            logger.warning(f"Unknown downlink '{self.downlink}', using datagram")
            self.downlink = "datagram"
        if self.integral_mode not in INTEGRAL_MODES:
            logger.warning(f"Unknown integral mode '{self.integral_mode}', using windowed")
            self.integral_mode = "windowed"

    def save(self, path: Path = PARAMS_FILE):
        """Persist to JSON file."""
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)
        logger.info(f"Parameters saved to {path}")

    @classmethod
    def load(cls, path: Path = PARAMS_FILE) -> Parameters:
        """Load from JSON file, or return defaults."""
        if path.exists():
            try:
                with open(path) as f:
                    data = json.load(f)
                params = cls()
                params.update(**data)
                logger.info(f"Parameters loaded from {path}")
                return params
            except Exception as e:
                logger.warning(f"Failed to load {path}: {e}, using defaults")
        return cls()

    def to_dict(self) -> dict:
        """Convert to dict for JSON API."""
        return asdict(self)
