"""
Configuration constants for the angle relay.

Deployment values in one place. Credentials and the framing key can be
overridden from the environment so they stay out of the source tree.
"""

import os

# =============================================================================
# NETWORK
# =============================================================================

WEB_HOST = "0.0.0.0"
WEB_PORT = 8765

# UDP port the controller listens on for commands (datagram downlink)
COMMAND_PORT = 8766

# =============================================================================
# CONTROLLER IDENTITY
# =============================================================================

DEVICE_NAME = os.environ.get("RELAY_DEVICE_NAME", "Sean")
DEVICE_PASSWORD = os.environ.get("RELAY_DEVICE_PASSWORD", "bayar10rb")

# Shared secret for the secure framing boundary
FRAMING_KEY = os.environ.get("RELAY_FRAMING_KEY", "angle-relay-shared-key")

# =============================================================================
# PROTOCOL
# =============================================================================

AUTH_ACK = "Authentication successful"
RESET_COMMAND = "RESET"
RESET_ACK = "Position Reset"

# Inbound messages longer than this are truncated in debug logs
LOG_PREVIEW_CHARS = 100

# =============================================================================
# PID DEFAULTS
# =============================================================================

PID_KP = 1.7
PID_KI = 0.3
PID_KD = 0.4
MIN_PWM = 10
MAX_PWM = 50
STOP_MARGIN = 0.017  # rad, ~1 degree
MAX_INTEGRAL = 5.0
INTEGRAL_WINDOW = 30  # samples
LARGE_ERROR_CUTOFF = 1.0  # rad, ~57 degrees

# Dynamic ceiling bands: (error above degrees, fraction of max_pwm)
CEILING_BANDS = ((30.0, 1.0), (10.0, 0.7))
CEILING_FINE = 0.4

# Settling delay after a RESET before the first post-reset command
RESET_SETTLE_S = 0.5
