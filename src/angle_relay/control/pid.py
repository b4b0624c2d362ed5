"""
PID engine - angle error to PWM drive command.

Pure computation, no I/O. The engine owns a PidState and is the only
thing that mutates it.

Output shaping, in order:
1. Raw PID sum (P + I + D)
2. Minimum-drive floor so the actuator overcomes static friction
3. Clamp to a ceiling that shrinks as the error shrinks
   (coarse-then-fine: >30 deg full, 10-30 deg 70%, <10 deg 40%)
4. Deadband: inside stop_margin the command is exactly 0
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Optional

from angle_relay import config
from angle_relay.control.integral import IntegralStrategy, WindowedIntegral

logger = logging.getLogger(__name__)


@dataclass
class PidGains:
    """Controller gains, fixed at construction."""

    kp: float = config.PID_KP
    ki: float = config.PID_KI
    kd: float = config.PID_KD


@dataclass
class PidState:
    """Mutable controller state. Angles are radians."""

    gains: PidGains = field(default_factory=PidGains)
    min_pwm: int = config.MIN_PWM
    max_pwm: int = config.MAX_PWM
    stop_margin: float = config.STOP_MARGIN
    integral: IntegralStrategy = field(default_factory=WindowedIntegral)
    previous_error: Optional[float] = None
    previous_timestamp: float = field(default_factory=time.monotonic)
    target_angle: Optional[float] = None
    current_angle: float = 0.0


@dataclass
class PidOutput:
    """Result of one PID step."""

    pwm: int = 0
    error: float = 0.0  # rad
    at_target: bool = False
    proportional: float = 0.0
    integral: float = 0.0
    derivative: float = 0.0
    ceiling: float = 0.0
    dt: float = 0.0


def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def _round_half_up(value: float) -> int:
    """Round to nearest integer, halves toward +inf."""
    return int(math.floor(value + 0.5))


def dynamic_ceiling(error: float, max_pwm: float) -> float:
    """Output ceiling for a given error (rad)."""
    error_deg = abs(math.degrees(error))
    for threshold, fraction in config.CEILING_BANDS:
        if error_deg > threshold:
            return max_pwm * fraction
    return max_pwm * config.CEILING_FINE


class PidEngine:
    """
    Closed-loop position controller.

    Usage:
        engine = PidEngine()
        engine.reset()
        engine.state.target_angle = math.radians(90)
        out = engine.compute(engine.state.target_angle, current)
    """

    def __init__(self, state: Optional[PidState] = None, min_dt: float = 0.0):
        self.state = state or PidState()
        self.min_dt = min_dt

    def reset(self, now: Optional[float] = None):
        """Clear transient history so the next step starts clean."""
        now = time.monotonic() if now is None else now
        self.state.integral.reset()
        self.state.previous_error = None
        self.state.previous_timestamp = now

    def compute(self, target: Optional[float], current: float, now: Optional[float] = None) -> PidOutput:
        """
        Compute the drive command for one step.

        Args:
            target: Target angle (rad), None if no setpoint yet
            current: Measured angle (rad)
            now: Monotonic timestamp (s), defaults to time.monotonic()

        Returns:
            PidOutput with the rounded PWM command
        """
        if target is None:
            return PidOutput()

        s = self.state
        now = time.monotonic() if now is None else now
        dt = now - s.previous_timestamp

        if self.min_dt > 0 and dt < self.min_dt:
            return PidOutput(dt=dt)

        error = target - current

        integral = s.integral.accumulate(error, dt)

        if s.previous_error is None or dt <= 0:
            derivative = 0.0
        else:
            derivative = (error - s.previous_error) / dt

        proportional = s.gains.kp * error
        output = proportional + s.gains.ki * integral + s.gains.kd * derivative

        ceiling = dynamic_ceiling(error, s.max_pwm)

        if abs(error) > s.stop_margin:
            if abs(output) < s.min_pwm:
                output = _sign(output) * s.min_pwm
            # Never push away from the target
            if _sign(output) != _sign(error):
                output = _sign(error) * s.min_pwm

        output = max(-ceiling, min(ceiling, output))

        at_target = abs(error) < s.stop_margin
        if at_target:
            output = 0.0

        s.previous_error = error
        s.previous_timestamp = now

        pwm = _round_half_up(output)
        logger.debug(
            f"Error: {math.degrees(error):.2f}deg, PWM: {output:.2f}, "
            f"I: {integral:.2f}, D: {derivative:.2f}"
        )

        return PidOutput(
            pwm=pwm,
            error=error,
            at_target=at_target,
            proportional=proportional,
            integral=integral,
            derivative=derivative,
            ceiling=ceiling,
            dt=dt,
        )
