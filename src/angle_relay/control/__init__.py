"""
Control Layer - PID computation.

Turns target and measured angle into a PWM drive command.
"""

from .integral import IntegralStrategy, ScalarIntegral, WindowedIntegral, make_integral
from .pid import PidEngine, PidGains, PidOutput, PidState

__all__ = [
    "IntegralStrategy",
    "ScalarIntegral",
    "WindowedIntegral",
    "make_integral",
    "PidEngine",
    "PidGains",
    "PidOutput",
    "PidState",
]
