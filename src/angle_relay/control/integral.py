"""
Integral term strategies (Strategy pattern).

Both implementations share the same anti-windup rules:
- accumulate only while |error| is below the large-error cutoff,
  otherwise drop everything accumulated so far
- clamp the accumulated value to +/- max_integral
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque

from angle_relay import config


class IntegralStrategy(ABC):
    """Base class for integral accumulators."""

    def __init__(
        self,
        max_integral: float = config.MAX_INTEGRAL,
        large_error_cutoff: float = config.LARGE_ERROR_CUTOFF,
    ):
        self.max_integral = max_integral
        self.large_error_cutoff = large_error_cutoff
        self.value = 0.0

    @abstractmethod
    def accumulate(self, error: float, dt: float) -> float:
        """
        Fold one (error, dt) sample into the integral.

        Args:
            error: Current error (rad).
            dt: Seconds since the previous sample.

        Returns:
            Integral value after this step.
        """
        ...

    @abstractmethod
    def reset(self) -> None:
        """Drop all accumulated history."""
        ...

    def _clamp(self, value: float) -> float:
        return max(-self.max_integral, min(self.max_integral, value))


class ScalarIntegral(IntegralStrategy):
    """Unbounded running sum, clamped."""

    def accumulate(self, error: float, dt: float) -> float:
        if abs(error) >= self.large_error_cutoff:
            self.reset()
            return self.value

        self.value = self._clamp(self.value + error * dt)
        return self.value

    def reset(self) -> None:
        self.value = 0.0


class WindowedIntegral(IntegralStrategy):
    """
    Sum over the most recent samples only.

    Keeps at most `window` (error, dt) pairs and re-sums them every
    step, so old error falls out of the integral on its own.
    """

    def __init__(self, window: int = config.INTEGRAL_WINDOW, **kwargs):
        super().__init__(**kwargs)
        self.window = window
        self._samples: deque[tuple[float, float]] = deque(maxlen=window)

    @property
    def samples(self) -> list[tuple[float, float]]:
        return list(self._samples)

    def accumulate(self, error: float, dt: float) -> float:
        if abs(error) >= self.large_error_cutoff:
            self.reset()
            return self.value

        self._samples.append((error, dt))
        self.value = self._clamp(sum(e * d for e, d in self._samples))
        return self.value

    def reset(self) -> None:
        self._samples.clear()
        self.value = 0.0


def make_integral(mode: str, window: int, max_integral: float, large_error_cutoff: float) -> IntegralStrategy:
    """Build the integral strategy named by `mode` ("scalar" or "windowed")."""
    if mode == "scalar":
        return ScalarIntegral(max_integral=max_integral, large_error_cutoff=large_error_cutoff)
    return WindowedIntegral(
        window=window, max_integral=max_integral, large_error_cutoff=large_error_cutoff,
    )
