"""
PID Fee Adjuster

Proportional-integral-derivative control of the base fee on the
per-block utilization error.

Error:
    e(t) = g(t)/T − 1

Integral with windup protection:
    I(t) = clip(I(t−1) + e(t), I_min, I_max)

Derivative over the error history (last w errors):
    D(t) = regression slope        if the history holds w errors
         = e(t) − e(t−1)           if it holds at least two
         = 0                       otherwise

Control output and fee update:
    u(t) = clip(Kp e + Ki I + Kd D, −Δ_max, Δ_max)
    F    ← max(F_min, ⌊F × (1 + u)⌋)
"""

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from .adjuster import BaseAdjusterConfig, FeeAdjuster
from .blocks import State
from .numeric import (
    calculate_burst_utilization,
    calculate_target_utilization,
    clamp_float,
    regression_slope,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PIDConfig(BaseAdjusterConfig):
    """Configuration for the PID fee adjuster."""

    kp: float = 0.1                 # Proportional gain
    ki: float = 0.01                # Integral gain
    kd: float = 0.05                # Derivative gain
    max_integral: float = 1000.0    # Integral windup bounds
    min_integral: float = -1000.0
    max_fee_change: float = 0.25    # Max relative fee change per block
    window_size: int = 3            # Error history used for the derivative

    def _parameter_errors(self) -> List[str]:
        errors = super()._parameter_errors()

        for name in ("kp", "ki", "kd"):
            if getattr(self, name) < 0:
                errors.append(f"{name} must not be negative, got {getattr(self, name)}")
        if self.max_integral <= self.min_integral:
            errors.append(
                f"max_integral ({self.max_integral}) must be greater than min_integral ({self.min_integral})"
            )
        if not (0 < self.max_fee_change <= 1.0):
            errors.append(f"max_fee_change must be in (0, 1.0], got {self.max_fee_change}")
        if self.window_size <= 0:
            errors.append(f"window_size must be positive, got {self.window_size}")

        return errors


class PIDState:
    """
    Integral accumulator and bounded error history shared by the PID-family controllers.

    Attributes:
        integral: Windup-protected error integral
        last_error: Most recent error
        error_history: Last window_size errors, oldest first
    """

    def __init__(self, window_size: int, min_integral: float, max_integral: float):
        self.window_size = window_size
        self.min_integral = min_integral
        self.max_integral = max_integral
        self.integral = 0.0
        self.last_error = 0.0
        self.error_history: Deque[float] = deque(maxlen=window_size)

    def update(self, error: float) -> None:
        """Accumulate the error into the integral and the history."""
        self.integral = clamp_float(self.integral + error, self.min_integral, self.max_integral)
        self.error_history.append(error)
        self.last_error = error

    def simple_derivative(self) -> float:
        """Two-point difference of the last two errors, or 0.0."""
        if len(self.error_history) < 2:
            return 0.0
        return self.error_history[-1] - self.error_history[-2]

    def smoothed_derivative(self) -> float:
        """Regression slope over a full history, falling back to the two-point difference."""
        if len(self.error_history) < 2:
            return 0.0
        if len(self.error_history) < self.window_size:
            return self.simple_derivative()
        return regression_slope(list(self.error_history))

    def reset(self) -> None:
        self.integral = 0.0
        self.last_error = 0.0
        self.error_history.clear()


def effective_window(window_size: int, block_count: int) -> int:
    """Window used for reporting: the configured size, shrunk to the blocks available."""
    return min(window_size, block_count)


class PIDFeeAdjuster(FeeAdjuster):
    """PID controller for fee adjustment."""

    def __init__(self, config: Optional[PIDConfig] = None):
        config = config if config is not None else PIDConfig()
        super().__init__(config)
        self.pid = PIDState(config.window_size, config.min_integral, config.max_integral)
        self.last_control_output = 0.0

    def process_block(self, gas_used: int) -> None:
        self._append_block(gas_used)

        current_utilization = float(gas_used) / float(self.config.target_block_size)
        error = current_utilization - 1.0

        self.pid.update(error)
        self._adjust_base_fee(error)

    def calculate_control_output(self, error: float) -> float:
        """Clamped PID output for the given error and the current integral/history."""
        cfg = self.config
        proportional = cfg.kp * error
        integral = cfg.ki * self.pid.integral
        derivative = cfg.kd * self.pid.smoothed_derivative()

        return clamp_float(proportional + integral + derivative, -cfg.max_fee_change, cfg.max_fee_change)

    def _adjust_base_fee(self, error: float) -> None:
        control_output = self.calculate_control_output(error)
        self.last_control_output = control_output
        self.base_fee = self._apply_fee_floor(float(self.base_fee) * (1.0 + control_output))

    def _effective_learning_rate(self) -> float:
        """
        Relative fee change between the last two blocks divided by the last block's
        excess utilization, clamped into [0, max_fee_change]. Zero until two blocks exist.
        """
        if len(self.blocks) < 2:
            return 0.0

        prev_block = self.blocks[-2]
        last_block = self.blocks[-1]
        if prev_block.base_fee == 0:
            return 0.0

        base_fee_change = math.fabs(last_block.base_fee - prev_block.base_fee) / float(prev_block.base_fee)
        target = float(self.config.target_block_size)
        excess_utilization = (float(last_block.gas_used) - target) / target

        logger.debug(f"Base fee change: {base_fee_change:.6f}, excess utilization: {excess_utilization:.6f}")

        if math.fabs(excess_utilization) <= 1e-10:
            return 0.0

        return clamp_float(math.fabs(base_fee_change / excess_utilization), 0.0, self.config.max_fee_change)

    def get_current_state(self) -> State:
        target_utilization = 0.0
        burst_utilization = 0.0

        if self.blocks:
            window = effective_window(self.config.window_size, len(self.blocks))
            target_utilization = calculate_target_utilization(self.blocks, window, self.config.target_block_size)
            burst_utilization = calculate_burst_utilization(self.blocks, window, self.get_max_block_size())

        return State(
            base_fee=self.base_fee,
            learning_rate=self._effective_learning_rate(),
            target_utilization=target_utilization,
            burst_utilization=burst_utilization,
        )

    def reset(self) -> None:
        self.blocks = []
        self.base_fee = self.config.initial_base_fee
        self.pid.reset()
        self.last_control_output = 0.0
