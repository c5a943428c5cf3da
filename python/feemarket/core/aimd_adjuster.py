"""
AIMD Fee Adjuster

Additive-Increase / Multiplicative-Decrease control of a learning rate
η over a sliding window of w blocks, with the base fee driven by η.

Once the window is full, for each block with gas g:

Learning rate (hysteresis):
    U = S_w / (w × T)
    η ← min(η_max, α + η)     if |U − 1| > γ
    η ← max(η_min, β × η)     otherwise

Base fee:
    F ← max(F_min, ⌊F × (1 + η (g − T)/T) + δ × Δ_w⌋)

where Δ_w is the signed net gas delta of the window. Before the window
has filled, blocks are only recorded (warm-up).
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .adjuster import BaseAdjusterConfig, FeeAdjuster
from .blocks import State
from .numeric import (
    calculate_burst_utilization,
    calculate_target_utilization,
    net_gas_delta,
)
from .validation import validate_range

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AIMDConfig(BaseAdjusterConfig):
    """Configuration for the AIMD fee adjuster."""

    window_size: int = 10                # Blocks in the learning window
    gamma: float = 0.25                  # Deviation threshold for additive increase
    initial_learning_rate: float = 0.1
    max_learning_rate: float = 0.5
    min_learning_rate: float = 0.001
    alpha: float = 0.01                  # Additive increase step
    beta: float = 0.9                    # Multiplicative decrease factor
    delta: float = 0.0                   # Net gas delta coefficient
    randomness_factor: float = 0.0       # Std-dev of gas noise used by add_randomness

    def _parameter_errors(self) -> List[str]:
        errors = super()._parameter_errors()

        if self.window_size <= 0:
            errors.append(f"window_size must be positive, got {self.window_size}")
        validate_range(self.gamma, 0.0, 2.0, "gamma", errors)
        if self.max_learning_rate < self.min_learning_rate:
            errors.append(
                f"max_learning_rate ({self.max_learning_rate}) must be >= "
                f"min_learning_rate ({self.min_learning_rate})"
            )
        elif not (self.min_learning_rate <= self.initial_learning_rate <= self.max_learning_rate):
            errors.append(
                f"initial_learning_rate ({self.initial_learning_rate}) must be within "
                f"[{self.min_learning_rate}, {self.max_learning_rate}]"
            )
        if self.alpha < 0:
            errors.append(f"alpha must not be negative, got {self.alpha}")
        validate_range(self.beta, 0.0, 1.0, "beta", errors)
        validate_range(self.randomness_factor, 0.0, 1.0, "randomness_factor", errors)

        return errors


class AIMDFeeAdjuster(FeeAdjuster):
    """
    AIMD fee adjuster with a windowed, hysteresis-style learning rate.

    Large sustained deviations from target grow the learning rate
    (faster future response); near-target behaviour decays it.
    """

    def __init__(self, config: Optional[AIMDConfig] = None, seed: Optional[int] = None):
        """
        Args:
            config: AIMD configuration (defaults if None)
            seed: Seed for the gas-noise generator used by add_randomness
        """
        config = config if config is not None else AIMDConfig()
        super().__init__(config)
        self.learning_rate: float = config.initial_learning_rate
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def process_block(self, gas_used: int) -> None:
        self._append_block(gas_used)

        if len(self.blocks) < self.config.window_size:
            logger.debug(
                f"AIMD warm-up: {len(self.blocks)}/{self.config.window_size} blocks in window"
            )
            return

        self._adjust_learning_rate()
        self._adjust_base_fee(gas_used)

    def _adjust_learning_rate(self) -> None:
        cfg = self.config
        target_utilization = calculate_target_utilization(self.blocks, cfg.window_size, cfg.target_block_size)

        if math.fabs(target_utilization - 1.0) > cfg.gamma:
            self.learning_rate = min(cfg.max_learning_rate, cfg.alpha + self.learning_rate)
        else:
            self.learning_rate = max(cfg.min_learning_rate, cfg.beta * self.learning_rate)

    def _adjust_base_fee(self, gas_used: int) -> None:
        cfg = self.config
        target = float(cfg.target_block_size)

        adjustment = self.learning_rate * (float(gas_used) - target) / target
        delta_adjustment = cfg.delta * float(net_gas_delta(self.blocks, cfg.window_size, cfg.target_block_size))

        new_base_fee = float(self.base_fee) * (1 + adjustment) + delta_adjustment
        self.base_fee = self._apply_fee_floor(new_base_fee)

    def get_current_state(self) -> State:
        cfg = self.config
        target_utilization = 0.0
        burst_utilization = 0.0

        if len(self.blocks) >= cfg.window_size:
            target_utilization = calculate_target_utilization(self.blocks, cfg.window_size, cfg.target_block_size)
            burst_utilization = calculate_burst_utilization(self.blocks, cfg.window_size, self.get_max_block_size())

        return State(
            base_fee=self.base_fee,
            learning_rate=self.learning_rate,
            target_utilization=target_utilization,
            burst_utilization=burst_utilization,
        )

    def add_randomness(self, gas_used: int) -> int:
        """
        Perturb a gas value with Gaussian noise: g × (1 + N(0, σ)).

        The result is floored at zero and capped at the max block size.
        A zero randomness factor returns the input unchanged.
        """
        if self.config.randomness_factor == 0:
            return gas_used

        multiplier = 1.0 + self.rng.normal(0.0, self.config.randomness_factor)
        result = max(0, int(float(gas_used) * multiplier))
        return min(result, self.get_max_block_size())

    def set_seed(self, seed: Optional[int]) -> None:
        """Re-seed the gas-noise generator for reproducible runs."""
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def reset(self) -> None:
        self.blocks = []
        self.learning_rate = self.config.initial_learning_rate
        self.base_fee = self.config.initial_base_fee
        self.rng = np.random.default_rng(self.seed)
