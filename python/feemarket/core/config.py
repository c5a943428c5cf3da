"""
Shared fee market configuration

FeeMarketConfig is the single record callers (scenario runners, the
factory) hold. Each algorithm only ever sees its own dataclass, built by
the converters below from the core fields and its parameter section.
"""

from dataclasses import dataclass, field
from typing import List

from .adjuster import BaseAdjusterConfig
from .aimd_adjuster import AIMDConfig
from .eip1559_adjuster import EIP1559Config
from .pid_adjuster import PIDConfig


@dataclass(frozen=True)
class AIMDParameters:
    """AIMD section of FeeMarketConfig."""
    gamma: float = 0.25                  # Deviation threshold for learning rate adjustment
    initial_learning_rate: float = 0.1
    max_learning_rate: float = 0.5
    min_learning_rate: float = 0.001
    alpha: float = 0.01                  # Additive increase
    beta: float = 0.9                    # Multiplicative decrease
    delta: float = 0.0                   # Net gas delta coefficient
    randomness_factor: float = 0.0       # Std dev of gas noise (0.0 = none)


@dataclass(frozen=True)
class EIP1559Parameters:
    """EIP-1559 section of FeeMarketConfig."""
    max_fee_change: float = 0.125        # 1/8 per block


@dataclass(frozen=True)
class PIDParameters:
    """PID section of FeeMarketConfig."""
    kp: float = 0.02
    ki: float = 0.00001
    kd: float = 0.01
    max_integral: float = 100.0
    min_integral: float = -100.0
    max_fee_change: float = 0.25


@dataclass(frozen=True)
class FeeMarketConfig(BaseAdjusterConfig):
    """Core block/fee parameters plus per-algorithm sections."""

    window_size: int = 10                # Blocks considered in the utilization window

    aimd: AIMDParameters = field(default_factory=AIMDParameters)
    eip1559: EIP1559Parameters = field(default_factory=EIP1559Parameters)
    pid: PIDParameters = field(default_factory=PIDParameters)

    def _parameter_errors(self) -> List[str]:
        errors = super()._parameter_errors()

        if self.window_size <= 0:
            errors.append(f"window_size must be positive, got {self.window_size}")

        return errors


def to_aimd_config(cfg: FeeMarketConfig) -> AIMDConfig:
    aimd = cfg.aimd
    return AIMDConfig(
        target_block_size=cfg.target_block_size,
        burst_multiplier=cfg.burst_multiplier,
        initial_base_fee=cfg.initial_base_fee,
        min_base_fee=cfg.min_base_fee,
        window_size=cfg.window_size,
        gamma=aimd.gamma,
        initial_learning_rate=aimd.initial_learning_rate,
        max_learning_rate=aimd.max_learning_rate,
        min_learning_rate=aimd.min_learning_rate,
        alpha=aimd.alpha,
        beta=aimd.beta,
        delta=aimd.delta,
        randomness_factor=aimd.randomness_factor,
    )


def to_eip1559_config(cfg: FeeMarketConfig) -> EIP1559Config:
    return EIP1559Config(
        target_block_size=cfg.target_block_size,
        burst_multiplier=cfg.burst_multiplier,
        initial_base_fee=cfg.initial_base_fee,
        min_base_fee=cfg.min_base_fee,
        max_fee_change=cfg.eip1559.max_fee_change,
    )


def to_pid_config(cfg: FeeMarketConfig) -> PIDConfig:
    pid = cfg.pid
    return PIDConfig(
        target_block_size=cfg.target_block_size,
        burst_multiplier=cfg.burst_multiplier,
        initial_base_fee=cfg.initial_base_fee,
        min_base_fee=cfg.min_base_fee,
        kp=pid.kp,
        ki=pid.ki,
        kd=pid.kd,
        max_integral=pid.max_integral,
        min_integral=pid.min_integral,
        max_fee_change=pid.max_fee_change,
        window_size=cfg.window_size,
    )
