"""
EIP-1559 Fee Adjuster

Single-block proportional corrector with integer arithmetic:

    ΔF = F × (g − T) / T / 8        (each division truncates toward zero)
    F  ← max(F_min, F + ΔF)

The divide-by-8 caps a single-block move at 12.5%. A block exactly at
target leaves the fee unchanged.
"""

from dataclasses import dataclass
from typing import List, Optional

from .adjuster import BaseAdjusterConfig, FeeAdjuster
from .blocks import State
from .numeric import truncating_div

# Base fee change denominator from EIP-1559
BASE_FEE_CHANGE_DENOMINATOR = 8


@dataclass(frozen=True)
class EIP1559Config(BaseAdjusterConfig):
    """Configuration for the EIP-1559 fee adjuster."""

    max_fee_change: float = 0.125  # 1/8, reported as the fixed learning rate

    def _parameter_errors(self) -> List[str]:
        errors = super()._parameter_errors()
        if not (0 < self.max_fee_change <= 1.0):
            errors.append(f"max_fee_change must be in (0, 1.0], got {self.max_fee_change}")
        return errors


def eip1559_next_base_fee(base_fee: int, gas_used: int, target_block_size: int, min_base_fee: int) -> int:
    """Apply one EIP-1559 base fee update."""
    if gas_used == target_block_size:
        return base_fee

    gas_used_delta = gas_used - target_block_size
    base_fee_change = truncating_div(
        truncating_div(base_fee * gas_used_delta, target_block_size),
        BASE_FEE_CHANGE_DENOMINATOR,
    )

    return max(min_base_fee, base_fee + base_fee_change)


class EIP1559FeeAdjuster(FeeAdjuster):
    """Standard Ethereum EIP-1559 base fee adjustment."""

    def __init__(self, config: Optional[EIP1559Config] = None):
        super().__init__(config if config is not None else EIP1559Config())

    def process_block(self, gas_used: int) -> None:
        self._append_block(gas_used)
        cfg = self.config
        self.base_fee = eip1559_next_base_fee(self.base_fee, int(gas_used), cfg.target_block_size, cfg.min_base_fee)

    def get_current_state(self) -> State:
        target_utilization = 0.0
        burst_utilization = 0.0

        # Only the last block matters for EIP-1559
        if self.blocks:
            last_gas = float(self.blocks[-1].gas_used)
            target_utilization = last_gas / float(self.config.target_block_size)
            burst_utilization = last_gas / float(self.get_max_block_size())

        return State(
            base_fee=self.base_fee,
            learning_rate=self.config.max_fee_change,
            target_utilization=target_utilization,
            burst_utilization=burst_utilization,
        )

    def reset(self) -> None:
        self.blocks = []
        self.base_fee = self.config.initial_base_fee
