"""
Fee adjuster abstraction

Every fee-adjustment algorithm implements FeeAdjuster so that callers
(scenario runners, analysis, simulation against historical data) can
treat them interchangeably:

    adjuster.process_block(gas_used)
    state = adjuster.get_current_state()

process_block appends a Block and updates internal state; it accepts any
non-negative gas value, including values above the max block size.
get_current_state and get_max_block_size are pure reads, get_blocks
returns a copy, and reset restores the initial configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from .blocks import Block, State
from .numeric import calculate_max_block_size
from .validation import raise_if_errors


@dataclass(frozen=True)
class BaseAdjusterConfig:
    """Core parameters shared by every adjuster configuration."""

    target_block_size: int = 15_000_000     # Target block size (gas)
    burst_multiplier: float = 2.0           # Max block size as a multiple of target
    initial_base_fee: int = 1_000_000_000   # Initial base fee (wei) = 1 gwei
    min_base_fee: int = 0                   # Base fee floor (wei)

    def __post_init__(self):
        """Validate parameter ranges and consistency."""
        self._validate_parameters()

    def _validate_parameters(self):
        raise_if_errors(self._parameter_errors())

    def _parameter_errors(self) -> List[str]:
        errors = []

        if self.target_block_size <= 0:
            errors.append(f"target_block_size must be positive, got {self.target_block_size}")
        if self.burst_multiplier <= 1.0:
            errors.append(f"burst_multiplier must be > 1.0, got {self.burst_multiplier}")
        if self.min_base_fee < 0:
            errors.append(f"min_base_fee must be non-negative, got {self.min_base_fee}")
        if self.initial_base_fee < self.min_base_fee:
            errors.append(
                f"initial_base_fee ({self.initial_base_fee}) must be >= min_base_fee ({self.min_base_fee})"
            )

        return errors

    @property
    def max_block_size(self) -> int:
        return calculate_max_block_size(self.target_block_size, self.burst_multiplier)


class FeeAdjuster(ABC):
    """Abstract base class for fee adjustment algorithms."""

    def __init__(self, config: BaseAdjusterConfig):
        self.config = config
        self.blocks: List[Block] = []
        self.base_fee: int = config.initial_base_fee

    def _append_block(self, gas_used: int) -> Block:
        """Record a block at the base fee currently in force."""
        block = Block(number=len(self.blocks) + 1, gas_used=int(gas_used), base_fee=self.base_fee)
        self.blocks.append(block)
        return block

    def _apply_fee_floor(self, new_base_fee: float) -> int:
        """Clamp to the configured minimum and truncate to integer wei."""
        if new_base_fee < self.config.min_base_fee:
            new_base_fee = self.config.min_base_fee
        return int(new_base_fee)

    @abstractmethod
    def process_block(self, gas_used: int) -> None:
        """Process a new block and update the internal state."""
        pass

    @abstractmethod
    def get_current_state(self) -> State:
        """Return the current state without mutating anything."""
        pass

    def get_max_block_size(self) -> int:
        """Maximum block size (target × burst multiplier), constant for the instance."""
        return self.config.max_block_size

    def get_blocks(self) -> List[Block]:
        """Return a copy of the blocks processed so far."""
        return list(self.blocks)

    @abstractmethod
    def reset(self) -> None:
        """Restore the initial configuration, discarding history."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(blocks={len(self.blocks)}, base_fee={self.base_fee})"
