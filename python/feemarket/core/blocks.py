"""
Block log and adjuster state

A Block is appended once per processed block and never mutated. A State
is a snapshot recomputed on demand from an adjuster's block log and its
internal fee/learning state.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Block:
    """A processed block: sequence number, gas used, and the base fee in force when it was produced."""
    number: int
    gas_used: int
    base_fee: int

    @property
    def base_fee_gwei(self) -> float:
        """Base fee in gwei for display"""
        return self.base_fee / 1e9


@dataclass(frozen=True)
class State:
    """
    Current state of a fee adjuster.

    Attributes:
        base_fee: Current base fee in wei
        learning_rate: Learning-rate-equivalent scalar of the algorithm
        target_utilization: Windowed gas usage relative to target capacity
        burst_utilization: Windowed gas usage relative to max (burst) capacity
    """
    base_fee: int
    learning_rate: float
    target_utilization: float
    burst_utilization: float

    @property
    def base_fee_gwei(self) -> float:
        """Base fee in gwei for display"""
        return self.base_fee / 1e9

    def __str__(self) -> str:
        return (f"State(base_fee={self.base_fee_gwei:.6f} gwei, lr={self.learning_rate:.4f}, "
                f"target_util={self.target_utilization:.3f}, burst_util={self.burst_utilization:.3f})")
