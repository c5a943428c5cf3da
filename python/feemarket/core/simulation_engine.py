"""
Simulation Engine

Drives any FeeAdjuster over a gas-usage series and collects the state
after every block into a pandas DataFrame, the form the analysis and
plotting collaborators consume.

Randomization (noise, bursts) is applied to the series before it is
passed in; the engine feeds values to the adjuster unchanged.
"""

import logging
from typing import Any, Dict, Sequence, Union

import numpy as np
import pandas as pd

from .adjuster import FeeAdjuster
from .validation import validate_gas_series

logger = logging.getLogger(__name__)


class SimulationEngine:
    """
    Block-by-block runner for a single fee adjuster.

    Each step feeds one block's gas usage to the adjuster and records the
    resulting base fee, learning rate and windowed utilizations.
    """

    def __init__(self, adjuster: FeeAdjuster):
        """
        Args:
            adjuster: Any fee adjuster; the engine owns its resets
        """
        self.adjuster = adjuster

    def simulate_step(self, gas_used: Union[int, float]) -> Dict[str, Any]:
        """
        Process one block.

        Args:
            gas_used: Gas consumed by the block (non-negative)

        Returns:
            Dictionary with the block number, input and resulting state
        """
        self.adjuster.process_block(int(gas_used))
        state = self.adjuster.get_current_state()

        return {
            'block': len(self.adjuster.blocks),
            'gas_used': int(gas_used),
            'base_fee': state.base_fee,
            'base_fee_gwei': state.base_fee_gwei,
            'learning_rate': state.learning_rate,
            'target_utilization': state.target_utilization,
            'burst_utilization': state.burst_utilization,
        }

    @validate_gas_series
    def simulate_series(self, gas_series: Union[Sequence[int], np.ndarray]) -> pd.DataFrame:
        """
        Run the adjuster from its initial configuration over a gas series.

        Args:
            gas_series: Gas used per block, in order

        Returns:
            DataFrame with one row per block
        """
        self.reset_state()

        results = [self.simulate_step(gas_used) for gas_used in gas_series]

        logger.debug(
            f"Simulated {len(results)} blocks with {type(self.adjuster).__name__}: "
            f"final base fee {self.adjuster.get_current_state().base_fee_gwei:.4f} gwei"
        )
        return pd.DataFrame(results)

    def reset_state(self) -> None:
        self.adjuster.reset()

    def get_state_summary(self) -> Dict[str, Any]:
        """
        Get current adjuster state.

        Returns:
            Dictionary with the latest state and block count
        """
        state = self.adjuster.get_current_state()
        return {
            'adjuster': type(self.adjuster).__name__,
            'blocks_processed': len(self.adjuster.blocks),
            'base_fee': state.base_fee,
            'base_fee_gwei': state.base_fee_gwei,
            'learning_rate': state.learning_rate,
            'target_utilization': state.target_utilization,
            'burst_utilization': state.burst_utilization,
            'max_block_size': self.adjuster.get_max_block_size(),
        }
