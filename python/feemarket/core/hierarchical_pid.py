"""
Hierarchical PID

Two-layer control: a strategic BatcherSlowPID proposes sequencer
parameters from simulated DA cost pressure, and a tactical
SequencerFastPID executes per-block fee changes with them.

Per block:
    1. strategic layer processes the block
    2. if coordination is enabled and update_interval seconds have
       elapsed, at most one pending update is forwarded from the
       strategic layer's channel to the tactical layer
    3. tactical layer processes the block

The tactical layer is authoritative for fees, blocks and state.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from .adjuster import BaseAdjusterConfig, FeeAdjuster
from .batcher_slow_pid import BatcherSlowPID, BatcherSlowPIDConfig
from .blocks import Block, State
from .sequencer_fast_pid import SequencerFastPID, SequencerFastPIDConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HierarchicalPIDConfig(BaseAdjusterConfig):
    """Configuration for the two-layer controller; core fields override both layers."""

    slow_layer_config: BatcherSlowPIDConfig = field(default_factory=BatcherSlowPIDConfig)
    fast_layer_config: SequencerFastPIDConfig = field(default_factory=SequencerFastPIDConfig)

    enable_coordination: bool = True
    update_interval: float = 30.0    # Seconds between strategic → tactical forwards

    def _parameter_errors(self) -> List[str]:
        errors = super()._parameter_errors()

        if self.update_interval <= 0:
            errors.append(f"update_interval must be positive, got {self.update_interval}")

        return errors

    def _core_overrides(self) -> Dict[str, Any]:
        return {
            'target_block_size': self.target_block_size,
            'burst_multiplier': self.burst_multiplier,
            'initial_base_fee': self.initial_base_fee,
            'min_base_fee': self.min_base_fee,
        }

    def resolved_slow_config(self) -> BatcherSlowPIDConfig:
        return replace(self.slow_layer_config, **self._core_overrides())

    def resolved_fast_config(self) -> SequencerFastPIDConfig:
        return replace(self.fast_layer_config, **self._core_overrides())


class HierarchicalPID(FeeAdjuster):
    """Strategic + tactical PID controller sharing one target/burst/fee configuration."""

    def __init__(self, config: Optional[HierarchicalPIDConfig] = None,
                 clock: Optional[Callable[[], float]] = None):
        config = config if config is not None else HierarchicalPIDConfig()
        # Blocks and base fee live in the tactical layer, so FeeAdjuster.__init__ is not used
        self.config = config
        self.clock = clock if clock is not None else time.monotonic

        self.slow_layer = BatcherSlowPID(config.resolved_slow_config(), clock=self.clock)
        self.fast_layer = SequencerFastPID(config.resolved_fast_config(), clock=self.clock)

        self.last_update_time = self.clock()
        self.simulation_mode = True
        self.forwarded_updates = 0

    @property
    def base_fee(self) -> int:
        return self.fast_layer.base_fee

    @property
    def blocks(self) -> List[Block]:
        return self.fast_layer.blocks

    def process_block(self, gas_used: int) -> None:
        self.slow_layer.process_block(gas_used)

        if self.config.enable_coordination and self.clock() - self.last_update_time >= self.config.update_interval:
            self.coordinate_layers()
            self.last_update_time = self.clock()

        self.fast_layer.process_block(gas_used)

    def coordinate_layers(self) -> bool:
        """
        Forward at most one pending strategic update to the tactical layer.

        Returns:
            True if an update was forwarded
        """
        update = self.slow_layer.get_parameter_updates().try_receive()
        if update is None:
            return False

        self.fast_layer.send_parameter_update(update)
        self.forwarded_updates += 1

        if self.simulation_mode:
            logger.info(f"Hierarchical PID: Coordinating layers - {update.reason}")
        else:
            logger.debug(f"Hierarchical PID: Coordinating layers - {update.reason}")
        return True

    def get_current_state(self) -> State:
        return self.fast_layer.get_current_state()

    def get_blocks(self) -> List[Block]:
        return self.fast_layer.get_blocks()

    def get_max_block_size(self) -> int:
        return self.fast_layer.get_max_block_size()

    def reset(self) -> None:
        self.slow_layer.reset()
        self.fast_layer.reset()
        self.last_update_time = self.clock()
        self.forwarded_updates = 0

    def set_simulation_mode(self, simulation: bool) -> None:
        """In simulation mode layer coordination is logged at INFO, otherwise at DEBUG."""
        self.simulation_mode = simulation

    def get_slow_layer_diagnostics(self) -> Dict[str, Any]:
        return self.slow_layer.get_diagnostics()

    def get_fast_layer_diagnostics(self) -> Dict[str, Any]:
        return self.fast_layer.get_diagnostics()

    def get_diagnostics(self) -> Dict[str, Any]:
        return {
            'slow_layer': self.get_slow_layer_diagnostics(),
            'fast_layer': self.get_fast_layer_diagnostics(),
            'coordination_enabled': self.config.enable_coordination,
            'last_coordination_time': self.last_update_time,
            'forwarded_updates': self.forwarded_updates,
            'simulation_mode': self.simulation_mode,
            'update_interval': self.config.update_interval,
        }
