"""
Adjuster factory

Builds any fee adjuster from an AdjusterType and the shared
FeeMarketConfig. The single-layer algorithms take their knobs from the
config's parameter sections; the strategic, tactical and hierarchical
variants keep their own defaults and only take the core block/fee
fields.
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from .adjuster import FeeAdjuster
from .aimd_adjuster import AIMDFeeAdjuster
from .batcher_slow_pid import BatcherSlowPID, BatcherSlowPIDConfig
from .config import FeeMarketConfig, to_aimd_config, to_eip1559_config, to_pid_config
from .eip1559_adjuster import EIP1559FeeAdjuster
from .hierarchical_pid import HierarchicalPID, HierarchicalPIDConfig
from .pid_adjuster import PIDFeeAdjuster
from .sequencer_fast_pid import SequencerFastPID, SequencerFastPIDConfig
from .validation import UnknownAdjusterTypeError

logger = logging.getLogger(__name__)


class AdjusterType(str, Enum):
    """Available fee adjustment algorithms."""
    aimd = "aimd"
    eip1559 = "eip1559"
    pid = "pid"
    batcher_slow_pid = "batcher-slow-pid"
    sequencer_fast_pid = "sequencer-fast-pid"
    hierarchical_pid = "hierarchical-pid"


TYPE_DESCRIPTIONS: Dict[AdjusterType, str] = {
    AdjusterType.aimd: "AIMD (Additive Increase Multiplicative Decrease) - Windowed adaptive learning rate",
    AdjusterType.eip1559: "EIP-1559 - Standard Ethereum fee adjustment mechanism",
    AdjusterType.pid: "PID Controller - Proportional-Integral-Derivative control system",
    AdjusterType.batcher_slow_pid: "Batcher Slow PID - Strategic DA cost management with sequencer coordination",
    AdjusterType.sequencer_fast_pid: "Sequencer Fast PID - Per-block fee execution with strategic parameter updates",
    AdjusterType.hierarchical_pid: "Hierarchical PID - Two-layer control system combining strategic and tactical adjustments",
}

# Accepted spellings besides the canonical values
TYPE_ALIASES: Dict[str, AdjusterType] = {
    "eip-1559": AdjusterType.eip1559,
    "batcher_slow_pid": AdjusterType.batcher_slow_pid,
    "sequencer_fast_pid": AdjusterType.sequencer_fast_pid,
    "hierarchical_pid": AdjusterType.hierarchical_pid,
}


def parse_adjuster_type(name: str) -> AdjusterType:
    """
    Parse an algorithm name, ignoring case and surrounding whitespace.

    Raises:
        UnknownAdjusterTypeError: If the name is not a known algorithm
    """
    key = name.strip().lower()
    if key in TYPE_ALIASES:
        return TYPE_ALIASES[key]
    try:
        return AdjusterType(key)
    except ValueError:
        raise UnknownAdjusterTypeError(f"unknown adjuster type: {name}") from None


def validate_adjuster_type(adjuster_type: Union[AdjusterType, str]) -> None:
    """Raise UnknownAdjusterTypeError unless adjuster_type is an available algorithm."""
    if adjuster_type not in AdjusterFactory.get_available_types():
        raise UnknownAdjusterTypeError(f"invalid adjuster type: {adjuster_type}")


def _core_fields(cfg: FeeMarketConfig) -> Dict[str, Union[int, float]]:
    return {
        'target_block_size': cfg.target_block_size,
        'burst_multiplier': cfg.burst_multiplier,
        'initial_base_fee': cfg.initial_base_fee,
        'min_base_fee': cfg.min_base_fee,
    }


class AdjusterFactory:
    """Creates fee adjusters by type from a shared FeeMarketConfig."""

    @staticmethod
    def create_adjuster(adjuster_type: Union[AdjusterType, str],
                        config: Optional[FeeMarketConfig] = None,
                        clock: Optional[Callable[[], float]] = None) -> FeeAdjuster:
        """
        Build an adjuster.

        Args:
            adjuster_type: AdjusterType or any name accepted by parse_adjuster_type
            config: Shared configuration (defaults if None)
            clock: Clock in seconds for the time-driven layers (time.monotonic if None)

        Raises:
            UnknownAdjusterTypeError: For an unknown algorithm name
            ConfigurationError: If the derived configuration is invalid
        """
        if not isinstance(adjuster_type, AdjusterType):
            adjuster_type = parse_adjuster_type(adjuster_type)
        cfg = config if config is not None else FeeMarketConfig()

        if adjuster_type == AdjusterType.aimd:
            adjuster = AIMDFeeAdjuster(to_aimd_config(cfg))
        elif adjuster_type == AdjusterType.eip1559:
            adjuster = EIP1559FeeAdjuster(to_eip1559_config(cfg))
        elif adjuster_type == AdjusterType.pid:
            adjuster = PIDFeeAdjuster(to_pid_config(cfg))
        elif adjuster_type == AdjusterType.batcher_slow_pid:
            adjuster = BatcherSlowPID(replace(BatcherSlowPIDConfig(), **_core_fields(cfg)), clock=clock)
        elif adjuster_type == AdjusterType.sequencer_fast_pid:
            adjuster = SequencerFastPID(replace(SequencerFastPIDConfig(), **_core_fields(cfg)), clock=clock)
        elif adjuster_type == AdjusterType.hierarchical_pid:
            adjuster = HierarchicalPID(HierarchicalPIDConfig(**_core_fields(cfg)), clock=clock)
        else:
            raise UnknownAdjusterTypeError(f"unknown adjuster type: {adjuster_type}")

        logger.debug(f"Created {adjuster_type.value} adjuster: {adjuster!r}")
        return adjuster

    @staticmethod
    def get_available_types() -> List[AdjusterType]:
        return list(AdjusterType)

    @staticmethod
    def get_type_description(adjuster_type: Union[AdjusterType, str]) -> str:
        try:
            return TYPE_DESCRIPTIONS[parse_adjuster_type(adjuster_type)]
        except UnknownAdjusterTypeError:
            return "Unknown adjuster type"


def create_adjuster(adjuster_type: Union[AdjusterType, str],
                    config: Optional[FeeMarketConfig] = None,
                    clock: Optional[Callable[[], float]] = None) -> FeeAdjuster:
    """Convenience wrapper around AdjusterFactory.create_adjuster."""
    return AdjusterFactory.create_adjuster(adjuster_type, config, clock)
