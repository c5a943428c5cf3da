"""
Core fee adjustment components.
"""

from .aimd_adjuster import AIMDConfig, AIMDFeeAdjuster
from .eip1559_adjuster import EIP1559Config, EIP1559FeeAdjuster
from .pid_adjuster import PIDConfig, PIDFeeAdjuster
from .batcher_slow_pid import BatcherSlowPID, BatcherSlowPIDConfig
from .sequencer_fast_pid import SequencerFastPID, SequencerFastPIDConfig
from .hierarchical_pid import HierarchicalPID, HierarchicalPIDConfig
from .simulation_engine import SimulationEngine

__all__ = [
    "AIMDConfig",
    "AIMDFeeAdjuster",
    "EIP1559Config",
    "EIP1559FeeAdjuster",
    "PIDConfig",
    "PIDFeeAdjuster",
    "BatcherSlowPID",
    "BatcherSlowPIDConfig",
    "SequencerFastPID",
    "SequencerFastPIDConfig",
    "HierarchicalPID",
    "HierarchicalPIDConfig",
    "SimulationEngine",
]
