"""
Fee Market Simulator

Pluggable fee-adjustment algorithms for block-based fee markets:

- AIMD: windowed learning rate with additive increase / multiplicative decrease
- EIP-1559: single-block corrector, 1/8 max change per block
- PID: windup-protected PID with regression derivative
- Hierarchical PID: strategic (DA cost) and tactical (per-block) layers
  coordinated through lossy parameter updates

All algorithms share the FeeAdjuster interface and are built by AdjusterFactory.
"""

__version__ = "1.0.0"

from .core.adjuster import FeeAdjuster
from .core.blocks import Block, State
from .core.config import FeeMarketConfig
from .core.factory import AdjusterFactory, AdjusterType, create_adjuster, parse_adjuster_type
from .core.simulation_engine import SimulationEngine
from .core.validation import ConfigurationError, UnknownAdjusterTypeError, setup_logging

__all__ = [
    "FeeAdjuster",
    "Block",
    "State",
    "FeeMarketConfig",
    "AdjusterFactory",
    "AdjusterType",
    "create_adjuster",
    "parse_adjuster_type",
    "SimulationEngine",
    "ConfigurationError",
    "UnknownAdjusterTypeError",
    "setup_logging",
]
