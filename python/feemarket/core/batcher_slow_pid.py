"""
Batcher Slow PID (strategic layer)

Keeps a consensus-equivalent EIP-1559 base fee while simulating the
L1 / data-availability cost pressure each block creates, and on a
wall-clock cadence turns that pressure into parameter updates for the
tactical (sequencer) layer.

Simulated DA metrics for a block with gas g and target T:
    L1 gas price   p = ⌊20 gwei × (1 + 0.5 g/T)⌋
    blob price       = ⌊p / 16⌋
    DA usage         = ⌊g / 1000⌋ bytes of a 131,072-byte blob
    batch cost       = p × 100,000
    efficiency       = min(usage / capacity, 1)

Strategic update (every update_frequency seconds):
    ū  = mean DA utilization over the window
    e  = ū − u_target
    s  = Kp e + Ki I + Kd (e − e_prev)
then a three-tier policy maps (s, ū) to sequencer gains, target
utilization, max fee change and throttling:
    ū ≤ u_target            loosen for UX
    u_target < ū ≤ u_max    tighten proportionally to pressure
    ū > u_max               emergency throttling
Gains are rate-limited against the previously sent values and clamped
into their configured ranges before being sent.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

import numpy as np

from .adjuster import BaseAdjusterConfig, FeeAdjuster
from .blocks import Block, State
from .coordination import DEFAULT_CHANNEL_CAPACITY, ParameterUpdateChannel, SequencerParamUpdate
from .eip1559_adjuster import eip1559_next_base_fee
from .numeric import calculate_burst_utilization, calculate_target_utilization, clamp_float
from .pid_adjuster import PIDState
from .validation import validate_ordered_range, validate_range

logger = logging.getLogger(__name__)

# Simulated L1 / DA environment
BASE_L1_GAS_PRICE = 20_000_000_000   # 20 gwei
L1_UTILIZATION_SENSITIVITY = 0.5
BLOB_PRICE_DIVISOR = 16
GAS_PER_DA_BYTE = 1000
DA_CAPACITY_BYTES = 131_072          # 128 KB blob
BATCH_SUBMISSION_GAS = 100_000

# Sequencer parameter baselines
BASE_KP = 0.8
BASE_KI = 0.15
BASE_KD = 0.05
BASE_TARGET_UTIL = 1.0
BASE_MAX_FEE_CHANGE = 0.25


@dataclass(frozen=True)
class DAMetrics:
    """Simulated L1 data-availability observation for one block."""

    timestamp: float
    l1_gas_price: int         # wei
    blob_price: int           # wei
    da_usage: int             # bytes used
    da_capacity: int          # bytes available
    batch_cost: int           # wei
    batch_efficiency: float   # usage / capacity, clamped to 1.0

    @property
    def utilization(self) -> float:
        return self.da_usage / self.da_capacity if self.da_capacity else 0.0


@dataclass(frozen=True)
class BatcherSlowPIDConfig(BaseAdjusterConfig):
    """Configuration for the strategic batcher PID."""

    da_window_size: int = 10             # DA metrics kept (~2 minutes of blocks)
    update_frequency: float = 30.0       # Seconds between strategic updates

    # Strategic PID gains
    kp: float = 2.0
    ki: float = 0.306
    kd: float = 0.3

    # DA utilization targets
    target_da_utilization: float = 0.75
    max_da_utilization: float = 0.90     # Emergency throttling threshold

    # Absolute ranges for the gains sent to the sequencer
    sequencer_kp_range: Tuple[float, float] = (0.1, 2.0)
    sequencer_ki_range: Tuple[float, float] = (0.01, 0.5)
    sequencer_kd_range: Tuple[float, float] = (0.005, 0.2)
    max_parameter_change: float = 0.2    # Max fractional gain change per update

    max_integral: float = 10.0
    min_integral: float = -10.0

    channel_capacity: int = DEFAULT_CHANNEL_CAPACITY

    def _parameter_errors(self) -> List[str]:
        errors = super()._parameter_errors()

        if self.da_window_size <= 0:
            errors.append(f"da_window_size must be positive, got {self.da_window_size}")
        if self.update_frequency <= 0:
            errors.append(f"update_frequency must be positive, got {self.update_frequency}")
        validate_range(self.target_da_utilization, 0.0, 1.0, "target_da_utilization", errors)
        validate_range(self.max_da_utilization, 0.0, 1.0, "max_da_utilization", errors)
        if self.target_da_utilization >= self.max_da_utilization:
            errors.append(
                f"target_da_utilization ({self.target_da_utilization}) must be below "
                f"max_da_utilization ({self.max_da_utilization})"
            )
        validate_ordered_range(self.sequencer_kp_range, "sequencer_kp_range", errors)
        validate_ordered_range(self.sequencer_ki_range, "sequencer_ki_range", errors)
        validate_ordered_range(self.sequencer_kd_range, "sequencer_kd_range", errors)
        validate_range(self.max_parameter_change, 0.0, 1.0, "max_parameter_change", errors)
        if self.max_integral <= self.min_integral:
            errors.append(
                f"max_integral ({self.max_integral}) must be greater than min_integral ({self.min_integral})"
            )
        if self.channel_capacity <= 0:
            errors.append(f"channel_capacity must be positive, got {self.channel_capacity}")

        return errors


def clamp_parameter_change(current: float, desired: float, max_change: float) -> float:
    """Limit a move from current toward desired to ±|current| × max_change."""
    change = desired - current
    max_abs_change = abs(current) * max_change

    if change > max_abs_change:
        return current + max_abs_change
    if change < -max_abs_change:
        return current - max_abs_change
    return desired


class BatcherSlowPID(FeeAdjuster):
    """Strategic DA cost management with sequencer coordination."""

    def __init__(self, config: Optional[BatcherSlowPIDConfig] = None,
                 clock: Optional[Callable[[], float]] = None):
        """
        Args:
            config: Strategic layer configuration (defaults if None)
            clock: Monotonic clock in seconds driving the update cadence
        """
        config = config if config is not None else BatcherSlowPIDConfig()
        super().__init__(config)
        self.clock = clock if clock is not None else time.monotonic

        self.da_metrics: Deque[DAMetrics] = deque(maxlen=config.da_window_size)
        self.pid = PIDState(config.da_window_size, config.min_integral, config.max_integral)
        self.parameter_updates = ParameterUpdateChannel(config.channel_capacity, name="batcher-slow-pid")

        self.last_update_time = self.clock()
        self.sequencer_params = self._initial_sequencer_params()
        self.da_util_avg = 0.0
        self.emergency_mode = False

    def _initial_sequencer_params(self) -> SequencerParamUpdate:
        return SequencerParamUpdate(
            timestamp=self.clock(),
            new_kp=BASE_KP,
            new_ki=BASE_KI,
            new_kd=BASE_KD,
            new_target_util=BASE_TARGET_UTIL,
            new_max_fee_change=BASE_MAX_FEE_CHANGE,
            throttling_active=False,
            reason="Initial configuration",
        )

    def process_block(self, gas_used: int) -> None:
        block = self._append_block(gas_used)

        self.da_metrics.append(self.simulate_da_metrics(block))
        self.da_util_avg = self.calculate_current_da_utilization()

        cfg = self.config
        self.base_fee = eip1559_next_base_fee(self.base_fee, int(gas_used), cfg.target_block_size, cfg.min_base_fee)

        if self.clock() - self.last_update_time >= cfg.update_frequency:
            self.update_strategic_parameters()
            self.last_update_time = self.clock()

    def simulate_da_metrics(self, block: Block) -> DAMetrics:
        """Derive L1/DA cost pressure deterministically from block gas usage."""
        utilization_factor = float(block.gas_used) / float(self.config.target_block_size)

        l1_gas_price = int(float(BASE_L1_GAS_PRICE) * (1.0 + utilization_factor * L1_UTILIZATION_SENSITIVITY))
        da_usage = block.gas_used // GAS_PER_DA_BYTE

        return DAMetrics(
            timestamp=self.clock(),
            l1_gas_price=l1_gas_price,
            blob_price=l1_gas_price // BLOB_PRICE_DIVISOR,
            da_usage=da_usage,
            da_capacity=DA_CAPACITY_BYTES,
            batch_cost=l1_gas_price * BATCH_SUBMISSION_GAS,
            batch_efficiency=min(float(da_usage) / float(DA_CAPACITY_BYTES), 1.0),
        )

    def calculate_current_da_utilization(self) -> float:
        """Mean DA utilization over the metrics window, 0.0 if empty."""
        if not self.da_metrics:
            return 0.0
        return float(np.mean([metric.utilization for metric in self.da_metrics]))

    def update_strategic_parameters(self) -> None:
        """Run the strategic PID loop and send the resulting sequencer parameters."""
        if not self.da_metrics:
            return

        current_da_util = self.calculate_current_da_utilization()
        da_util_error = current_da_util - self.config.target_da_utilization

        self.pid.update(da_util_error)
        strategic_output = self.calculate_strategic_output(da_util_error)

        new_params = self.calculate_sequencer_parameters(strategic_output, current_da_util)
        logger.info(
            f"Strategic update: DA util {current_da_util:.2%}, output {strategic_output:.4f}, "
            f"Kp={new_params.new_kp:.3f}, Ki={new_params.new_ki:.3f}, Kd={new_params.new_kd:.3f}"
        )
        self.send_parameter_update(new_params)

    def calculate_strategic_output(self, error: float) -> float:
        cfg = self.config
        return cfg.kp * error + cfg.ki * self.pid.integral + cfg.kd * self.pid.simple_derivative()

    def calculate_sequencer_parameters(self, strategic_output: float, current_da_util: float) -> SequencerParamUpdate:
        """Map DA pressure to a rate-limited, range-clamped sequencer configuration."""
        cfg = self.config

        new_kp = BASE_KP
        new_ki = BASE_KI
        new_kd = BASE_KD
        new_target_util = BASE_TARGET_UTIL
        new_max_fee_change = BASE_MAX_FEE_CHANGE
        throttling_active = False
        throttling_intensity = 0.0

        if current_da_util > cfg.max_da_utilization:
            # Emergency: aggressive throttling and a reduced target
            self.emergency_mode = True
            throttling_active = True
            throttling_intensity = min(0.5, (current_da_util - cfg.max_da_utilization) * 2.0)
            new_target_util = 0.7
            new_kp = 1.5
            reason = f"Emergency throttling: DA util {current_da_util * 100:.2f}%"

        elif current_da_util > cfg.target_da_utilization:
            pressure_factor = ((current_da_util - cfg.target_da_utilization) /
                               (cfg.max_da_utilization - cfg.target_da_utilization))

            new_kp = BASE_KP + 0.7 * pressure_factor
            new_ki = BASE_KI - 0.05 * pressure_factor
            new_max_fee_change = BASE_MAX_FEE_CHANGE + 0.15 * pressure_factor
            reason = f"DA pressure adjustment: util {current_da_util * 100:.2f}%"

        else:
            self.emergency_mode = False
            new_kp = 0.6
            new_ki = 0.2
            new_max_fee_change = 0.2
            reason = f"Low DA pressure: optimizing UX, util {current_da_util * 100:.2f}%"

        max_change = cfg.max_parameter_change
        new_kp = clamp_parameter_change(self.sequencer_params.new_kp, new_kp, max_change)
        new_ki = clamp_parameter_change(self.sequencer_params.new_ki, new_ki, max_change)
        new_kd = clamp_parameter_change(self.sequencer_params.new_kd, new_kd, max_change)

        new_kp = clamp_float(new_kp, *cfg.sequencer_kp_range)
        new_ki = clamp_float(new_ki, *cfg.sequencer_ki_range)
        new_kd = clamp_float(new_kd, *cfg.sequencer_kd_range)

        return SequencerParamUpdate(
            timestamp=self.clock(),
            new_kp=new_kp,
            new_ki=new_ki,
            new_kd=new_kd,
            new_target_util=new_target_util,
            new_max_fee_change=new_max_fee_change,
            throttling_active=throttling_active,
            throttling_intensity=throttling_intensity,
            reason=f"{reason} (strategic output {strategic_output:+.3f})",
        )

    def send_parameter_update(self, params: SequencerParamUpdate) -> None:
        """Record params as the latest sent values and push them onto the outbound channel."""
        self.sequencer_params = params
        self.parameter_updates.send(params)

    def get_parameter_updates(self) -> ParameterUpdateChannel:
        """Outbound channel of sequencer parameter updates."""
        return self.parameter_updates

    def get_current_state(self) -> State:
        cfg = self.config
        target_utilization = 0.0
        burst_utilization = 0.0

        if len(self.blocks) >= cfg.da_window_size:
            target_utilization = calculate_target_utilization(self.blocks, cfg.da_window_size, cfg.target_block_size)
            burst_utilization = calculate_burst_utilization(self.blocks, cfg.da_window_size, self.get_max_block_size())

        return State(
            base_fee=self.base_fee,
            learning_rate=self.da_util_avg,
            target_utilization=target_utilization,
            burst_utilization=burst_utilization,
        )

    def reset(self) -> None:
        self.blocks = []
        self.base_fee = self.config.initial_base_fee
        self.da_metrics.clear()
        self.pid.reset()
        self.parameter_updates.clear()
        self.last_update_time = self.clock()
        self.sequencer_params = self._initial_sequencer_params()
        self.da_util_avg = 0.0
        self.emergency_mode = False

    def get_diagnostics(self) -> Dict[str, Any]:
        """Latest DA observation and the currently advertised sequencer parameters."""
        diagnostics: Dict[str, Any] = {}

        if self.da_metrics:
            latest = self.da_metrics[-1]
            diagnostics['l1_gas_price_gwei'] = latest.l1_gas_price / 1e9
            diagnostics['blob_price_gwei'] = latest.blob_price / 1e9
            diagnostics['da_utilization'] = latest.batch_efficiency
            diagnostics['batch_cost_eth'] = latest.batch_cost / 1e18

        diagnostics['current_sequencer_kp'] = self.sequencer_params.new_kp
        diagnostics['current_sequencer_ki'] = self.sequencer_params.new_ki
        diagnostics['current_sequencer_kd'] = self.sequencer_params.new_kd
        diagnostics['throttling_active'] = self.sequencer_params.throttling_active
        diagnostics['emergency_mode'] = self.emergency_mode
        diagnostics['last_update_reason'] = self.sequencer_params.reason
        diagnostics['pending_updates'] = len(self.parameter_updates)

        return diagnostics
