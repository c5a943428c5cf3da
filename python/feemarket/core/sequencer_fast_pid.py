"""
Sequencer Fast PID (tactical layer)

Per-block PID fee execution whose gains, target utilization and max fee
change are overwritten by parameter updates from the strategic layer.
Pending updates are polled without blocking at the start of every block.

Per block with utilization u = g/T and active parameters P:
    e = u − P.target_utilization
    b = 1.5 (configurable) if u > 1.2, 0.8 if u < 0.8, else 1.0
    out = b·Kp e + b·Ki I + b·Kd (e − e_prev)

Limits:
    Δ_max = P.max_fee_change, widened to emergency_max_change in emergency
    throttling with intensity θ:
        Δ_max ← Δ_max (1 − 0.5 θ)
        out   ← out (1 − 0.3 θ)   when out < 0
    F ← max(F_min, ⌊F (1 + clip(out, −Δ_max, Δ_max))⌋)

Emergency mode hysteresis: enter after 2 consecutive blocks with
u > emergency_threshold, exit after 3 consecutive blocks with u < 0.8.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .adjuster import BaseAdjusterConfig, FeeAdjuster
from .blocks import State
from .coordination import (
    DEFAULT_CHANNEL_CAPACITY,
    GuardedParameters,
    ParameterUpdateChannel,
    SequencerParamUpdate,
    SequencerParameters,
)
from .numeric import calculate_burst_utilization, calculate_target_utilization, clamp_float
from .pid_adjuster import PIDState, effective_window

logger = logging.getLogger(__name__)

EMERGENCY_ENTRY_BLOCKS = 2
EMERGENCY_EXIT_BLOCKS = 3
LOW_UTILIZATION = 0.8
HIGH_UTILIZATION = 1.2
DAMPENED_RESPONSIVENESS = 0.8
EMERGENCY_RATE_MULTIPLIER = 1.5


@dataclass(frozen=True)
class SequencerFastPIDConfig(BaseAdjusterConfig):
    """Configuration for the tactical sequencer PID."""

    # Initial gains (overridden by strategic updates)
    kp: float = 0.8
    ki: float = 0.15
    kd: float = 0.25

    max_integral: float = 5.0
    min_integral: float = -5.0

    max_fee_change: float = 0.25
    window_size: int = 3

    responsiveness_boost: float = 1.5     # Gain multiplier above 120% utilization
    emergency_threshold: float = 1.5      # Utilization that counts toward emergency mode
    emergency_max_change: float = 0.5     # Max fee change while in emergency mode

    initial_target_utilization: float = 1.0
    channel_capacity: int = DEFAULT_CHANNEL_CAPACITY

    def _parameter_errors(self) -> List[str]:
        errors = super()._parameter_errors()

        for name in ("kp", "ki", "kd"):
            if getattr(self, name) < 0:
                errors.append(f"{name} must not be negative, got {getattr(self, name)}")
        if self.max_integral <= self.min_integral:
            errors.append(
                f"max_integral ({self.max_integral}) must be greater than min_integral ({self.min_integral})"
            )
        if not (0 < self.max_fee_change <= 1.0):
            errors.append(f"max_fee_change must be in (0, 1.0], got {self.max_fee_change}")
        if self.window_size <= 0:
            errors.append(f"window_size must be positive, got {self.window_size}")
        if self.responsiveness_boost <= 0:
            errors.append(f"responsiveness_boost must be positive, got {self.responsiveness_boost}")
        if self.emergency_threshold <= 0:
            errors.append(f"emergency_threshold must be positive, got {self.emergency_threshold}")
        if not (0 < self.emergency_max_change <= 1.0):
            errors.append(f"emergency_max_change must be in (0, 1.0], got {self.emergency_max_change}")
        if self.initial_target_utilization <= 0:
            errors.append(
                f"initial_target_utilization must be positive, got {self.initial_target_utilization}"
            )
        if self.channel_capacity <= 0:
            errors.append(f"channel_capacity must be positive, got {self.channel_capacity}")

        return errors

    def initial_parameters(self, updated_at: float = 0.0) -> SequencerParameters:
        return SequencerParameters(
            kp=self.kp,
            ki=self.ki,
            kd=self.kd,
            target_utilization=self.initial_target_utilization,
            max_fee_change=self.max_fee_change,
            updated_at=updated_at,
        )


class SequencerFastPID(FeeAdjuster):
    """Fast consensus-layer fee adjustment with strategically tuned parameters."""

    def __init__(self, config: Optional[SequencerFastPIDConfig] = None,
                 clock: Optional[Callable[[], float]] = None):
        """
        Args:
            config: Tactical layer configuration (defaults if None)
            clock: Clock in seconds used to timestamp parameter updates
        """
        config = config if config is not None else SequencerFastPIDConfig()
        super().__init__(config)
        self.clock = clock if clock is not None else time.monotonic

        self.pid = PIDState(config.window_size, config.min_integral, config.max_integral)
        self.params = GuardedParameters(config.initial_parameters(updated_at=self.clock()))
        self.parameter_updates = ParameterUpdateChannel(config.channel_capacity, name="sequencer-fast-pid")

        self.emergency_mode = False
        self.consecutive_high_util = 0
        self.consecutive_low_util = 0
        self.responsiveness_boost = 1.0

    def process_block(self, gas_used: int) -> None:
        self.check_parameter_updates()
        self._append_block(gas_used)

        target_util = self.params.snapshot().target_utilization
        current_utilization = float(gas_used) / float(self.config.target_block_size)
        error = current_utilization - target_util

        self.update_emergency_mode(current_utilization)
        self.update_responsiveness(current_utilization)

        self.pid.update(error)
        self._adjust_base_fee(error)

    def check_parameter_updates(self) -> None:
        """Apply at most one pending update from the strategic layer, without blocking."""
        update = self.parameter_updates.try_receive()
        if update is not None:
            self.apply_parameter_update(update)

    def apply_parameter_update(self, update: SequencerParamUpdate) -> None:
        """Overwrite the active parameters (single writer)."""
        self.params.store(SequencerParameters.from_update(update, updated_at=self.clock()))

        logger.info(
            f"Fast PID received parameter update: Kp={update.new_kp:.3f}, Ki={update.new_ki:.3f}, "
            f"Kd={update.new_kd:.3f}, TargetUtil={update.new_target_util:.3f}, Reason={update.reason}"
        )

    @property
    def last_parameter_update(self) -> float:
        return self.params.snapshot().updated_at

    @property
    def last_update_reason(self) -> str:
        return self.params.snapshot().reason

    def send_parameter_update(self, update: SequencerParamUpdate) -> bool:
        """Queue an update for this layer; the oldest pending update is dropped if full."""
        return self.parameter_updates.send(update)

    def update_emergency_mode(self, utilization: float) -> None:
        if utilization > self.config.emergency_threshold:
            self.consecutive_high_util += 1
            self.consecutive_low_util = 0

            if self.consecutive_high_util >= EMERGENCY_ENTRY_BLOCKS and not self.emergency_mode:
                self.emergency_mode = True
                logger.info(
                    f"Block {len(self.blocks)}: Entering emergency mode (utilization: {utilization * 100:.2f}%)"
                )
        elif utilization < LOW_UTILIZATION:
            self.consecutive_low_util += 1
            self.consecutive_high_util = 0

            if self.consecutive_low_util >= EMERGENCY_EXIT_BLOCKS and self.emergency_mode:
                self.emergency_mode = False
                logger.info(
                    f"Block {len(self.blocks)}: Exiting emergency mode (utilization: {utilization * 100:.2f}%)"
                )
        else:
            # Counters track consecutive blocks only
            self.consecutive_high_util = 0
            self.consecutive_low_util = 0

    def update_responsiveness(self, utilization: float) -> None:
        if utilization > HIGH_UTILIZATION:
            self.responsiveness_boost = self.config.responsiveness_boost
        elif utilization < LOW_UTILIZATION:
            self.responsiveness_boost = DAMPENED_RESPONSIVENESS
        else:
            self.responsiveness_boost = 1.0

    def calculate_control_output(self, error: float) -> float:
        """Boosted, emergency-widened, throttle-biased and clamped PID output."""
        params = self.params.snapshot()
        boost = self.responsiveness_boost

        control_output = (params.kp * boost * error
                          + params.ki * boost * self.pid.integral
                          + params.kd * boost * self.pid.simple_derivative())

        max_change = params.max_fee_change
        if self.emergency_mode:
            max_change = max(max_change, self.config.emergency_max_change)

        if params.throttling_active:
            intensity = params.throttling_intensity
            max_change *= (1.0 - intensity * 0.5)
            # Throttling never lets fees fall faster than normal
            if control_output < 0:
                control_output *= (1.0 - intensity * 0.3)

        return clamp_float(control_output, -max_change, max_change)

    def _adjust_base_fee(self, error: float) -> None:
        control_output = self.calculate_control_output(error)
        self.base_fee = self._apply_fee_floor(float(self.base_fee) * (1.0 + control_output))

    def calculate_effective_learning_rate(self) -> float:
        """Mean of the active gains, scaled by emergency mode and responsiveness."""
        params = self.params.snapshot()
        base_rate = (params.kp + params.ki + params.kd) / 3.0

        if self.emergency_mode:
            base_rate *= EMERGENCY_RATE_MULTIPLIER
        return base_rate * self.responsiveness_boost

    def get_current_state(self) -> State:
        target_utilization = 0.0
        burst_utilization = 0.0

        if self.blocks:
            window = effective_window(self.config.window_size, len(self.blocks))
            target_utilization = calculate_target_utilization(self.blocks, window, self.config.target_block_size)
            burst_utilization = calculate_burst_utilization(self.blocks, window, self.get_max_block_size())

        return State(
            base_fee=self.base_fee,
            learning_rate=self.calculate_effective_learning_rate(),
            target_utilization=target_utilization,
            burst_utilization=burst_utilization,
        )

    def reset(self) -> None:
        self.blocks = []
        self.base_fee = self.config.initial_base_fee
        self.pid.reset()
        self.params.store(self.config.initial_parameters(updated_at=self.clock()))
        self.parameter_updates.clear()

        self.emergency_mode = False
        self.consecutive_high_util = 0
        self.consecutive_low_util = 0
        self.responsiveness_boost = 1.0

    def get_diagnostics(self) -> Dict[str, Any]:
        params = self.params.snapshot()
        return {
            'current_kp': params.kp,
            'current_ki': params.ki,
            'current_kd': params.kd,
            'current_target_util': params.target_utilization,
            'current_max_fee_change': params.max_fee_change,
            'throttling_active': params.throttling_active,
            'throttling_intensity': params.throttling_intensity,
            'emergency_mode': self.emergency_mode,
            'responsiveness_boost': self.responsiveness_boost,
            'integral_term': self.pid.integral,
            'last_error': self.pid.last_error,
            'consecutive_high_util': self.consecutive_high_util,
            'consecutive_low_util': self.consecutive_low_util,
            'last_parameter_update': params.updated_at,
            'last_update_reason': params.reason,
            'pending_updates': len(self.parameter_updates),
        }
