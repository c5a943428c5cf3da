"""
Unit tests for PIDFeeAdjuster and PIDState
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from ..core.pid_adjuster import PIDConfig, PIDFeeAdjuster, PIDState
from ..core.validation import ConfigurationError


class TestPIDState:
    """Integral windup protection and derivative estimation."""

    def test_integral_clamped(self):
        pid = PIDState(window_size=3, min_integral=-1.0, max_integral=1.0)
        for _ in range(5):
            pid.update(0.6)
        assert pid.integral == 1.0

        for _ in range(10):
            pid.update(-0.6)
        assert pid.integral == -1.0

    def test_derivative_needs_two_errors(self):
        pid = PIDState(window_size=3, min_integral=-10, max_integral=10)
        assert pid.smoothed_derivative() == 0.0
        pid.update(0.5)
        assert pid.smoothed_derivative() == 0.0
        assert pid.simple_derivative() == 0.0

    def test_simple_difference_before_window_full(self):
        pid = PIDState(window_size=4, min_integral=-10, max_integral=10)
        pid.update(0.1)
        pid.update(0.4)
        assert_allclose(pid.smoothed_derivative(), 0.3)

    def test_regression_once_window_full(self):
        pid = PIDState(window_size=3, min_integral=-10, max_integral=10)
        for error in [0.0, 0.1, 0.5]:
            pid.update(error)
        # slope of least squares through (0, 0), (1, 0.1), (2, 0.5)
        assert_allclose(pid.smoothed_derivative(), 0.25, rtol=1e-9)
        assert_allclose(pid.simple_derivative(), 0.4, rtol=1e-9)

    def test_history_bounded(self):
        pid = PIDState(window_size=3, min_integral=-10, max_integral=10)
        for error in range(10):
            pid.update(float(error))
        assert list(pid.error_history) == [7.0, 8.0, 9.0]
        assert pid.last_error == 9.0

    def test_reset(self):
        pid = PIDState(window_size=3, min_integral=-10, max_integral=10)
        pid.update(1.0)
        pid.reset()
        assert pid.integral == 0.0
        assert pid.last_error == 0.0
        assert len(pid.error_history) == 0


class TestPIDFeeAdjuster:
    """Fee control on per-block utilization error."""

    def test_no_op_under_exact_target(self, target_block_size):
        adjuster = PIDFeeAdjuster()
        adjuster.process_block(target_block_size)

        assert adjuster.pid.last_error == 0.0
        assert adjuster.last_control_output == 0.0
        assert adjuster.get_current_state().base_fee == 1_000_000_000

    def test_first_full_block(self):
        adjuster = PIDFeeAdjuster()
        adjuster.process_block(30_000_000)

        # error 1.0: 0.1 × 1 + 0.01 × 1 + 0.05 × 0
        assert_allclose(adjuster.last_control_output, 0.11, rtol=1e-12)
        assert_allclose(adjuster.get_current_state().base_fee, 1_110_000_000, rtol=1e-9)

    def test_output_clamped_to_max_fee_change(self):
        adjuster = PIDFeeAdjuster(PIDConfig(kp=5.0))
        adjuster.process_block(30_000_000)

        assert adjuster.last_control_output == 0.25
        assert adjuster.get_current_state().base_fee == 1_250_000_000

    def test_effective_learning_rate(self):
        adjuster = PIDFeeAdjuster()
        assert adjuster.get_current_state().learning_rate == 0.0

        adjuster.process_block(30_000_000)
        # a single block has no earlier fee to compare against
        assert adjuster.get_current_state().learning_rate == 0.0

        adjuster.process_block(0)
        # first block moved the fee 11%; the empty block is 100% below target
        assert_allclose(adjuster.get_current_state().learning_rate, 0.11, rtol=1e-6)

    def test_effective_learning_rate_pairs_last_two_blocks(self):
        adjuster = PIDFeeAdjuster()
        for gas in (30_000_000, 30_000_000, 22_500_000):
            adjuster.process_block(gas)

        prev_block, last_block = adjuster.blocks[-2], adjuster.blocks[-1]
        fee_change = abs(last_block.base_fee - prev_block.base_fee) / prev_block.base_fee
        # last block sits 50% above target
        expected = min(fee_change / 0.5, adjuster.config.max_fee_change)
        assert_allclose(adjuster.get_current_state().learning_rate, expected, rtol=1e-9)

    def test_effective_learning_rate_zero_at_target(self, target_block_size):
        adjuster = PIDFeeAdjuster()
        adjuster.process_block(target_block_size)
        assert adjuster.get_current_state().learning_rate == 0.0

    def test_learning_rate_within_bounds(self):
        cfg = PIDConfig()
        adjuster = PIDFeeAdjuster(cfg)
        rng = np.random.default_rng(11)

        for gas in rng.integers(0, 60_000_000, size=300):
            adjuster.process_block(int(gas))
            assert 0.0 <= adjuster.get_current_state().learning_rate <= cfg.max_fee_change

    def test_fee_never_below_minimum(self):
        cfg = PIDConfig(min_base_fee=800_000_000)
        adjuster = PIDFeeAdjuster(cfg)

        for _ in range(100):
            adjuster.process_block(0)
            assert adjuster.get_current_state().base_fee >= cfg.min_base_fee

    def test_utilization_uses_available_blocks(self):
        adjuster = PIDFeeAdjuster(PIDConfig(window_size=3))
        adjuster.process_block(30_000_000)

        state = adjuster.get_current_state()
        assert_allclose(state.target_utilization, 2.0)
        assert_allclose(state.burst_utilization, 1.0)

    def test_reset_replay_identical(self):
        gas_series = [30_000_000, 0, 15_000_000, 40_000_000, 1_000_000] * 5
        adjuster = PIDFeeAdjuster()
        fresh = PIDFeeAdjuster()

        for gas in gas_series:
            adjuster.process_block(gas)
        adjuster.reset()
        for gas in gas_series:
            adjuster.process_block(gas)
            fresh.process_block(gas)

        assert adjuster.get_current_state() == fresh.get_current_state()
        assert adjuster.pid.integral == fresh.pid.integral

    def test_invalid_params(self):
        with pytest.raises(ConfigurationError):
            PIDConfig(kp=-0.1)
        with pytest.raises(ConfigurationError):
            PIDConfig(max_integral=-5.0, min_integral=5.0)
        with pytest.raises(ConfigurationError):
            PIDConfig(max_fee_change=1.5)
