"""
Unit tests for the shared numeric helpers
"""

import pytest
from numpy.testing import assert_allclose

from ..core.blocks import Block
from ..core.numeric import (
    calculate_burst_utilization,
    calculate_max_block_size,
    calculate_target_utilization,
    clamp_float,
    clamp_int,
    net_gas_delta,
    regression_slope,
    sum_block_sizes_in_window,
    truncating_div,
)


def make_blocks(gas_values):
    return [Block(number=i + 1, gas_used=g, base_fee=1_000_000_000) for i, g in enumerate(gas_values)]


class TestWindowUtilization:
    """Windowed utilization over the block log."""

    def test_max_block_size(self):
        assert calculate_max_block_size(15_000_000, 2.0) == 30_000_000
        assert calculate_max_block_size(15_000_000, 1.5) == 22_500_000

    def test_window_sum_uses_latest_blocks(self):
        blocks = make_blocks([1, 2, 3, 4, 5])
        assert sum_block_sizes_in_window(blocks, 3) == 12

    def test_target_utilization_zero_until_window_full(self):
        blocks = make_blocks([15_000_000] * 4)
        assert calculate_target_utilization(blocks, 5, 15_000_000) == 0.0

    def test_target_and_burst_utilization(self):
        blocks = make_blocks([15_000_000, 30_000_000])
        assert_allclose(calculate_target_utilization(blocks, 2, 15_000_000), 1.5)
        assert_allclose(calculate_burst_utilization(blocks, 2, 30_000_000), 0.75)

    def test_zero_capacity_is_neutral(self):
        blocks = make_blocks([100])
        assert calculate_target_utilization(blocks, 1, 0) == 0.0
        assert calculate_burst_utilization(blocks, 0, 30_000_000) == 0.0

    def test_net_gas_delta_signed(self):
        blocks = make_blocks([10, 30, 20])
        assert net_gas_delta(blocks, 3, 20) == 0
        assert net_gas_delta(blocks, 2, 20) == 10


class TestArithmetic:
    """Clamping, truncating division and regression slope."""

    def test_clamps(self):
        assert clamp_int(5, 0, 3) == 3
        assert clamp_int(-1, 0, 3) == 0
        assert clamp_float(0.5, -0.25, 0.25) == 0.25
        assert clamp_float(-0.5, -0.25, 0.25) == -0.25
        assert clamp_float(0.1, -0.25, 0.25) == 0.1

    @pytest.mark.parametrize("numerator,denominator,expected", [
        (7, 2, 3),
        (-7, 2, -3),
        (7, -2, -3),
        (-7, -2, 3),
        (1_000_000_000 * 15_000_000, 15_000_000 * 8, 125_000_000),
    ])
    def test_truncating_div_rounds_toward_zero(self, numerator, denominator, expected):
        assert truncating_div(numerator, denominator) == expected

    def test_regression_slope_linear(self):
        assert_allclose(regression_slope([1.0, 3.0, 5.0, 7.0]), 2.0, rtol=1e-12)
        assert_allclose(regression_slope([0.5, 0.0, -0.5]), -0.5, rtol=1e-12)

    def test_regression_slope_degenerate(self):
        assert regression_slope([]) == 0.0
        assert regression_slope([1.0]) == 0.0
        assert regression_slope([2.0, 2.0, 2.0]) == 0.0
