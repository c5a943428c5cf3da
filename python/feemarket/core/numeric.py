"""
Shared numeric helpers

Pure functions used by every adjuster:

- Max block size:        M = ⌊T × b⌋
- Window sum:            S_w = Σ gas_i over the last w blocks
- Target utilization:    U_T = S_w / (w × T)
- Burst utilization:     U_B = S_w / (w × M)
- Net gas delta:         Δ_w = Σ (gas_i − T) over the last w blocks

Utilizations are zero until at least w blocks exist.
"""

import math
from typing import Sequence

import numpy as np

from .blocks import Block


def calculate_max_block_size(target_block_size: int, burst_multiplier: float) -> int:
    """Maximum block size: target × burst multiplier, truncated to an integer"""
    return int(float(target_block_size) * burst_multiplier)


def _window(blocks: Sequence[Block], window_size: int) -> Sequence[Block]:
    start = max(len(blocks) - window_size, 0)
    return blocks[start:]


def sum_block_sizes_in_window(blocks: Sequence[Block], window_size: int) -> int:
    """Sum of gas used over the last window_size blocks (or all, if fewer)"""
    return sum(block.gas_used for block in _window(blocks, window_size))


def net_gas_delta(blocks: Sequence[Block], window_size: int, target_block_size: int) -> int:
    """Signed sum of (gas used − target) over the last window_size blocks"""
    return sum(block.gas_used - target_block_size for block in _window(blocks, window_size))


def calculate_target_utilization(blocks: Sequence[Block], window_size: int, target_block_size: int) -> float:
    """
    Windowed utilization relative to the target block size.

    Returns:
        S_w / (w × T), or 0.0 while fewer than window_size blocks exist
    """
    if window_size <= 0 or len(blocks) < window_size or target_block_size <= 0:
        return 0.0

    window_sum = float(sum_block_sizes_in_window(blocks, window_size))
    return window_sum / (float(window_size) * float(target_block_size))


def calculate_burst_utilization(blocks: Sequence[Block], window_size: int, max_block_size: int) -> float:
    """
    Windowed utilization relative to the maximum (burst) block size.

    Returns:
        S_w / (w × M), or 0.0 while fewer than window_size blocks exist
    """
    if window_size <= 0 or len(blocks) < window_size or max_block_size <= 0:
        return 0.0

    window_sum = float(sum_block_sizes_in_window(blocks, window_size))
    return window_sum / (float(window_size) * float(max_block_size))


def clamp_int(value: int, low: int, high: int) -> int:
    """Clamp an integer into [low, high]"""
    return min(high, max(low, value))


def clamp_float(value: float, low: float, high: float) -> float:
    """Clamp a float into [low, high]"""
    if value < low:
        return low
    if value > high:
        return high
    return value


def truncating_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero (not toward −∞ like //)"""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def regression_slope(values: Sequence[float]) -> float:
    """
    Slope of the least-squares line through (i, values[i]).

    slope = (n Σxy − Σx Σy) / (n Σx² − (Σx)²)

    Returns:
        The slope, or 0.0 for fewer than two points or a degenerate fit
    """
    n = len(values)
    if n < 2:
        return 0.0

    x = np.arange(n, dtype=float)
    y = np.asarray(values, dtype=float)

    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_x2 = (x * x).sum()

    denominator = n * sum_x2 - sum_x * sum_x
    if math.fabs(denominator) < 1e-10:
        return 0.0

    return float((n * sum_xy - sum_x * sum_y) / denominator)
