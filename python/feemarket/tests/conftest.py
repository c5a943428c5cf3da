"""
Shared fixtures for the fee adjuster tests.
"""

import pytest


class FakeClock:
    """Manually advanced clock in seconds, injected in place of time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def target_block_size():
    return 15_000_000
