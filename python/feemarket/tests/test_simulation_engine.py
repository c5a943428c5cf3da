"""
Unit tests for SimulationEngine
"""

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose

from ..core.aimd_adjuster import AIMDFeeAdjuster
from ..core.eip1559_adjuster import EIP1559FeeAdjuster
from ..core.factory import AdjusterFactory, create_adjuster
from ..core.simulation_engine import SimulationEngine

COLUMNS = ['block', 'gas_used', 'base_fee', 'base_fee_gwei', 'learning_rate',
           'target_utilization', 'burst_utilization']


class TestSimulationEngine:
    """Series simulation over any adjuster."""

    def test_step_result(self):
        engine = SimulationEngine(EIP1559FeeAdjuster())
        result = engine.simulate_step(30_000_000)

        assert list(result) == COLUMNS
        assert result['block'] == 1
        assert result['base_fee'] == 1_125_000_000
        assert_allclose(result['base_fee_gwei'], 1.125)

    def test_series_dataframe(self):
        engine = SimulationEngine(EIP1559FeeAdjuster())
        df = engine.simulate_series(np.array([30_000_000, 30_000_000, 15_000_000]))

        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == COLUMNS
        assert len(df) == 3
        assert df['block'].tolist() == [1, 2, 3]
        assert df['base_fee'].tolist() == [1_125_000_000, 1_265_625_000, 1_265_625_000]

    def test_series_resets_first(self):
        engine = SimulationEngine(AIMDFeeAdjuster())
        gas_series = [30_000_000] * 15

        first = engine.simulate_series(gas_series)
        second = engine.simulate_series(gas_series)

        pd.testing.assert_frame_equal(first, second)

    def test_rejects_negative_gas(self):
        engine = SimulationEngine(EIP1559FeeAdjuster())
        with pytest.raises(ValueError):
            engine.simulate_series([15_000_000, -1])

    def test_rejects_empty_series(self):
        engine = SimulationEngine(EIP1559FeeAdjuster())
        with pytest.raises(ValueError):
            engine.simulate_series([])

    def test_every_algorithm_runs(self, clock):
        rng = np.random.default_rng(0)
        gas_series = rng.integers(0, 45_000_000, size=50)

        for adjuster_type in AdjusterFactory.get_available_types():
            engine = SimulationEngine(create_adjuster(adjuster_type, clock=clock))
            df = engine.simulate_series(gas_series)

            assert len(df) == 50
            assert (df['base_fee'] >= 0).all()
            assert df['gas_used'].tolist() == gas_series.tolist()

    def test_state_summary(self):
        engine = SimulationEngine(EIP1559FeeAdjuster())
        engine.simulate_series([30_000_000])

        summary = engine.get_state_summary()
        assert summary['adjuster'] == "EIP1559FeeAdjuster"
        assert summary['blocks_processed'] == 1
        assert summary['base_fee'] == 1_125_000_000
        assert summary['max_block_size'] == 30_000_000

        engine.reset_state()
        assert engine.get_state_summary()['blocks_processed'] == 0
