"""
Unit tests for the adjuster factory
"""

import pytest

from ..core.aimd_adjuster import AIMDFeeAdjuster
from ..core.batcher_slow_pid import BatcherSlowPID
from ..core.config import AIMDParameters, FeeMarketConfig, PIDParameters
from ..core.eip1559_adjuster import EIP1559FeeAdjuster
from ..core.factory import (
    AdjusterFactory,
    AdjusterType,
    create_adjuster,
    parse_adjuster_type,
    validate_adjuster_type,
)
from ..core.hierarchical_pid import HierarchicalPID
from ..core.pid_adjuster import PIDFeeAdjuster
from ..core.sequencer_fast_pid import SequencerFastPID
from ..core.validation import ConfigurationError, UnknownAdjusterTypeError


class TestParseAdjusterType:
    """Name parsing and validation."""

    @pytest.mark.parametrize("name,expected", [
        ("aimd", AdjusterType.aimd),
        ("  AIMD ", AdjusterType.aimd),
        ("eip1559", AdjusterType.eip1559),
        ("EIP-1559", AdjusterType.eip1559),
        ("pid", AdjusterType.pid),
        ("batcher-slow-pid", AdjusterType.batcher_slow_pid),
        ("batcher_slow_pid", AdjusterType.batcher_slow_pid),
        ("sequencer-fast-pid", AdjusterType.sequencer_fast_pid),
        ("Hierarchical-PID", AdjusterType.hierarchical_pid),
    ])
    def test_parse(self, name, expected):
        assert parse_adjuster_type(name) is expected

    def test_unknown_name(self):
        with pytest.raises(UnknownAdjusterTypeError):
            parse_adjuster_type("lqr")

    def test_unknown_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            parse_adjuster_type("")

    def test_validate(self):
        validate_adjuster_type(AdjusterType.pid)
        validate_adjuster_type("eip1559")
        with pytest.raises(UnknownAdjusterTypeError):
            validate_adjuster_type("eip-1559-ish")


class TestAdjusterFactory:
    """Construction of every algorithm."""

    @pytest.mark.parametrize("adjuster_type,cls", [
        (AdjusterType.aimd, AIMDFeeAdjuster),
        (AdjusterType.eip1559, EIP1559FeeAdjuster),
        (AdjusterType.pid, PIDFeeAdjuster),
        (AdjusterType.batcher_slow_pid, BatcherSlowPID),
        (AdjusterType.sequencer_fast_pid, SequencerFastPID),
        (AdjusterType.hierarchical_pid, HierarchicalPID),
    ])
    def test_creates_each_type(self, adjuster_type, cls, clock):
        adjuster = AdjusterFactory.create_adjuster(adjuster_type, clock=clock)
        assert isinstance(adjuster, cls)
        assert adjuster.get_current_state().base_fee == 1_000_000_000
        assert adjuster.get_max_block_size() == 30_000_000

    def test_core_fields_propagate(self, clock):
        cfg = FeeMarketConfig(target_block_size=10_000_000, burst_multiplier=1.5,
                              initial_base_fee=3_000_000_000, min_base_fee=1_000)

        for adjuster_type in AdjusterFactory.get_available_types():
            adjuster = create_adjuster(adjuster_type, cfg, clock=clock)
            assert adjuster.config.target_block_size == 10_000_000
            assert adjuster.get_max_block_size() == 15_000_000
            assert adjuster.get_current_state().base_fee == 3_000_000_000

    def test_parameter_sections_used(self):
        cfg = FeeMarketConfig(window_size=4,
                              aimd=AIMDParameters(alpha=0.02),
                              pid=PIDParameters(kp=0.3))

        aimd = create_adjuster("aimd", cfg)
        pid = create_adjuster("pid", cfg)

        assert aimd.config.window_size == 4
        assert aimd.config.alpha == 0.02
        assert pid.config.kp == 0.3
        assert pid.config.window_size == 4
        assert pid.config.max_integral == 100.0

    def test_string_type(self):
        assert isinstance(create_adjuster("EIP-1559"), EIP1559FeeAdjuster)

    def test_unknown_type(self):
        with pytest.raises(UnknownAdjusterTypeError):
            create_adjuster("unknown")

    def test_invalid_section_surfaces_at_construction(self):
        cfg = FeeMarketConfig(aimd=AIMDParameters(beta=2.0))
        with pytest.raises(ConfigurationError):
            create_adjuster(AdjusterType.aimd, cfg)

    def test_available_types_and_descriptions(self):
        types = AdjusterFactory.get_available_types()
        assert [t.value for t in types] == [
            "aimd", "eip1559", "pid", "batcher-slow-pid", "sequencer-fast-pid", "hierarchical-pid",
        ]
        for adjuster_type in types:
            assert AdjusterFactory.get_type_description(adjuster_type) != "Unknown adjuster type"
        assert AdjusterFactory.get_type_description("nope") == "Unknown adjuster type"
