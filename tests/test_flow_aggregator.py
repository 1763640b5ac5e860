"""
Unit tests for bottom-up flow aggregation.

Tests cover:
- Sub-pipe and main-pipe flow
- Emitters loading every sub-pipe they attach to
- Networks without sub-pipes or main pipes
- Longest main and sub runs
- Per-pipe flow records
"""
import pytest

from greenhouse_irrigation.domain.models import ElementType, NetworkSnapshot
from greenhouse_irrigation.domain.reports import PipeFlowSummary
from greenhouse_irrigation.services.domain.flow_aggregator import (
    FlowRateConfig,
    NetworkFlowAggregator,
)


@pytest.fixture
def aggregator(resolver, flow_rates) -> NetworkFlowAggregator:
    return NetworkFlowAggregator(resolver, flow_rates)


def _sprinklers(make_element, coords, prefix="spr"):
    return [
        make_element(f"{prefix}-{i}", ElementType.SPRINKLER, [c])
        for i, c in enumerate(coords)
    ]


# ============================================================
# Flow Rate Tests
# ============================================================

class TestFlowRates:
    """Tests for flow propagation through sub and main pipes."""

    def test_reference_network(self, aggregator, simple_network):
        """Three sprinklers per sub-pipe, two sub-pipes on one main."""
        summary = aggregator.aggregate(simple_network).summary

        assert summary.main_pipe_count == 1
        assert summary.sub_pipe_count == 2
        assert summary.total_emitters == 6
        assert summary.total_flow_rate == 60.0
        assert summary.sub_pipe_flow_rate == 30.0
        assert summary.main_pipe_flow_rate == 60.0
        assert summary.connections.main_to_sub == 2
        assert summary.connections.sub_to_emitters == 6

    def test_emitter_between_sub_pipes_loads_both(self, aggregator, make_element):
        """A sprinkler within 12 px of two sub-pipes counts toward each."""
        snapshot = NetworkSnapshot(irrigation_elements=[
            make_element("sub-a", ElementType.SUB_PIPE, [(0, 0), (100, 0)]),
            make_element("sub-b", ElementType.SUB_PIPE, [(0, 10), (100, 10)]),
            make_element("spr-1", ElementType.SPRINKLER, [(50, 4)]),
        ])

        analysis = aggregator.aggregate(snapshot)
        flows = {p.pipe_id: p.flow_rate for p in analysis.pipes}

        assert flows == {"sub-a": 10.0, "sub-b": 10.0}
        assert analysis.summary.total_flow_rate == 10.0
        assert analysis.summary.connections.sub_to_emitters == 2

    def test_emitter_out_of_reach_of_second_sub_pipe(self, aggregator, make_element):
        snapshot = NetworkSnapshot(irrigation_elements=[
            make_element("sub-a", ElementType.SUB_PIPE, [(0, 0), (100, 0)]),
            make_element("sub-b", ElementType.SUB_PIPE, [(0, 20), (100, 20)]),
            make_element("spr-1", ElementType.SPRINKLER, [(50, 7)]),
        ])

        flows = {p.pipe_id: p.flow_rate for p in aggregator.aggregate(snapshot).pipes}

        assert flows == {"sub-a": 10.0, "sub-b": 0.0}

    def test_drip_line_flow(self, aggregator, make_element):
        """2 m drip line at 0.5 m spacing has 5 emitters of 0.24 L/min."""
        snapshot = NetworkSnapshot(irrigation_elements=[
            make_element("sub-1", ElementType.SUB_PIPE, [(0, 0), (200, 0)]),
            make_element("drip-1", ElementType.DRIP_LINE, [(100, -25), (100, 25)], spacing=0.5),
        ])

        summary = aggregator.aggregate(snapshot).summary

        assert summary.total_emitters == 5
        assert summary.sub_pipe_flow_rate == pytest.approx(1.2)

    def test_drip_line_without_spacing_adds_nothing(self, aggregator, make_element):
        snapshot = NetworkSnapshot(irrigation_elements=[
            make_element("sub-1", ElementType.SUB_PIPE, [(0, 0), (200, 0)]),
            make_element("drip-1", ElementType.DRIP_LINE, [(100, -25), (100, 25)]),
        ])

        summary = aggregator.aggregate(snapshot).summary

        assert summary.total_emitters == 0
        assert summary.total_flow_rate == 0.0

    def test_unattached_emitters_still_count_toward_total(self, aggregator, make_element):
        snapshot = NetworkSnapshot(irrigation_elements=[
            make_element("sub-1", ElementType.SUB_PIPE, [(0, 0), (100, 0)]),
            make_element("spr-1", ElementType.SPRINKLER, [(50, 200)]),
        ])

        summary = aggregator.aggregate(snapshot).summary

        assert summary.total_flow_rate == 10.0
        assert summary.sub_pipe_flow_rate == 0.0
        assert summary.connections.sub_to_emitters == 0

    def test_custom_flow_rates(self, resolver, simple_network):
        aggregator = NetworkFlowAggregator(resolver, FlowRateConfig(sprinkler_flow_rate=4.0))

        summary = aggregator.aggregate(simple_network).summary

        assert summary.total_flow_rate == 24.0
        assert summary.main_pipe_flow_rate == 24.0


# ============================================================
# Degenerate Network Tests
# ============================================================

class TestDegenerateNetworks:
    """Tests for missing pipe tiers."""

    def test_empty_network_is_all_zero(self, aggregator, empty_network):
        analysis = aggregator.aggregate(empty_network)

        assert analysis.summary == PipeFlowSummary()
        assert analysis.pipes == []

    def test_no_sub_pipes_main_carries_total_flow(self, aggregator, make_element):
        snapshot = NetworkSnapshot(irrigation_elements=[
            make_element("main-1", ElementType.MAIN_PIPE, [(0, 0), (250, 0)]),
            *_sprinklers(make_element, [(50, 5), (100, 5)]),
        ])

        summary = aggregator.aggregate(snapshot).summary

        assert summary.main_pipe_flow_rate == 20.0
        assert summary.sub_pipe_flow_rate == 0.0
        assert summary.longest.main.flow_rate == 20.0
        assert summary.longest.main.length == 10.0
        assert summary.longest.sub.flow_rate == 0.0

    def test_no_main_pipes(self, aggregator, make_element):
        snapshot = NetworkSnapshot(irrigation_elements=[
            make_element("sub-1", ElementType.SUB_PIPE, [(0, 0), (100, 0)]),
            *_sprinklers(make_element, [(50, 5)]),
        ])

        summary = aggregator.aggregate(snapshot).summary

        assert summary.main_pipe_flow_rate == 0.0
        assert summary.sub_pipe_flow_rate == 10.0
        assert summary.connections.main_to_sub == 0

    def test_sub_pipe_too_far_from_main_is_not_connected(self, aggregator, make_element):
        snapshot = NetworkSnapshot(irrigation_elements=[
            make_element("main-1", ElementType.MAIN_PIPE, [(0, 0), (0, 200)]),
            make_element("sub-1", ElementType.SUB_PIPE, [(60, 100), (300, 100)]),
            *_sprinklers(make_element, [(100, 100)]),
        ])

        summary = aggregator.aggregate(snapshot).summary

        assert summary.connections.main_to_sub == 0
        assert summary.main_pipe_flow_rate == 0.0


# ============================================================
# Critical Run Tests
# ============================================================

class TestCriticalRuns:
    """Tests for longest main and sub runs."""

    def test_longest_main_run(self, aggregator, simple_network):
        longest = aggregator.aggregate(simple_network).summary.longest

        assert longest.main.length == 3.0
        assert longest.main.connections == 2
        assert longest.main.flow_rate == 60.0

    def test_longest_main_uses_average_sub_flow(self, aggregator, make_element):
        """Only one of two sub-pipes joins the longest main."""
        snapshot = NetworkSnapshot(irrigation_elements=[
            make_element("main-long", ElementType.MAIN_PIPE, [(0, 0), (0, 500)]),
            make_element("main-short", ElementType.MAIN_PIPE, [(1000, 0), (1000, 100)]),
            make_element("sub-1", ElementType.SUB_PIPE, [(0, 100), (200, 100)]),
            make_element("sub-2", ElementType.SUB_PIPE, [(1000, 50), (1200, 50)]),
            *_sprinklers(make_element, [(100, 100), (1100, 50), (1150, 50), (1190, 50)]),
        ])

        longest = aggregator.aggregate(snapshot).summary.longest

        assert longest.main.length == 20.0
        assert longest.main.connections == 1
        # 40 L/min over two sub-pipes, one connection
        assert longest.main.flow_rate == 20.0

    def test_longest_sub_prefers_more_emitters_among_near_ties(self, aggregator, make_element):
        snapshot = NetworkSnapshot(irrigation_elements=[
            make_element("sub-250", ElementType.SUB_PIPE, [(0, 0), (250, 0)]),
            make_element("sub-240", ElementType.SUB_PIPE, [(0, 100), (240, 100)]),
            make_element("sub-200", ElementType.SUB_PIPE, [(0, 200), (200, 200)]),
            *_sprinklers(make_element, [(50, 0)], prefix="a"),
            *_sprinklers(make_element, [(50, 100), (100, 100)], prefix="b"),
            *_sprinklers(make_element, [(20, 200), (60, 200), (100, 200)], prefix="c"),
        ])

        longest = aggregator.aggregate(snapshot).summary.longest

        # sub-200 has the most emitters but is 50 px shorter than the longest
        assert longest.sub.length == 9.6
        assert longest.sub.emitters == 2
        assert longest.sub.flow_rate == 20.0

    def test_longest_sub_tie_keeps_input_order(self, aggregator, make_element):
        snapshot = NetworkSnapshot(irrigation_elements=[
            make_element("sub-a", ElementType.SUB_PIPE, [(0, 0), (240, 0)]),
            make_element("sub-b", ElementType.SUB_PIPE, [(0, 100), (250, 100)]),
            *_sprinklers(make_element, [(50, 0), (50, 100)]),
        ])

        longest = aggregator.aggregate(snapshot).summary.longest

        assert longest.sub.length == 9.6
        assert longest.sub.emitters == 1


# ============================================================
# Per-Pipe Record Tests
# ============================================================

class TestPipeRecords:
    """Tests for PipeFlow records."""

    def test_mains_first_then_subs(self, aggregator, simple_network):
        pipes = aggregator.aggregate(simple_network).pipes

        assert [p.pipe_id for p in pipes] == ["main-1", "sub-1", "sub-2"]
        assert [p.pipe_type for p in pipes] == ["main-pipe", "sub-pipe", "sub-pipe"]

    def test_record_values(self, aggregator, simple_network):
        main, sub_1, _ = aggregator.aggregate(simple_network).pipes

        assert main.connections == 2
        assert main.emitters == 6
        assert main.flow_rate == 60.0
        assert sub_1.length == 10.0
        assert sub_1.connections == 1
        assert sub_1.emitters == 3
        assert sub_1.flow_rate == 30.0
