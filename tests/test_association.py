"""
Unit tests for spatial association.

Tests cover:
- Sub-pipe serves plot (vertex, midpoint and boundary fallbacks)
- Length of a polyline inside a plot
- Sprinkler and drip-emitter membership
- Main-pipe connection
- Emitter attachment
"""
import pytest

from greenhouse_irrigation.config import settings
from greenhouse_irrigation.domain.models import ElementType
from greenhouse_irrigation.services.domain.association import (
    ProximityResolver,
    ProximityTolerances,
    drip_emitter_count,
)


# ============================================================
# Configuration Tests
# ============================================================

class TestTolerances:
    """Tests for tolerance configuration."""

    def test_default_tolerances(self):
        tolerances = ProximityTolerances()

        assert tolerances.plot_edge_px == 20.0
        assert tolerances.sprinkler_reach_px == 30.0
        assert tolerances.main_connection_px == 50.0
        assert tolerances.attach_px == 12.0
        assert tolerances.longest_tie_px == 20.0
        assert tolerances.cluster_px == 8.0
        assert tolerances.elbow_angle_deg == 18.0
        assert tolerances.row_band_px == 50.0

    def test_from_settings(self):
        tolerances = ProximityTolerances.from_settings()

        assert tolerances.attach_px == settings.attach_tolerance_px
        assert tolerances.main_connection_px == settings.main_connection_tolerance_px

    def test_resolver_defaults_to_settings(self):
        resolver = ProximityResolver()

        assert resolver.tolerances == ProximityTolerances.from_settings()


# ============================================================
# Plot Membership Tests
# ============================================================

class TestSubPipeServesPlot:
    """Tests for the layered sub-pipe membership checks."""

    def test_vertex_inside(self, resolver, plot_polygon):
        assert resolver.sub_pipe_serves_plot([(-25, 25), (225, 25)], plot_polygon)

    def test_only_segment_midpoint_inside(self, resolver, plot_polygon):
        """Both vertices outside, but the pipe passes straight through."""
        assert resolver.sub_pipe_serves_plot([(-50, 50), (300, 50)], plot_polygon)

    def test_vertex_near_boundary(self, resolver, plot_polygon):
        """Runs 10 px above the plot: nothing inside, but within 20 px."""
        assert resolver.sub_pipe_serves_plot([(0, -10), (250, -10)], plot_polygon)

    def test_boundary_tolerance_is_exclusive(self, resolver, plot_polygon):
        assert not resolver.sub_pipe_serves_plot([(0, -20), (250, -20)], plot_polygon)

    def test_far_away(self, resolver, plot_polygon):
        assert not resolver.sub_pipe_serves_plot([(0, 500), (250, 500)], plot_polygon)

    def test_degenerate_plot(self, resolver):
        assert not resolver.sub_pipe_serves_plot([(0, 0), (10, 0)], [(0, 0), (10, 0)])


class TestLengthInsidePlot:
    """Tests for per-segment length accounting."""

    def test_segment_counts_in_full_when_one_end_inside(self, resolver, plot_polygon):
        assert resolver.length_inside_plot([(-25, 25), (225, 25)], plot_polygon) == pytest.approx(10.0)

    def test_segments_outside_are_ignored(self, resolver, plot_polygon):
        polyline = [(-100, 25), (-50, 25), (100, 25)]

        assert resolver.length_inside_plot(polyline, plot_polygon) == pytest.approx(6.0)

    def test_nothing_inside(self, resolver, plot_polygon):
        assert resolver.length_inside_plot([(0, 300), (100, 300)], plot_polygon) == 0.0


class TestEmitterMembership:
    """Tests for sprinklers and drip emitters in a plot."""

    def test_sprinkler_inside(self, resolver, plot_polygon):
        assert resolver.sprinkler_serves_plot((100, 50), plot_polygon, [])

    def test_sprinkler_outside_but_near_serving_sub_pipe(self, resolver, plot_polygon):
        serving = [[(-25, 25), (225, 25)]]

        assert resolver.sprinkler_serves_plot((-10, 40), plot_polygon, serving)

    def test_sprinkler_outside_and_far(self, resolver, plot_polygon):
        serving = [[(-25, 25), (225, 25)]]

        assert not resolver.sprinkler_serves_plot((-10, 80), plot_polygon, serving)

    def test_drip_emitters_in_plot(self, resolver, plot_polygon, make_element):
        drip = make_element("drip-1", ElementType.DRIP_LINE, [(25, 50), (100, 50)], spacing=1.0)

        assert resolver.drip_emitters_in_plot(drip, plot_polygon) == 4

    def test_drip_line_outside_plot(self, resolver, plot_polygon, make_element):
        drip = make_element("drip-1", ElementType.DRIP_LINE, [(25, 300), (100, 300)], spacing=1.0)

        assert resolver.drip_emitters_in_plot(drip, plot_polygon) == 0


class TestDripEmitterCount:
    """Tests for emitters along a drip run."""

    def test_three_meters_at_one_meter_spacing(self):
        assert drip_emitter_count(3.0, 1.0) == 4

    def test_float_division_does_not_lose_an_emitter(self):
        assert drip_emitter_count(0.3, 0.1) == 4

    @pytest.mark.parametrize("spacing", [None, 0, -1.0])
    def test_missing_or_invalid_spacing(self, spacing):
        assert drip_emitter_count(3.0, spacing) == 0

    def test_zero_length(self):
        assert drip_emitter_count(0.0, 1.0) == 0


# ============================================================
# Connectivity Tests
# ============================================================

class TestMainConnection:
    """Tests for sub-pipe to main-pipe connection."""

    def test_station_along_bent_main(self, resolver, make_element):
        main = make_element("main-1", ElementType.MAIN_PIPE, [(0, 0), (100, 0), (100, 100)])

        connection = resolver.main_connection([(110, 50), (300, 50)], [main])

        assert connection is not None
        assert connection.main_id == "main-1"
        assert connection.distance == pytest.approx(10.0)
        assert connection.station_m == pytest.approx(6.0)

    def test_too_far_from_main(self, resolver, make_element):
        main = make_element("main-1", ElementType.MAIN_PIPE, [(0, 0), (100, 0)])

        assert resolver.main_connection([(50, 50), (50, 200)], [main]) is None

    def test_connects_to_nearest_main(self, resolver, make_element):
        mains = [
            make_element("main-a", ElementType.MAIN_PIPE, [(0, 0), (100, 0)]),
            make_element("main-b", ElementType.MAIN_PIPE, [(0, 40), (100, 40)]),
        ]

        connection = resolver.main_connection([(50, 30), (50, 200)], mains)

        assert connection.main_id == "main-b"
        assert connection.main_index == 1

    def test_only_sub_pipe_start_is_considered(self, resolver, make_element):
        main = make_element("main-1", ElementType.MAIN_PIPE, [(0, 0), (100, 0)])

        assert resolver.main_connection([(50, 200), (50, 5)], [main]) is None

    def test_no_main_pipes(self, resolver):
        assert resolver.main_connection([(0, 0), (10, 0)], []) is None


class TestAttachment:
    """Tests for emitter attachment to pipes."""

    def test_point_attachment_is_inclusive(self, resolver):
        pipe = [(0, 0), (100, 0)]

        assert resolver.point_attach_distance((50, 12), pipe) == pytest.approx(12.0)
        assert resolver.point_attach_distance((50, 13), pipe) is None

    def test_crossing_drip_line(self, resolver):
        assert resolver.drip_line_attach_distance([(50, -20), (50, 20)], [(0, 0), (100, 0)]) == 0.0

    def test_drip_line_ending_near_pipe(self, resolver):
        distance = resolver.drip_line_attach_distance([(50, 5), (50, 100)], [(0, 0), (100, 0)])

        assert distance == pytest.approx(5.0)

    def test_drip_line_far_from_pipe(self, resolver):
        assert resolver.drip_line_attach_distance([(50, 30), (50, 100)], [(0, 0), (100, 0)]) is None
