"""
Domain service: Per-plot profiles and network-wide summaries.

Pure aggregation. Turns a snapshot plus the flow and fitting results into
the NetworkReport consumed by the UI, and formats plot payloads for the
external Water Requirement Engine.
"""
from functools import cmp_to_key
from typing import Optional, Sequence
import logging

from greenhouse_irrigation.domain.models import (
    ElementType,
    NetworkSnapshot,
    Shape,
    ShapeType,
)
from greenhouse_irrigation.domain.reports import (
    EquipmentSummary,
    NetworkFittingCounts,
    NetworkReport,
    PlotPipeProfile,
    PlotTotals,
    PlotWaterRequirement,
    ShapeMetrics,
    WaterTotals,
    round2,
)
from greenhouse_irrigation.services.domain.association import (
    ProximityResolver,
    pipe_length_m,
)
from greenhouse_irrigation.services.domain.flow_aggregator import FlowAnalysis, FlowRateConfig
from greenhouse_irrigation.utils.geometry import polygon_area, vertex_centroid

logger = logging.getLogger(__name__)

UNASSIGNED_CROP = "unassigned"


def order_plots(plots: Sequence[Shape], row_band_px: float = 50.0) -> list[Shape]:
    """
    Sort plots into reading order.

    Plots whose vertex centroids differ in Y by more than row_band_px are
    ordered top to bottom; otherwise they share a row and go left to right.

    Args:
        plots: Plot shapes in input order
        row_band_px: Height of a row band in pixels

    Returns:
        New list of plots in display order
    """
    centroids = {id(p): vertex_centroid(p.coords) for p in plots}

    def compare(a: Shape, b: Shape) -> int:
        ax, ay = centroids[id(a)]
        bx, by = centroids[id(b)]
        if abs(ay - by) > row_band_px:
            return -1 if ay < by else 1
        if ax == bx:
            return 0
        return -1 if ax < bx else 1

    return sorted(plots, key=cmp_to_key(compare))


def plot_display_name(plot: Shape, position: int) -> str:
    return plot.name or f"Plot {position + 1}"


class MetricsReporter:
    """Assembles plot profiles and summary figures into a NetworkReport."""

    def __init__(
        self,
        resolver: Optional[ProximityResolver] = None,
        flow_rates: Optional[FlowRateConfig] = None,
    ):
        self.resolver = resolver or ProximityResolver()
        self.flow_rates = flow_rates or FlowRateConfig.from_settings()

    # ============================================================
    # Per-plot profiles
    # ============================================================

    def plot_profiles(self, snapshot: NetworkSnapshot) -> list[PlotPipeProfile]:
        """
        Build one PlotPipeProfile per plot, in display order.

        Args:
            snapshot: Shapes and irrigation elements

        Returns:
            Ordered plot profiles with lengths in meters and flow in L/min
        """
        plots = order_plots(snapshot.plots, self.resolver.tolerances.row_band_px)
        profiles = [
            self._profile(plot, position, snapshot) for position, plot in enumerate(plots)
        ]
        logger.debug(f"Built {len(profiles)} plot profiles")
        return profiles

    def _profile(self, plot: Shape, position: int, snapshot: NetworkSnapshot) -> PlotPipeProfile:
        polygon = plot.coords
        main_pipes = snapshot.main_pipes

        serving = [
            s for s in snapshot.sub_pipes
            if self.resolver.sub_pipe_serves_plot(s.coords, polygon)
        ]

        # Distance along the main line to the farthest connected serving sub-pipe
        max_main = 0.0
        connected = False
        for sub in serving:
            connection = self.resolver.main_connection(sub.coords, main_pipes)
            if connection is not None:
                connected = True
                max_main = max(max_main, connection.station_m)

        # Without a main line the plot has no pipe run to report
        inside_lengths = [
            length for length in (
                self.resolver.length_inside_plot(s.coords, polygon) for s in snapshot.sub_pipes
            )
            if length > 0
        ] if main_pipes else []
        max_sub = max(inside_lengths, default=0.0)
        total_sub = sum(inside_lengths)

        serving_coords = [s.coords for s in serving]
        sprinklers = sum(
            1 for s in snapshot.sprinklers
            if s.points and self.resolver.sprinkler_serves_plot(s.coords[0], polygon, serving_coords)
        )
        drip_emitters = sum(
            self.resolver.drip_emitters_in_plot(d, polygon) for d in snapshot.drip_lines
        )

        return PlotPipeProfile(
            plot_id=plot.id,
            plot_name=plot_display_name(plot, position),
            crop_type=plot.crop_type or UNASSIGNED_CROP,
            area=round2(polygon_area(polygon)),
            max_main_pipe_length=round2(max_main),
            total_main_pipe_length=round2(max_main),
            max_sub_pipe_length=round2(max_sub),
            total_sub_pipe_length=round2(total_sub),
            max_total_pipe_length=round2(max_main + max_sub),
            total_pipe_length=round2(max_main + total_sub),
            sprinkler_count=sprinklers,
            drip_emitter_count=drip_emitters,
            emitter_count=sprinklers + drip_emitters,
            flow_rate=round2(self.flow_rates.emitter_flow(sprinklers, drip_emitters)),
            has_pipes=connected or bool(inside_lengths),
        )

    def plot_totals(self, profiles: Sequence[PlotPipeProfile]) -> PlotTotals:
        return PlotTotals(
            plot_count=len(profiles),
            total_area=round2(sum(p.area for p in profiles)),
            max_main_pipe_length=max((p.max_main_pipe_length for p in profiles), default=0.0),
            max_sub_pipe_length=max((p.max_sub_pipe_length for p in profiles), default=0.0),
            total_sub_pipe_length=round2(sum(p.total_sub_pipe_length for p in profiles)),
            max_total_pipe_length=max((p.max_total_pipe_length for p in profiles), default=0.0),
            total_sprinklers=sum(p.sprinkler_count for p in profiles),
            total_drip_emitters=sum(p.drip_emitter_count for p in profiles),
            total_flow_rate=round2(sum(p.flow_rate for p in profiles)),
        )

    # ============================================================
    # Layout and equipment
    # ============================================================

    def shape_metrics(self, snapshot: NetworkSnapshot) -> ShapeMetrics:
        """Areas of greenhouses, plots and walkways plus shape counts."""

        def area_of(shape_type: ShapeType) -> float:
            return round2(sum(polygon_area(s.coords) for s in snapshot.shapes_of(shape_type)))

        return ShapeMetrics(
            shape_type_count=len({s.type for s in snapshot.shapes}),
            greenhouse_area=area_of(ShapeType.GREENHOUSE),
            plot_area=area_of(ShapeType.PLOT),
            walkway_area=area_of(ShapeType.WALKWAY),
            plot_count=len(snapshot.plots),
            water_source_count=len(snapshot.shapes_of(ShapeType.WATER_SOURCE)),
        )

    def equipment_summary(self, snapshot: NetworkSnapshot) -> EquipmentSummary:
        """Device counts, tank capacity and network-wide pipe lengths."""
        main_lengths = [pipe_length_m(m) for m in snapshot.main_pipes]
        sub_lengths = [pipe_length_m(s) for s in snapshot.sub_pipes]
        drip_length = sum(pipe_length_m(d) for d in snapshot.drip_lines)
        tanks = snapshot.elements_of(ElementType.WATER_TANK)

        max_main = max(main_lengths, default=0.0)
        max_sub = max(sub_lengths, default=0.0)
        total_main = sum(main_lengths)
        total_sub = sum(sub_lengths)

        return EquipmentSummary(
            pumps=len(snapshot.pumps),
            solenoid_valves=len(snapshot.elements_of(ElementType.SOLENOID_VALVE)),
            ball_valves=len(snapshot.elements_of(ElementType.BALL_VALVE)),
            sprinklers=len(snapshot.sprinklers),
            drip_lines=len(snapshot.drip_lines),
            water_tanks=len(tanks),
            fertilizer_machines=len(snapshot.elements_of(ElementType.FERTILIZER_MACHINE)),
            tank_capacity_liters=round2(sum(t.capacity_liters or 0.0 for t in tanks)),
            max_main_pipe_length=round2(max_main),
            total_main_pipe_length=round2(total_main),
            max_sub_pipe_length=round2(max_sub),
            total_sub_pipe_length=round2(total_sub),
            total_drip_line_length=round2(drip_length),
            max_total_pipe_length=round2(max_main + max_sub),
            total_pipe_length=round2(total_main + total_sub),
        )

    # ============================================================
    # Water Requirement Engine
    # ============================================================

    def build_water_requests(self, snapshot: NetworkSnapshot) -> list[dict]:
        """
        Format plots for the Water Requirement Engine.

        Args:
            snapshot: Shapes and irrigation elements

        Returns:
            List of {plotId, plotName, cropType, points} payloads in display order
        """
        plots = order_plots(snapshot.plots, self.resolver.tolerances.row_band_px)
        return [
            {
                "plotId": plot.id,
                "plotName": plot_display_name(plot, position),
                "cropType": plot.crop_type or UNASSIGNED_CROP,
                "points": [{"x": p.x, "y": p.y} for p in plot.points],
            }
            for position, plot in enumerate(plots)
        ]

    def merge_water(
        self,
        profiles: Sequence[PlotPipeProfile],
        requirements: Sequence[PlotWaterRequirement],
    ) -> tuple[list[PlotPipeProfile], WaterTotals]:
        """
        Attach water figures to plot profiles.

        Figures are matched by plot id, falling back to plot name.

        Args:
            profiles: Plot profiles without water figures
            requirements: Figures returned by the Water Requirement Engine

        Returns:
            (new profiles with water set where matched, WaterTotals)
        """
        by_id = {r.plot_id: r for r in requirements}
        by_name = {r.plot_name: r for r in requirements if r.plot_name}

        merged = []
        matched: list[PlotWaterRequirement] = []
        for profile in profiles:
            water = by_id.get(profile.plot_id) or by_name.get(profile.plot_name)
            if water is not None:
                matched.append(water)
            merged.append(profile.model_copy(update={"water": water}))

        unmatched = len(requirements) - len(matched)
        if unmatched > 0:
            logger.warning(f"{unmatched} water figures did not match any plot")

        totals = WaterTotals(
            plots_with_figures=len(matched),
            daily_liters=round2(sum(w.daily_liters for w in matched)),
            weekly_liters=round2(sum(w.weekly_liters for w in matched)),
            monthly_liters=round2(sum(w.monthly_liters for w in matched)),
        )
        return merged, totals

    # ============================================================
    # Report
    # ============================================================

    def build_report(
        self,
        snapshot: NetworkSnapshot,
        flow: FlowAnalysis,
        fittings: NetworkFittingCounts,
    ) -> NetworkReport:
        """Assemble the full report (without water figures)."""
        profiles = self.plot_profiles(snapshot)
        return NetworkReport(
            plots=profiles,
            totals=self.plot_totals(profiles),
            flow=flow.summary,
            pipes=flow.pipes,
            fittings=fittings,
            layout=self.shape_metrics(snapshot),
            equipment=self.equipment_summary(snapshot),
        )
