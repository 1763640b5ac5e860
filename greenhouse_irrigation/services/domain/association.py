"""
Domain service: Spatial association between plots, pipes and emitters.

The canvas carries no topology, so every relation is inferred from
proximity:
- Sub-pipe serves plot (vertex, segment midpoint, then boundary fallback)
- Sub-pipe and drip-line length inside a plot
- Sprinkler serves plot (inside, or near a serving sub-pipe)
- Sub-pipe to main-pipe connection (nearest point on the main network)
- Emitter to pipe attachment

All tolerances live on ProximityTolerances so an explicit-graph resolver
can replace ProximityResolver without touching its callers.
"""
from dataclasses import dataclass
from typing import Optional, Sequence
import logging
import math

from greenhouse_irrigation.domain.models import IrrigationElement, PX_PER_METER
from greenhouse_irrigation.utils.geometry import (
    Coordinate,
    distance_between_points,
    distance_point_to_polygon,
    distance_point_to_polyline,
    midpoint,
    point_in_polygon,
    polyline_intersections,
    polyline_length_m,
    project_onto_polyline,
)
from greenhouse_irrigation.config import settings

logger = logging.getLogger(__name__)

# Guards floor() against 2.9999... from float division.
EMITTER_COUNT_EPSILON = 1e-9


@dataclass
class ProximityTolerances:
    """Pixel tolerances used to infer connectivity (25 px = 1 m)."""

    plot_edge_px: float = 20.0
    """A sub-pipe this close to a plot boundary still serves the plot"""

    sprinkler_reach_px: float = 30.0
    """A sprinkler this close to a serving sub-pipe belongs to the plot"""

    main_connection_px: float = 50.0
    """Maximum (exclusive) gap between a sub-pipe start and its main pipe"""

    attach_px: float = 12.0
    """An emitter or pipe end this close to a pipe is attached to it"""

    longest_tie_px: float = 20.0
    """Sub-pipes within this (exclusive) length of the longest are tied"""

    cluster_px: float = 8.0
    """Junction stations closer than this share one fitting"""

    elbow_angle_deg: float = 18.0
    """Main-pipe bends sharper than this need an elbow"""

    row_band_px: float = 50.0
    """Plots whose centroid Y differs by no more than this sort by X"""

    @classmethod
    def from_settings(cls) -> "ProximityTolerances":
        return cls(
            plot_edge_px=settings.plot_edge_tolerance_px,
            sprinkler_reach_px=settings.sprinkler_reach_px,
            main_connection_px=settings.main_connection_tolerance_px,
            attach_px=settings.attach_tolerance_px,
            longest_tie_px=settings.longest_tie_tolerance_px,
            cluster_px=settings.station_cluster_tolerance_px,
            elbow_angle_deg=settings.elbow_angle_threshold_deg,
            row_band_px=settings.plot_row_band_px,
        )


@dataclass
class MainConnection:
    """Where a sub-pipe joins the main network."""
    main_index: int
    main_id: str
    point: Coordinate
    distance: float
    station: float
    """Pixels along the main pipe from its start to the connection"""

    @property
    def station_m(self) -> float:
        return self.station / PX_PER_METER


def drip_emitter_count(length_m: float, spacing: Optional[float]) -> int:
    """
    Number of emitters on a drip run.

    One emitter at the start plus one every `spacing` meters.

    Args:
        length_m: Run length in meters
        spacing: Emitter spacing in meters

    Returns:
        floor(length_m / spacing) + 1, or 0 when spacing is missing or
        not positive, or the run has no length
    """
    if not spacing or spacing <= 0 or length_m <= 0:
        return 0
    return math.floor(length_m / spacing + EMITTER_COUNT_EPSILON) + 1


class ProximityResolver:
    """
    Infers plot membership and pipe connectivity from raw coordinates.

    Stateless apart from its tolerances; every method is a pure function
    of its arguments.
    """

    def __init__(self, tolerances: Optional[ProximityTolerances] = None):
        self.tolerances = tolerances or ProximityTolerances.from_settings()

    # ============================================================
    # Plot membership
    # ============================================================

    def sub_pipe_serves_plot(
        self,
        sub_pipe: Sequence[Coordinate],
        plot: Sequence[Coordinate],
    ) -> bool:
        """
        Decide whether a sub-pipe serves a plot.

        Layered checks, first match wins:
        1. Any sub-pipe vertex inside the plot
        2. The midpoint of any sub-pipe segment inside the plot
        3. Any sub-pipe vertex within plot_edge_px of the plot boundary

        Args:
            sub_pipe: Sub-pipe vertices
            plot: Plot polygon vertices

        Returns:
            True if the sub-pipe serves the plot
        """
        if len(plot) < 3 or not sub_pipe:
            return False

        if any(point_in_polygon(p, plot) for p in sub_pipe):
            return True

        for i in range(len(sub_pipe) - 1):
            if point_in_polygon(midpoint(sub_pipe[i], sub_pipe[i + 1]), plot):
                return True

        return any(
            distance_point_to_polygon(p, plot) < self.tolerances.plot_edge_px
            for p in sub_pipe
        )

    def length_inside_plot(
        self,
        polyline: Sequence[Coordinate],
        plot: Sequence[Coordinate],
    ) -> float:
        """
        Meters of a polyline lying in a plot.

        A segment counts in full when either endpoint or its midpoint is
        inside the plot polygon.
        """
        if len(plot) < 3:
            return 0.0

        total_px = 0.0
        for i in range(len(polyline) - 1):
            p1, p2 = polyline[i], polyline[i + 1]
            if (
                point_in_polygon(p1, plot)
                or point_in_polygon(p2, plot)
                or point_in_polygon(midpoint(p1, p2), plot)
            ):
                total_px += distance_between_points(p1, p2)
        return total_px / PX_PER_METER

    def sprinkler_serves_plot(
        self,
        sprinkler: Coordinate,
        plot: Sequence[Coordinate],
        serving_sub_pipes: Sequence[Sequence[Coordinate]],
    ) -> bool:
        """Inside the plot, or within reach of a sub-pipe serving it."""
        if point_in_polygon(sprinkler, plot):
            return True
        return any(
            distance_point_to_polyline(sprinkler, sub) <= self.tolerances.sprinkler_reach_px
            for sub in serving_sub_pipes
        )

    def drip_emitters_in_plot(
        self,
        drip_line: IrrigationElement,
        plot: Sequence[Coordinate],
    ) -> int:
        """Emitters on the part of a drip line lying in a plot."""
        return drip_emitter_count(
            self.length_inside_plot(drip_line.coords, plot),
            drip_line.spacing,
        )

    # ============================================================
    # Pipe connectivity
    # ============================================================

    def main_connection(
        self,
        sub_pipe: Sequence[Coordinate],
        main_pipes: Sequence[IrrigationElement],
    ) -> Optional[MainConnection]:
        """
        Find where a sub-pipe's start joins the main network.

        The sub-pipe start is projected onto every segment of every main
        pipe and the global nearest projection is kept.

        Args:
            sub_pipe: Sub-pipe vertices (the first one is its start)
            main_pipes: All main pipes in the snapshot

        Returns:
            MainConnection if the nearest point is closer than
            main_connection_px, None otherwise
        """
        if not sub_pipe:
            return None

        start = sub_pipe[0]
        best: Optional[MainConnection] = None
        for index, main in enumerate(main_pipes):
            coords = main.coords
            if len(coords) < 2:
                continue
            projection = project_onto_polyline(coords, start)
            if best is None or projection.distance < best.distance:
                best = MainConnection(
                    main_index=index,
                    main_id=main.id,
                    point=projection.point,
                    distance=projection.distance,
                    station=projection.station,
                )

        if best is None or best.distance >= self.tolerances.main_connection_px:
            return None
        return best

    def point_attach_distance(
        self,
        point: Coordinate,
        pipe: Sequence[Coordinate],
    ) -> Optional[float]:
        """Distance from a point device to a pipe, or None if not attached."""
        distance = distance_point_to_polyline(point, pipe)
        if distance <= self.tolerances.attach_px:
            return distance
        return None

    def drip_line_attach_distance(
        self,
        drip_line: Sequence[Coordinate],
        sub_pipe: Sequence[Coordinate],
    ) -> Optional[float]:
        """
        How closely a drip line meets a sub-pipe.

        Returns:
            0 if the lines cross, else the distance of the nearest drip-line
            vertex when it is within attach_px, else None
        """
        if polyline_intersections(drip_line, sub_pipe):
            return 0.0
        if not drip_line:
            return None

        nearest = min(distance_point_to_polyline(p, sub_pipe) for p in drip_line)
        if nearest <= self.tolerances.attach_px:
            return nearest
        return None


def pipe_length_m(element: IrrigationElement) -> float:
    return polyline_length_m(element.coords)
