"""
Domain service: Pipe-fitting detection and classification.

Fittings are inferred from geometry alone:
- Main-pipe elbows at bends sharper than elbow_angle_deg
- Main/sub-pipe junctions (tee, or straight coupler at a main-pipe end)
- Submain junctions where drip lines and sprinklers meet a sub-pipe,
  clustered by station and classified as 2-, 3- or 4-way
"""
from dataclasses import dataclass, field
from typing import Optional, Sequence
import logging

from greenhouse_irrigation.domain.models import IrrigationElement, NetworkSnapshot
from greenhouse_irrigation.domain.reports import (
    FittingBreakdown,
    FittingsByRole,
    NetworkFittingCounts,
)
from greenhouse_irrigation.services.domain.association import ProximityResolver
from greenhouse_irrigation.utils.geometry import (
    Coordinate,
    distance_between_points,
    distance_point_to_polyline,
    polyline_intersections,
    polyline_length,
    project_onto_polyline,
    side_of_polyline,
    station_along_polyline,
    turn_deviation_deg,
)

logger = logging.getLogger(__name__)


@dataclass
class Junction:
    """A point where something joins a sub-pipe."""
    station: float
    crossing: bool
    source_id: str


@dataclass
class JunctionCluster:
    """Junctions close enough along a sub-pipe to share one fitting."""
    junctions: list[Junction] = field(default_factory=list)

    @property
    def start(self) -> float:
        return min(j.station for j in self.junctions)

    @property
    def end(self) -> float:
        return max(j.station for j in self.junctions)

    @property
    def crossing(self) -> bool:
        return any(j.crossing for j in self.junctions)


class FittingClassifier:
    """Counts 2-/3-/4-way fittings for mains and submains."""

    def __init__(self, resolver: Optional[ProximityResolver] = None):
        self.resolver = resolver or ProximityResolver()

    @property
    def tolerances(self):
        return self.resolver.tolerances

    def classify(self, snapshot: NetworkSnapshot) -> NetworkFittingCounts:
        """
        Count every fitting in the network.

        Args:
            snapshot: Shapes and irrigation elements

        Returns:
            NetworkFittingCounts with flattened totals and a main/submain
            breakdown
        """
        main = FittingBreakdown()
        submain = FittingBreakdown()

        pumps = [p.coords[0] for p in snapshot.pumps if p.points]
        for main_pipe in snapshot.main_pipes:
            main.two_way += self.count_main_elbows(main_pipe.coords, pumps)
            two_way, three_way = self.main_sub_junctions(main_pipe.coords, snapshot.sub_pipes)
            main.two_way += two_way
            main.three_way += three_way

        main_coords = [m.coords for m in snapshot.main_pipes]
        for sub_pipe in snapshot.sub_pipes:
            junctions = self.submain_junctions(sub_pipe, snapshot.drip_lines, snapshot.sprinklers)
            clusters = self.cluster_junctions(junctions)
            counts = self.classify_submain(sub_pipe.coords, clusters, main_coords)
            logger.debug(f"Sub-pipe {sub_pipe.id}: {len(junctions)} junctions in "
                         f"{len(clusters)} clusters -> {counts.two_way}/{counts.three_way}/{counts.four_way}")
            submain.two_way += counts.two_way
            submain.three_way += counts.three_way
            submain.four_way += counts.four_way

        result = NetworkFittingCounts(
            two_way=main.two_way + submain.two_way,
            three_way=main.three_way + submain.three_way,
            four_way=main.four_way + submain.four_way,
            breakdown=FittingsByRole(main=main, submain=submain),
        )
        logger.info(f"Fittings: 2-way={result.two_way}, 3-way={result.three_way}, "
                    f"4-way={result.four_way}")
        return result

    # ============================================================
    # Main pipes
    # ============================================================

    def count_main_elbows(
        self,
        main_pipe: Sequence[Coordinate],
        pumps: Sequence[Coordinate],
    ) -> int:
        """
        Count elbows at the bends of a main pipe.

        The vertex next to the pump end is skipped. The pump end is the endpoint within
        main_connection_px of a pump; with no pump nearby nothing is skipped.

        Args:
            main_pipe: Main-pipe vertices
            pumps: Pump locations

        Returns:
            Number of 2-way elbows
        """
        if len(main_pipe) < 3:
            return 0

        skipped = self._pump_adjacent_vertex(main_pipe, pumps)
        elbows = 0
        for i in range(1, len(main_pipe) - 1):
            if i == skipped:
                continue
            if turn_deviation_deg(main_pipe[i - 1], main_pipe[i], main_pipe[i + 1]) > self.tolerances.elbow_angle_deg:
                elbows += 1
        return elbows

    def _pump_adjacent_vertex(
        self,
        main_pipe: Sequence[Coordinate],
        pumps: Sequence[Coordinate],
    ) -> Optional[int]:
        if not pumps:
            return None

        start_gap = min(distance_between_points(main_pipe[0], p) for p in pumps)
        end_gap = min(distance_between_points(main_pipe[-1], p) for p in pumps)
        limit = self.tolerances.main_connection_px
        if start_gap >= limit and end_gap >= limit:
            return None
        return 1 if start_gap <= end_gap else len(main_pipe) - 2

    def main_sub_junctions(
        self,
        main_pipe: Sequence[Coordinate],
        sub_pipes: Sequence[IrrigationElement],
    ) -> tuple[int, int]:
        """
        Count where sub-pipes join one main pipe.

        Args:
            main_pipe: Main-pipe vertices
            sub_pipes: All sub-pipes

        Returns:
            (two_way, three_way): junctions at a main-pipe end are 2-way,
            everywhere else 3-way
        """
        if len(main_pipe) < 2:
            return 0, 0

        two_way = three_way = 0
        for sub_pipe in sub_pipes:
            junction = self.find_main_junction(main_pipe, sub_pipe.coords)
            if junction is None:
                continue
            end_gap = min(
                distance_between_points(junction, main_pipe[0]),
                distance_between_points(junction, main_pipe[-1]),
            )
            if end_gap <= self.tolerances.attach_px:
                two_way += 1
            else:
                three_way += 1
        return two_way, three_way

    def find_main_junction(
        self,
        main_pipe: Sequence[Coordinate],
        sub_pipe: Sequence[Coordinate],
    ) -> Optional[Coordinate]:
        """
        Locate where a sub-pipe meets a main pipe.

        First match wins:
        1. The first explicit crossing of the two polylines
        2. The projection of the sub-pipe endpoint within attach_px
        3. If the sub-pipe endpoints lie on opposite sides of the main pipe,
           the projection of the nearer endpoint when it is within
           main_connection_px

        Returns:
            Junction point on the main pipe, or None
        """
        if len(sub_pipe) < 2:
            return None

        hits = polyline_intersections(sub_pipe, main_pipe)
        if hits:
            return hits[0]

        ends = [project_onto_polyline(main_pipe, sub_pipe[0]), project_onto_polyline(main_pipe, sub_pipe[-1])]
        nearest = min(ends, key=lambda p: p.distance)
        if nearest.distance <= self.tolerances.attach_px:
            return nearest.point

        sides = side_of_polyline(main_pipe, sub_pipe[0]) * side_of_polyline(main_pipe, sub_pipe[-1])
        if sides < 0 and nearest.distance < self.tolerances.main_connection_px:
            return nearest.point
        return None

    # ============================================================
    # Submains
    # ============================================================

    def submain_junctions(
        self,
        sub_pipe: IrrigationElement,
        drip_lines: Sequence[IrrigationElement],
        sprinklers: Sequence[IrrigationElement],
    ) -> list[Junction]:
        """
        Collect every station where a drip line or sprinkler meets a sub-pipe.

        A drip line contributes one junction per explicit crossing, or one
        at its nearest endpoint when that endpoint is within attach_px. It is
        a crossing when its endpoints straddle the sub-pipe or it crosses
        more than once. Sprinklers are plain branches.

        Args:
            sub_pipe: The sub-pipe
            drip_lines: All drip lines
            sprinklers: All sprinklers

        Returns:
            Junctions in discovery order
        """
        coords = sub_pipe.coords
        junctions: list[Junction] = []
        if len(coords) < 2:
            return junctions

        for drip in drip_lines:
            drip_coords = drip.coords
            if len(drip_coords) < 2:
                continue

            hits = polyline_intersections(drip_coords, coords)
            straddles = side_of_polyline(coords, drip_coords[0]) * side_of_polyline(coords, drip_coords[-1]) < 0
            crossing = straddles or len(hits) >= 2

            if hits:
                junctions.extend(
                    Junction(station_along_polyline(coords, hit), crossing, drip.id) for hit in hits
                )
                continue

            start_gap = distance_point_to_polyline(drip_coords[0], coords)
            end_gap = distance_point_to_polyline(drip_coords[-1], coords)
            endpoint = drip_coords[0] if start_gap <= end_gap else drip_coords[-1]
            if min(start_gap, end_gap) <= self.tolerances.attach_px:
                junctions.append(Junction(station_along_polyline(coords, endpoint), crossing, drip.id))

        for sprinkler in sprinklers:
            if not sprinkler.points:
                continue
            point = sprinkler.coords[0]
            if distance_point_to_polyline(point, coords) <= self.tolerances.attach_px:
                junctions.append(Junction(station_along_polyline(coords, point), False, sprinkler.id))

        return junctions

    def cluster_junctions(self, junctions: Sequence[Junction]) -> list[JunctionCluster]:
        """
        Group junctions by station.

        Sorted ascending and scanned once. A new cluster starts only when the
        gap from the previous junction exceeds cluster_px and both of them
        are branches; a crossing drip line never ends a cluster.
        """
        clusters: list[JunctionCluster] = []
        previous: Optional[Junction] = None
        for junction in sorted(junctions, key=lambda j: j.station):
            if previous is None or (
                junction.station - previous.station > self.tolerances.cluster_px
                and not previous.crossing
                and not junction.crossing
            ):
                clusters.append(JunctionCluster(junctions=[junction]))
            else:
                clusters[-1].junctions.append(junction)
            previous = junction
        return clusters

    def classify_submain(
        self,
        sub_pipe: Sequence[Coordinate],
        clusters: Sequence[JunctionCluster],
        main_pipes: Sequence[Sequence[Coordinate]],
    ) -> FittingBreakdown:
        """
        Assign a fitting to each junction cluster on a sub-pipe.

        - crossing at either end: 3-way
        - crossing mid-run: 4-way
        - branch at the true end (away from the main pipe): 2-way
        - branch anywhere else: 3-way

        Args:
            sub_pipe: Sub-pipe vertices
            clusters: Junction clusters along it
            main_pipes: All main-pipe polylines, used to find the true end

        Returns:
            FittingBreakdown whose total equals len(clusters)
        """
        counts = FittingBreakdown()
        if not clusters:
            return counts

        length = polyline_length(sub_pipe)
        attach = self.tolerances.attach_px
        feeds_from_start = self._feeds_from_start(sub_pipe, main_pipes)

        for cluster in clusters:
            at_start = cluster.start <= attach
            at_end = cluster.end >= length - attach
            at_true_end = at_end if feeds_from_start else at_start

            if cluster.crossing:
                if at_start or at_end:
                    counts.three_way += 1
                else:
                    counts.four_way += 1
            elif at_true_end:
                counts.two_way += 1
            else:
                counts.three_way += 1
        return counts

    def _feeds_from_start(
        self,
        sub_pipe: Sequence[Coordinate],
        main_pipes: Sequence[Sequence[Coordinate]],
    ) -> bool:
        """True when the sub-pipe's start is its main-pipe end."""
        if not main_pipes:
            return True
        start_gap = min(distance_point_to_polyline(sub_pipe[0], m) for m in main_pipes)
        end_gap = min(distance_point_to_polyline(sub_pipe[-1], m) for m in main_pipes)
        return start_gap <= end_gap
