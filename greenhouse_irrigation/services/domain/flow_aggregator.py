"""
Domain service: Bottom-up flow aggregation through the inferred pipe tree.

Flow is propagated in one direction only:
    emitters -> sub-pipe (attached within attach_px)
    sub-pipes -> main pipe (connected within main_connection_px)

Also computes the "longest run" worst-case metrics used to size pipes.
"""
from dataclasses import dataclass, field
from typing import Optional
import logging

from greenhouse_irrigation.domain.models import IrrigationElement, NetworkSnapshot
from greenhouse_irrigation.domain.reports import (
    ConnectionCounts,
    CriticalRunMetrics,
    LongestMainRun,
    LongestSubRun,
    PipeFlow,
    PipeFlowSummary,
    round2,
)
from greenhouse_irrigation.services.domain.association import (
    MainConnection,
    ProximityResolver,
    drip_emitter_count,
    pipe_length_m,
)
from greenhouse_irrigation.utils.geometry import polyline_length
from greenhouse_irrigation.config import settings

logger = logging.getLogger(__name__)


@dataclass
class FlowRateConfig:
    """Per-emitter flow rates in liters per minute."""

    sprinkler_flow_rate: float = 10.0
    drip_emitter_flow_rate: float = 0.24

    @classmethod
    def from_settings(cls) -> "FlowRateConfig":
        return cls(
            sprinkler_flow_rate=settings.sprinkler_flow_rate,
            drip_emitter_flow_rate=settings.drip_emitter_flow_rate,
        )

    def emitter_flow(self, sprinklers: int, drip_emitters: int) -> float:
        return sprinklers * self.sprinkler_flow_rate + drip_emitters * self.drip_emitter_flow_rate


@dataclass
class SubPipeLoad:
    """Emitters fed by one sub-pipe and where it joins the main network."""
    sub_pipe: IrrigationElement
    sprinklers: int = 0
    drip_emitters: int = 0
    connection: Optional[MainConnection] = None

    @property
    def emitters(self) -> int:
        return self.sprinklers + self.drip_emitters


@dataclass
class FlowAnalysis:
    """Aggregate summary plus the per-pipe records behind it."""
    summary: PipeFlowSummary
    pipes: list[PipeFlow] = field(default_factory=list)


class NetworkFlowAggregator:
    """
    Computes hydraulic flow through the implicit emitter/sub/main tree.

    Every emitter attached to a sub-pipe loads that sub-pipe, and each
    sub-pipe feeds the single main pipe nearest its start.
    """

    def __init__(
        self,
        resolver: Optional[ProximityResolver] = None,
        flow_rates: Optional[FlowRateConfig] = None,
    ):
        self.resolver = resolver or ProximityResolver()
        self.flow_rates = flow_rates or FlowRateConfig.from_settings()

    def aggregate(self, snapshot: NetworkSnapshot) -> FlowAnalysis:
        """
        Aggregate flow for a whole network snapshot.

        Args:
            snapshot: Shapes and irrigation elements

        Returns:
            FlowAnalysis with the PipeFlowSummary and per-pipe PipeFlow list
            (main pipes first, then sub-pipes, in input order)
        """
        main_pipes = snapshot.main_pipes
        sub_pipes = snapshot.sub_pipes
        sprinklers = snapshot.sprinklers
        drip_lines = snapshot.drip_lines

        total_drip_emitters = sum(
            drip_emitter_count(pipe_length_m(d), d.spacing) for d in drip_lines
        )
        total_emitters = len(sprinklers) + total_drip_emitters
        total_flow = self.flow_rates.emitter_flow(len(sprinklers), total_drip_emitters)

        loads = self._assign_emitters(snapshot)
        for load in loads:
            load.connection = self.resolver.main_connection(load.sub_pipe.coords, main_pipes)

        sub_flows = [self.flow_rates.emitter_flow(load.sprinklers, load.drip_emitters) for load in loads]

        # Flow and connection count per main pipe
        main_flows = [0.0] * len(main_pipes)
        main_connections = [0] * len(main_pipes)
        main_emitters = [0] * len(main_pipes)
        for load, flow in zip(loads, sub_flows):
            if load.connection is None:
                continue
            index = load.connection.main_index
            main_flows[index] += flow
            main_connections[index] += 1
            main_emitters[index] += load.emitters

        if not sub_pipes:
            main_flows = [total_flow] * len(main_pipes)

        if not main_pipes:
            main_pipe_flow_rate = 0.0
        elif not sub_pipes:
            main_pipe_flow_rate = total_flow
        else:
            main_pipe_flow_rate = max(main_flows)

        connected = sum(1 for load in loads if load.connection is not None)
        fed_emitters = sum(load.emitters for load in loads)

        summary = PipeFlowSummary(
            main_pipe_count=len(main_pipes),
            sub_pipe_count=len(sub_pipes),
            total_emitters=total_emitters,
            total_flow_rate=round2(total_flow),
            main_pipe_flow_rate=round2(main_pipe_flow_rate),
            sub_pipe_flow_rate=round2(max(sub_flows, default=0.0)),
            connections=ConnectionCounts(main_to_sub=connected, sub_to_emitters=fed_emitters),
            longest=self.critical_runs(snapshot, main_connections, total_flow),
        )

        pipes = [
            PipeFlow(
                pipe_id=main.id,
                pipe_type=main.type.value,
                length=round2(pipe_length_m(main)),
                emitters=main_emitters[i] if sub_pipes else total_emitters,
                connections=main_connections[i],
                flow_rate=round2(main_flows[i]),
            )
            for i, main in enumerate(main_pipes)
        ]
        pipes.extend(
            PipeFlow(
                pipe_id=load.sub_pipe.id,
                pipe_type=load.sub_pipe.type.value,
                length=round2(pipe_length_m(load.sub_pipe)),
                emitters=load.emitters,
                connections=1 if load.connection else 0,
                flow_rate=round2(flow),
            )
            for load, flow in zip(loads, sub_flows)
        )

        logger.info(f"Flow aggregated: {len(main_pipes)} main, {len(sub_pipes)} sub, "
                    f"{total_emitters} emitters, total={summary.total_flow_rate} L/min, "
                    f"main={summary.main_pipe_flow_rate} L/min, sub={summary.sub_pipe_flow_rate} L/min")

        return FlowAnalysis(summary=summary, pipes=pipes)

    def _assign_emitters(self, snapshot: NetworkSnapshot) -> list[SubPipeLoad]:
        """
        Collect the emitters attached to each sub-pipe.

        An emitter within attach_px of several sub-pipes loads every one of
        them, so the sum of sub-pipe flows can exceed the total emitter flow.

        Args:
            snapshot: Shapes and irrigation elements

        Returns:
            One SubPipeLoad per sub-pipe, in input order
        """
        loads = []
        for sub_pipe in snapshot.sub_pipes:
            sprinklers, drip_emitters = self._attached_emitters(sub_pipe, snapshot)
            loads.append(SubPipeLoad(sub_pipe=sub_pipe, sprinklers=sprinklers, drip_emitters=drip_emitters))
        logger.debug(f"Emitters per sub-pipe: {[(load.sub_pipe.id, load.emitters) for load in loads]}")
        return loads

    def critical_runs(
        self,
        snapshot: NetworkSnapshot,
        main_connections: list[int],
        total_flow: float,
    ) -> CriticalRunMetrics:
        """
        Worst-case sizing runs.

        Longest main: the main pipe with the greatest length; its flow is
        the average flow per sub-pipe times its connection count (total
        emitter flow when there are no sub-pipes).

        Longest sub: among sub-pipes within longest_tie_px of the maximum
        length, the one with the most attached emitters. Ties keep the
        first in input order.

        Args:
            snapshot: Shapes and irrigation elements
            main_connections: Connected sub-pipe count per main pipe
            total_flow: Flow of every emitter in the network

        Returns:
            CriticalRunMetrics
        """
        main_pipes = snapshot.main_pipes
        sub_pipes = snapshot.sub_pipes
        average_sub_flow = total_flow / len(sub_pipes) if sub_pipes else 0.0

        longest_main = LongestMainRun()
        if main_pipes:
            lengths = [polyline_length(m.coords) for m in main_pipes]
            index = lengths.index(max(lengths))
            connections = main_connections[index]
            flow = average_sub_flow * connections if sub_pipes else total_flow
            longest_main = LongestMainRun(
                length=round2(pipe_length_m(main_pipes[index])),
                connections=connections,
                flow_rate=round2(flow),
            )

        longest_sub = LongestSubRun(flow_rate=round2(average_sub_flow))
        if sub_pipes:
            lengths = [polyline_length(s.coords) for s in sub_pipes]
            longest = max(lengths)
            candidates = [
                s for s, length in zip(sub_pipes, lengths)
                if longest - length < self.resolver.tolerances.longest_tie_px
            ]
            logger.debug(f"Longest sub-pipe candidates: {[c.id for c in candidates]}")

            best: Optional[tuple[IrrigationElement, int, int]] = None
            for candidate in candidates:
                sprinklers, drip_emitters = self._attached_emitters(candidate, snapshot)
                if best is None or sprinklers + drip_emitters > best[1] + best[2]:
                    best = (candidate, sprinklers, drip_emitters)

            sub, sprinklers, drip_emitters = best
            longest_sub = LongestSubRun(
                length=round2(pipe_length_m(sub)),
                emitters=sprinklers + drip_emitters,
                flow_rate=round2(self.flow_rates.emitter_flow(sprinklers, drip_emitters)),
            )

        return CriticalRunMetrics(main=longest_main, sub=longest_sub)

    def _attached_emitters(
        self,
        sub_pipe: IrrigationElement,
        snapshot: NetworkSnapshot,
    ) -> tuple[int, int]:
        """Sprinklers and drip emitters within attach_px of one sub-pipe."""
        coords = sub_pipe.coords
        sprinklers = sum(
            1 for s in snapshot.sprinklers
            if s.points and self.resolver.point_attach_distance(s.coords[0], coords) is not None
        )
        drip_emitters = sum(
            drip_emitter_count(pipe_length_m(d), d.spacing)
            for d in snapshot.drip_lines
            if self.resolver.drip_line_attach_distance(d.coords, coords) is not None
        )
        return sprinklers, drip_emitters
