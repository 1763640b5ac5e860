"""
Derived value objects produced by the network analysis.

Everything here is recomputed from a full snapshot on every call and is
never persisted. Lengths are meters, areas square meters, flows L/min.
"""
from enum import Enum
from typing import List, Optional
import math
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


def round2(value: float) -> float:
    """Round half up to 2 decimals (lengths, areas and flows are never negative)."""
    if not math.isfinite(value):
        return 0.0
    return math.floor(value * 100 + 0.5) / 100


class ReportModel(BaseModel):
    """Base for report objects (camelCase on the wire)."""
    
    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ============================================================
# Water Requirement Engine figures
# ============================================================

class WaterIntensity(str, Enum):
    """Water-intensity class assigned by the Water Requirement Engine."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"


class PlotWaterRequirement(ReportModel):
    """Water volumes for one plot, as returned by the Water Requirement Engine."""
    plot_id: str
    plot_name: str = ""
    daily_liters: float = 0.0
    weekly_liters: float = 0.0
    monthly_liters: float = 0.0
    liters_per_square_meter_per_day: float = 0.0
    intensity: WaterIntensity = WaterIntensity.LOW


class WaterTotals(ReportModel):
    """Network-wide sums of the merged water figures."""
    plots_with_figures: int = 0
    daily_liters: float = 0.0
    weekly_liters: float = 0.0
    monthly_liters: float = 0.0


# ============================================================
# Per-plot profile
# ============================================================

class PlotPipeProfile(ReportModel):
    """Pipe lengths, emitters and flow serving one plot."""
    plot_id: str
    plot_name: str
    crop_type: str
    area: float = Field(default=0.0, description="Plot area in m²")
    max_main_pipe_length: float = Field(
        default=0.0,
        description="Distance along the main line from its start to the farthest sub-pipe feeding this plot"
    )
    total_main_pipe_length: float = 0.0
    max_sub_pipe_length: float = 0.0
    total_sub_pipe_length: float = 0.0
    max_total_pipe_length: float = 0.0
    total_pipe_length: float = 0.0
    sprinkler_count: int = 0
    drip_emitter_count: int = 0
    emitter_count: int = 0
    flow_rate: float = Field(default=0.0, description="Flow of the plot's emitters in L/min")
    has_pipes: bool = False
    water: Optional[PlotWaterRequirement] = None


class PlotTotals(ReportModel):
    """Sums and maxima over all plot profiles."""
    plot_count: int = 0
    total_area: float = 0.0
    max_main_pipe_length: float = 0.0
    max_sub_pipe_length: float = 0.0
    total_sub_pipe_length: float = 0.0
    max_total_pipe_length: float = 0.0
    total_sprinklers: int = 0
    total_drip_emitters: int = 0
    total_flow_rate: float = 0.0


# ============================================================
# Flow
# ============================================================

class PipeFlow(ReportModel):
    """Flow carried by a single main or sub pipe."""
    pipe_id: str
    pipe_type: str
    length: float = 0.0
    emitters: int = 0
    connections: int = 0
    flow_rate: float = 0.0


class ConnectionCounts(ReportModel):
    main_to_sub: int = 0
    sub_to_emitters: int = 0


class LongestMainRun(ReportModel):
    length: float = 0.0
    connections: int = 0
    flow_rate: float = 0.0


class LongestSubRun(ReportModel):
    length: float = 0.0
    emitters: int = 0
    flow_rate: float = 0.0


class CriticalRunMetrics(ReportModel):
    """Worst-case runs used to size the main and sub pipes."""
    main: LongestMainRun = Field(default_factory=LongestMainRun)
    sub: LongestSubRun = Field(default_factory=LongestSubRun)


class PipeFlowSummary(ReportModel):
    """Network-wide flow figures."""
    main_pipe_count: int = 0
    sub_pipe_count: int = 0
    total_emitters: int = 0
    total_flow_rate: float = 0.0
    main_pipe_flow_rate: float = 0.0
    sub_pipe_flow_rate: float = 0.0
    connections: ConnectionCounts = Field(default_factory=ConnectionCounts)
    longest: CriticalRunMetrics = Field(default_factory=CriticalRunMetrics)


# ============================================================
# Fittings
# ============================================================

class FittingBreakdown(ReportModel):
    two_way: int = 0
    three_way: int = 0
    four_way: int = 0
    
    @property
    def total(self) -> int:
        return self.two_way + self.three_way + self.four_way


class FittingsByRole(ReportModel):
    main: FittingBreakdown = Field(default_factory=FittingBreakdown)
    submain: FittingBreakdown = Field(default_factory=FittingBreakdown)


class NetworkFittingCounts(ReportModel):
    """2-/3-/4-way fitting counts, flattened and split by pipe role."""
    two_way: int = 0
    three_way: int = 0
    four_way: int = 0
    breakdown: FittingsByRole = Field(default_factory=FittingsByRole)


# ============================================================
# Layout and equipment
# ============================================================

class ShapeMetrics(ReportModel):
    """Areas and counts of the drawn layout shapes."""
    shape_type_count: int = 0
    greenhouse_area: float = 0.0
    plot_area: float = 0.0
    walkway_area: float = 0.0
    plot_count: int = 0
    water_source_count: int = 0


class EquipmentSummary(ReportModel):
    """Device counts and network-wide pipe length totals."""
    pumps: int = 0
    solenoid_valves: int = 0
    ball_valves: int = 0
    sprinklers: int = 0
    drip_lines: int = 0
    water_tanks: int = 0
    fertilizer_machines: int = 0
    tank_capacity_liters: float = 0.0
    max_main_pipe_length: float = 0.0
    total_main_pipe_length: float = 0.0
    max_sub_pipe_length: float = 0.0
    total_sub_pipe_length: float = 0.0
    total_drip_line_length: float = 0.0
    max_total_pipe_length: float = 0.0
    total_pipe_length: float = 0.0


# ============================================================
# Final report
# ============================================================

class NetworkReport(ReportModel):
    """Single summary object handed to rendering/UI consumers."""
    plots: List[PlotPipeProfile] = Field(default_factory=list)
    totals: PlotTotals = Field(default_factory=PlotTotals)
    flow: PipeFlowSummary = Field(default_factory=PipeFlowSummary)
    pipes: List[PipeFlow] = Field(default_factory=list)
    fittings: NetworkFittingCounts = Field(default_factory=NetworkFittingCounts)
    layout: ShapeMetrics = Field(default_factory=ShapeMetrics)
    equipment: EquipmentSummary = Field(default_factory=EquipmentSummary)
    water: Optional[WaterTotals] = None
