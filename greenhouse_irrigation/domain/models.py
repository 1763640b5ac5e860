"""
Domain models for the greenhouse layout and its irrigation network.

These models are immutable snapshots of what the user drew on the canvas.
They carry no topology: pipes and emitters are plain point sequences and
every relation between them is inferred by the analysis services.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


PX_PER_METER = 25.0
"""Canvas scale: pixels per real-world meter."""


class ShapeType(str, Enum):
    """Kinds of shapes drawn on the greenhouse canvas."""
    GREENHOUSE = "greenhouse"
    PLOT = "plot"
    WALKWAY = "walkway"
    WATER_SOURCE = "water-source"
    MEASUREMENT = "measurement"
    FERTILIZER_AREA = "fertilizer-area"


class ElementType(str, Enum):
    """Kinds of irrigation elements placed on the canvas."""
    MAIN_PIPE = "main-pipe"
    SUB_PIPE = "sub-pipe"
    SPRINKLER = "sprinkler"
    DRIP_LINE = "drip-line"
    PUMP = "pump"
    SOLENOID_VALVE = "solenoid-valve"
    BALL_VALVE = "ball-valve"
    WATER_TANK = "water-tank"
    FERTILIZER_MACHINE = "fertilizer-machine"


class CanvasModel(BaseModel):
    """Base for immutable canvas snapshots (camelCase on the wire)."""
    
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True
        allow_inf_nan = False


class Point(CanvasModel):
    """Canvas point in pixels."""
    x: float
    y: float
    
    @property
    def coords(self) -> tuple[float, float]:
        return (self.x, self.y)


class Shape(CanvasModel):
    """A plot, greenhouse boundary, walkway, water source or measurement."""
    id: str
    type: ShapeType
    name: str = ""
    points: List[Point] = Field(default_factory=list)
    crop_type: Optional[str] = None
    
    @property
    def coords(self) -> list[tuple[float, float]]:
        return [p.coords for p in self.points]


class IrrigationElement(CanvasModel):
    """A pipe polyline or a single-point irrigation device."""
    id: str
    type: ElementType
    points: List[Point] = Field(default_factory=list)
    width: Optional[float] = None
    radius: Optional[float] = Field(
        default=None,
        description="Sprinkler throw radius in meters"
    )
    spacing: Optional[float] = Field(
        default=None,
        description="Drip emitter spacing in meters"
    )
    capacity_liters: Optional[float] = None
    
    @property
    def coords(self) -> list[tuple[float, float]]:
        return [p.coords for p in self.points]


class NetworkSnapshot(CanvasModel):
    """Everything the analysis needs: the full set of shapes and elements."""
    shapes: List[Shape] = Field(default_factory=list)
    irrigation_elements: List[IrrigationElement] = Field(default_factory=list)
    
    def shapes_of(self, shape_type: ShapeType) -> list[Shape]:
        return [s for s in self.shapes if s.type == shape_type]
    
    def elements_of(self, element_type: ElementType) -> list[IrrigationElement]:
        return [e for e in self.irrigation_elements if e.type == element_type]
    
    @property
    def plots(self) -> list[Shape]:
        return self.shapes_of(ShapeType.PLOT)
    
    @property
    def main_pipes(self) -> list[IrrigationElement]:
        return self.elements_of(ElementType.MAIN_PIPE)
    
    @property
    def sub_pipes(self) -> list[IrrigationElement]:
        return self.elements_of(ElementType.SUB_PIPE)
    
    @property
    def sprinklers(self) -> list[IrrigationElement]:
        return self.elements_of(ElementType.SPRINKLER)
    
    @property
    def drip_lines(self) -> list[IrrigationElement]:
        return self.elements_of(ElementType.DRIP_LINE)
    
    @property
    def pumps(self) -> list[IrrigationElement]:
        return self.elements_of(ElementType.PUMP)
