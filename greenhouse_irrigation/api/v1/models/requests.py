"""
API request models using Pydantic.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from greenhouse_irrigation.domain.models import IrrigationElement, NetworkSnapshot, Shape
from greenhouse_irrigation.services.domain.flow_aggregator import FlowRateConfig


class RequestModel(BaseModel):
    
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        allow_inf_nan = False


class FlowRatesInput(RequestModel):
    """Per-emitter flow rates in L/min."""
    sprinkler_flow_rate: float = Field(
        default=10.0,
        ge=0,
        description="Flow rate of one sprinkler in L/min"
    )
    drip_emitter_flow_rate: float = Field(
        default=0.24,
        ge=0,
        description="Flow rate of one drip emitter in L/min"
    )
    
    def to_config(self) -> FlowRateConfig:
        return FlowRateConfig(
            sprinkler_flow_rate=self.sprinkler_flow_rate,
            drip_emitter_flow_rate=self.drip_emitter_flow_rate,
        )


class AnalyzeNetworkRequest(RequestModel):
    """Request body for the network analysis endpoint."""
    shapes: List[Shape] = Field(
        default_factory=list,
        description="Greenhouses, plots, walkways, water sources and measurements"
    )
    irrigation_elements: List[IrrigationElement] = Field(
        default_factory=list,
        description="Pipes, emitters, pumps, valves and tanks"
    )
    flow_rates: Optional[FlowRatesInput] = Field(
        default=None,
        description="Emitter flow rates; server defaults when omitted"
    )
    include_water_requirements: bool = Field(
        default=False,
        description="Fetch per-plot water figures from the Water Requirement Engine"
    )
    crop_densities: Optional[Dict[str, float]] = Field(
        default=None,
        description="Plants per m² keyed by crop, forwarded to the Water Requirement Engine"
    )
    
    def to_snapshot(self) -> NetworkSnapshot:
        return NetworkSnapshot(
            shapes=self.shapes,
            irrigation_elements=self.irrigation_elements,
        )
    
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "shapes": [
                    {
                        "id": "plot-1",
                        "type": "plot",
                        "name": "Tomatoes",
                        "cropType": "tomato",
                        "points": [
                            {"x": 0, "y": 0}, {"x": 200, "y": 0},
                            {"x": 200, "y": 100}, {"x": 0, "y": 100},
                        ],
                    }
                ],
                "irrigationElements": [
                    {"id": "main-1", "type": "main-pipe", "points": [{"x": -50, "y": 50}, {"x": 0, "y": 50}]},
                    {"id": "sub-1", "type": "sub-pipe", "points": [{"x": 0, "y": 50}, {"x": 200, "y": 50}]},
                    {"id": "spr-1", "type": "sprinkler", "points": [{"x": 100, "y": 55}], "radius": 2},
                ],
                "includeWaterRequirements": False,
            }
        }
