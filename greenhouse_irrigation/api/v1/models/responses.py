"""
API response models using Pydantic.
"""
from greenhouse_irrigation.domain.reports import NetworkReport


class NetworkAnalysisResponse(NetworkReport):
    """Response model for the network analysis endpoint."""
    
    class Config:
        json_schema_extra = {
            "example": {
                "plots": [
                    {
                        "plotId": "plot-1",
                        "plotName": "Tomatoes",
                        "cropType": "tomato",
                        "area": 32.0,
                        "maxMainPipeLength": 2.0,
                        "maxSubPipeLength": 8.0,
                        "sprinklerCount": 1,
                        "flowRate": 10.0,
                        "hasPipes": True,
                    }
                ],
                "flow": {
                    "mainPipeCount": 1,
                    "subPipeCount": 1,
                    "totalEmitters": 1,
                    "totalFlowRate": 10.0,
                    "mainPipeFlowRate": 10.0,
                    "subPipeFlowRate": 10.0,
                },
                "fittings": {"twoWay": 1, "threeWay": 1, "fourWay": 0},
            }
        }
