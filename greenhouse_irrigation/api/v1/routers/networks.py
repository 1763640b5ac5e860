"""
API router for irrigation network endpoints.
"""
from fastapi import APIRouter, HTTPException, Request

from greenhouse_irrigation.api.dependencies import NetworkServiceDep, limiter
from greenhouse_irrigation.api.v1.models.requests import AnalyzeNetworkRequest
from greenhouse_irrigation.api.v1.models.responses import NetworkAnalysisResponse
from greenhouse_irrigation.config import settings
from greenhouse_irrigation.infrastructure.water_engine_client import WaterEngineError


router = APIRouter(
    prefix="/networks",
    tags=["networks"],
)


@router.post(
    "/analyze",
    response_model=NetworkAnalysisResponse,
    summary="Analyse an irrigation network",
    description="""
    Analyse a drawn greenhouse layout and its irrigation network.
    
    This endpoint:
    1. Infers which plot each pipe and emitter serves
    2. Aggregates flow bottom-up (emitters -> sub-pipes -> main pipes)
    3. Computes the longest main and sub runs used for pipe sizing
    4. Detects and classifies 2-/3-/4-way fittings
    5. Optionally merges per-plot water requirements from the Water Requirement Engine
    
    Connectivity is inferred from proximity on the canvas (25 px = 1 m):
    - Sub-pipes connect to a main pipe within 50 px of their start
    - Emitters attach to a pipe within 12 px
    - Junctions closer than 8 px along a sub-pipe share one fitting
    """,
    responses={
        200: {
            "description": "Network analysed successfully",
        },
        422: {
            "description": "Malformed shapes or irrigation elements",
        },
        429: {
            "description": "Rate limit exceeded",
        },
        502: {
            "description": "Water Requirement Engine failure",
        }
    }
)
@limiter.limit(f"{settings.rate_limit_requests}/minute")
async def analyze_network(
    request: Request,
    body: AnalyzeNetworkRequest,
    network_service: NetworkServiceDep,
) -> NetworkAnalysisResponse:
    """
    Analyse an irrigation network snapshot.
    
    Args:
        request: Incoming request (used by the rate limiter)
        body: Shapes, irrigation elements and analysis options
        network_service: Network service (injected dependency)
        
    Returns:
        NetworkAnalysisResponse with plot profiles, flow, fittings and totals
        
    Raises:
        HTTPException: 502 if the Water Requirement Engine fails
    """
    try:
        # Delegate to service layer (no business logic here)
        report = await network_service.analyze_network(
            snapshot=body.to_snapshot(),
            include_water_requirements=body.include_water_requirements,
            crop_densities=body.crop_densities,
            flow_rates=body.flow_rates.to_config() if body.flow_rates else None,
        )
    
    except WaterEngineError as e:
        raise HTTPException(
            status_code=502,
            detail=f"Water Requirement Engine failure: {str(e)}"
        )
    
    # Transform to response model
    return NetworkAnalysisResponse(**report.model_dump())
