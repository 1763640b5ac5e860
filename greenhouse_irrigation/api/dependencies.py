"""
Dependency injection for FastAPI.
"""
from typing import Annotated
from fastapi import Depends
from slowapi import Limiter
from slowapi.util import get_remote_address

from greenhouse_irrigation.infrastructure.water_engine_client import (
    WaterRequirementClient,
    get_water_client,
)
from greenhouse_irrigation.services.domain.network_analyzer import IrrigationNetworkAnalyzer
from greenhouse_irrigation.services.application.network_service import NetworkService


# Rate limiter shared by the app and its routers
limiter = Limiter(key_func=get_remote_address)


def get_network_analyzer() -> IrrigationNetworkAnalyzer:
    """
    Dependency factory for IrrigationNetworkAnalyzer.
    
    Returns:
        IrrigationNetworkAnalyzer configured from settings
    """
    return IrrigationNetworkAnalyzer()


def get_network_service(
    water_client: Annotated[WaterRequirementClient, Depends(get_water_client)],
    analyzer: Annotated[IrrigationNetworkAnalyzer, Depends(get_network_analyzer)],
) -> NetworkService:
    """
    Dependency factory for NetworkService.
    
    Args:
        water_client: Water Requirement Engine client (injected)
        analyzer: Network analysis engine (injected)
        
    Returns:
        NetworkService instance
    """
    return NetworkService(water_client=water_client, analyzer=analyzer)


# Type aliases for cleaner route signatures
NetworkServiceDep = Annotated[NetworkService, Depends(get_network_service)]
