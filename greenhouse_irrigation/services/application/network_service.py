"""
Application service: Orchestration layer for network analysis.
"""
from typing import Dict, Optional
import logging

from greenhouse_irrigation.domain.models import NetworkSnapshot
from greenhouse_irrigation.domain.reports import NetworkReport
from greenhouse_irrigation.infrastructure.water_engine_client import (
    WaterEngineError,
    WaterRequirementClient,
)
from greenhouse_irrigation.services.domain.flow_aggregator import FlowRateConfig
from greenhouse_irrigation.services.domain.network_analyzer import IrrigationNetworkAnalyzer

logger = logging.getLogger(__name__)


class NetworkService:
    """
    Application service for irrigation network analysis.

    Orchestrates the analysis engine and the external Water Requirement
    Engine. No business logic here, only coordination between the
    infrastructure and domain layers.
    """

    def __init__(
        self,
        water_client: WaterRequirementClient,
        analyzer: IrrigationNetworkAnalyzer,
    ):
        """
        Initialize the service with dependencies.

        Args:
            water_client: Client for the Water Requirement Engine
            analyzer: Network analysis engine
        """
        self.water_client = water_client
        self.analyzer = analyzer

    async def analyze_network(
        self,
        snapshot: NetworkSnapshot,
        include_water_requirements: bool = False,
        crop_densities: Optional[Dict[str, float]] = None,
        flow_rates: Optional[FlowRateConfig] = None,
    ) -> NetworkReport:
        """
        Analyse a network and optionally merge plot water figures.

        This method orchestrates:
        1. Running the geometry and flow analysis
        2. Sending plot geometry to the Water Requirement Engine (optional)
        3. Merging the returned figures into the plot profiles

        Args:
            snapshot: Shapes and irrigation elements
            include_water_requirements: Whether to call the Water Requirement Engine
            crop_densities: Optional plants-per-m² overrides keyed by crop
            flow_rates: Per-call emitter flow rates (analyzer defaults if None)

        Returns:
            NetworkReport

        Raises:
            WaterEngineError: If the Water Requirement Engine call fails
        """
        analyzer = self.analyzer
        if flow_rates is not None:
            analyzer = IrrigationNetworkAnalyzer(analyzer.tolerances, flow_rates)

        report = analyzer.analyze(snapshot)

        if not include_water_requirements or not report.plots:
            return report

        requests = analyzer.reporter.build_water_requests(snapshot)
        try:
            requirements = await self.water_client.get_plot_requirements(
                plots=requests,
                crop_densities=crop_densities,
            )
        except WaterEngineError:
            logger.error(f"Water requirements unavailable for {len(requests)} plots")
            raise

        plots, water = analyzer.reporter.merge_water(report.plots, requirements)
        return report.model_copy(update={"plots": plots, "water": water})
