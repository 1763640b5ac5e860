"""
Domain service: Irrigation network analysis engine.

Stateless facade over the analysis pipeline:
    snapshot -> association -> flow aggregation & fitting classification -> report

Every call recomputes from the full snapshot; nothing is cached between
calls and input geometry is never mutated.
"""
from typing import Optional
import logging

from greenhouse_irrigation.domain.models import NetworkSnapshot
from greenhouse_irrigation.domain.reports import NetworkReport
from greenhouse_irrigation.services.domain.association import (
    ProximityResolver,
    ProximityTolerances,
)
from greenhouse_irrigation.services.domain.fitting_classifier import FittingClassifier
from greenhouse_irrigation.services.domain.flow_aggregator import (
    FlowRateConfig,
    NetworkFlowAggregator,
)
from greenhouse_irrigation.services.domain.metrics_reporter import MetricsReporter

logger = logging.getLogger(__name__)


class IrrigationNetworkAnalyzer:
    """
    Domain service for analysing a drawn irrigation network.

    Infers plot membership and pipe connectivity from raw coordinates,
    then reports:
    - Per-plot pipe lengths, emitters and flow
    - Network flow and worst-case runs
    - 2-/3-/4-way fitting counts
    - Layout areas and equipment totals
    """

    def __init__(
        self,
        tolerances: Optional[ProximityTolerances] = None,
        flow_rates: Optional[FlowRateConfig] = None,
    ):
        """
        Initialize the analyzer.

        Args:
            tolerances: Proximity tolerances (defaults from settings)
            flow_rates: Per-emitter flow rates (defaults from settings)
        """
        self.resolver = ProximityResolver(tolerances)
        self.flow_rates = flow_rates or FlowRateConfig.from_settings()

        self.flow_aggregator = NetworkFlowAggregator(self.resolver, self.flow_rates)
        self.fitting_classifier = FittingClassifier(self.resolver)
        self.reporter = MetricsReporter(self.resolver, self.flow_rates)

        logger.info(f"Initialized IrrigationNetworkAnalyzer with flow rates: "
                    f"sprinkler={self.flow_rates.sprinkler_flow_rate}, "
                    f"drip={self.flow_rates.drip_emitter_flow_rate}")

    @property
    def tolerances(self) -> ProximityTolerances:
        return self.resolver.tolerances

    def analyze(self, snapshot: NetworkSnapshot) -> NetworkReport:
        """
        Analyse a full network snapshot.

        Args:
            snapshot: All shapes and irrigation elements on the canvas

        Returns:
            NetworkReport without water figures
        """
        logger.info(f"Analysing network: {len(snapshot.shapes)} shapes, "
                    f"{len(snapshot.irrigation_elements)} irrigation elements")

        flow = self.flow_aggregator.aggregate(snapshot)
        fittings = self.fitting_classifier.classify(snapshot)
        report = self.reporter.build_report(snapshot, flow, fittings)

        logger.info(f"Analysis complete: {report.totals.plot_count} plots, "
                    f"{report.flow.total_emitters} emitters, "
                    f"{report.flow.total_flow_rate} L/min")
        return report
