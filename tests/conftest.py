"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Element and shape factories
- A reference network (one plot, one main pipe, two sub-pipes, six sprinklers)
- Analysis services with default tolerances and flow rates
- Mock Water Requirement Engine client
- FastAPI test client
"""
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from tenacity import wait_none

from greenhouse_irrigation.main import app
from greenhouse_irrigation.domain.models import (
    ElementType,
    IrrigationElement,
    NetworkSnapshot,
    Point,
    Shape,
    ShapeType,
)
from greenhouse_irrigation.infrastructure.water_engine_client import WaterRequirementClient
from greenhouse_irrigation.services.domain.association import (
    ProximityResolver,
    ProximityTolerances,
)
from greenhouse_irrigation.services.domain.flow_aggregator import FlowRateConfig
from greenhouse_irrigation.services.domain.network_analyzer import IrrigationNetworkAnalyzer


def _points(coords) -> list[Point]:
    return [Point(x=x, y=y) for x, y in coords]


# ============================================================
# Factory Fixtures
# ============================================================

@pytest.fixture
def make_element():
    """Build an IrrigationElement from an id, a type and (x, y) tuples."""
    def _make(element_id: str, element_type: ElementType, coords, **kwargs) -> IrrigationElement:
        return IrrigationElement(
            id=element_id,
            type=element_type,
            points=_points(coords),
            **kwargs,
        )
    return _make


@pytest.fixture
def make_shape():
    """Build a Shape from an id, a type and (x, y) tuples."""
    def _make(shape_id: str, shape_type: ShapeType, coords, **kwargs) -> Shape:
        return Shape(
            id=shape_id,
            type=shape_type,
            points=_points(coords),
            **kwargs,
        )
    return _make


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def plot_polygon() -> list[tuple[float, float]]:
    """10 m x 5 m plot (250 x 125 px)."""
    return [(0, 0), (250, 0), (250, 125), (0, 125)]


@pytest.fixture
def simple_network(make_element, make_shape, plot_polygon) -> NetworkSnapshot:
    """
    One plot fed by a 3 m main pipe and two 10 m sub-pipes.

    The main pipe runs down x = -25. Each sub-pipe starts on it (at
    stations 0 m and 3 m) and carries three sprinklers.
    """
    shapes = [
        make_shape("plot-1", ShapeType.PLOT, plot_polygon, name="Tomatoes", crop_type="tomato"),
    ]
    elements = [
        make_element("main-1", ElementType.MAIN_PIPE, [(-25, 25), (-25, 100)]),
        make_element("sub-1", ElementType.SUB_PIPE, [(-25, 25), (225, 25)]),
        make_element("sub-2", ElementType.SUB_PIPE, [(-25, 100), (225, 100)]),
    ]
    for i, (x, y) in enumerate([(50, 25), (100, 25), (150, 25), (50, 100), (100, 100), (150, 100)]):
        elements.append(make_element(f"spr-{i + 1}", ElementType.SPRINKLER, [(x, y)], radius=2.0))
    return NetworkSnapshot(shapes=shapes, irrigation_elements=elements)


@pytest.fixture
def empty_network() -> NetworkSnapshot:
    return NetworkSnapshot()


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def tolerances() -> ProximityTolerances:
    return ProximityTolerances()


@pytest.fixture
def resolver(tolerances) -> ProximityResolver:
    return ProximityResolver(tolerances)


@pytest.fixture
def flow_rates() -> FlowRateConfig:
    return FlowRateConfig(sprinkler_flow_rate=10.0, drip_emitter_flow_rate=0.24)


@pytest.fixture
def analyzer(tolerances, flow_rates) -> IrrigationNetworkAnalyzer:
    return IrrigationNetworkAnalyzer(tolerances=tolerances, flow_rates=flow_rates)


# ============================================================
# Mock Water Engine Fixtures
# ============================================================

@pytest.fixture
def mock_water_client():
    """Create a mock Water Requirement Engine client."""
    mock_client = AsyncMock(spec=WaterRequirementClient)
    mock_client.get_plot_requirements.return_value = []
    return mock_client


@pytest.fixture
def fast_retries(monkeypatch):
    """Remove the backoff between retries so retry tests run instantly."""
    monkeypatch.setattr(WaterRequirementClient._make_request.retry, "wait", wait_none())


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)
