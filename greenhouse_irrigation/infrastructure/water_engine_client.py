"""
Infrastructure layer: Water Requirement Engine client with retry logic.
"""
from typing import Any, Dict, List, Optional
import logging
from pydantic import BaseModel, Field
import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from greenhouse_irrigation.config import settings
from greenhouse_irrigation.domain.reports import PlotWaterRequirement
from greenhouse_irrigation.infrastructure.api_constants import (
    APIConstants,
    WaterEngineEndpoints,
)

logger = logging.getLogger(__name__)


# Pydantic models for engine responses
class PlotRequirementsResponse(BaseModel):
    """Response from the plot requirements endpoint."""
    results: List[PlotWaterRequirement] = Field(default_factory=list)


class WaterEngineError(Exception):
    """Raised when the Water Requirement Engine cannot be reached or rejects a request."""
    pass


class WaterRequirementClient:
    """
    Client for the external Water Requirement Engine.
    Calls are retried with exponential backoff (tenacity).

    Server errors (5xx) and transport errors are retried; client errors
    (4xx) fail immediately.
    """

    def __init__(self):
        """Initialize the client with configuration."""
        self.base_url = settings.water_engine_base_url
        self.api_key = settings.water_engine_api_key
        headers = {"accept": APIConstants.CONTENT_TYPE_JSON}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=settings.water_engine_timeout,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "WaterRequirementClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        await self.close()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.RequestError)),
        reraise=True,
    )
    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Send one request to the engine, retrying server and transport failures.

        Args:
            method: HTTP method
            endpoint: Engine path, see WaterEngineEndpoints
            **kwargs: Passed through to httpx (json payload, params)

        Returns:
            Decoded JSON body

        Raises:
            WaterEngineError: On a 4xx response or a body that is not JSON
            httpx.HTTPStatusError: On a 5xx response (retried)
            httpx.RequestError: On a transport failure (retried)
        """
        try:
            response = await self.client.request(method, endpoint, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            # Retry on server errors (5xx)
            if e.response.status_code >= 500:
                logger.warning(f"Water engine returned {e.response.status_code}, retrying")
                raise
            # Don't retry on client errors (4xx)
            raise WaterEngineError(
                f"Water engine request failed: {e.response.status_code} - {e.response.text}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise WaterEngineError(f"Water engine returned invalid JSON: {str(e)}") from e

    async def get_plot_requirements(
        self,
        plots: List[Dict[str, Any]],
        crop_densities: Optional[Dict[str, float]] = None,
    ) -> List[PlotWaterRequirement]:
        """
        Fetch water requirements for a set of plots.

        Args:
            plots: {plotId, plotName, cropType, points} payloads
            crop_densities: Optional plants-per-m² overrides keyed by crop

        Returns:
            List of PlotWaterRequirement instances

        Raises:
            WaterEngineError: If the request fails after retries or the
                response is malformed
        """
        if not plots:
            return []

        payload = {"plots": plots, "cropDensities": crop_densities or {}}
        try:
            data = await self._make_request(
                "POST",
                WaterEngineEndpoints.plot_requirements(),
                json=payload,
            )
        except httpx.HTTPStatusError as e:
            raise WaterEngineError(
                f"Water engine unavailable: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise WaterEngineError(f"Water engine request error: {str(e)}") from e

        try:
            response = PlotRequirementsResponse(**data)
        except (TypeError, ValueError) as e:
            raise WaterEngineError(f"Malformed water engine response: {str(e)}") from e

        logger.info(f"Received water requirements for {len(response.results)} plots")
        return response.results


# Singleton instance
_water_client: Optional[WaterRequirementClient] = None


def get_water_client() -> WaterRequirementClient:
    """
    Get or create the singleton Water Requirement Engine client.

    Returns:
        WaterRequirementClient instance
    """
    global _water_client
    if _water_client is None:
        _water_client = WaterRequirementClient()
    return _water_client


async def close_water_client():
    """Close the singleton client if it was created."""
    global _water_client
    if _water_client is not None:
        await _water_client.close()
        _water_client = None
