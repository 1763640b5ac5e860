"""
API endpoint constants and configuration.

Paths of the external Water Requirement Engine, kept in one place so the
engine's API version can be bumped without touching the client.
"""


class WaterEngineEndpoints:
    """Water Requirement Engine endpoint paths."""
    
    # Base paths
    WATER_BASE = "/water-requirements"
    
    # Requirement endpoints
    PLOT_REQUIREMENTS = f"{WATER_BASE}/plots"
    
    @classmethod
    def plot_requirements(cls) -> str:
        return cls.PLOT_REQUIREMENTS


class APIConstants:
    """General API configuration constants."""
    
    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"
