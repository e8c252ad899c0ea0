"""Configuration package -- typed, validated settings from YAML + .env."""

from .settings import GatewaySettings, PipelineSettings, SourceSettings

__all__ = [
    "GatewaySettings",
    "PipelineSettings",
    "SourceSettings",
    "load_all_settings",
]


def load_all_settings() -> tuple[SourceSettings, GatewaySettings, PipelineSettings]:
    """Load and return all configuration objects.

    Returns a tuple of (SourceSettings, GatewaySettings, PipelineSettings),
    each populated from its own YAML file with environment variable overrides.
    """
    return SourceSettings(), GatewaySettings(), PipelineSettings()
