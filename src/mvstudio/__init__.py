"""mvstudio: music video projects with provider-backed generation and publishing jobs."""

__version__ = "1.0.0"
