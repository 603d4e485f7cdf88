"""Configuration exceptions."""

from .base import RenderProfilerError


class ConfigurationError(RenderProfilerError):
    """Raised when configuration files, env vars or overrides are invalid."""

    code = "INVALID_CONFIG"
    exit_code = 2
