"""Exception hierarchy for Render Profiler."""

from .adapters import (
    AdapterError,
    AdapterNotFoundError,
    AdapterStateError,
    CDPConnectionError,
    CDPProtocolError,
)
from .base import RenderProfilerError
from .config import ConfigurationError
from .trace import (
    TraceError,
    TraceNotFoundError,
    TraceParseError,
    TraceValidationError,
)

__all__ = [
    "RenderProfilerError",
    "AdapterError",
    "AdapterNotFoundError",
    "AdapterStateError",
    "CDPConnectionError",
    "CDPProtocolError",
    "ConfigurationError",
    "TraceError",
    "TraceNotFoundError",
    "TraceParseError",
    "TraceValidationError",
]
