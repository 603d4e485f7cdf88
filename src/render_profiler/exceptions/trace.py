"""Trace ingestion exceptions: missing files, unparseable or invalid documents."""

from pathlib import Path
from typing import List, Optional, Union

from .base import RenderProfilerError


class TraceError(RenderProfilerError):
    """Base class for trace ingestion errors."""

    code = "TRACE_ERROR"
    exit_code = 30


class TraceParseError(TraceError):
    """Raised when trace content is not valid JSON."""

    code = "TRACE_PARSE_FAILED"
    exit_code = 30
    recoverable = True

    def __init__(self, source: Union[str, Path], reason: str):
        super().__init__(
            f"Failed to parse trace file: {source}",
            details={"source": str(source), "reason": reason},
        )
        self.source = str(source)
        self.reason = reason


class TraceNotFoundError(TraceError):
    """Raised when no trace file can be resolved."""

    code = "TRACE_NOT_FOUND"
    exit_code = 31

    def __init__(self, location: Union[str, Path], reason: Optional[str] = None):
        details = {"location": str(location)}
        if reason:
            details["reason"] = reason
        super().__init__(f"Trace file not found: {location}", details=details)
        self.location = str(location)


class TraceValidationError(TraceError):
    """Raised when a sanitized trace document fails schema validation.

    ``errors`` holds one string per offending field, each naming the
    field path (``metadata.fpsTarget``, ``frames[3].durationMs``).
    """

    code = "INVALID_TRACE_FORMAT"
    exit_code = 32

    def __init__(self, source: Union[str, Path], errors: List[str]):
        super().__init__(
            f"Invalid trace format in {source}: {'; '.join(errors)}",
            details={"source": str(source), "error_count": str(len(errors))},
        )
        self.source = str(source)
        self.errors = list(errors)
