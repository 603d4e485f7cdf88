"""Offline trace loading: sanitized native documents or exported Chrome traces."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

from .adapters.base import CollectOptions
from .adapters.chromium_cdp import normalize_trace_events
from .adapters.native_schema import validate_native_trace
from .adapters.webkit_native import normalize_native_trace
from .exceptions import TraceNotFoundError, TraceParseError, TraceValidationError
from .logging_config import get_logger
from .snapshot import TraceSnapshot

logger = get_logger(__name__)


def detect_trace_format(data: Any) -> Optional[str]:
    """``"chrome"`` for a ``traceEvents`` document or a bare event list,
    ``"native"`` for a sanitized document, None otherwise."""
    if isinstance(data, list):
        return "chrome"
    if isinstance(data, dict):
        if isinstance(data.get("traceEvents"), list):
            return "chrome"
        if "frames" in data or "traceId" in data:
            return "native"
    return None


def load_trace_file(path: Union[str, Path], fps_target: Optional[float] = None) -> TraceSnapshot:
    """Read a trace file from disk and normalize it into a TraceSnapshot.

    Raises:
        TraceNotFoundError: If the file cannot be read
        TraceParseError: If the file is not JSON
        TraceValidationError: If the document is not a recognized trace
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise TraceNotFoundError(path, str(e)) from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise TraceParseError(path, f"Invalid JSON: {e.msg}") from e

    fmt = detect_trace_format(data)
    options = CollectOptions(scenario=path.stem, fps_target=fps_target, trace_name=path.stem)
    if fmt == "chrome":
        events = data if isinstance(data, list) else data["traceEvents"]
        logger.debug(f"Loaded Chrome trace with {len(events)} events from {path}")
        return normalize_trace_events(events, options)
    if fmt == "native":
        result = validate_native_trace(data)
        if not result.valid:
            raise TraceValidationError(path, result.errors)
        for warning in result.warnings:
            logger.warning(f"Trace validation warning: {warning}")
        options.trace_name = None
        return normalize_native_trace(data, options)
    raise TraceValidationError(path, ["Unrecognized trace format: expected traceEvents or a native trace document"])
