"""Validation of sanitized on-device trace documents.

The document layout (all timestamps µs since trace start, durations ms)::

    {
      "version": "1.1", "traceId": "...", "name": "...", "durationMs": 1200,
      "frames": [{"frameId", "startTimestamp", "endTimestamp", "durationMs", "dropped"}],
      "longTasks": [{"startTimestamp", "durationMs", "source": "native"|"webview", ...}],
      "domSignals": [{"type": "layout"|"style_recalc"|"dom_mutation", "timestamp", ...}],
      "metadata": {"timestamp", "fpsTarget", "bundleId", "osVersion", ...}
    }

Every error string names the offending field path.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from ..exceptions import TraceParseError, TraceValidationError

REQUIRED_FIELDS = ("version", "traceId", "name", "durationMs", "frames", "metadata")
REQUIRED_METADATA_FIELDS = ("timestamp", "fpsTarget")
SUPPORTED_VERSIONS = ("1.0", "1.1")

_FRAME_NUMBER_FIELDS = ("frameId", "startTimestamp", "endTimestamp", "durationMs")
_LONG_TASK_SOURCES = ("native", "webview")
_DOM_SIGNAL_TYPES = ("layout", "style_recalc", "dom_mutation")


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_native_trace(data: Any) -> ValidationResult:
    """Check a decoded document; unknown versions only warn."""
    if not isinstance(data, dict):
        return ValidationResult(valid=False, errors=["Trace must be a non-null object"])

    errors: list[str] = []
    warnings: list[str] = []

    for name in REQUIRED_FIELDS:
        if name not in data:
            errors.append(f"Missing required field: {name}")

    if "version" in data:
        version = data["version"]
        if not isinstance(version, str):
            errors.append('Field "version" must be a string')
        elif version not in SUPPORTED_VERSIONS:
            warnings.append(
                f"Unknown schema version: {version}. Supported versions: {', '.join(SUPPORTED_VERSIONS)}"
            )

    for name in ("traceId", "name"):
        if name in data and not isinstance(data[name], str):
            errors.append(f'Field "{name}" must be a string')

    if "durationMs" in data and not (_is_number(data["durationMs"]) and data["durationMs"] >= 0):
        errors.append('Field "durationMs" must be a non-negative number')

    if "frames" in data:
        if isinstance(data["frames"], list):
            errors.extend(_validate_frames(data["frames"]))
        else:
            errors.append('Field "frames" must be an array')

    if "longTasks" in data:
        if isinstance(data["longTasks"], list):
            errors.extend(_validate_long_tasks(data["longTasks"]))
        else:
            errors.append('Field "longTasks" must be an array')

    if "domSignals" in data:
        if isinstance(data["domSignals"], list):
            errors.extend(_validate_dom_signals(data["domSignals"]))
        else:
            errors.append('Field "domSignals" must be an array')

    if "metadata" in data:
        if isinstance(data["metadata"], dict):
            errors.extend(_validate_metadata(data["metadata"]))
        else:
            errors.append('Field "metadata" must be an object')

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def _validate_frames(frames: list) -> list[str]:
    errors = []
    for i, frame in enumerate(frames):
        if not isinstance(frame, dict):
            errors.append(f"Field \"frames[{i}]\" must be an object")
            continue
        for name in _FRAME_NUMBER_FIELDS:
            if not _is_number(frame.get(name)):
                errors.append(f'Field "frames[{i}].{name}" must be a number')
        if not isinstance(frame.get("dropped"), bool):
            errors.append(f'Field "frames[{i}].dropped" must be a boolean')
    return errors


def _validate_long_tasks(tasks: list) -> list[str]:
    errors = []
    for i, task in enumerate(tasks):
        if not isinstance(task, dict):
            errors.append(f"Field \"longTasks[{i}]\" must be an object")
            continue
        for name in ("startTimestamp", "durationMs"):
            if not _is_number(task.get(name)):
                errors.append(f'Field "longTasks[{i}].{name}" must be a number')
        if task.get("source") not in _LONG_TASK_SOURCES:
            errors.append(f'Field "longTasks[{i}].source" must be "native" or "webview"')
    return errors


def _validate_dom_signals(signals: list) -> list[str]:
    errors = []
    for i, signal in enumerate(signals):
        if not isinstance(signal, dict):
            errors.append(f"Field \"domSignals[{i}]\" must be an object")
            continue
        if signal.get("type") not in _DOM_SIGNAL_TYPES:
            errors.append(f'Field "domSignals[{i}].type" must be one of: {", ".join(_DOM_SIGNAL_TYPES)}')
        if not _is_number(signal.get("timestamp")):
            errors.append(f'Field "domSignals[{i}].timestamp" must be a number')
        if "durationMs" in signal and not _is_number(signal["durationMs"]):
            errors.append(f'Field "domSignals[{i}].durationMs" must be a number')
    return errors


def _validate_metadata(metadata: dict) -> list[str]:
    errors = []
    for name in REQUIRED_METADATA_FIELDS:
        if name not in metadata:
            errors.append(f"Missing required field: metadata.{name}")
    if "timestamp" in metadata and not isinstance(metadata["timestamp"], str):
        errors.append('Field "metadata.timestamp" must be a string')
    if "fpsTarget" in metadata and not (_is_number(metadata["fpsTarget"]) and metadata["fpsTarget"] > 0):
        errors.append('Field "metadata.fpsTarget" must be a positive number')
    if "screenSize" in metadata:
        screen = metadata["screenSize"]
        if not isinstance(screen, dict):
            errors.append('Field "metadata.screenSize" must be an object')
        else:
            for name in ("width", "height"):
                if not _is_number(screen.get(name)):
                    errors.append(f'Field "metadata.screenSize.{name}" must be a number')
    return errors


def parse_native_trace(text: str, source: Union[str, Path] = "<string>") -> dict[str, Any]:
    """Decode and validate a document.

    Raises:
        TraceParseError: If ``text`` is not valid JSON
        TraceValidationError: If the document fails validation
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise TraceParseError(source, f"Invalid JSON: {e.msg}") from e

    result = validate_native_trace(data)
    if not result.valid:
        raise TraceValidationError(source, result.errors)
    return data
