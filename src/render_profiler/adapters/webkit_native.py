"""File-based adapter for sanitized traces written by on-device WebKit instrumentation."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional

from ..capabilities import AdapterType, Capability
from ..exceptions import TraceNotFoundError
from ..logging_config import get_logger
from ..snapshot import (
    DOMSignal,
    DOMSignalType,
    FrameTiming,
    LongTaskInfo,
    TraceSnapshot,
    TraceSnapshotMetadata,
    Viewport,
    calculate_frame_metrics,
    generate_trace_id,
)
from .base import AdapterMetadata, BrowserAdapter, CollectOptions, ConnectOptions
from .native_schema import parse_native_trace, validate_native_trace

logger = get_logger(__name__)

DEFAULT_TRACE_DIR = Path(".render-debugger") / "traces"

WEBKIT_NATIVE_METADATA = AdapterMetadata(
    type=AdapterType.WEBKIT_NATIVE.value,
    name="WebKit Native Adapter",
    description="File-based trace ingestion for WebKit browsers (Safari, iOS WebView) via the native SDK",
    capabilities=frozenset({Capability.FRAME_TIMING, Capability.LONG_TASKS, Capability.DOM_SIGNALS}),
    browser_patterns=tuple(re.compile(p, re.IGNORECASE) for p in ("safari", "webkit", "ios", "iphone", "ipad")),
    priority=50,
)

DOM_SIGNAL_TYPES = {
    "layout": DOMSignalType.FORCED_REFLOW,
    "style_recalc": DOMSignalType.STYLE_RECALC,
    "dom_mutation": DOMSignalType.DOM_MUTATION,
}


class WebKitNativeAdapter(BrowserAdapter):
    """Reads trace files instead of talking to a live browser.

    "Connecting" selects a trace source: an explicit file or a directory to
    pick files from.
    """

    def __init__(self) -> None:
        super().__init__()
        self.trace_file: Optional[Path] = None
        self.trace_dir: Optional[Path] = None
        self.loaded_trace: Optional[dict[str, Any]] = None

    @property
    def metadata(self) -> AdapterMetadata:
        return WEBKIT_NATIVE_METADATA

    def connect(self, options: ConnectOptions) -> None:
        self._require_disconnected()
        if options.trace_file:
            path = Path(options.trace_file)
            if not path.is_file() or not os.access(path, os.R_OK):
                raise TraceNotFoundError(path, "trace file not accessible")
            self.trace_file, self.trace_dir = path, None
        elif options.trace_dir:
            path = Path(options.trace_dir)
            if not path.is_dir():
                raise TraceNotFoundError(path, "trace directory not accessible")
            self.trace_file, self.trace_dir = None, path
        else:
            self.trace_file, self.trace_dir = None, Path.cwd() / DEFAULT_TRACE_DIR
            if not self.trace_dir.is_dir():
                logger.warning(f"Default trace directory does not exist: {self.trace_dir}")

        self._set_connected(True, "WebKit Native (file-based)")
        logger.info(f"WebKit Native Adapter initialized. Trace source: {self.trace_file or self.trace_dir}")

    def disconnect(self) -> None:
        self.trace_file = None
        self.trace_dir = None
        self.loaded_trace = None
        self._set_connected(False)
        logger.info("WebKit Native Adapter disconnected")

    def collect_trace(self, options: CollectOptions) -> TraceSnapshot:
        self._require_connected()
        self._set_collecting(True)
        try:
            path = self.resolve_trace_file(options)
            logger.debug(f"Reading trace file: {path}")
            native = read_native_trace(path)
            self.loaded_trace = native
            snapshot = normalize_native_trace(native, options)
        except Exception as e:
            self._set_error(str(e))
            raise
        finally:
            self._set_collecting(False)

        logger.info(
            f"Collected trace: {snapshot.name} "
            f"({len(snapshot.frame_timings)} frames, {len(snapshot.long_tasks)} long tasks)"
        )
        return snapshot

    def resolve_trace_file(self, options: CollectOptions) -> Path:
        """Explicit file, then a ``.json`` url, then ``<scenario>.json``, then the newest file."""
        if self.trace_file is not None:
            return self.trace_file
        if options.url and options.url.endswith(".json"):
            return Path(options.url)
        if self.trace_dir is not None:
            if options.scenario:
                candidate = self.trace_dir / f"{options.scenario}.json"
                if candidate.is_file():
                    return candidate
            latest = find_latest_trace_file(self.trace_dir)
            if latest is not None:
                return latest
        raise TraceNotFoundError(
            self.trace_dir or "<none>",
            "provide a trace file, a scenario, or ensure traces exist in the trace directory",
        )


def find_latest_trace_file(directory: Path, extension: str = ".json") -> Optional[Path]:
    if not directory.is_dir():
        return None
    candidates = [p for p in directory.iterdir() if p.is_file() and p.name.endswith(extension)]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)


def read_native_trace(path: Path) -> dict[str, Any]:
    """Read, decode and validate a trace file; warnings are logged."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise TraceNotFoundError(path, str(e)) from e
    native = parse_native_trace(text, source=path)
    for warning in validate_native_trace(native).warnings:
        logger.warning(f"Trace validation warning: {warning}")
    return native


def normalize_native_trace(native: dict[str, Any], options: Optional[CollectOptions] = None) -> TraceSnapshot:
    """Convert a validated document into a TraceSnapshot.

    Native sources observe no GPU or paint work and no frame phases.
    """
    options = options or CollectOptions()
    meta = native["metadata"]
    fps_target = options.fps_target or meta.get("fpsTarget") or 60
    budget_ms = 1000 / fps_target

    frame_timings = [
        FrameTiming(
            frame_id=f["frameId"],
            start_time=f["startTimestamp"],
            end_time=f["endTimestamp"],
            duration_ms=f["durationMs"],
            dropped=f["dropped"] or f["durationMs"] > budget_ms,
        )
        for f in native["frames"]
    ]
    long_tasks = [
        LongTaskInfo(
            start_time=t["startTimestamp"],
            duration_ms=t["durationMs"],
            function_name=t.get("functionName") or t.get("name") or "<unknown>",
            file=t.get("file"),
            line=t.get("line"),
            column=t.get("column"),
        )
        for t in native.get("longTasks") or []
    ]
    dom_signals = [
        DOMSignal(
            type=DOM_SIGNAL_TYPES.get(s.get("type"), DOMSignalType.FORCED_REFLOW),
            timestamp=s.get("timestamp", 0),
            duration_ms=s.get("durationMs") or 0,
            selector=s.get("selector"),
            affected_nodes=s.get("affectedNodes"),
        )
        for s in native.get("domSignals") or []
    ]

    screen = meta.get("screenSize")
    viewport = None
    if isinstance(screen, dict) and "width" in screen and "height" in screen:
        viewport = Viewport(width=screen["width"], height=screen["height"])

    return TraceSnapshot(
        id=native.get("traceId") or generate_trace_id(),
        name=options.trace_name or native["name"],
        duration_ms=native["durationMs"],
        frame_timings=frame_timings,
        frame_metrics=calculate_frame_metrics(frame_timings, fps_target),
        long_tasks=long_tasks,
        dom_signals=dom_signals,
        gpu_events=[],
        paint_events=[],
        metadata=TraceSnapshotMetadata(
            timestamp=meta["timestamp"],
            fps_target=fps_target,
            adapter_type=AdapterType.WEBKIT_NATIVE.value,
            platform="webkit",
            browser_version=_browser_version(meta),
            user_agent=_user_agent(meta),
            viewport=viewport,
            device_pixel_ratio=meta.get("scale"),
            scenario=options.scenario if options.scenario != "default" else meta.get("scenario"),
            url=options.url or meta.get("url"),
        ),
    )


def _browser_version(meta: dict[str, Any]) -> str:
    parts = [meta[k] for k in ("osVersion", "deviceModel") if meta.get(k)]
    if meta.get("appVersion"):
        parts.append(f"App/{meta['appVersion']}")
    return " ".join(parts) if parts else "WebKit Native"


def _user_agent(meta: dict[str, Any]) -> str:
    parts = ["WebKit"]
    if meta.get("osVersion"):
        parts.append(f"({meta['osVersion']})")
    if meta.get("bundleId"):
        parts.append(meta["bundleId"])
    return " ".join(parts)
