"""Full-protocol adapter for Chromium-based browsers over the DevTools Protocol."""

from __future__ import annotations

import re
import threading
from dataclasses import replace
from typing import Any, Optional

from ..capabilities import ALL_CAPABILITIES, AdapterType
from ..exceptions import CDPConnectionError, CDPProtocolError
from ..exceptions.recovery import CDP_RECOVERY, with_retry
from ..logging_config import get_logger
from ..snapshot import (
    DOMSignal,
    DOMSignalType,
    FrameTiming,
    GPUEvent,
    GPUEventType,
    LongTaskInfo,
    PaintBounds,
    PaintEvent,
    StackFrameInfo,
    TraceSnapshot,
    TraceSnapshotMetadata,
    calculate_frame_metrics,
    generate_trace_id,
    now_iso,
)
from .base import AdapterMetadata, BrowserAdapter, CollectOptions, ConnectOptions
from .cdp_client import CDPClient

logger = get_logger(__name__)

DEFAULT_TRACE_CATEGORIES = (
    "devtools.timeline",
    "blink.user_timing",
    "gpu",
    "v8.execute",
    "disabled-by-default-devtools.timeline",
    "disabled-by-default-devtools.timeline.frame",
    "disabled-by-default-devtools.timeline.stack",
    "disabled-by-default-v8.cpu_profiler",
)

LONG_TASK_EVENTS = frozenset({"FunctionCall", "Task", "RunTask", "EvaluateScript"})
LONG_TASK_THRESHOLD_MS = 50

# Upper bound on waiting for Tracing.tracingComplete after Tracing.end
_DRAIN_TIMEOUT_S = 30.0

CHROMIUM_CDP_METADATA = AdapterMetadata(
    type=AdapterType.CHROMIUM_CDP.value,
    name="Chromium CDP Adapter",
    description="Full CDP access for Chromium-based browsers (Chrome, Edge, Brave, Arc, Dia, Zen)",
    capabilities=ALL_CAPABILITIES,
    browser_patterns=tuple(
        re.compile(p, re.IGNORECASE)
        for p in ("chrome", "chromium", "edge", "brave", "arc", "dia", "zen", "opera", "vivaldi")
    ),
    priority=100,
)


class ChromiumCDPAdapter(BrowserAdapter):
    """Attach to a running browser's remote-debugging port and record traces."""

    def __init__(self) -> None:
        super().__init__()
        self._client: Optional[CDPClient] = None
        self._browser_info: dict[str, str] = {}

    @property
    def metadata(self) -> AdapterMetadata:
        return CHROMIUM_CDP_METADATA

    def connect(self, options: ConnectOptions) -> None:
        self._require_disconnected()
        host, port = options.host, options.port
        logger.info(f"Connecting to CDP at {host}:{port}")
        timeout = options.timeout_ms / 1000

        try:
            self._client = with_retry(lambda: CDPClient.connect(host, port, timeout), CDP_RECOVERY)
        except CDPConnectionError as e:
            self._set_error(e.message)
            raise

        try:
            version = self._client.send("Browser.getVersion")
        except CDPProtocolError as e:
            self._client.close()
            self._client = None
            self._set_error(e.message)
            raise
        self._browser_info = {
            "product": version.get("product") or "unknown",
            "userAgent": version.get("userAgent") or "unknown",
        }
        self._set_connected(True, self._browser_info["product"])
        logger.info(f"Connected to {self._browser_info['product']}")

    def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
        self._set_connected(False)
        logger.info("Disconnected from CDP")

    def collect_trace(self, options: CollectOptions) -> TraceSnapshot:
        self._require_connected()
        self._set_collecting(True)
        try:
            events = self._record(options)
        except Exception as e:
            self._set_error(str(e))
            raise
        finally:
            self._set_collecting(False)
        return normalize_trace_events(events, options, self._browser_info)

    def _record(self, options: CollectOptions) -> list[dict[str, Any]]:
        client = self._client
        categories = list(DEFAULT_TRACE_CATEGORIES)
        client.send(
            "Tracing.start",
            {
                "categories": ",".join(categories),
                "options": "sampling-frequency=10000",
                "bufferUsageReportingInterval": 500,
                "transferMode": "ReportEvents",
                "traceConfig": {
                    "recordMode": "recordAsMuchAsPossible",
                    "includedCategories": categories,
                },
            },
        )
        logger.debug("Tracing started")

        # Cancellation ends the window early; the partial trace is still drained.
        cancel = options.cancel_event or threading.Event()
        if cancel.wait(options.duration_ms / 1000):
            logger.info("Collection cancelled, stopping trace early")

        client.send("Tracing.end")
        events: list[dict[str, Any]] = []
        while True:
            message = client.next_event(_DRAIN_TIMEOUT_S)
            if message is None:
                logger.warning("Timed out waiting for Tracing.tracingComplete")
                break
            method = message.get("method")
            if method == "Tracing.dataCollected":
                value = (message.get("params") or {}).get("value")
                if isinstance(value, list):
                    events.extend(value)
            elif method == "Tracing.tracingComplete":
                break
        logger.debug(f"Tracing stopped, collected {len(events)} events")
        return events


def normalize_trace_events(
    events: list[dict[str, Any]],
    options: Optional[CollectOptions] = None,
    browser_info: Optional[dict[str, str]] = None,
) -> TraceSnapshot:
    """Normalize raw protocol trace events into a TraceSnapshot."""
    options = options or CollectOptions()
    browser_info = browser_info or {}
    fps_target = options.fps_target or 60
    frame_timings = _extract_frame_timings(events, 1000 / fps_target)

    timestamps = [e["ts"] for e in events if isinstance(e.get("ts"), (int, float)) and e["ts"] > 0]
    duration_ms = (max(timestamps) - min(timestamps)) / 1000 if timestamps else 0.0

    return TraceSnapshot(
        id=generate_trace_id(),
        name=options.trace_name or options.scenario,
        duration_ms=duration_ms,
        frame_timings=frame_timings,
        frame_metrics=calculate_frame_metrics(frame_timings, fps_target),
        long_tasks=_extract_long_tasks(events),
        dom_signals=_extract_dom_signals(events),
        gpu_events=_extract_gpu_events(events),
        paint_events=_extract_paint_events(events),
        metadata=TraceSnapshotMetadata(
            timestamp=now_iso(),
            fps_target=fps_target,
            adapter_type=AdapterType.CHROMIUM_CDP.value,
            platform="chromium",
            browser_version=browser_info.get("product"),
            user_agent=browser_info.get("userAgent"),
            scenario=options.scenario,
            url=options.url,
        ),
    )


def _phase_of(name: str) -> Optional[str]:
    lower = name.lower()
    if "recalculatestyles" in lower or "style" in lower:
        return "style"
    if "layout" in lower:
        return "layout"
    if "paint" in lower:
        return "paint"
    if "composite" in lower:
        return "composite"
    if "gpu" in lower or "raster" in lower:
        return "gpu"
    return None


def _extract_frame_timings(events: list[dict[str, Any]], frame_budget_ms: float) -> list[FrameTiming]:
    """BeginFrame opens a frame, DrawFrame closes the oldest open one."""
    frames: list[dict[str, Any]] = []
    for event in events:
        name = event.get("name") or ""
        ts = event.get("ts", 0)
        if name == "BeginFrame" and event.get("ph") == "I":
            frames.append({"start": ts, "end": None, "phases": {}})
        elif name == "DrawFrame" and event.get("ph") == "I":
            for frame in frames:
                if frame["end"] is None:
                    frame["end"] = ts
                    break

        dur = event.get("dur") or 0
        if dur > 0:
            phase = _phase_of(name)
            if phase is not None:
                for frame in frames:
                    if frame["end"] is None and ts >= frame["start"]:
                        frame["phases"][phase] = frame["phases"].get(phase, 0.0) + dur / 1000

    timings = []
    for frame in frames:
        if frame["end"] is None:
            continue
        duration_ms = (frame["end"] - frame["start"]) / 1000
        phases = frame["phases"]
        timings.append(
            FrameTiming(
                frame_id=len(timings),
                start_time=frame["start"],
                end_time=frame["end"],
                duration_ms=duration_ms,
                dropped=duration_ms > frame_budget_ms,
                style_recalc_ms=phases.get("style"),
                layout_ms=phases.get("layout"),
                paint_ms=phases.get("paint"),
                composite_ms=phases.get("composite"),
                gpu_ms=phases.get("gpu"),
            )
        )
    return timings


def _data(event: dict[str, Any], key: str = "data") -> dict[str, Any]:
    args = event.get("args")
    value = args.get(key) if isinstance(args, dict) else None
    return value if isinstance(value, dict) else {}


def _call_stack(data: dict[str, Any]) -> list[StackFrameInfo]:
    frames = data.get("stackTrace")
    if not isinstance(frames, list):
        return []
    return [
        StackFrameInfo(
            function_name=f.get("functionName") or "<anonymous>",
            file=f.get("url") or "",
            line=f.get("lineNumber", 0),
            column=f.get("columnNumber", 0),
        )
        for f in frames
        if isinstance(f, dict)
    ]


def _extract_long_tasks(events: list[dict[str, Any]]) -> list[LongTaskInfo]:
    tasks = []
    for event in events:
        if event.get("name") not in LONG_TASK_EVENTS or not event.get("dur"):
            continue
        duration_ms = event["dur"] / 1000
        if duration_ms <= LONG_TASK_THRESHOLD_MS:
            continue
        data = _data(event)
        tasks.append(
            LongTaskInfo(
                start_time=event.get("ts", 0),
                duration_ms=duration_ms,
                function_name=data.get("functionName") or event["name"],
                file=data.get("url"),
                line=data.get("lineNumber"),
                column=data.get("columnNumber"),
                call_stack=_call_stack(data),
            )
        )
    return tasks


def _extract_dom_signals(events: list[dict[str, Any]]) -> list[DOMSignal]:
    signals = []
    for event in events:
        name = event.get("name")
        if name in ("Layout", "UpdateLayoutTree", "InvalidateLayout"):
            signal_type = (
                DOMSignalType.LAYOUT_INVALIDATION if name == "InvalidateLayout" else DOMSignalType.FORCED_REFLOW
            )
            with_stack = True
        elif name in ("RecalculateStyles", "UpdateStyles"):
            signal_type = DOMSignalType.STYLE_RECALC
            with_stack = False
        else:
            continue
        begin_data = _data(event, "beginData")
        signals.append(
            DOMSignal(
                type=signal_type,
                timestamp=event.get("ts", 0),
                duration_ms=(event.get("dur") or 0) / 1000,
                affected_nodes=begin_data.get("elementCount"),
                stack_trace=_call_stack(begin_data) if with_stack else [],
            )
        )
    return signals


def _extract_gpu_events(events: list[dict[str, Any]]) -> list[GPUEvent]:
    gpu_events = []
    for event in events:
        if "gpu" not in (event.get("cat") or "") or not event.get("dur"):
            continue
        lower = (event.get("name") or "").lower()
        if "sync" in lower:
            gpu_type = GPUEventType.SYNC
        elif "texture" in lower:
            gpu_type = GPUEventType.TEXTURE_UPLOAD
        elif "raster" in lower:
            gpu_type = GPUEventType.RASTER
        else:
            gpu_type = GPUEventType.COMPOSITE
        gpu_events.append(GPUEvent(type=gpu_type, timestamp=event.get("ts", 0), duration_ms=event["dur"] / 1000))
    return gpu_events


def _clip_bounds(clip: Any) -> Optional[PaintBounds]:
    # clip is a quad [x0, y0, x1, y1, ...]
    if not isinstance(clip, list) or not clip:
        return None
    x0, y0, x1, y1 = (list(clip[:4]) + [0, 0, 0, 0])[:4]
    return PaintBounds(x=x0, y=y0, width=x1 - x0, height=y1 - y0)


def _extract_paint_events(events: list[dict[str, Any]]) -> list[PaintEvent]:
    paints: list[PaintEvent] = []
    for event in events:
        name = event.get("name")
        if name == "Paint" and event.get("dur"):
            paints.append(
                PaintEvent(
                    timestamp=event.get("ts", 0),
                    paint_duration_ms=event["dur"] / 1000,
                    bounds=_clip_bounds(_data(event).get("clip")),
                )
            )
        elif name == "RasterTask" and event.get("dur") and paints and not paints[-1].raster_duration_ms:
            paints[-1] = replace(paints[-1], raster_duration_ms=event["dur"] / 1000)
    return paints
