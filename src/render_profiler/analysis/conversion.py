"""Convert a TraceSnapshot back into protocol-style trace events.

Detectors without a snapshot entry point run over these synthesized events.
All synthesized events share pid/tid 1.
"""

from __future__ import annotations

from typing import Any, Optional

from ..snapshot import DOMSignalType, GPUEventType, TraceSnapshot
from .models import TraceData, TraceEvent, TraceMetadata

DOM_SIGNAL_EVENT_NAMES: dict[DOMSignalType, str] = {
    DOMSignalType.FORCED_REFLOW: "Layout",
    DOMSignalType.STYLE_RECALC: "RecalculateStyles",
    DOMSignalType.LAYOUT_INVALIDATION: "InvalidateLayout",
    DOMSignalType.DOM_MUTATION: "UpdateLayoutTree",
}

GPU_EVENT_NAMES: dict[GPUEventType, str] = {
    GPUEventType.SYNC: "GPUTask",
    GPUEventType.TEXTURE_UPLOAD: "UploadTexture",
    GPUEventType.RASTER: "RasterTask",
    GPUEventType.COMPOSITE: "CompositeLayers",
}

_TIMELINE = "devtools.timeline"


def _event(
    name: str,
    ts: float,
    cat: str = _TIMELINE,
    ph: str = "X",
    dur: Optional[float] = None,
    args: Optional[dict] = None,
) -> TraceEvent:
    event: dict[str, Any] = {"pid": 1, "tid": 1, "ts": ts, "ph": ph, "cat": cat, "name": name}
    if dur is not None:
        event["dur"] = dur
    if args is not None:
        event["args"] = args
    return event


def snapshot_to_trace_events(snapshot: TraceSnapshot) -> list[TraceEvent]:
    events: list[TraceEvent] = []

    for frame in snapshot.frame_timings:
        events.append(_event("BeginFrame", frame.start_time, ph="B", args={"frameId": frame.frame_id}))
        if frame.layout_ms and frame.layout_ms > 0:
            events.append(_event("Layout", frame.start_time, dur=frame.layout_ms * 1000))
        if frame.paint_ms and frame.paint_ms > 0:
            events.append(_event("Paint", frame.start_time, dur=frame.paint_ms * 1000))

    for task in snapshot.long_tasks:
        events.append(
            _event(
                "FunctionCall",
                task.start_time,
                dur=task.duration_ms * 1000,
                args={
                    "data": {
                        "functionName": task.function_name or "anonymous",
                        "scriptName": task.file,
                        "lineNumber": task.line,
                        "columnNumber": task.column,
                        "stackTrace": [
                            {
                                "functionName": f.function_name,
                                "url": f.file,
                                "lineNumber": f.line,
                                "columnNumber": f.column,
                            }
                            for f in task.call_stack
                        ],
                    }
                },
            )
        )

    for signal in snapshot.dom_signals:
        args: dict[str, Any] = {"data": {"selector": signal.selector, "nodeCount": signal.affected_nodes}}
        if signal.stack_trace:
            args["beginData"] = {
                "stackTrace": [
                    {"functionName": f.function_name, "url": f.file, "lineNumber": f.line}
                    for f in signal.stack_trace
                ]
            }
        events.append(
            _event(
                DOM_SIGNAL_EVENT_NAMES.get(signal.type, "Layout"),
                signal.timestamp,
                dur=(signal.duration_ms or 0) * 1000,
                args=args,
            )
        )

    for gpu in snapshot.gpu_events:
        events.append(
            _event(
                GPU_EVENT_NAMES.get(gpu.type, "GPUTask"),
                gpu.timestamp,
                cat="gpu",
                dur=gpu.duration_ms * 1000,
                args={"data": {"elementId": gpu.element, "layerId": gpu.layer_id}},
            )
        )

    for paint in snapshot.paint_events:
        clip = None
        if paint.bounds is not None:
            b = paint.bounds
            clip = {"x": b.x, "y": b.y, "width": b.width, "height": b.height}
        events.append(
            _event(
                "Paint",
                paint.timestamp,
                dur=paint.paint_duration_ms * 1000,
                args={"data": {"clip": clip, "layerCount": paint.layer_count}},
            )
        )
        if paint.raster_duration_ms and paint.raster_duration_ms > 0:
            events.append(_event("RasterTask", paint.timestamp, dur=paint.raster_duration_ms * 1000))

    events.sort(key=lambda e: e["ts"])
    return events


def snapshot_to_trace_data(snapshot: TraceSnapshot) -> TraceData:
    meta = snapshot.metadata
    return TraceData(
        trace_events=snapshot_to_trace_events(snapshot),
        metadata=TraceMetadata(
            browser_version=meta.browser_version or "unknown",
            user_agent=meta.user_agent or "unknown",
            viewport=meta.viewport or TraceMetadata().viewport,
            device_pixel_ratio=meta.device_pixel_ratio or 1,
            timestamp=meta.timestamp,
            scenario=meta.scenario or snapshot.name,
            fps_target=meta.fps_target,
            url=meta.url,
        ),
    )
