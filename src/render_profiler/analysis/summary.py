"""Summary builders: frame counters, trace time range, phase breakdown, hotspots."""

from __future__ import annotations

import math

import numpy as np

from ..snapshot import GPUEventType, TraceSnapshot
from .detectors.helpers import FRAME_EVENTS, event_dur, event_ts, frame_start_times
from .models import (
    Detection,
    DetectionType,
    FrameMetrics,
    GPUStallHotspot,
    Hotspots,
    LayoutThrashHotspot,
    LongTaskHotspot,
    PhaseBreakdown,
    TraceData,
)

# Raw event name -> phase bucket
PHASE_BY_EVENT_NAME: dict[str, str] = {
    "UpdateLayoutTree": "style_recalc_ms",
    "RecalculateStyles": "style_recalc_ms",
    "Layout": "layout_ms",
    "Paint": "paint_ms",
    "PaintImage": "paint_ms",
    "CompositeLayers": "composite_ms",
    "UpdateLayer": "composite_ms",
    "GPUTask": "gpu_ms",
    "RasterTask": "gpu_ms",
}

_PHASES = ("style_recalc_ms", "layout_ms", "paint_ms", "composite_ms", "gpu_ms")


def frame_metrics_from_events(trace: TraceData, fps_target: float) -> FrameMetrics:
    """Frame counters from consecutive frame-marker intervals of a raw trace."""
    budget_ms = 1000.0 / fps_target
    starts = frame_start_times(trace.trace_events, FRAME_EVENTS)
    if not starts:
        return FrameMetrics(total=0, dropped=0, avg_fps=0.0, frame_budget_ms=budget_ms)

    durations = np.diff(np.asarray(starts, dtype=float)) / 1000.0
    total = max(len(durations), 1)
    dropped = int(np.count_nonzero(durations > budget_ms))
    avg_frame_ms = float(durations.mean()) if len(durations) else budget_ms
    avg_fps = 1000.0 / avg_frame_ms if avg_frame_ms > 0 else float(fps_target)
    return FrameMetrics(
        total=total,
        dropped=dropped,
        avg_fps=round(avg_fps, 1),
        frame_budget_ms=budget_ms,
    )


def trace_time_range(trace: TraceData) -> tuple[float, float]:
    """(earliest start, latest end) in µs; (0, 0) for an empty trace."""
    if not trace.trace_events:
        return 0.0, 0.0
    start = math.inf
    end = -math.inf
    for event in trace.trace_events:
        ts = event_ts(event)
        start = min(start, ts)
        end = max(end, ts + event_dur(event))
    return start, end


def snapshot_time_range(snapshot: TraceSnapshot) -> tuple[float, float]:
    """First frame start to last frame end, else start + duration."""
    frames = snapshot.frame_timings
    start = frames[0].start_time if frames else 0.0
    end = frames[-1].end_time if frames else start + snapshot.duration_ms * 1000
    return start, end


def _rounded(totals: dict[str, float]) -> PhaseBreakdown:
    return PhaseBreakdown(**{phase: round(totals[phase], 2) for phase in _PHASES})


def phase_breakdown_from_events(trace: TraceData) -> PhaseBreakdown:
    totals = dict.fromkeys(_PHASES, 0.0)
    for event in trace.trace_events:
        phase = PHASE_BY_EVENT_NAME.get(event.get("name"))
        if phase is not None:
            totals[phase] += event_dur(event) / 1000
    return _rounded(totals)


def phase_breakdown_from_snapshot(snapshot: TraceSnapshot) -> PhaseBreakdown:
    totals = dict.fromkeys(_PHASES, 0.0)
    for frame in snapshot.frame_timings:
        totals["style_recalc_ms"] += frame.style_recalc_ms or 0
        totals["layout_ms"] += frame.layout_ms or 0
        totals["paint_ms"] += frame.paint_ms or 0
        totals["composite_ms"] += frame.composite_ms or 0
        totals["gpu_ms"] += frame.gpu_ms or 0
    for gpu in snapshot.gpu_events:
        if gpu.type is GPUEventType.COMPOSITE:
            totals["composite_ms"] += gpu.duration_ms
        else:
            totals["gpu_ms"] += gpu.duration_ms
    for paint in snapshot.paint_events:
        totals["paint_ms"] += paint.paint_duration_ms
        totals["gpu_ms"] += paint.raster_duration_ms or 0
    return _rounded(totals)


def build_hotspots(detections: list[Detection]) -> Hotspots:
    """Partition detections by type into the summary's hotspot lists."""
    hotspots = Hotspots()
    for d in detections:
        if d.type is DetectionType.LAYOUT_THRASHING:
            hotspots.layout_thrashing.append(
                LayoutThrashHotspot(
                    selector=d.details.selector,
                    reflow_cost_ms=d.details.reflow_cost_ms,
                    occurrences=d.occurrences,
                    affected_nodes=d.details.affected_nodes,
                )
            )
        elif d.type is DetectionType.GPU_STALL:
            hotspots.gpu_stalls.append(
                GPUStallHotspot(element=d.details.element, stall_ms=d.details.stall_ms, occurrences=d.occurrences)
            )
        elif d.type is DetectionType.LONG_TASK:
            hotspots.long_tasks.append(
                LongTaskHotspot(
                    function=d.details.function_name,
                    file=d.details.file,
                    line=d.details.line,
                    cpu_ms=d.details.cpu_ms,
                    occurrences=d.occurrences,
                )
            )
    return hotspots
