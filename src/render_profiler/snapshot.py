"""TraceSnapshot - the adapter-independent representation of one profiling run.

Every adapter produces a ``TraceSnapshot``; the analyzer consumes it. Frame
metrics are never taken from upstream: they are always recomputed from the
final frame timings with :func:`calculate_frame_metrics`.

Timestamps are in microseconds (trace clock), durations in milliseconds.
"""

from __future__ import annotations

import random
import string
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Sequence

import numpy as np


class DOMSignalType(str, Enum):
    FORCED_REFLOW = "forced_reflow"
    STYLE_RECALC = "style_recalc"
    LAYOUT_INVALIDATION = "layout_invalidation"
    DOM_MUTATION = "dom_mutation"


class GPUEventType(str, Enum):
    SYNC = "sync"
    TEXTURE_UPLOAD = "texture_upload"
    RASTER = "raster"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class FrameTiming:
    frame_id: int
    start_time: float  # µs
    end_time: float  # µs
    duration_ms: float
    dropped: bool
    # Per-phase breakdown; None when the source cannot observe phases
    style_recalc_ms: Optional[float] = None
    layout_ms: Optional[float] = None
    paint_ms: Optional[float] = None
    composite_ms: Optional[float] = None
    gpu_ms: Optional[float] = None


@dataclass(frozen=True)
class StackFrameInfo:
    function_name: str
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None


@dataclass(frozen=True)
class LongTaskInfo:
    start_time: float  # µs
    duration_ms: float
    function_name: Optional[str] = None
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    call_stack: list[StackFrameInfo] = field(default_factory=list)
    correlated_frame_id: Optional[int] = None


@dataclass(frozen=True)
class DOMSignal:
    type: DOMSignalType
    timestamp: float  # µs
    duration_ms: float
    selector: Optional[str] = None
    affected_nodes: Optional[int] = None
    frame_id: Optional[int] = None
    stack_trace: list[StackFrameInfo] = field(default_factory=list)
    properties: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class GPUEvent:
    type: GPUEventType
    timestamp: float  # µs
    duration_ms: float
    element: Optional[str] = None
    layer_id: Optional[str] = None
    frame_id: Optional[int] = None


@dataclass(frozen=True)
class PaintBounds:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class PaintEvent:
    timestamp: float  # µs
    paint_duration_ms: float
    raster_duration_ms: Optional[float] = None
    bounds: Optional[PaintBounds] = None
    layer_count: Optional[int] = None
    frame_id: Optional[int] = None


@dataclass(frozen=True)
class FrameMetricsSummary:
    total_frames: int
    dropped_frames: int
    avg_fps: float
    frame_budget_ms: float
    p95_frame_time_ms: float
    max_frame_time_ms: float
    min_frame_time_ms: float


@dataclass(frozen=True)
class Viewport:
    width: int
    height: int


@dataclass(frozen=True)
class TraceSnapshotMetadata:
    timestamp: str  # ISO-8601
    fps_target: float
    adapter_type: str
    platform: str
    browser_version: Optional[str] = None
    user_agent: Optional[str] = None
    viewport: Optional[Viewport] = None
    device_pixel_ratio: Optional[float] = None
    scenario: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class TraceSnapshot:
    id: str
    name: str
    duration_ms: float
    frame_timings: list[FrameTiming]
    frame_metrics: FrameMetricsSummary
    long_tasks: list[LongTaskInfo]
    dom_signals: list[DOMSignal]
    gpu_events: list[GPUEvent]
    paint_events: list[PaintEvent]
    metadata: TraceSnapshotMetadata

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dictionary (enums collapse to their string values)."""
        return asdict(self)


def calculate_frame_metrics(
    frame_timings: Sequence[FrameTiming], fps_target: float
) -> FrameMetricsSummary:
    """Derive aggregate frame metrics from per-frame timings.

    Average fps is ``frame_count / total_duration_ms * 1000`` rather than a
    mean of per-frame fps values. With zero frames every aggregate is zero.

    Args:
        frame_timings: Final frame timings of a snapshot
        fps_target: Target frame rate; the frame budget is ``1000 / fps_target``

    Returns:
        FrameMetricsSummary
    """
    frame_budget_ms = 1000.0 / fps_target
    if not frame_timings:
        return FrameMetricsSummary(
            total_frames=0,
            dropped_frames=0,
            avg_fps=0.0,
            frame_budget_ms=frame_budget_ms,
            p95_frame_time_ms=0.0,
            max_frame_time_ms=0.0,
            min_frame_time_ms=0.0,
        )

    dropped = sum(1 for f in frame_timings if f.dropped)
    durations = np.sort(np.asarray([f.duration_ms for f in frame_timings], dtype=float))
    total_duration = float(durations.sum())
    avg_fps = len(durations) / total_duration * 1000.0 if total_duration > 0 else 0.0
    p95_index = min(int(np.floor(len(durations) * 0.95)), len(durations) - 1)

    return FrameMetricsSummary(
        total_frames=len(frame_timings),
        dropped_frames=dropped,
        avg_fps=round(avg_fps, 2),
        frame_budget_ms=frame_budget_ms,
        p95_frame_time_ms=float(durations[p95_index]),
        max_frame_time_ms=float(durations[-1]),
        min_frame_time_ms=float(durations[0]),
    )


def _base36(value: int) -> str:
    digits = string.digits + string.ascii_lowercase
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def generate_trace_id(prefix: str = "trace") -> str:
    """Return a unique id like ``trace-lq3k2x1a-9f2k1c``."""
    stamp = _base36(int(time.time() * 1000))
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{prefix}-{stamp}-{suffix}"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def create_empty_trace_snapshot(
    name: str,
    fps_target: float = 60,
    trace_id: Optional[str] = None,
    adapter_type: str = "unknown",
    platform: str = "unknown",
) -> TraceSnapshot:
    """Snapshot with no data, used when a collection window yields nothing."""
    return TraceSnapshot(
        id=trace_id or generate_trace_id(),
        name=name,
        duration_ms=0.0,
        frame_timings=[],
        frame_metrics=calculate_frame_metrics([], fps_target),
        long_tasks=[],
        dom_signals=[],
        gpu_events=[],
        paint_events=[],
        metadata=TraceSnapshotMetadata(
            timestamp=now_iso(),
            fps_target=fps_target,
            adapter_type=adapter_type,
            platform=platform,
        ),
    )
