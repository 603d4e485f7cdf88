"""Shared helpers for reading trace events and building detections."""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Any, Iterable, Optional, TypeVar

from ..models import (
    Detection,
    DetectionContext,
    DetectionDetails,
    DetectionLocation,
    DetectionMetrics,
    DetectionType,
    TraceEvent,
)
from ..scoring import ScoringEngine, ScoringInput

T = TypeVar("T")

FRAME_START_EVENTS = frozenset({"BeginFrame", "BeginMainThreadFrame"})
FRAME_EVENTS = frozenset({"BeginFrame", "DrawFrame", "BeginMainThreadFrame"})


def event_args(event: TraceEvent) -> dict[str, Any]:
    args = event.get("args")
    return args if isinstance(args, dict) else {}


def event_data(event: TraceEvent) -> dict[str, Any]:
    """``args.data`` as a dict (empty when missing)."""
    data = event_args(event).get("data")
    return data if isinstance(data, dict) else {}


def event_begin_data(event: TraceEvent) -> dict[str, Any]:
    data = event_args(event).get("beginData")
    return data if isinstance(data, dict) else {}


def event_ts(event: TraceEvent) -> float:
    return float(event.get("ts") or 0)


def event_dur(event: TraceEvent) -> float:
    """Duration in µs; 0 for instant events."""
    return float(event.get("dur") or 0)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def stack_frames(value: Any) -> list[dict[str, Any]]:
    """Keep only dict entries of a stack-trace array."""
    if not isinstance(value, list):
        return []
    return [frame for frame in value if isinstance(frame, dict)]


def frame_start_times(events: Iterable[TraceEvent], names: frozenset[str] = FRAME_START_EVENTS) -> list[float]:
    """Timestamps of frame marker events, in trace order."""
    return [event_ts(e) for e in events if e.get("name") in names]


def group_by_window(items: Iterable[T], ts_of, context: DetectionContext) -> dict[int, list[T]]:
    """Bucket items into fixed windows one frame budget wide, from trace start."""
    window_us = context.frame_budget_ms * 1000
    groups: dict[int, list[T]] = defaultdict(list)
    for item in items:
        groups[math.floor((ts_of(item) - context.trace_start_time) / window_us)].append(item)
    return dict(groups)


def group_by_frames(items: list[T], ts_of, frame_starts: list[float]) -> dict[int, list[T]]:
    """Bucket items into [frame_start[i], frame_start[i+1]) intervals; empty frames are dropped."""
    groups: dict[int, list[T]] = {}
    for i, start in enumerate(frame_starts):
        end = frame_starts[i + 1] if i + 1 < len(frame_starts) else math.inf
        in_frame = [item for item in items if start <= ts_of(item) < end]
        if in_frame:
            groups[i] = in_frame
    return groups


def build_detection(
    scoring: ScoringEngine,
    context: DetectionContext,
    detection_type: DetectionType,
    description: str,
    location: DetectionLocation,
    details: DetectionDetails,
    duration_ms: float,
    occurrences: int,
    affected_nodes: Optional[int] = None,
    correlated_frame_drops: Optional[int] = None,
    layer_count: Optional[int] = None,
    stall_type=None,
) -> Detection:
    """Score raw measurements and wrap them into a Detection.

    Severity always comes from the scoring engine, never from the detector.
    """
    result = scoring.calculate_score(
        ScoringInput(
            detection_type=detection_type,
            duration_ms=duration_ms,
            occurrences=occurrences,
            frame_budget_ms=context.frame_budget_ms,
            trace_duration_ms=context.trace_duration_ms,
            affected_nodes=affected_nodes,
            correlated_frame_drops=correlated_frame_drops,
            layer_count=layer_count,
            stall_type=stall_type,
        )
    )
    return Detection(
        type=detection_type,
        severity=result.severity,
        description=description,
        location=location,
        metrics=DetectionMetrics(
            duration_ms=duration_ms,
            occurrences=occurrences,
            impact_score=result.impact_score,
            confidence=result.confidence,
            estimated_speedup_pct=result.estimated_speedup_pct,
            speedup_explanation=result.speedup_explanation,
            frame_budget_impact_pct=result.frame_budget_impact_pct,
            risk_assessment=result.risk_assessment,
        ),
        details=details,
    )
