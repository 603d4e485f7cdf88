"""HeavyPaintDetector - frames spending significant time in paint and raster."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from ...capabilities import Capability
from ...config import DEFAULT_DETECTORS, DetectorConfig
from ..models import (
    Detection,
    DetectionContext,
    DetectionLocation,
    DetectionType,
    HeavyPaintDetails,
    TraceData,
    TraceEvent,
)
from ..scoring import ScoringEngine
from .helpers import build_detection, event_args, event_data, event_dur, event_ts, group_by_window, is_number

PAINT_EVENTS = frozenset(
    {
        "Paint",
        "PaintImage",
        "PaintSetup",
        "PaintNonDefaultBackgroundColor",
        "Layerize",
        "UpdateLayer",
        "UpdateLayerTree",
    }
)

RASTER_EVENTS = frozenset(
    {
        "RasterTask",
        "Rasterize",
        "RasterSource::PlaybackToCanvas",
        "TileManager::ScheduleTasks",
        "RasterBufferProvider::PlaybackToMemory",
        "ImageDecodeTask",
        "DecodeImage",
        "DecodeLazyPixelRef",
    }
)


@dataclass
class _PaintWork:
    ts: float
    dur: float
    kind: Literal["paint", "raster"]
    layer_count: int


@dataclass
class _PaintPattern:
    events: list[_PaintWork]
    total_paint_ms: float
    total_raster_ms: float
    max_layer_count: int


class HeavyPaintDetector:
    name = "HeavyPaintDetector"
    detection_type = DetectionType.HEAVY_PAINT
    priority = 4
    requires = frozenset({Capability.PAINT_EVENTS})

    def __init__(self, scoring: Optional[ScoringEngine] = None, config: Optional[DetectorConfig] = None):
        self.scoring = scoring or ScoringEngine()
        self.config = config or DEFAULT_DETECTORS

    def detect(self, trace: TraceData, context: DetectionContext) -> list[Detection]:
        work = sorted(
            (w for w in (_to_paint_work(e) for e in trace.trace_events) if w is not None),
            key=lambda w: w.ts,
        )
        cfg = self.config

        patterns = []
        for events in group_by_window(work, lambda w: w.ts, context).values():
            paint_ms = sum(e.dur for e in events if e.kind == "paint") / 1000
            raster_ms = sum(e.dur for e in events if e.kind == "raster") / 1000
            max_layers = max(e.layer_count for e in events)
            if paint_ms + raster_ms >= cfg.paint_min_total_ms or max_layers > cfg.paint_max_layers:
                patterns.append(_PaintPattern(events, paint_ms, raster_ms, max_layers))

        # Heavily animated pages qualify in nearly every frame; report them once.
        if len(patterns) > cfg.paint_collapse_groups:
            patterns = [_aggregate(patterns)]

        return [self._create_detection(p, context) for p in patterns]

    def _create_detection(self, pattern: _PaintPattern, context: DetectionContext) -> Detection:
        total_ms = pattern.total_paint_ms + pattern.total_raster_ms
        return build_detection(
            self.scoring,
            context,
            DetectionType.HEAVY_PAINT,
            description=(
                f"Heavy paint operations: {pattern.total_paint_ms:.1f}ms paint, "
                f"{pattern.total_raster_ms:.1f}ms raster across {pattern.max_layer_count} layers"
            ),
            location=DetectionLocation(),
            details=HeavyPaintDetails(
                paint_time_ms=pattern.total_paint_ms,
                raster_time_ms=pattern.total_raster_ms,
                layer_count=pattern.max_layer_count,
            ),
            duration_ms=total_ms,
            occurrences=len(pattern.events),
            layer_count=pattern.max_layer_count,
        )


def _to_paint_work(event: TraceEvent) -> Optional[_PaintWork]:
    name = event.get("name")
    if name in PAINT_EVENTS:
        kind = "paint"
    elif name in RASTER_EVENTS:
        kind = "raster"
    else:
        return None
    return _PaintWork(ts=event_ts(event), dur=event_dur(event), kind=kind, layer_count=_layer_count(event))


def _layer_count(event: TraceEvent) -> int:
    data = event_data(event)
    for key in ("layerCount", "numLayers"):
        if is_number(data.get(key)):
            return int(data[key])
    if is_number(event_args(event).get("layerCount")):
        return int(event_args(event)["layerCount"])
    return 1


def _aggregate(patterns: list[_PaintPattern]) -> _PaintPattern:
    return _PaintPattern(
        events=[e for p in patterns for e in p.events],
        total_paint_ms=sum(p.total_paint_ms for p in patterns),
        total_raster_ms=sum(p.total_raster_ms for p in patterns),
        max_layer_count=max(p.max_layer_count for p in patterns),
    )
