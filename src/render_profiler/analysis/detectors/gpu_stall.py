"""GPUStallDetector - GPU sync, texture upload and raster work that blocks rendering."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from ...capabilities import Capability
from ...config import DEFAULT_DETECTORS, DetectorConfig
from ...snapshot import PaintBounds
from ..models import (
    Detection,
    DetectionContext,
    DetectionLocation,
    DetectionType,
    GPUStallDetails,
    LayerInfo,
    StallType,
    TraceData,
    TraceEvent,
)
from ..scoring import ScoringEngine
from .helpers import build_detection, event_args, event_data, event_dur, event_ts, is_number

GPU_SYNC_EVENTS = frozenset(
    {
        "GPUTask",
        "Gpu::SwapBuffers",
        "CommandBufferHelper::Finish",
        "GLES2DecoderImpl::DoFinish",
        "WaitForSwap",
    }
)

TEXTURE_UPLOAD_EVENTS = frozenset(
    {
        "UploadTexture",
        "TextureManager::Upload",
        "AsyncTexImage2D",
        "TexImage2D",
        "TexSubImage2D",
        "CompressedTexImage2D",
    }
)

RASTER_EVENTS = frozenset(
    {
        "RasterTask",
        "RasterSource::PlaybackToCanvas",
        "TileManager::ScheduleTasks",
        "RasterBufferProvider::PlaybackToMemory",
        "GpuRasterization",
        "SoftwareRasterization",
    }
)

MAIN_THREAD_NAMES = frozenset({"CrRendererMain", "CrBrowserMain", "main"})

_WAIT_MARKERS = ("Wait", "Sync", "Idle")

_STALL_LABELS = {
    StallType.SYNC: "GPU sync",
    StallType.TEXTURE_UPLOAD: "texture upload",
    StallType.RASTER: "rasterization",
}


@dataclass
class _GPUWork:
    ts: float
    dur: float
    stall_type: StallType
    element: str
    layer_info: Optional[LayerInfo]


@dataclass
class _StallPattern:
    element: str
    stall_type: StallType
    events: list[_GPUWork] = field(default_factory=list)
    total_stall_ms: float = 0.0
    layer_info: Optional[LayerInfo] = None


class GPUStallDetector:
    name = "GPUStallDetector"
    detection_type = DetectionType.GPU_STALL
    priority = 2
    requires = frozenset({Capability.GPU_EVENTS})

    def __init__(self, scoring: Optional[ScoringEngine] = None, config: Optional[DetectorConfig] = None):
        self.scoring = scoring or ScoringEngine()
        self.config = config or DEFAULT_DETECTORS

    def detect(self, trace: TraceData, context: DetectionContext) -> list[Detection]:
        work = []
        for event in trace.trace_events:
            stall_type = stall_type_of(event)
            if stall_type is not None:
                work.append(
                    _GPUWork(
                        ts=event_ts(event),
                        dur=event_dur(event),
                        stall_type=stall_type,
                        element=_extract_element(event),
                        layer_info=_extract_layer_info(event),
                    )
                )
        if not work:
            return []
        work.sort(key=lambda w: w.ts)

        main_tid = find_main_thread_id(trace.trace_events)
        main_events = [e for e in trace.trace_events if main_tid is not None and e.get("tid") == main_tid]

        min_stall_us = self.config.gpu_min_stall_ms * 1000
        patterns: dict[str, _StallPattern] = {}
        for item in work:
            if item.dur < min_stall_us:
                continue
            if main_tid is not None and not _blocks_main_thread(item, main_events):
                continue

            key = f"{item.element}-{item.stall_type.value}"
            pattern = patterns.get(key)
            if pattern is None:
                pattern = patterns[key] = _StallPattern(
                    element=item.element, stall_type=item.stall_type, layer_info=item.layer_info
                )
            pattern.events.append(item)
            pattern.total_stall_ms += item.dur / 1000
            if pattern.layer_info is None and item.layer_info is not None:
                pattern.layer_info = item.layer_info

        cfg = self.config
        return [
            self._create_detection(p, context)
            for p in patterns.values()
            if p.total_stall_ms >= cfg.gpu_min_total_ms or len(p.events) >= cfg.gpu_min_occurrences
        ]

    def _create_detection(self, pattern: _StallPattern, context: DetectionContext) -> Detection:
        return build_detection(
            self.scoring,
            context,
            DetectionType.GPU_STALL,
            description=(
                f"GPU stall ({_STALL_LABELS[pattern.stall_type]}) on \"{pattern.element}\" "
                f"causing {pattern.total_stall_ms:.2f}ms of blocking"
            ),
            location=DetectionLocation(element=pattern.element),
            details=GPUStallDetails(
                element=pattern.element,
                stall_type=pattern.stall_type,
                stall_ms=pattern.total_stall_ms,
                layer_info=pattern.layer_info,
            ),
            duration_ms=pattern.total_stall_ms,
            occurrences=len(pattern.events),
            stall_type=pattern.stall_type,
        )


def stall_type_of(event: TraceEvent) -> Optional[StallType]:
    """Classify a GPU event by name, then by a ``gpu`` category (defaulting to sync)."""
    name = event.get("name") or ""
    if name in GPU_SYNC_EVENTS:
        return StallType.SYNC
    if name in TEXTURE_UPLOAD_EVENTS:
        return StallType.TEXTURE_UPLOAD
    if name in RASTER_EVENTS:
        return StallType.RASTER
    if "gpu" in (event.get("cat") or ""):
        lower = name.lower()
        if "sync" in lower:
            return StallType.SYNC
        if "texture" in lower:
            return StallType.TEXTURE_UPLOAD
        if "raster" in lower:
            return StallType.RASTER
        return StallType.SYNC
    return None


def find_main_thread_id(events: list[TraceEvent]) -> Optional[int]:
    """Renderer main thread from ``thread_name`` metadata, else the busiest thread."""
    for event in events:
        if event.get("name") == "thread_name" and event.get("ph") == "M":
            if event_args(event).get("name") in MAIN_THREAD_NAMES:
                return event.get("tid")
    counts = Counter(e.get("tid") for e in events if e.get("tid") is not None)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def _blocks_main_thread(item: _GPUWork, main_events: list[TraceEvent]) -> bool:
    end = item.ts + item.dur
    for event in main_events:
        if item.ts <= event_ts(event) < end:
            name = event.get("name") or ""
            if any(marker in name for marker in _WAIT_MARKERS):
                return True
    return item.stall_type is StallType.SYNC


def _extract_element(event: TraceEvent) -> str:
    data = event_data(event)
    if isinstance(data.get("elementId"), str):
        return data["elementId"]
    if isinstance(data.get("nodeId"), str):
        return data["nodeId"]
    if is_number(data.get("layerId")):
        return f"layer-{data['layerId']}"
    if isinstance(data.get("url"), str):
        return data["url"].rsplit("/", 1)[-1] or data["url"]

    args = event_args(event)
    if is_number(args.get("layerId")):
        return f"layer-{args['layerId']}"
    if isinstance(args.get("tileId"), str):
        return f"tile-{args['tileId']}"
    if is_number(args.get("textureId")) or isinstance(args.get("textureId"), str):
        return f"texture-{args['textureId']}"
    return "unknown"


def _extract_layer_info(event: TraceEvent) -> Optional[LayerInfo]:
    args = event_args(event)
    data = args.get("data") if isinstance(args.get("data"), dict) else args
    if not is_number(data.get("layerId")):
        return None
    bounds = data.get("bounds") if isinstance(data.get("bounds"), dict) else {}
    reasons = data.get("compositingReasons")
    return LayerInfo(
        layer_id=int(data["layerId"]),
        bounds=PaintBounds(
            x=bounds.get("x", 0),
            y=bounds.get("y", 0),
            width=bounds.get("width", 0),
            height=bounds.get("height", 0),
        ),
        compositing_reasons=list(reasons) if isinstance(reasons, list) else [],
    )
