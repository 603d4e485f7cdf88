"""Analyzer - runs capability-gated detectors over a trace or a TraceSnapshot."""

from __future__ import annotations

from typing import Iterable, Optional

from ..capabilities import DEFAULT_RAW_CAPABILITIES, AdapterType, Capability
from ..config import ProfilerConfig
from ..logging_config import get_logger
from ..snapshot import TraceSnapshot, generate_trace_id
from .conversion import snapshot_to_trace_data
from .detectors import get_default_detectors
from .models import (
    AnalysisResult,
    AnalysisWarning,
    Detection,
    DetectionContext,
    DetectionType,
    FrameMetrics,
    SnapshotDetectionContext,
    TraceData,
    TraceMetadata,
    TraceSummary,
)
from .protocols import Detector
from .scoring import ScoringEngine
from .summary import (
    build_hotspots,
    frame_metrics_from_events,
    phase_breakdown_from_events,
    phase_breakdown_from_snapshot,
    snapshot_time_range,
    trace_time_range,
)

logger = get_logger(__name__)

DEGRADED_ANALYSIS = "DEGRADED_ANALYSIS"

FULL_CDP_SUGGESTION = "Use the chromium-cdp adapter with a staging/dev browser build for full analysis"
GPU_SUGGESTION = "GPU stall detection requires CDP access - native adapters have limited GPU visibility"


def infer_capabilities(snapshot: TraceSnapshot) -> frozenset[Capability]:
    """Capabilities implied by what a snapshot actually contains."""
    caps = set()
    if snapshot.frame_timings:
        caps.add(Capability.FRAME_TIMING)
    if snapshot.long_tasks:
        caps.add(Capability.LONG_TASKS)
    if snapshot.dom_signals:
        caps.add(Capability.DOM_SIGNALS)
    if snapshot.gpu_events:
        caps.add(Capability.GPU_EVENTS)
    if snapshot.paint_events:
        caps.add(Capability.PAINT_EVENTS)
    if snapshot.metadata.adapter_type == AdapterType.CHROMIUM_CDP.value:
        caps.add(Capability.FULL_CDP)
    return frozenset(caps)


def gpu_capability_allowed(capabilities: frozenset[Capability]) -> bool:
    return Capability.FULL_CDP in capabilities or Capability.GPU_EVENTS in capabilities


def can_detector_run(detector: Detector, capabilities: frozenset[Capability]) -> bool:
    """A detector runs when its requirements are covered.

    GPU stall detection additionally needs either full protocol access or
    explicit GPU events.
    """
    if not detector.requires.issubset(capabilities):
        return False
    if detector.detection_type is DetectionType.GPU_STALL:
        return gpu_capability_allowed(capabilities)
    return True


class Analyzer:
    """Orchestrate analysis: gate detectors -> detect -> summarize."""

    def __init__(
        self,
        detectors: Optional[list[Detector]] = None,
        scoring: Optional[ScoringEngine] = None,
        config: Optional[ProfilerConfig] = None,
    ):
        self.config = config or ProfilerConfig()
        self.scoring = scoring or ScoringEngine(self.config.scoring)
        if detectors is None:
            detectors = get_default_detectors(self.scoring, self.config.detectors)
        self._detectors = sorted(detectors, key=lambda d: d.priority)

    def register_detector(self, detector: Detector) -> None:
        self._detectors.append(detector)
        self._detectors.sort(key=lambda d: d.priority)

    def get_detectors(self) -> list[Detector]:
        return list(self._detectors)

    def analyze(
        self,
        trace: TraceData,
        name: str = "trace",
        fps_target: Optional[float] = None,
        capabilities: Optional[Iterable[Capability]] = None,
    ) -> AnalysisResult:
        """Analyze raw protocol trace events.

        Parameters
        ----------
        trace : TraceData
            Raw events plus optional metadata.
        name : str
            Name for the summary.
        fps_target : float, optional
            Defaults to the trace metadata, then the configured target.
        capabilities : iterable of Capability, optional
            Defaults to the six data capabilities of a full protocol trace.
        """
        metadata = trace.metadata or TraceMetadata(fps_target=self.config.fps_target)
        fps = fps_target or metadata.fps_target or self.config.fps_target
        caps = frozenset(capabilities) if capabilities is not None else DEFAULT_RAW_CAPABILITIES

        frames = frame_metrics_from_events(trace, fps)
        start, end = trace_time_range(trace)
        context = DetectionContext(
            fps_target=fps,
            frame_budget_ms=1000 / fps,
            frame_metrics=frames,
            trace_start_time=start,
            trace_end_time=end,
            capabilities=caps,
            degraded_mode=Capability.FULL_CDP not in caps,
        )

        detections, skipped = self._run_detectors(caps, lambda d: d.detect(trace, context))
        warnings = _degraded_warnings(skipped, caps)

        summary = TraceSummary(
            id=generate_trace_id("analysis"),
            name=name,
            url=metadata.url or "unknown",
            duration_ms=(end - start) / 1000,
            frames=frames,
            phase_breakdown=phase_breakdown_from_events(trace),
            hotspots=build_hotspots(detections),
            metadata=metadata,
            suggestions=_suggestions(warnings),
        )
        return AnalysisResult(summary=summary, detections=detections, warnings=warnings)

    def analyze_snapshot(
        self,
        snapshot: TraceSnapshot,
        name: Optional[str] = None,
        fps_target: Optional[float] = None,
        capabilities: Optional[Iterable[Capability]] = None,
    ) -> AnalysisResult:
        """Analyze a normalized snapshot from any adapter."""
        fps = fps_target or snapshot.metadata.fps_target or self.config.fps_target
        caps = frozenset(capabilities) if capabilities is not None else infer_capabilities(snapshot)
        summary_metrics = snapshot.frame_metrics
        frames = FrameMetrics(
            total=summary_metrics.total_frames,
            dropped=summary_metrics.dropped_frames,
            avg_fps=summary_metrics.avg_fps,
            frame_budget_ms=1000 / fps,
        )
        start, end = snapshot_time_range(snapshot)
        context = SnapshotDetectionContext(
            fps_target=fps,
            frame_budget_ms=1000 / fps,
            frame_metrics=frames,
            trace_start_time=start,
            trace_end_time=end,
            capabilities=caps,
            degraded_mode=Capability.FULL_CDP not in caps,
            snapshot_metrics=summary_metrics,
            adapter_type=snapshot.metadata.adapter_type,
            platform=snapshot.metadata.platform,
        )

        trace = snapshot_to_trace_data(snapshot)

        def run(detector: Detector) -> list[Detection]:
            if hasattr(detector, "detect_from_snapshot"):
                return detector.detect_from_snapshot(snapshot, context)
            return detector.detect(trace, context)

        detections, skipped = self._run_detectors(caps, run)
        warnings = _degraded_warnings(skipped, caps)

        summary = TraceSummary(
            id=snapshot.id,
            name=name or snapshot.name,
            url=snapshot.metadata.url or "unknown",
            duration_ms=snapshot.duration_ms,
            frames=frames,
            phase_breakdown=phase_breakdown_from_snapshot(snapshot),
            hotspots=build_hotspots(detections),
            metadata=trace.metadata,
            suggestions=_suggestions(warnings),
        )
        return AnalysisResult(summary=summary, detections=detections, warnings=warnings)

    def _run_detectors(self, caps: frozenset[Capability], run) -> tuple[list[Detection], list[Detector]]:
        detections: list[Detection] = []
        skipped: list[Detector] = []
        for detector in self._detectors:
            if not can_detector_run(detector, caps):
                logger.debug(f"Skipping {detector.name}: missing capabilities")
                skipped.append(detector)
                continue
            try:
                found = run(detector)
                logger.debug(f"Detector {detector.name} produced {len(found)} detections")
                detections.extend(found)
            except Exception as e:
                logger.warning(f"Detector {detector.name} failed: {e}")
        return detections, skipped


def _degraded_warnings(skipped: list[Detector], caps: frozenset[Capability]) -> list[AnalysisWarning]:
    if not skipped:
        return []
    suggestions = []
    if Capability.FULL_CDP not in caps:
        suggestions.append(FULL_CDP_SUGGESTION)
    if any(d.detection_type is DetectionType.GPU_STALL for d in skipped):
        suggestions.append(GPU_SUGGESTION)
    return [
        AnalysisWarning(
            code=DEGRADED_ANALYSIS,
            message=(
                f"Analysis running in degraded mode. {len(skipped)} detector(s) skipped "
                "due to limited adapter capabilities."
            ),
            affected_detectors=[d.name for d in skipped],
            suggestions=suggestions,
        )
    ]


def _suggestions(warnings: list[AnalysisWarning]) -> list[str]:
    seen: list[str] = []
    for warning in warnings:
        for suggestion in warning.suggestions:
            if suggestion not in seen:
                seen.append(suggestion)
    return seen
