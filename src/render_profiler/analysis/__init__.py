"""Analysis engine - capability-gated detectors, scoring, summaries."""

from .analyzer import Analyzer, can_detector_run, infer_capabilities
from .conversion import snapshot_to_trace_data, snapshot_to_trace_events
from .models import (
    AnalysisResult,
    AnalysisWarning,
    Detection,
    DetectionContext,
    DetectionType,
    Severity,
    TraceData,
    TraceMetadata,
)
from .scoring import ScoringEngine, ScoringInput, ScoringResult

__all__ = [
    "Analyzer",
    "AnalysisResult",
    "AnalysisWarning",
    "Detection",
    "DetectionContext",
    "DetectionType",
    "ScoringEngine",
    "ScoringInput",
    "ScoringResult",
    "Severity",
    "TraceData",
    "TraceMetadata",
    "can_detector_run",
    "infer_capabilities",
    "snapshot_to_trace_data",
    "snapshot_to_trace_events",
]
