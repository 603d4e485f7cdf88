"""Protocol class for detector plugins."""

from typing import Protocol, runtime_checkable

from ..capabilities import Capability
from .models import Detection, DetectionContext, DetectionType, TraceData


@runtime_checkable
class Detector(Protocol):
    """Detectors read a trace (NEVER mutate it or the context) and return detections."""

    name: str
    detection_type: DetectionType
    priority: int  # lower runs first
    requires: frozenset[Capability]  # must be covered by the context's capabilities

    def detect(self, trace: TraceData, context: DetectionContext) -> list[Detection]: ...


# Detectors may additionally define
#   detect_from_snapshot(snapshot, context: SnapshotDetectionContext) -> list[Detection]
# which the analyzer prefers when analyzing a TraceSnapshot.
