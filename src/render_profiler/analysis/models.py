"""Data models for the analysis engine.

``Detection`` is a tagged union: the shared fields live on ``Detection`` and
the type-specific payload lives in ``details``, whose concrete class is fixed
by ``type`` (see ``DETAILS_BY_TYPE``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Literal, Optional, Union

from ..capabilities import Capability
from ..snapshot import FrameMetricsSummary, PaintBounds, Viewport

# A protocol-native trace event (Chrome trace event format): name, cat, ph,
# ts (µs), dur (µs), pid, tid, args.
TraceEvent = dict[str, Any]

Confidence = Literal["high", "medium", "low"]


class DetectionType(str, Enum):
    LAYOUT_THRASHING = "layout_thrashing"
    GPU_STALL = "gpu_stall"
    LONG_TASK = "long_task"
    HEAVY_PAINT = "heavy_paint"
    FORCED_REFLOW = "forced_reflow"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """0 for info up to 3 for critical."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class StallType(str, Enum):
    SYNC = "sync"
    TEXTURE_UPLOAD = "texture_upload"
    RASTER = "raster"


# ---------------------------------------------------------------------------
# Raw trace input
# ---------------------------------------------------------------------------


@dataclass
class TraceMetadata:
    browser_version: str = "unknown"
    user_agent: str = "unknown"
    viewport: Viewport = field(default_factory=lambda: Viewport(width=0, height=0))
    device_pixel_ratio: float = 1
    timestamp: str = ""
    scenario: str = ""
    fps_target: float = 60
    url: Optional[str] = None


@dataclass
class TraceData:
    """A raw protocol trace: the event list plus collection metadata."""

    trace_events: list[TraceEvent]
    metadata: Optional[TraceMetadata] = None


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RiskAssessment:
    user_experience_impact: Literal["critical", "significant", "moderate", "minimal"]
    regression_risk: Literal["high", "medium", "low"]
    fix_priority: int  # 1-10, 10 most urgent
    factors: list[str]


@dataclass(frozen=True)
class DetectionMetrics:
    duration_ms: float
    occurrences: int
    impact_score: int  # 0-100
    confidence: Confidence
    estimated_speedup_pct: int
    speedup_explanation: str
    frame_budget_impact_pct: float
    risk_assessment: RiskAssessment


@dataclass(frozen=True)
class DetectionLocation:
    selector: Optional[str] = None
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    element: Optional[str] = None


@dataclass(frozen=True)
class DOMPropertyAccess:
    property: str
    timestamp: float
    type: Literal["read", "write"]


@dataclass(frozen=True)
class ReadWritePattern:
    frame_id: int
    reads: list[DOMPropertyAccess]
    writes: list[DOMPropertyAccess]
    forced_reflows: int = 1


@dataclass(frozen=True)
class LayerInfo:
    layer_id: int
    bounds: PaintBounds
    compositing_reasons: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CallFrame:
    function_name: str
    file: str
    line: int
    column: int


@dataclass(frozen=True)
class LayoutThrashDetails:
    selector: str
    reflow_cost_ms: float
    affected_nodes: int
    read_write_patterns: list[ReadWritePattern]


@dataclass(frozen=True)
class GPUStallDetails:
    element: str
    stall_type: StallType
    stall_ms: float
    layer_info: Optional[LayerInfo] = None


@dataclass(frozen=True)
class LongTaskDetails:
    function_name: str
    file: str
    line: int
    column: int
    cpu_ms: float
    correlated_frame_drops: int
    call_stack: list[CallFrame]


@dataclass(frozen=True)
class HeavyPaintDetails:
    paint_time_ms: float
    raster_time_ms: float
    layer_count: int


DetectionDetails = Union[LayoutThrashDetails, GPUStallDetails, LongTaskDetails, HeavyPaintDetails]

DETAILS_BY_TYPE: dict[DetectionType, type] = {
    DetectionType.LAYOUT_THRASHING: LayoutThrashDetails,
    DetectionType.GPU_STALL: GPUStallDetails,
    DetectionType.LONG_TASK: LongTaskDetails,
    DetectionType.HEAVY_PAINT: HeavyPaintDetails,
}


@dataclass(frozen=True)
class Detection:
    type: DetectionType
    severity: Severity
    description: str
    location: DetectionLocation
    metrics: DetectionMetrics
    details: DetectionDetails
    evidence: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        expected = DETAILS_BY_TYPE.get(self.type)
        if expected is not None and not isinstance(self.details, expected):
            raise TypeError(
                f"{self.type.value} detection requires {expected.__name__}, "
                f"got {type(self.details).__name__}"
            )

    @property
    def occurrences(self) -> int:
        return self.metrics.occurrences

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Detection context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FrameMetrics:
    """Frame counters reported in a summary."""

    total: int
    dropped: int
    avg_fps: float
    frame_budget_ms: float


@dataclass(frozen=True)
class DetectionContext:
    """Read-only inputs shared by every detector in one analysis call."""

    fps_target: float
    frame_budget_ms: float
    frame_metrics: FrameMetrics
    trace_start_time: float  # µs
    trace_end_time: float  # µs
    capabilities: frozenset[Capability]
    degraded_mode: bool

    @property
    def trace_duration_ms(self) -> float:
        """Trace length, or 1000ms when the time range is empty."""
        duration = (self.trace_end_time - self.trace_start_time) / 1000.0
        return duration if duration > 0 else 1000.0


@dataclass(frozen=True)
class SnapshotDetectionContext(DetectionContext):
    """Context for snapshot analysis, adding the snapshot's own aggregates."""

    snapshot_metrics: Optional[FrameMetricsSummary] = None
    adapter_type: str = "unknown"
    platform: str = "unknown"


# ---------------------------------------------------------------------------
# Analysis output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnalysisWarning:
    code: str
    message: str
    affected_detectors: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PhaseBreakdown:
    style_recalc_ms: float = 0.0
    layout_ms: float = 0.0
    paint_ms: float = 0.0
    composite_ms: float = 0.0
    gpu_ms: float = 0.0


@dataclass(frozen=True)
class LayoutThrashHotspot:
    selector: str
    reflow_cost_ms: float
    occurrences: int
    affected_nodes: int


@dataclass(frozen=True)
class GPUStallHotspot:
    element: str
    stall_ms: float
    occurrences: int


@dataclass(frozen=True)
class LongTaskHotspot:
    function: str
    file: str
    line: int
    cpu_ms: float
    occurrences: int


@dataclass(frozen=True)
class Hotspots:
    layout_thrashing: list[LayoutThrashHotspot] = field(default_factory=list)
    gpu_stalls: list[GPUStallHotspot] = field(default_factory=list)
    long_tasks: list[LongTaskHotspot] = field(default_factory=list)


@dataclass(frozen=True)
class TraceSummary:
    id: str
    name: str
    url: str
    duration_ms: float
    frames: FrameMetrics
    phase_breakdown: PhaseBreakdown
    hotspots: Hotspots
    metadata: TraceMetadata
    suggestions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AnalysisResult:
    summary: TraceSummary
    detections: list[Detection]
    warnings: list[AnalysisWarning] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
