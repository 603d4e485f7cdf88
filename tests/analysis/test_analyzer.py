"""Tests for analysis/analyzer.py - capability gating and orchestration."""

from conftest import make_event

from render_profiler.adapters import CollectOptions, normalize_native_trace
from render_profiler.analysis import Analyzer, can_detector_run, infer_capabilities
from render_profiler.analysis.analyzer import DEGRADED_ANALYSIS, FULL_CDP_SUGGESTION, GPU_SUGGESTION
from render_profiler.analysis.detectors import GPUStallDetector, LongTaskDetector, get_default_detectors
from render_profiler.analysis.models import DetectionType, TraceData, TraceMetadata
from render_profiler.capabilities import ALL_CAPABILITIES, Capability
from render_profiler.snapshot import create_empty_trace_snapshot


class _BrokenDetector:
    name = "BrokenDetector"
    detection_type = DetectionType.LONG_TASK
    priority = 0
    requires = frozenset()

    def detect(self, trace, context):
        raise RuntimeError("boom")


class _GPUTypedDetector:
    name = "GPUTypedDetector"
    detection_type = DetectionType.GPU_STALL
    priority = 9
    requires = frozenset()

    def detect(self, trace, context):
        return []


class TestCapabilityGating:
    """Test can_detector_run and infer_capabilities."""

    def test_requirements_must_be_covered(self):
        detector = GPUStallDetector()
        assert can_detector_run(detector, frozenset({Capability.GPU_EVENTS}))
        assert not can_detector_run(detector, frozenset({Capability.FRAME_TIMING}))

    def test_gpu_type_needs_gpu_access(self):
        """A GPU stall detector without declared requirements still needs GPU data."""
        detector = _GPUTypedDetector()
        assert not can_detector_run(detector, frozenset({Capability.FRAME_TIMING}))
        assert can_detector_run(detector, frozenset({Capability.FULL_CDP}))

    def test_infer_from_native_snapshot(self, native_trace_doc):
        snapshot = normalize_native_trace(native_trace_doc, CollectOptions())
        assert infer_capabilities(snapshot) == frozenset(
            {Capability.FRAME_TIMING, Capability.LONG_TASKS, Capability.DOM_SIGNALS}
        )

    def test_infer_full_protocol_from_adapter_type(self):
        snapshot = create_empty_trace_snapshot("empty", adapter_type="chromium-cdp")
        assert infer_capabilities(snapshot) == frozenset({Capability.FULL_CDP})


class TestAnalyzer:
    """Test Analyzer construction and detector registration."""

    def test_default_detectors_in_priority_order(self):
        names = [d.name for d in Analyzer().get_detectors()]
        assert names == ["LayoutThrashDetector", "GPUStallDetector", "LongTaskDetector", "HeavyPaintDetector"]

    def test_register_detector_keeps_order(self):
        analyzer = Analyzer(detectors=get_default_detectors())
        analyzer.register_detector(_BrokenDetector())
        assert analyzer.get_detectors()[0].name == "BrokenDetector"

    def test_failing_detector_is_isolated(self, long_task_trace):
        analyzer = Analyzer(detectors=[_BrokenDetector(), LongTaskDetector()])
        result = analyzer.analyze(long_task_trace)
        assert len(result.detections) == 1
        assert result.detections[0].type is DetectionType.LONG_TASK


class TestAnalyzeTrace:
    """Test Analyzer.analyze over raw events."""

    def test_summary_from_raw_events(self, long_task_trace):
        trace = TraceData(
            trace_events=long_task_trace.trace_events,
            metadata=TraceMetadata(url="https://app.test/", fps_target=60),
        )
        result = Analyzer().analyze(trace, name="grid")
        summary = result.summary
        assert summary.name == "grid"
        assert summary.url == "https://app.test/"
        assert summary.duration_ms == 76.0
        assert summary.frames.total == 2
        assert summary.frames.dropped == 1
        assert summary.id.startswith("analysis-")
        assert result.warnings == []
        assert summary.hotspots.long_tasks[0].function == "renderGrid"

    def test_mixed_trace_finds_every_kind(self, thrashing_trace, gpu_stall_trace):
        events = list(thrashing_trace.trace_events) + list(gpu_stall_trace.trace_events)
        events.append(make_event("FunctionCall", 100_000, dur=60_000))
        result = Analyzer().analyze(TraceData(trace_events=events))
        kinds = {d.type for d in result.detections}
        assert DetectionType.LAYOUT_THRASHING in kinds
        assert DetectionType.GPU_STALL in kinds
        assert DetectionType.LONG_TASK in kinds

    def test_empty_trace(self):
        result = Analyzer().analyze(TraceData(trace_events=[]))
        assert result.detections == []
        assert result.summary.duration_ms == 0
        assert result.summary.frames.total == 0

    def test_phase_breakdown(self):
        trace = TraceData(
            trace_events=[
                make_event("Layout", 0, dur=2000),
                make_event("RecalculateStyles", 0, dur=1000),
                make_event("Paint", 0, dur=1500),
                make_event("CompositeLayers", 0, dur=500),
                make_event("GPUTask", 0, dur=250),
            ]
        )
        phases = Analyzer().analyze(trace).summary.phase_breakdown
        assert phases.layout_ms == 2.0
        assert phases.style_recalc_ms == 1.0
        assert phases.paint_ms == 1.5
        assert phases.composite_ms == 0.5
        assert phases.gpu_ms == 0.25


class TestAnalyzeSnapshot:
    """Test Analyzer.analyze_snapshot and degraded mode."""

    def test_limited_capabilities_emit_one_warning(self, native_trace_doc):
        snapshot = normalize_native_trace(native_trace_doc, CollectOptions())
        result = Analyzer().analyze_snapshot(
            snapshot, capabilities=[Capability.FRAME_TIMING, Capability.LONG_TASKS]
        )
        assert [d.type for d in result.detections] == [DetectionType.LONG_TASK]
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert warning.code == DEGRADED_ANALYSIS
        assert "GPUStallDetector" in warning.affected_detectors
        assert len(warning.affected_detectors) == 3
        assert warning.message == (
            "Analysis running in degraded mode. 3 detector(s) skipped due to limited adapter capabilities."
        )
        assert GPU_SUGGESTION in warning.suggestions
        assert FULL_CDP_SUGGESTION in warning.suggestions
        assert result.summary.suggestions == warning.suggestions

    def test_snapshot_summary_uses_snapshot_metrics(self, native_trace_doc):
        snapshot = normalize_native_trace(native_trace_doc, CollectOptions())
        result = Analyzer().analyze_snapshot(snapshot)
        assert result.summary.id == "native-trace-1"
        assert result.summary.name == "scroll-feed"
        assert result.summary.frames.total == 3
        assert result.summary.frames.dropped == 2
        assert result.summary.frames.avg_fps == 50.0
        assert result.summary.hotspots.long_tasks[0].function == "hydrate"

    def test_full_capabilities_have_no_warnings(self, native_trace_doc):
        snapshot = normalize_native_trace(native_trace_doc, CollectOptions())
        result = Analyzer().analyze_snapshot(snapshot, capabilities=ALL_CAPABILITIES)
        assert result.warnings == []
        assert result.summary.suggestions == []

    def test_result_serializes(self, native_trace_doc):
        snapshot = normalize_native_trace(native_trace_doc, CollectOptions())
        data = Analyzer().analyze_snapshot(snapshot).to_dict()
        assert data["summary"]["name"] == "scroll-feed"
        assert data["detections"][0]["details"]["function_name"] == "hydrate"
