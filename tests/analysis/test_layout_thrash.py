"""Tests for the layout thrashing detector."""

from conftest import make_event

from render_profiler.analysis.detectors import LayoutThrashDetector
from render_profiler.analysis.models import DetectionType, LayoutThrashDetails, TraceData
from render_profiler.config import DetectorConfig


class TestLayoutThrashDetector:
    """Test LayoutThrashDetector.detect."""

    def test_detects_rapid_layouts_in_one_frame(self, thrashing_trace, context):
        detections = LayoutThrashDetector().detect(thrashing_trace, context)
        assert len(detections) == 1
        d = detections[0]
        assert d.type is DetectionType.LAYOUT_THRASHING
        assert isinstance(d.details, LayoutThrashDetails)
        assert d.location.selector == "#list > li"
        assert d.occurrences == 4
        assert d.details.affected_nodes == 40
        assert abs(d.details.reflow_cost_ms - 4.8) < 1e-9

    def test_description_names_selector_and_cost(self, thrashing_trace, context):
        d = LayoutThrashDetector().detect(thrashing_trace, context)[0]
        assert d.description == 'Layout thrashing detected on "#list > li" with 4 forced reflows costing 4.80ms'

    def test_read_write_pattern_per_layout(self, thrashing_trace, context):
        d = LayoutThrashDetector().detect(thrashing_trace, context)[0]
        patterns = d.details.read_write_patterns
        assert len(patterns) == 4
        assert all(p.frame_id == 0 for p in patterns)
        # no stack: defaults to a generic read/write pair
        assert patterns[0].reads[0].property == "offsetWidth"
        assert patterns[0].writes[0].property == "style"

    def test_no_layout_events(self, context):
        trace = TraceData(trace_events=[make_event("Paint", 0, dur=1000)])
        assert LayoutThrashDetector().detect(trace, context) == []

    def test_single_layout_per_frame_is_not_thrashing(self, context):
        events = []
        for i in range(5):
            events.append(make_event("BeginFrame", i * 16_667, ph="I"))
            events.append(make_event("Layout", i * 16_667 + 500, dur=3000))
        assert LayoutThrashDetector().detect(TraceData(trace_events=events), context) == []

    def test_spaced_layouts_are_not_thrashing(self, context):
        """Layouts separated by more than a quarter budget are ignored."""
        events = [
            make_event("BeginFrame", 0, ph="I"),
            make_event("Layout", 0, dur=1000),
            make_event("Layout", 6000, dur=1000),
            make_event("Layout", 12_000, dur=1000),
        ]
        assert LayoutThrashDetector().detect(TraceData(trace_events=events), context) == []

    def test_cheap_thrashing_is_ignored(self, context):
        """Below the minimum accumulated cost nothing is reported."""
        events = [
            make_event("BeginFrame", 0, ph="I"),
            make_event("Layout", 100, dur=200),
            make_event("Layout", 400, dur=200),
        ]
        assert LayoutThrashDetector().detect(TraceData(trace_events=events), context) == []

    def test_windows_used_without_frame_markers(self, context):
        events = [make_event("Layout", 1000 + i * 1500, dur=1200) for i in range(3)]
        detections = LayoutThrashDetector().detect(TraceData(trace_events=events), context)
        assert len(detections) == 1
        assert detections[0].location.selector == "unknown"

    def test_selector_from_stack_and_properties(self, context):
        stack = [{"functionName": "measureRows", "url": "app.js", "lineNumber": 10}]
        events = [
            make_event("BeginFrame", 0, ph="I"),
            make_event("Layout", 1000, dur=1500, args={"beginData": {"stackTrace": stack}}),
            make_event("Layout", 2600, dur=1500, args={"beginData": {"stackTrace": stack}}),
        ]
        d = LayoutThrashDetector().detect(TraceData(trace_events=events), context)[0]
        assert d.location.selector == "measureRows"

    def test_groups_by_selector(self, context):
        events = [make_event("BeginFrame", 0, ph="I")]
        for i in range(4):
            selector = ".a" if i % 2 == 0 else ".b"
            events.append(make_event("Layout", 1000 + i * 1500, dur=1200, args={"data": {"selector": selector}}))
        detections = LayoutThrashDetector().detect(TraceData(trace_events=events), context)
        assert sorted(d.location.selector for d in detections) == [".a", ".b"]

    def test_threshold_comes_from_config(self, thrashing_trace, context):
        strict = LayoutThrashDetector(config=DetectorConfig(thrash_min_occurrences=5))
        assert strict.detect(thrashing_trace, context) == []
