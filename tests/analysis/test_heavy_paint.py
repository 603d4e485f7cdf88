"""Tests for the heavy paint detector."""

from conftest import make_event

from render_profiler.analysis.detectors import HeavyPaintDetector
from render_profiler.analysis.models import DetectionType, TraceData

WINDOW_US = 16_667


def _paint_windows(count, paint_us=3000):
    return [make_event("Paint", i * WINDOW_US + 100, dur=paint_us) for i in range(count)]


class TestHeavyPaintDetector:
    """Test HeavyPaintDetector.detect."""

    def test_single_heavy_window(self, context):
        trace = TraceData(
            trace_events=[
                make_event("Paint", 100, dur=3000, args={"data": {"layerCount": 4}}),
                make_event("RasterTask", 3200, dur=1000),
            ]
        )
        detections = HeavyPaintDetector().detect(trace, context)
        assert len(detections) == 1
        d = detections[0]
        assert d.type is DetectionType.HEAVY_PAINT
        assert d.details.paint_time_ms == 3.0
        assert d.details.raster_time_ms == 1.0
        assert d.details.layer_count == 4
        assert d.description == "Heavy paint operations: 3.0ms paint, 1.0ms raster across 4 layers"

    def test_total_at_threshold_qualifies(self, context):
        trace = TraceData(trace_events=[make_event("Paint", 0, dur=1500), make_event("RasterTask", 1600, dur=500)])
        assert len(HeavyPaintDetector().detect(trace, context)) == 1

    def test_light_window_is_ignored(self, context):
        trace = TraceData(trace_events=[make_event("Paint", 0, dur=800)])
        assert HeavyPaintDetector().detect(trace, context) == []

    def test_many_layers_qualify_without_cost(self, context):
        trace = TraceData(trace_events=[make_event("Paint", 0, dur=100, args={"data": {"numLayers": 12}})])
        d = HeavyPaintDetector().detect(trace, context)[0]
        assert d.details.layer_count == 12

    def test_five_windows_reported_separately(self, context):
        detections = HeavyPaintDetector().detect(TraceData(trace_events=_paint_windows(5)), context)
        assert len(detections) == 5

    def test_more_than_five_windows_collapse(self, context):
        """A page painting heavily in every frame produces one aggregate finding."""
        detections = HeavyPaintDetector().detect(TraceData(trace_events=_paint_windows(8)), context)
        assert len(detections) == 1
        d = detections[0]
        assert d.occurrences == 8
        assert d.details.paint_time_ms == 24.0

    def test_non_paint_events_are_ignored(self, context):
        trace = TraceData(trace_events=[make_event("Layout", 0, dur=9000)])
        assert HeavyPaintDetector().detect(trace, context) == []
