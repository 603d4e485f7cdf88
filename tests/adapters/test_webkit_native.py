"""Tests for adapters/webkit_native.py - the file-based adapter."""

import json
import os
import time

import pytest

from render_profiler.adapters import CollectOptions, ConnectOptions, WebKitNativeAdapter, normalize_native_trace
from render_profiler.adapters.webkit_native import find_latest_trace_file
from render_profiler.capabilities import Capability
from render_profiler.exceptions import AdapterStateError, TraceNotFoundError, TraceValidationError
from render_profiler.snapshot import DOMSignalType


def _write(path, doc):
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


class TestNormalizeNativeTrace:
    """Test normalize_native_trace."""

    def test_frames_and_metrics(self, native_trace_doc):
        snapshot = normalize_native_trace(native_trace_doc)
        assert [f.dropped for f in snapshot.frame_timings] == [False, True, True]
        assert snapshot.frame_metrics.avg_fps == 50.0
        assert snapshot.frame_metrics.dropped_frames == 2

    def test_explicit_dropped_flag_is_kept(self, native_trace_doc):
        native_trace_doc["frames"][0]["dropped"] = True
        snapshot = normalize_native_trace(native_trace_doc)
        assert snapshot.frame_timings[0].dropped

    def test_fps_override_changes_budget(self, native_trace_doc):
        snapshot = normalize_native_trace(native_trace_doc, CollectOptions(fps_target=30))
        assert [f.dropped for f in snapshot.frame_timings] == [False, False, False]
        assert snapshot.metadata.fps_target == 30

    def test_no_gpu_or_paint_data(self, native_trace_doc):
        snapshot = normalize_native_trace(native_trace_doc)
        assert snapshot.gpu_events == []
        assert snapshot.paint_events == []
        assert snapshot.frame_timings[0].layout_ms is None

    def test_signals_and_tasks(self, native_trace_doc):
        native_trace_doc["longTasks"].append({"startTimestamp": 0, "durationMs": 60, "source": "native"})
        snapshot = normalize_native_trace(native_trace_doc)
        assert snapshot.long_tasks[0].function_name == "hydrate"
        assert snapshot.long_tasks[1].function_name == "<unknown>"
        assert snapshot.dom_signals[0].type is DOMSignalType.FORCED_REFLOW
        assert snapshot.dom_signals[0].selector == ".card"

    def test_metadata(self, native_trace_doc):
        meta = normalize_native_trace(native_trace_doc).metadata
        assert meta.adapter_type == "webkit-native"
        assert meta.platform == "webkit"
        assert meta.browser_version == "iOS 18.1 iPhone15,2"
        assert meta.user_agent == "WebKit (iOS 18.1) com.example.feed"
        assert meta.viewport.width == 390
        assert meta.device_pixel_ratio == 3

    def test_partial_screen_size_has_no_viewport(self, native_trace_doc):
        native_trace_doc["metadata"]["screenSize"] = {"width": 390}
        assert normalize_native_trace(native_trace_doc).metadata.viewport is None

    def test_scenario_falls_back_to_document(self, native_trace_doc):
        native_trace_doc["metadata"]["scenario"] = "scroll"
        assert normalize_native_trace(native_trace_doc).metadata.scenario == "scroll"
        named = normalize_native_trace(native_trace_doc, CollectOptions(scenario="checkout"))
        assert named.metadata.scenario == "checkout"


class TestWebKitNativeAdapter:
    """Test the adapter lifecycle and trace resolution."""

    def test_metadata_and_capabilities(self):
        adapter = WebKitNativeAdapter()
        assert adapter.metadata.priority == 50
        assert adapter.has_capability(Capability.LONG_TASKS)
        assert not adapter.has_capability(Capability.GPU_EVENTS)

    def test_collect_before_connect(self):
        with pytest.raises(AdapterStateError, match="not connected"):
            WebKitNativeAdapter().collect_trace(CollectOptions())

    def test_connect_twice(self, tmp_path):
        adapter = WebKitNativeAdapter()
        adapter.connect(ConnectOptions(trace_dir=str(tmp_path)))
        with pytest.raises(AdapterStateError, match="already connected"):
            adapter.connect(ConnectOptions(trace_dir=str(tmp_path)))

    def test_missing_trace_file(self, tmp_path):
        with pytest.raises(TraceNotFoundError):
            WebKitNativeAdapter().connect(ConnectOptions(trace_file=str(tmp_path / "nope.json")))

    def test_missing_trace_dir(self, tmp_path):
        with pytest.raises(TraceNotFoundError):
            WebKitNativeAdapter().connect(ConnectOptions(trace_dir=str(tmp_path / "nope")))

    def test_collect_explicit_file(self, tmp_path, native_trace_doc):
        path = _write(tmp_path / "run.json", native_trace_doc)
        adapter = WebKitNativeAdapter()
        adapter.connect(ConnectOptions(trace_file=str(path)))
        assert adapter.is_connected()
        snapshot = adapter.collect_trace(CollectOptions())
        assert snapshot.id == "native-trace-1"
        assert adapter.loaded_trace["name"] == "scroll-feed"
        assert not adapter.get_status().collecting

    def test_scenario_file_is_preferred(self, tmp_path, native_trace_doc):
        _write(tmp_path / "other.json", dict(native_trace_doc, traceId="other"))
        _write(tmp_path / "checkout.json", dict(native_trace_doc, traceId="checkout"))
        adapter = WebKitNativeAdapter()
        adapter.connect(ConnectOptions(trace_dir=str(tmp_path)))
        assert adapter.collect_trace(CollectOptions(scenario="checkout")).id == "checkout"

    def test_latest_file_is_used(self, tmp_path, native_trace_doc):
        old = _write(tmp_path / "a.json", dict(native_trace_doc, traceId="old"))
        _write(tmp_path / "b.json", dict(native_trace_doc, traceId="new"))
        past = time.time() - 100
        os.utime(old, (past, past))
        adapter = WebKitNativeAdapter()
        adapter.connect(ConnectOptions(trace_dir=str(tmp_path)))
        assert adapter.collect_trace(CollectOptions()).id == "new"

    def test_empty_directory(self, tmp_path):
        adapter = WebKitNativeAdapter()
        adapter.connect(ConnectOptions(trace_dir=str(tmp_path)))
        with pytest.raises(TraceNotFoundError):
            adapter.collect_trace(CollectOptions())

    def test_invalid_file_records_error(self, tmp_path, native_trace_doc):
        del native_trace_doc["metadata"]["fpsTarget"]
        path = _write(tmp_path / "bad.json", native_trace_doc)
        adapter = WebKitNativeAdapter()
        adapter.connect(ConnectOptions(trace_file=str(path)))
        with pytest.raises(TraceValidationError):
            adapter.collect_trace(CollectOptions())
        assert "metadata.fpsTarget" in adapter.get_status().last_error

    def test_disconnect_resets_state(self, tmp_path, native_trace_doc):
        path = _write(tmp_path / "run.json", native_trace_doc)
        adapter = WebKitNativeAdapter()
        adapter.connect(ConnectOptions(trace_file=str(path)))
        adapter.disconnect()
        assert not adapter.is_connected()
        assert adapter.trace_file is None


class TestFindLatestTraceFile:
    """Test find_latest_trace_file."""

    def test_ignores_other_extensions(self, tmp_path):
        (tmp_path / "notes.txt").write_text("x")
        assert find_latest_trace_file(tmp_path) is None

    def test_missing_directory(self, tmp_path):
        assert find_latest_trace_file(tmp_path / "missing") is None
