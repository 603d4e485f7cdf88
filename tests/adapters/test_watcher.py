"""Tests for adapters/watcher.py - debounced trace directory watching."""

import json
import os
import threading
import time

import pytest

from render_profiler.adapters import TraceFileWatcher
from render_profiler.exceptions import TraceNotFoundError, TraceParseError, TraceValidationError


class _Collector:
    def __init__(self):
        self.traces = []
        self.errors = []
        self.event = threading.Event()

    def on_trace(self, trace, path):
        self.traces.append((trace["traceId"], path.name))
        self.event.set()

    def on_error(self, error, path):
        self.errors.append((type(error), path.name))
        self.event.set()


def _write(path, doc):
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


class TestProcessFile:
    """Test TraceFileWatcher.process_file."""

    def test_valid_file_is_delivered_once(self, tmp_path, native_trace_doc):
        collector = _Collector()
        watcher = TraceFileWatcher(tmp_path, collector.on_trace, collector.on_error)
        path = _write(tmp_path / "a.json", native_trace_doc)

        assert watcher.process_file(path)["traceId"] == "native-trace-1"
        assert watcher.process_file(path) is None
        assert collector.traces == [("native-trace-1", "a.json")]
        assert watcher.get_processed_files() == [path]

    def test_invalid_document_reports_error(self, tmp_path, native_trace_doc):
        del native_trace_doc["metadata"]["fpsTarget"]
        collector = _Collector()
        watcher = TraceFileWatcher(tmp_path, collector.on_trace, collector.on_error)
        path = _write(tmp_path / "bad.json", native_trace_doc)

        assert watcher.process_file(path) is None
        assert collector.errors == [(TraceValidationError, "bad.json")]
        assert watcher.get_processed_files() == []

    def test_unparseable_file_reports_error(self, tmp_path):
        collector = _Collector()
        watcher = TraceFileWatcher(tmp_path, collector.on_trace, collector.on_error)
        path = tmp_path / "partial.json"
        path.write_text('{"version": "1.1", ', encoding="utf-8")

        watcher.process_file(path)
        assert collector.errors == [(TraceParseError, "partial.json")]

    def test_handler_failure_is_reported(self, tmp_path, native_trace_doc):
        collector = _Collector()

        def explode(trace, path):
            raise ValueError("analysis failed")

        watcher = TraceFileWatcher(tmp_path, explode, collector.on_error)
        path = _write(tmp_path / "a.json", native_trace_doc)

        assert watcher.process_file(path)["traceId"] == "native-trace-1"
        assert collector.errors == [(ValueError, "a.json")]
        assert watcher.get_processed_files() == [path]

    def test_handler_failure_in_debounce_timer_is_reported(self, tmp_path, native_trace_doc):
        collector = _Collector()

        def explode(trace, path):
            raise ValueError("analysis failed")

        watcher = TraceFileWatcher(tmp_path, explode, collector.on_error, debounce_ms=10)
        watcher.handle_file_event(_write(tmp_path / "a.json", native_trace_doc))

        assert collector.event.wait(5)
        assert collector.errors == [(ValueError, "a.json")]

    def test_clear_processed_files(self, tmp_path, native_trace_doc):
        collector = _Collector()
        watcher = TraceFileWatcher(tmp_path, collector.on_trace)
        path = _write(tmp_path / "a.json", native_trace_doc)
        watcher.process_file(path)
        watcher.clear_processed_files()
        watcher.process_file(path)
        assert len(collector.traces) == 2


class TestDebounce:
    """Test per-path debouncing in handle_file_event."""

    def test_burst_of_events_processes_once(self, tmp_path, native_trace_doc):
        collector = _Collector()
        watcher = TraceFileWatcher(tmp_path, collector.on_trace, collector.on_error, debounce_ms=50)
        path = _write(tmp_path / "a.json", native_trace_doc)

        for _ in range(5):
            watcher.handle_file_event(path)
        assert collector.event.wait(2.0)
        time.sleep(0.1)
        assert collector.traces == [("native-trace-1", "a.json")]

    def test_other_extensions_are_ignored(self, tmp_path):
        detected = []
        watcher = TraceFileWatcher(
            tmp_path, lambda trace, path: None, debounce_ms=10, on_file_detected=detected.append
        )
        watcher.handle_file_event(tmp_path / "notes.txt")
        assert detected == []


class TestLifecycle:
    """Test start/stop and existing-file handling."""

    def test_missing_directory(self, tmp_path):
        watcher = TraceFileWatcher(tmp_path / "missing", lambda trace, path: None)
        with pytest.raises(TraceNotFoundError):
            watcher.start()

    def test_process_existing_respects_age(self, tmp_path, native_trace_doc):
        fresh = _write(tmp_path / "fresh.json", native_trace_doc)
        stale = _write(tmp_path / "stale.json", dict(native_trace_doc, traceId="stale"))
        past = time.time() - 7200
        os.utime(stale, (past, past))

        collector = _Collector()
        watcher = TraceFileWatcher(tmp_path, collector.on_trace, process_existing=True)
        watcher.start()
        try:
            assert watcher.is_running()
        finally:
            watcher.stop()
        assert not watcher.is_running()
        assert collector.traces == [("native-trace-1", fresh.name)]

    @pytest.mark.slow
    def test_detects_new_file(self, tmp_path, native_trace_doc):
        collector = _Collector()
        started = []
        watcher = TraceFileWatcher(tmp_path, collector.on_trace, collector.on_error, on_start=started.append)
        watcher.start()
        try:
            assert started == [tmp_path]
            time.sleep(0.5)
            _write(tmp_path / "new.json", native_trace_doc)
            assert collector.event.wait(10.0)
        finally:
            watcher.stop()
        assert collector.traces == [("native-trace-1", "new.json")]
