"""Debounced directory watcher that ingests new sanitized trace files."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional

from watchfiles import Change, watch

from ..exceptions import RenderProfilerError, TraceNotFoundError, TraceValidationError
from ..logging_config import get_logger
from .native_schema import parse_native_trace, validate_native_trace

logger = get_logger(__name__)

TraceCallback = Callable[[dict[str, Any], Path], None]
ErrorCallback = Callable[[Exception, Path], None]


class TraceFileWatcher:
    """Watches a trace directory and hands each valid new trace to ``on_trace``.

    Uses ``watchfiles`` in a background thread. Files are often written in
    chunks, so every path gets its own timer that restarts on each change and
    fires ``debounce_ms`` after the last one. A path is ingested at most once.
    """

    def __init__(
        self,
        trace_dir: str | Path,
        on_trace: TraceCallback,
        on_error: Optional[ErrorCallback] = None,
        extension: str = ".json",
        debounce_ms: int = 100,
        process_existing: bool = False,
        max_file_age_s: float = 3600,
        on_start: Optional[Callable[[Path], None]] = None,
        on_stop: Optional[Callable[[], None]] = None,
        on_file_detected: Optional[Callable[[Path], None]] = None,
    ) -> None:
        self.trace_dir = Path(trace_dir)
        self.on_trace = on_trace
        self.on_error = on_error
        self.extension = extension
        self.debounce_ms = debounce_ms
        self.process_existing = process_existing
        self.max_file_age_s = max_file_age_s
        self.on_start = on_start
        self.on_stop = on_stop
        self.on_file_detected = on_file_detected

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._pending: dict[Path, threading.Timer] = {}
        self._processed: set[Path] = set()

    def start(self) -> None:
        """Start the watcher thread."""
        if self.is_running():
            logger.warning("Watcher is already running")
            return
        if not self.trace_dir.is_dir():
            raise TraceNotFoundError(self.trace_dir, "trace directory not accessible")

        logger.info(f"Starting trace file watcher on: {self.trace_dir}")
        if self.process_existing:
            self._process_existing_files()

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._watch_loop, name="render-profiler-watcher", daemon=True)
        self._thread.start()
        if self.on_start:
            self.on_start(self.trace_dir)

    def stop(self) -> None:
        """Signal the watcher to stop and cancel pending timers."""
        if not self.is_running():
            return
        logger.info("Stopping trace file watcher")
        self._stop_event.set()
        with self._lock:
            for timer in self._pending.values():
                timer.cancel()
            self._pending.clear()
        self._thread.join(timeout=5)
        if self._thread.is_alive():
            logger.warning("Watcher thread did not exit cleanly within 5 seconds")
        self._thread = None
        if self.on_stop:
            self.on_stop()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def get_processed_files(self) -> list[Path]:
        with self._lock:
            return sorted(self._processed)

    def clear_processed_files(self) -> None:
        with self._lock:
            self._processed.clear()

    def handle_file_event(self, path: str | Path) -> None:
        """Schedule ``path`` for ingestion, restarting its debounce timer."""
        path = Path(path)
        if path.suffix != self.extension:
            return
        if self.on_file_detected:
            self.on_file_detected(path)

        with self._lock:
            if path in self._processed:
                return
            previous = self._pending.pop(path, None)
            if previous is not None:
                previous.cancel()
            timer = threading.Timer(self.debounce_ms / 1000, self._fire, args=(path,))
            timer.daemon = True
            self._pending[path] = timer
            timer.start()

    def _fire(self, path: Path) -> None:
        with self._lock:
            self._pending.pop(path, None)
        self.process_file(path)

    def process_file(self, path: str | Path) -> Optional[dict[str, Any]]:
        """Parse, validate and deliver one file; None if skipped or invalid."""
        path = Path(path)
        with self._lock:
            if path in self._processed:
                return None

        logger.debug(f"Processing trace file: {path}")
        try:
            trace = parse_native_trace(path.read_text(encoding="utf-8"), source=path)
        except TraceValidationError as e:
            logger.warning(f"Invalid trace file {path}: {', '.join(e.errors)}")
            self._report_error(e, path)
            return None
        except (RenderProfilerError, OSError) as e:
            logger.error(f"Failed to process trace file {path}: {e}")
            self._report_error(e, path)
            return None

        for warning in validate_native_trace(trace).warnings:
            logger.warning(f"Trace warning ({path}): {warning}")

        with self._lock:
            self._processed.add(path)
        logger.info(f"Processed trace: {trace['name']} ({len(trace['frames'])} frames)")
        try:
            self.on_trace(trace, path)
        except Exception as e:
            logger.exception(f"Trace handler failed for {path}")
            self._report_error(e, path)
        return trace

    def _report_error(self, error: Exception, path: Path) -> None:
        if self.on_error:
            self.on_error(error, path)

    def _process_existing_files(self) -> None:
        logger.debug("Processing existing trace files")
        now = time.time()
        for path in sorted(self.trace_dir.iterdir()):
            if path.suffix != self.extension or not path.is_file():
                continue
            if now - path.stat().st_mtime > self.max_file_age_s:
                logger.debug(f"Skipping old file: {path.name}")
                continue
            self.process_file(path)

    def _watch_loop(self) -> None:
        """Background thread: forward created/modified files to the debouncer."""
        try:
            for changes in watch(
                self.trace_dir,
                stop_event=self._stop_event,
                debounce=50,
                rust_timeout=1000,
                recursive=False,
            ):
                if self._stop_event.is_set():
                    break
                for change, path in changes:
                    if change in (Change.added, Change.modified):
                        self.handle_file_event(path)
        except Exception:
            logger.exception("Trace watcher crashed")
