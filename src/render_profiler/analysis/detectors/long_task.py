"""LongTaskDetector - main-thread JS tasks over the long-task threshold."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ...capabilities import Capability
from ...config import DEFAULT_DETECTORS, DetectorConfig
from ...snapshot import TraceSnapshot
from ..models import (
    CallFrame,
    Detection,
    DetectionContext,
    DetectionLocation,
    DetectionType,
    LongTaskDetails,
    TraceData,
    TraceEvent,
)
from ..scoring import ScoringEngine
from .helpers import (
    FRAME_EVENTS,
    build_detection,
    event_begin_data,
    event_data,
    event_dur,
    event_ts,
    frame_start_times,
    is_number,
    stack_frames,
)

JS_EXECUTION_EVENTS = frozenset(
    {
        "FunctionCall",
        "EvaluateScript",
        "v8.compile",
        "v8.run",
        "V8.Execute",
        "RunMicrotasks",
        "TimerFire",
        "EventDispatch",
        "XHRReadyStateChange",
        "RequestAnimationFrame",
        "FireAnimationFrame",
        "ParseHTML",
        "ParseAuthorStyleSheet",
    }
)

_TIMELINE_JS_HINTS = ("Function", "Script", "Timer", "Event")


@dataclass
class _Task:
    ts: float  # µs
    dur: float  # µs
    function_name: str
    file: str
    line: int
    column: int
    call_stack: list[CallFrame]


@dataclass
class _TaskPattern:
    function_name: str
    file: str
    line: int
    column: int
    events: list[_Task] = field(default_factory=list)
    total_cpu_ms: float = 0.0
    correlated_frame_drops: int = 0
    call_stack: list[CallFrame] = field(default_factory=list)


class LongTaskDetector:
    name = "LongTaskDetector"
    detection_type = DetectionType.LONG_TASK
    priority = 3
    requires = frozenset({Capability.LONG_TASKS})

    def __init__(self, scoring: Optional[ScoringEngine] = None, config: Optional[DetectorConfig] = None):
        self.scoring = scoring or ScoringEngine()
        self.config = config or DEFAULT_DETECTORS

    def detect(self, trace: TraceData, context: DetectionContext) -> list[Detection]:
        threshold_us = self.config.long_task_threshold_ms * 1000
        tasks = sorted(
            (
                _task_from_event(e)
                for e in trace.trace_events
                if _is_js_execution(e) and event_dur(e) > threshold_us
            ),
            key=lambda t: t.ts,
        )
        drops = _frame_drops_from_events(trace.trace_events, context.frame_budget_ms)
        return [self._create_detection(p, context) for p in _correlate(tasks, drops)]

    def detect_from_snapshot(self, snapshot: TraceSnapshot, context: DetectionContext) -> list[Detection]:
        """Use the snapshot's long tasks and its dropped frames directly."""
        threshold_ms = self.config.long_task_threshold_ms
        tasks = sorted(
            (
                _Task(
                    ts=t.start_time,
                    dur=t.duration_ms * 1000,
                    function_name=t.function_name or "anonymous",
                    file=t.file or "unknown",
                    line=t.line or 0,
                    column=t.column or 0,
                    call_stack=[
                        CallFrame(
                            function_name=f.function_name,
                            file=f.file or "unknown",
                            line=f.line or 0,
                            column=f.column or 0,
                        )
                        for f in t.call_stack
                    ],
                )
                for t in snapshot.long_tasks
                if t.duration_ms > threshold_ms
            ),
            key=lambda t: t.ts,
        )
        drops = [
            (f.start_time, f.end_time - f.start_time)
            for f in snapshot.frame_timings
            if f.dropped
        ]
        return [self._create_detection(p, context) for p in _correlate(tasks, drops)]

    def _create_detection(self, pattern: _TaskPattern, context: DetectionContext) -> Detection:
        count = len(pattern.events)
        avg_ms = pattern.total_cpu_ms / count
        return build_detection(
            self.scoring,
            context,
            DetectionType.LONG_TASK,
            description=(
                f'Long task "{pattern.function_name}" averaging {avg_ms:.1f}ms, '
                f"correlated with {pattern.correlated_frame_drops} frame drops"
            ),
            location=DetectionLocation(file=pattern.file, line=pattern.line, column=pattern.column),
            details=LongTaskDetails(
                function_name=pattern.function_name,
                file=pattern.file,
                line=pattern.line,
                column=pattern.column,
                cpu_ms=pattern.total_cpu_ms,
                correlated_frame_drops=pattern.correlated_frame_drops,
                call_stack=pattern.call_stack,
            ),
            duration_ms=pattern.total_cpu_ms,
            occurrences=count,
            correlated_frame_drops=pattern.correlated_frame_drops,
        )


def _is_js_execution(event: TraceEvent) -> bool:
    name = event.get("name") or ""
    if name in JS_EXECUTION_EVENTS:
        return True
    if "devtools.timeline" in (event.get("cat") or ""):
        return any(hint in name for hint in _TIMELINE_JS_HINTS)
    return False


def _call_frame(frame: dict) -> CallFrame:
    return CallFrame(
        function_name=frame["functionName"] if isinstance(frame.get("functionName"), str) else "anonymous",
        file=frame["url"] if isinstance(frame.get("url"), str) else "unknown",
        line=int(frame["lineNumber"]) if is_number(frame.get("lineNumber")) else 0,
        column=int(frame["columnNumber"]) if is_number(frame.get("columnNumber")) else 0,
    )


def _task_from_event(event: TraceEvent) -> _Task:
    """Resolve the task's function and location from ``args.data``, then ``args.beginData``."""
    function_name = "anonymous"
    file = "unknown"
    line = 0
    column = 0
    call_stack: list[CallFrame] = []

    data = event_data(event)
    if data:
        if isinstance(data.get("functionName"), str):
            function_name = data["functionName"]
        if isinstance(data.get("scriptName"), str):
            file = data["scriptName"]
        elif isinstance(data.get("url"), str):
            file = data["url"]
        if is_number(data.get("lineNumber")):
            line = int(data["lineNumber"])
        if is_number(data.get("columnNumber")):
            column = int(data["columnNumber"])
        call_stack.extend(_call_frame(f) for f in stack_frames(data.get("stackTrace")))

    for raw in stack_frames(event_begin_data(event).get("stackTrace")):
        frame = _call_frame(raw)
        call_stack.append(frame)
        if function_name == "anonymous" and frame.function_name != "anonymous":
            function_name = frame.function_name
            file = frame.file
            line = frame.line
            column = frame.column

    if function_name == "anonymous":
        function_name = event.get("name") or "anonymous"

    return _Task(
        ts=event_ts(event),
        dur=event_dur(event),
        function_name=function_name,
        file=file,
        line=line,
        column=column,
        call_stack=call_stack,
    )


def _frame_drops_from_events(events: list[TraceEvent], frame_budget_ms: float) -> list[tuple[float, float]]:
    """(start µs, duration µs) of every frame interval longer than the budget."""
    starts = frame_start_times(events, FRAME_EVENTS)
    budget_us = frame_budget_ms * 1000
    return [(prev, cur - prev) for prev, cur in zip(starts, starts[1:]) if cur - prev > budget_us]


def _correlate(tasks: list[_Task], drops: list[tuple[float, float]]) -> list[_TaskPattern]:
    """Group tasks by function/location and count overlapping dropped frames."""
    patterns: dict[str, _TaskPattern] = {}
    for task in tasks:
        task_end = task.ts + task.dur
        overlapping = sum(1 for start, dur in drops if task.ts < start + dur and task_end > start)

        key = f"{task.function_name}:{task.file}:{task.line}"
        pattern = patterns.get(key)
        if pattern is None:
            pattern = patterns[key] = _TaskPattern(
                function_name=task.function_name,
                file=task.file,
                line=task.line,
                column=task.column,
                call_stack=task.call_stack,
            )
        pattern.events.append(task)
        pattern.total_cpu_ms += task.dur / 1000
        pattern.correlated_frame_drops += overlapping
        if len(task.call_stack) > len(pattern.call_stack):
            pattern.call_stack = task.call_stack
    return list(patterns.values())
