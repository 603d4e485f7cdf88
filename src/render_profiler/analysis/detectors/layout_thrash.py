"""LayoutThrashDetector - rapid back-to-back layouts inside one frame."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ...capabilities import Capability
from ...config import DEFAULT_DETECTORS, DetectorConfig
from ..models import (
    Detection,
    DetectionContext,
    DetectionLocation,
    DetectionType,
    DOMPropertyAccess,
    LayoutThrashDetails,
    ReadWritePattern,
    TraceData,
    TraceEvent,
)
from ..scoring import ScoringEngine
from .helpers import (
    build_detection,
    event_args,
    event_begin_data,
    event_data,
    event_dur,
    event_ts,
    frame_start_times,
    group_by_frames,
    group_by_window,
    is_number,
    stack_frames,
)

LAYOUT_EVENTS = frozenset(
    {
        "Layout",
        "UpdateLayoutTree",
        "RecalculateStyles",
        "InvalidateLayout",
        "ScheduleStyleRecalculation",
    }
)

# DOM APIs that force a synchronous layout when read
LAYOUT_TRIGGERING_READS = (
    "offsetTop",
    "offsetLeft",
    "offsetWidth",
    "offsetHeight",
    "offsetParent",
    "clientTop",
    "clientLeft",
    "clientWidth",
    "clientHeight",
    "scrollTop",
    "scrollLeft",
    "scrollWidth",
    "scrollHeight",
    "getComputedStyle",
    "getBoundingClientRect",
    "getClientRects",
    "innerText",
    "focus",
)

# DOM properties that invalidate layout when written
LAYOUT_TRIGGERING_WRITES = (
    "width",
    "height",
    "top",
    "left",
    "right",
    "bottom",
    "margin",
    "padding",
    "border",
    "font",
    "display",
    "position",
    "float",
    "clear",
    "overflow",
    "transform",
    "className",
    "classList",
    "innerHTML",
    "textContent",
    "style",
)


@dataclass
class _LayoutEvent:
    ts: float
    dur: float
    selector: str
    node_count: int
    stack: list[str]


@dataclass
class _ThrashPattern:
    selector: str
    events: list[_LayoutEvent] = field(default_factory=list)
    total_cost_ms: float = 0.0
    affected_nodes: int = 1
    read_write: list[ReadWritePattern] = field(default_factory=list)


class LayoutThrashDetector:
    name = "LayoutThrashDetector"
    detection_type = DetectionType.LAYOUT_THRASHING
    priority = 1
    requires = frozenset({Capability.DOM_SIGNALS})

    def __init__(self, scoring: Optional[ScoringEngine] = None, config: Optional[DetectorConfig] = None):
        self.scoring = scoring or ScoringEngine()
        self.config = config or DEFAULT_DETECTORS

    def detect(self, trace: TraceData, context: DetectionContext) -> list[Detection]:
        layout_events = sorted(
            (self._to_layout_event(e) for e in trace.trace_events if e.get("name") in LAYOUT_EVENTS),
            key=lambda e: e.ts,
        )
        if not layout_events:
            return []

        frame_starts = frame_start_times(trace.trace_events)
        if frame_starts:
            groups = group_by_frames(layout_events, lambda e: e.ts, frame_starts)
        else:
            groups = group_by_window(layout_events, lambda e: e.ts, context)

        patterns: dict[str, _ThrashPattern] = {}
        for frame_id, events in groups.items():
            if len(events) < 2:
                continue
            for event in self._rapid_layouts(events, context):
                pattern = patterns.get(event.selector)
                if pattern is None:
                    pattern = patterns[event.selector] = _ThrashPattern(
                        selector=event.selector, affected_nodes=event.node_count
                    )
                pattern.events.append(event)
                pattern.total_cost_ms += event.dur / 1000
                pattern.affected_nodes = max(pattern.affected_nodes, event.node_count)
                pattern.read_write.append(_read_write_pattern(frame_id, event))

        cfg = self.config
        return [
            self._create_detection(p, context)
            for p in patterns.values()
            if len(p.events) >= cfg.thrash_min_occurrences and p.total_cost_ms >= cfg.thrash_min_total_ms
        ]

    def _rapid_layouts(self, events: list[_LayoutEvent], context: DetectionContext) -> list[_LayoutEvent]:
        """Layouts starting less than a fraction of a frame budget after the previous one ended."""
        threshold_us = context.frame_budget_ms * 1000 * self.config.thrash_gap_fraction
        flagged: list[_LayoutEvent] = []
        for prev, cur in zip(events, events[1:]):
            if cur.ts - (prev.ts + prev.dur) < threshold_us:
                if not any(e is prev for e in flagged):
                    flagged.append(prev)
                flagged.append(cur)
        return flagged

    def _to_layout_event(self, event: TraceEvent) -> _LayoutEvent:
        return _LayoutEvent(
            ts=event_ts(event),
            dur=event_dur(event),
            selector=_extract_selector(event),
            node_count=_extract_node_count(event),
            stack=_extract_stack(event),
        )

    def _create_detection(self, pattern: _ThrashPattern, context: DetectionContext) -> Detection:
        count = len(pattern.events)
        return build_detection(
            self.scoring,
            context,
            DetectionType.LAYOUT_THRASHING,
            description=(
                f'Layout thrashing detected on "{pattern.selector}" with {count} '
                f"forced reflows costing {pattern.total_cost_ms:.2f}ms"
            ),
            location=DetectionLocation(selector=pattern.selector),
            details=LayoutThrashDetails(
                selector=pattern.selector,
                reflow_cost_ms=pattern.total_cost_ms,
                affected_nodes=pattern.affected_nodes,
                read_write_patterns=pattern.read_write,
            ),
            duration_ms=pattern.total_cost_ms,
            occurrences=count,
            affected_nodes=pattern.affected_nodes,
        )


def _extract_selector(event: TraceEvent) -> str:
    data = event_data(event)
    for key in ("selectorStats", "selector", "nodeName"):
        if isinstance(data.get(key), str):
            return data[key]
    stack = stack_frames(event_begin_data(event).get("stackTrace"))
    if stack and stack[0].get("functionName"):
        return stack[0]["functionName"]
    return "unknown"


def _extract_node_count(event: TraceEvent) -> int:
    data = event_data(event)
    for key in ("elementCount", "nodeCount"):
        if is_number(data.get(key)):
            return int(data[key])
    if is_number(event_args(event).get("elementCount")):
        return int(event_args(event)["elementCount"])
    return 1


def _extract_stack(event: TraceEvent) -> list[str]:
    """Call stack as ``fn (url:line)`` strings."""
    begin_data = event_begin_data(event)
    if begin_data:
        out = []
        for frame in stack_frames(begin_data.get("stackTrace")):
            fn = frame.get("functionName")
            if fn and frame.get("url"):
                out.append(f"{fn} ({frame['url']}:{frame.get('lineNumber', 0)})")
            else:
                out.append(fn or "anonymous")
        return out
    return [frame.get("functionName") or "anonymous" for frame in stack_frames(event_data(event).get("stackTrace"))]


def _read_write_pattern(frame_id: int, event: _LayoutEvent) -> ReadWritePattern:
    """Infer DOM reads/writes by matching known property names against stack frames."""
    reads = []
    writes = []
    for frame in event.stack:
        reads.extend(
            DOMPropertyAccess(property=p, timestamp=event.ts, type="read")
            for p in LAYOUT_TRIGGERING_READS
            if p in frame
        )
        writes.extend(
            DOMPropertyAccess(property=p, timestamp=event.ts, type="write")
            for p in LAYOUT_TRIGGERING_WRITES
            if p in frame
        )
    if not reads:
        reads.append(DOMPropertyAccess(property="offsetWidth", timestamp=event.ts, type="read"))
    if not writes:
        writes.append(DOMPropertyAccess(property="style", timestamp=event.ts, type="write"))
    return ReadWritePattern(frame_id=frame_id, reads=reads, writes=writes, forced_reflows=1)
