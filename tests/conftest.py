"""Shared test fixtures for Render Profiler tests."""

import copy

import pytest

from render_profiler.analysis.models import DetectionContext, FrameMetrics, TraceData
from render_profiler.capabilities import DEFAULT_RAW_CAPABILITIES


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def make_event(name, ts, dur=None, ph="X", cat="devtools.timeline", tid=1, args=None):
    """Build a Chrome trace event; ``ts``/``dur`` are in µs."""
    event = {"name": name, "ts": ts, "ph": ph, "cat": cat, "pid": 1, "tid": tid}
    if dur is not None:
        event["dur"] = dur
    if args is not None:
        event["args"] = args
    return event


def make_context(fps=60.0, start=0.0, end=1_000_000.0, capabilities=DEFAULT_RAW_CAPABILITIES):
    """DetectionContext over [start, end] µs with an empty frame summary."""
    budget = 1000.0 / fps
    return DetectionContext(
        fps_target=fps,
        frame_budget_ms=budget,
        frame_metrics=FrameMetrics(total=0, dropped=0, avg_fps=0.0, frame_budget_ms=budget),
        trace_start_time=start,
        trace_end_time=end,
        capabilities=frozenset(capabilities),
        degraded_mode=False,
    )


@pytest.fixture
def context():
    """One second of trace at 60fps."""
    return make_context()


@pytest.fixture
def thrashing_trace():
    """Four back-to-back layouts on one selector inside a single frame."""
    events = [make_event("BeginFrame", 0, ph="I")]
    for i in range(4):
        events.append(
            make_event(
                "Layout",
                1000 + i * 1500,
                dur=1200,
                args={"data": {"selector": "#list > li", "elementCount": 40}},
            )
        )
    events.append(make_event("BeginFrame", 16_667, ph="I"))
    return TraceData(trace_events=events)


@pytest.fixture
def long_task_trace():
    """One 75ms function call spanning a 35ms frame interval."""
    return TraceData(
        trace_events=[
            make_event("BeginFrame", 0, ph="I"),
            make_event(
                "FunctionCall",
                1000,
                dur=75_000,
                args={"data": {"functionName": "renderGrid", "url": "https://app.test/grid.js", "lineNumber": 42}},
            ),
            make_event("BeginFrame", 35_000, ph="I"),
            make_event("BeginFrame", 45_000, ph="I"),
        ]
    )


@pytest.fixture
def gpu_stall_trace():
    """Three texture uploads on one layer plus a main-thread wait."""
    events = [make_event("thread_name", 0, ph="M", tid=1, args={"name": "CrRendererMain"})]
    for i in range(3):
        start = i * 20_000
        events.append(make_event("UploadTexture", start, dur=3000, tid=2, cat="gpu", args={"layerId": 7}))
        events.append(make_event("WaitForGpu", start + 500, dur=2000, tid=1))
    return TraceData(trace_events=events)


@pytest.fixture
def native_trace_doc():
    """A valid sanitized trace document; frames last 10, 20 and 30ms."""
    return copy.deepcopy(
        {
            "version": "1.1",
            "traceId": "native-trace-1",
            "name": "scroll-feed",
            "durationMs": 50.0,
            "frames": [
                {"frameId": 0, "startTimestamp": 0, "endTimestamp": 10_000, "durationMs": 10.0, "dropped": False},
                {"frameId": 1, "startTimestamp": 10_000, "endTimestamp": 30_000, "durationMs": 20.0, "dropped": False},
                {"frameId": 2, "startTimestamp": 30_000, "endTimestamp": 60_000, "durationMs": 30.0, "dropped": False},
            ],
            "longTasks": [
                {"startTimestamp": 31_000, "durationMs": 75.0, "source": "webview", "functionName": "hydrate"},
            ],
            "domSignals": [
                {"type": "layout", "timestamp": 12_000, "durationMs": 2.5, "selector": ".card"},
            ],
            "metadata": {
                "timestamp": "2026-01-01T00:00:00Z",
                "fpsTarget": 60,
                "bundleId": "com.example.feed",
                "osVersion": "iOS 18.1",
                "deviceModel": "iPhone15,2",
                "screenSize": {"width": 390, "height": 844},
                "scale": 3,
            },
        }
    )
