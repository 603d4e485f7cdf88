"""
Render Profiler - browser rendering pipeline analysis

Collects timing data from a live DevTools Protocol connection or from
sanitized on-device traces, normalizes it into a TraceSnapshot and runs
capability-gated detectors for layout thrashing, GPU stalls, long tasks and
heavy paints. Every finding is scored by one shared scoring engine.
"""

__version__ = "0.1.0"

from .adapters import AdapterRegistry, create_default_registry
from .analysis import AnalysisResult, Analyzer, Detection, ScoringEngine
from .capabilities import AdapterType, Capability
from .loading import load_trace_file
from .snapshot import TraceSnapshot

__all__ = [
    "AdapterRegistry",
    "AdapterType",
    "AnalysisResult",
    "Analyzer",
    "Capability",
    "Detection",
    "ScoringEngine",
    "TraceSnapshot",
    "create_default_registry",
    "load_trace_file",
]
