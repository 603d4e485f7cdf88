"""Detector implementations - read a trace and produce scored Detections.

All four share one ScoringEngine so that scores are comparable across
detection types.
"""

from typing import Optional

from ...config import DetectorConfig
from ..scoring import ScoringEngine
from .gpu_stall import GPUStallDetector
from .heavy_paint import HeavyPaintDetector
from .layout_thrash import LayoutThrashDetector
from .long_task import LongTaskDetector

__all__ = [
    "GPUStallDetector",
    "HeavyPaintDetector",
    "LayoutThrashDetector",
    "LongTaskDetector",
    "get_default_detectors",
]


def get_default_detectors(
    scoring: Optional[ScoringEngine] = None, config: Optional[DetectorConfig] = None
) -> list:
    """Return all default detectors in priority order (layout, GPU, long task, paint)."""
    scoring = scoring or ScoringEngine()
    detectors = [
        LayoutThrashDetector(scoring, config),
        GPUStallDetector(scoring, config),
        LongTaskDetector(scoring, config),
        HeavyPaintDetector(scoring, config),
    ]
    return sorted(detectors, key=lambda d: d.priority)
