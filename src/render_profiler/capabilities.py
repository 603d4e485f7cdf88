"""Capability tags and adapter type identifiers.

A capability is a named guarantee about what data a trace source can supply.
Adapters declare a set of them; detectors declare the set they require; the
analyzer only runs a detector whose requirements are covered.
"""

from enum import Enum
from typing import FrozenSet


class Capability(str, Enum):
    FULL_CDP = "full_cdp"
    FRAME_TIMING = "frame_timing"
    LONG_TASKS = "long_tasks"
    DOM_SIGNALS = "dom_signals"
    GPU_EVENTS = "gpu_events"
    PAINT_EVENTS = "paint_events"
    SOURCE_MAPS = "source_maps"
    LIVE_MONITORING = "live_monitoring"


class AdapterType(str, Enum):
    CHROMIUM_CDP = "chromium-cdp"
    WEBKIT_NATIVE = "webkit-native"
    FIREFOX_RDP = "firefox-rdp"
    CUSTOM = "custom"


ALL_CAPABILITIES: FrozenSet[Capability] = frozenset(Capability)

# Assumed for raw protocol traces, which only the full-protocol source produces.
DEFAULT_RAW_CAPABILITIES: FrozenSet[Capability] = frozenset(
    {
        Capability.FULL_CDP,
        Capability.FRAME_TIMING,
        Capability.LONG_TASKS,
        Capability.DOM_SIGNALS,
        Capability.GPU_EVENTS,
        Capability.PAINT_EVENTS,
    }
)
