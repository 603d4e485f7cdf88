"""Trace sources - adapters that produce TraceSnapshots, and their registry."""

from .base import AdapterMetadata, AdapterStatus, BrowserAdapter, CollectOptions, ConnectOptions
from .chromium_cdp import ChromiumCDPAdapter, normalize_trace_events
from .native_schema import ValidationResult, parse_native_trace, validate_native_trace
from .registry import AdapterRegistry, DetectionResult, create_default_registry
from .watcher import TraceFileWatcher
from .webkit_native import WebKitNativeAdapter, normalize_native_trace

__all__ = [
    "AdapterMetadata",
    "AdapterRegistry",
    "AdapterStatus",
    "BrowserAdapter",
    "ChromiumCDPAdapter",
    "CollectOptions",
    "ConnectOptions",
    "DetectionResult",
    "TraceFileWatcher",
    "ValidationResult",
    "WebKitNativeAdapter",
    "create_default_registry",
    "normalize_native_trace",
    "normalize_trace_events",
    "parse_native_trace",
    "validate_native_trace",
]
