"""AdapterRegistry - adapter lookup, auto-detection and the active adapter."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from ..capabilities import AdapterType
from ..exceptions import AdapterNotFoundError
from ..logging_config import get_logger
from .base import AdapterMetadata, BrowserAdapter, ConnectOptions
from .chromium_cdp import CHROMIUM_CDP_METADATA, ChromiumCDPAdapter
from .webkit_native import WEBKIT_NATIVE_METADATA, WebKitNativeAdapter

logger = get_logger(__name__)

AdapterFactory = Callable[[], BrowserAdapter]

DEFAULT_ADAPTER_TYPE = AdapterType.CHROMIUM_CDP.value

# Substring of a browser name -> adapter type; first match wins
BROWSER_NAME_HINTS: tuple[tuple[str, str], ...] = (
    ("chrome", AdapterType.CHROMIUM_CDP.value),
    ("chromium", AdapterType.CHROMIUM_CDP.value),
    ("edge", AdapterType.CHROMIUM_CDP.value),
    ("brave", AdapterType.CHROMIUM_CDP.value),
    ("arc", AdapterType.CHROMIUM_CDP.value),
    ("dia", AdapterType.CHROMIUM_CDP.value),
    ("zen", AdapterType.CHROMIUM_CDP.value),
    ("safari", AdapterType.WEBKIT_NATIVE.value),
    ("webkit", AdapterType.WEBKIT_NATIVE.value),
    ("firefox", AdapterType.FIREFOX_RDP.value),
)


@dataclass(frozen=True)
class DetectionResult:
    adapter_type: str
    confidence: Literal["high", "medium", "low"]
    reason: str


@dataclass(frozen=True)
class _Registration:
    metadata: AdapterMetadata
    factory: AdapterFactory


class AdapterRegistry:
    """Registered adapter types plus at most one connected, reusable adapter."""

    def __init__(self) -> None:
        self._adapters: dict[str, _Registration] = {}
        self._active: Optional[BrowserAdapter] = None
        self._lock = threading.RLock()

    def register(self, adapter_type: str, metadata: AdapterMetadata, factory: AdapterFactory) -> None:
        if adapter_type in self._adapters:
            logger.warning(f"Adapter '{adapter_type}' is already registered, overwriting")
        self._adapters[adapter_type] = _Registration(metadata, factory)
        logger.debug(f"Registered adapter: {metadata.name} ({adapter_type})")

    def unregister(self, adapter_type: str) -> bool:
        removed = self._adapters.pop(adapter_type, None) is not None
        if removed:
            logger.debug(f"Unregistered adapter: {adapter_type}")
        return removed

    def has_adapter(self, adapter_type: str) -> bool:
        return adapter_type in self._adapters

    def get_adapter_metadata(self, adapter_type: str) -> Optional[AdapterMetadata]:
        registration = self._adapters.get(adapter_type)
        return registration.metadata if registration else None

    def get_registered_adapters(self) -> list[AdapterMetadata]:
        return [r.metadata for r in self._adapters.values()]

    def list_adapter_types(self) -> list[str]:
        return list(self._adapters)

    def get_capabilities_summary(self) -> dict[str, list[str]]:
        return {
            adapter_type: sorted(c.value for c in r.metadata.capabilities)
            for adapter_type, r in self._adapters.items()
        }

    def create_adapter(self, adapter_type: str) -> BrowserAdapter:
        registration = self._adapters.get(adapter_type)
        if registration is None:
            raise AdapterNotFoundError(adapter_type, self.list_adapter_types())
        logger.debug(f"Creating adapter instance: {adapter_type}")
        return registration.factory()

    def detect(self, browser_path: Optional[str] = None, browser_name: Optional[str] = None) -> DetectionResult:
        """Pick an adapter type from a browser path or name.

        Path patterns give high confidence (highest adapter priority wins),
        a name hint gives medium, and the default fallback gives low.
        """
        if browser_path:
            path = browser_path.lower()
            matches = []
            for adapter_type, registration in self._adapters.items():
                for pattern in registration.metadata.browser_patterns:
                    if pattern.search(path):
                        matches.append((registration.metadata.priority, adapter_type, pattern.pattern))
                        break
            if matches:
                # stable sort keeps registration order among equal priorities
                matches.sort(key=lambda m: m[0], reverse=True)
                _, adapter_type, pattern = matches[0]
                return DetectionResult(adapter_type, "high", f"Browser path matches pattern: {pattern}")

        if browser_name:
            name = browser_name.lower()
            for hint, adapter_type in BROWSER_NAME_HINTS:
                if hint in name and adapter_type in self._adapters:
                    return DetectionResult(
                        adapter_type, "medium", f"Browser name '{browser_name}' suggests {adapter_type}"
                    )

        if DEFAULT_ADAPTER_TYPE in self._adapters:
            return DetectionResult(DEFAULT_ADAPTER_TYPE, "low", f"Defaulting to {DEFAULT_ADAPTER_TYPE} adapter")
        if self._adapters:
            first = next(iter(self._adapters))
            return DetectionResult(first, "low", f"Using first available adapter: {first}")
        raise AdapterNotFoundError(None, [])

    def select(self, options: ConnectOptions) -> BrowserAdapter:
        if options.adapter_type:
            logger.info(f"Using explicitly specified adapter: {options.adapter_type}")
            return self.create_adapter(options.adapter_type)
        detection = self.detect(options.browser_path, options.browser_name)
        logger.info(
            f"Auto-detected adapter: {detection.adapter_type} "
            f"({detection.confidence} confidence) - {detection.reason}"
        )
        return self.create_adapter(detection.adapter_type)

    def get_active(self, options: ConnectOptions) -> BrowserAdapter:
        """Reuse the connected adapter when it matches, else create and connect one."""
        with self._lock:
            if self._active is not None:
                current = self._active.metadata.type
                requested = options.adapter_type
                if requested and requested != current:
                    self.disconnect_active()
                elif self._active.is_connected():
                    logger.debug(f"Reusing active adapter: {current}")
                    return self._active
                else:
                    self._active = None

            adapter = self.select(options)
            try:
                adapter.connect(options)
            except Exception as e:
                logger.error(f"Failed to connect adapter: {e}")
                raise
            self._active = adapter
            return adapter

    def get_active_instance(self) -> Optional[BrowserAdapter]:
        return self._active

    def disconnect_active(self) -> None:
        with self._lock:
            if self._active is None:
                return
            try:
                if self._active.is_connected():
                    self._active.disconnect()
            except Exception as e:
                logger.warning(f"Error disconnecting adapter: {e}")
            self._active = None


def create_default_registry() -> AdapterRegistry:
    """Registry with the full-protocol and file-based adapters."""
    registry = AdapterRegistry()
    registry.register(CHROMIUM_CDP_METADATA.type, CHROMIUM_CDP_METADATA, ChromiumCDPAdapter)
    registry.register(WEBKIT_NATIVE_METADATA.type, WEBKIT_NATIVE_METADATA, WebKitNativeAdapter)
    return registry
