"""Adapter base class and the option/status types shared by every adapter."""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional

from ..capabilities import Capability
from ..exceptions import AdapterStateError
from ..snapshot import TraceSnapshot


@dataclass(frozen=True)
class AdapterMetadata:
    """Static description of an adapter type.

    ``browser_patterns`` are tried in order against a lower-cased browser
    path; ``priority`` breaks ties between adapters (higher wins).
    """

    type: str
    name: str
    description: str
    capabilities: frozenset[Capability]
    browser_patterns: tuple[re.Pattern, ...] = ()
    priority: int = 0


@dataclass(frozen=True)
class AdapterStatus:
    connected: bool = False
    collecting: bool = False
    adapter_type: str = ""
    browser_version: Optional[str] = None
    connected_at: Optional[str] = None
    last_error: Optional[str] = None


@dataclass
class ConnectOptions:
    adapter_type: Optional[str] = None
    browser_path: Optional[str] = None
    browser_name: Optional[str] = None
    port: int = 9222
    host: str = "localhost"
    headless: bool = True
    trace_file: Optional[str] = None
    trace_dir: Optional[str] = None
    timeout_ms: int = 10000
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class CollectOptions:
    scenario: str = "default"
    duration_ms: int = 15000
    fps_target: Optional[float] = None
    url: Optional[str] = None
    trace_name: Optional[str] = None
    cancel_event: Optional[threading.Event] = None


class BrowserAdapter(ABC):
    """Connects to one trace source and produces TraceSnapshots.

    Lifecycle: ``connect`` -> ``collect_trace`` (any number of times) ->
    ``disconnect``. Collecting before connecting, or connecting twice, raises
    ``AdapterStateError``.
    """

    def __init__(self) -> None:
        self._status = AdapterStatus(adapter_type=self.metadata.type)

    @property
    @abstractmethod
    def metadata(self) -> AdapterMetadata: ...

    @abstractmethod
    def connect(self, options: ConnectOptions) -> None: ...

    @abstractmethod
    def disconnect(self) -> None: ...

    @abstractmethod
    def collect_trace(self, options: CollectOptions) -> TraceSnapshot: ...

    def is_connected(self) -> bool:
        return self._status.connected

    def get_status(self) -> AdapterStatus:
        return self._status

    def has_capability(self, capability: Capability) -> bool:
        return capability in self.metadata.capabilities

    def get_capabilities(self) -> frozenset[Capability]:
        return self.metadata.capabilities

    def _require_connected(self) -> None:
        if not self._status.connected:
            raise AdapterStateError(self.metadata.type, "not connected; call connect() first")

    def _require_disconnected(self) -> None:
        if self._status.connected:
            raise AdapterStateError(self.metadata.type, "already connected")

    def _set_connected(self, connected: bool, browser_version: Optional[str] = None) -> None:
        if connected:
            self._status = replace(
                self._status,
                connected=True,
                browser_version=browser_version,
                connected_at=datetime.now(timezone.utc).isoformat(),
                last_error=None,
            )
        else:
            self._status = replace(self._status, connected=False, collecting=False, connected_at=None)

    def _set_collecting(self, collecting: bool) -> None:
        self._status = replace(self._status, collecting=collecting)

    def _set_error(self, message: str) -> None:
        self._status = replace(self._status, last_error=message)
