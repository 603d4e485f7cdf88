"""Minimal Chrome DevTools Protocol client over websocket-client."""

from __future__ import annotations

import json
import time
from collections import deque
from typing import Any, Optional
from urllib.error import URLError
from urllib.request import urlopen

import websocket

from ..exceptions import CDPConnectionError, CDPProtocolError
from ..logging_config import get_logger

logger = get_logger(__name__)


def fetch_browser_ws_url(host: str, port: int, timeout: float = 2.0) -> str:
    """Resolve the browser-level debugger URL from ``/json/version``."""
    url = f"http://{host}:{port}/json/version"
    try:
        with urlopen(url, timeout=timeout) as resp:
            info = json.loads(resp.read().decode())
    except (URLError, OSError, ValueError) as e:
        raise CDPConnectionError(host, port, str(e)) from e

    ws_url = info.get("webSocketDebuggerUrl") if isinstance(info, dict) else None
    if not ws_url:
        raise CDPConnectionError(host, port, "no webSocketDebuggerUrl in /json/version")
    return ws_url


def _is_timeout(exc: Exception) -> bool:
    return isinstance(exc, (TimeoutError, websocket.WebSocketTimeoutException)) or "timed out" in str(exc).lower()


class CDPClient:
    """One WebSocket connection; commands correlated by id, events queued."""

    def __init__(self, ws_url: str, timeout: float = 10.0):
        self.ws_url = ws_url
        self.timeout = timeout
        self._ws = websocket.create_connection(ws_url, timeout=timeout)
        self._next_id = 1
        self._events: deque[dict[str, Any]] = deque()

    @classmethod
    def connect(cls, host: str, port: int, timeout: float = 10.0) -> "CDPClient":
        ws_url = fetch_browser_ws_url(host, port)
        try:
            return cls(ws_url, timeout=timeout)
        except (websocket.WebSocketException, OSError) as e:
            raise CDPConnectionError(host, port, str(e)) from e

    def send(self, method: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Send a command and block until its response arrives."""
        msg_id = self._next_id
        self._next_id += 1
        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params
        try:
            self._ws.send(json.dumps(msg))
        except (websocket.WebSocketException, OSError) as e:
            raise CDPProtocolError(method, str(e)) from e
        return self._recv_until(method, msg_id)

    def _recv_message(self, remaining: float) -> Optional[dict[str, Any]]:
        # recv() blocks indefinitely without a socket timeout
        self._ws.settimeout(min(0.5, remaining))
        raw = self._ws.recv()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    def _recv_until(self, method: str, expected_id: int) -> dict[str, Any]:
        deadline = time.monotonic() + self.timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise CDPProtocolError(method, "response timed out")
            try:
                data = self._recv_message(remaining)
            except Exception as e:
                if _is_timeout(e):
                    continue
                raise CDPProtocolError(method, str(e)) from e
            if data is None:
                continue
            if "id" not in data and isinstance(data.get("method"), str):
                self._events.append(data)
                continue
            if data.get("id") == expected_id:
                if "error" in data:
                    raise CDPProtocolError(method, str(data["error"].get("message", data["error"])))
                return data.get("result", {})

    def next_event(self, timeout: float) -> Optional[dict[str, Any]]:
        """Return the next queued or incoming event, or None on timeout."""
        if self._events:
            return self._events.popleft()
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            try:
                data = self._recv_message(remaining)
            except Exception as e:
                if _is_timeout(e):
                    continue
                raise CDPProtocolError("event", str(e)) from e
            if data is not None and "id" not in data and isinstance(data.get("method"), str):
                return data

    def close(self) -> None:
        try:
            self._ws.close()
        except (websocket.WebSocketException, OSError) as e:
            logger.debug(f"Error closing CDP socket: {e}")
