"""Adapter-related exceptions: lookup, lifecycle, protocol connection."""

from typing import List, Optional

from .base import RenderProfilerError


class AdapterError(RenderProfilerError):
    """Base class for adapter errors."""

    code = "ADAPTER_ERROR"
    exit_code = 3


class AdapterNotFoundError(AdapterError):
    """Raised when an adapter type is not registered."""

    code = "ADAPTER_NOT_FOUND"
    exit_code = 3

    def __init__(self, adapter_type: Optional[str], available: List[str]):
        if adapter_type is None:
            message = "No adapters registered"
        else:
            listed = ", ".join(available) if available else "none"
            message = f"Unknown adapter type: '{adapter_type}'. Available adapters: {listed}"
        super().__init__(message, details={"available": ", ".join(available)})
        self.adapter_type = adapter_type
        self.available = available


class AdapterStateError(AdapterError):
    """Raised when the connect/collect/disconnect lifecycle is violated."""

    code = "ADAPTER_STATE"
    exit_code = 4

    def __init__(self, adapter_type: str, reason: str):
        super().__init__(
            f"Adapter '{adapter_type}' cannot perform this operation: {reason}",
            details={"adapter": adapter_type},
        )
        self.adapter_type = adapter_type
        self.reason = reason


class CDPConnectionError(AdapterError):
    """Raised when the remote-debugging endpoint cannot be reached."""

    code = "CDP_CONNECTION_FAILED"
    exit_code = 10
    recoverable = True

    def __init__(self, host: str, port: int, reason: Optional[str] = None):
        details = {"host": host, "port": str(port)}
        if reason:
            details["reason"] = reason
        super().__init__(f"Failed to connect to browser at {host} on port {port}", details=details)
        self.host = host
        self.port = port
        self.reason = reason


class CDPProtocolError(AdapterError):
    """Raised when a protocol command fails or times out."""

    code = "CDP_PROTOCOL_ERROR"
    exit_code = 16

    def __init__(self, method: str, reason: str):
        super().__init__(
            f"Protocol command {method} failed: {reason}",
            details={"method": method},
        )
        self.method = method
        self.reason = reason
