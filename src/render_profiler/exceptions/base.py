"""Base exception for Render Profiler."""

from typing import Dict, Optional


class RenderProfilerError(Exception):
    """Base exception for all Render Profiler errors.

    Subclasses set ``code`` (stable machine-readable tag), ``exit_code``
    (process exit status used by the CLI) and ``recoverable`` (whether a
    retry strategy may attempt the operation again).
    """

    code = "UNKNOWN_ERROR"
    exit_code = 1
    recoverable = False

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def to_dict(self) -> dict:
        """Serialize for JSON output."""
        return {
            "code": self.code,
            "message": self.message,
            "exit_code": self.exit_code,
            "recoverable": self.recoverable,
            "details": dict(self.details),
        }
