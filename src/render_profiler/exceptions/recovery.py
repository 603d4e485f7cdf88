"""Retry strategies for recoverable errors."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from ..logging_config import get_logger
from .base import RenderProfilerError

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RecoveryStrategy:
    """How (and whether) to retry an operation that raised.

    Backoff is linear: attempt ``n`` sleeps ``backoff_ms * n`` before retrying.
    """

    name: str
    should_retry: Callable[[RenderProfilerError], bool]
    max_retries: int
    backoff_ms: int = 0


CDP_RECOVERY = RecoveryStrategy(
    name="cdp-connection",
    should_retry=lambda e: e.code == "CDP_CONNECTION_FAILED",
    max_retries=3,
    backoff_ms=1000,
)

TRACE_RECOVERY = RecoveryStrategy(
    name="trace-parse",
    should_retry=lambda e: e.code == "TRACE_PARSE_FAILED",
    max_retries=1,
    backoff_ms=0,
)


def with_retry(
    operation: Callable[[], T],
    strategy: RecoveryStrategy,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """Run ``operation``, retrying per ``strategy``.

    Only ``RenderProfilerError`` instances are considered for retry; any other
    exception propagates immediately. The last error is re-raised once retries
    are exhausted.
    """
    sleep = sleep or time.sleep
    attempt = 0
    while True:
        try:
            return operation()
        except RenderProfilerError as e:
            if not strategy.should_retry(e) or attempt >= strategy.max_retries:
                raise
            attempt += 1
            logger.info(f"Retrying {strategy.name} (attempt {attempt}): {e.message}")
            if strategy.backoff_ms > 0:
                sleep(strategy.backoff_ms * attempt / 1000.0)
