"""Tests for the exception hierarchy and retry strategies."""

import pytest

from render_profiler.exceptions import (
    AdapterNotFoundError,
    AdapterStateError,
    CDPConnectionError,
    CDPProtocolError,
    ConfigurationError,
    RenderProfilerError,
    TraceNotFoundError,
    TraceParseError,
    TraceValidationError,
)
from render_profiler.exceptions.recovery import CDP_RECOVERY, TRACE_RECOVERY, RecoveryStrategy, with_retry


class TestErrorCodes:
    """Test machine-readable codes and CLI exit codes."""

    @pytest.mark.parametrize(
        "error,code,exit_code",
        [
            (CDPConnectionError("localhost", 9222), "CDP_CONNECTION_FAILED", 10),
            (CDPProtocolError("Tracing.start", "boom"), "CDP_PROTOCOL_ERROR", 16),
            (AdapterNotFoundError("x", ["a"]), "ADAPTER_NOT_FOUND", 3),
            (AdapterStateError("a", "not connected"), "ADAPTER_STATE", 4),
            (TraceParseError("t.json", "bad"), "TRACE_PARSE_FAILED", 30),
            (TraceNotFoundError("t.json"), "TRACE_NOT_FOUND", 31),
            (TraceValidationError("t.json", ["e"]), "INVALID_TRACE_FORMAT", 32),
            (ConfigurationError("bad"), "INVALID_CONFIG", 2),
        ],
    )
    def test_codes(self, error, code, exit_code):
        assert isinstance(error, RenderProfilerError)
        assert error.code == code
        assert error.exit_code == exit_code

    def test_recoverable_flags(self):
        assert CDPConnectionError("h", 1).recoverable
        assert TraceParseError("t", "r").recoverable
        assert not TraceValidationError("t", []).recoverable


class TestErrorMessages:
    """Test message formatting and serialization."""

    def test_details_in_str(self):
        error = CDPConnectionError("localhost", 9222, "refused")
        assert str(error) == (
            "Failed to connect to browser at localhost on port 9222 "
            "(host=localhost, port=9222, reason=refused)"
        )

    def test_plain_message(self):
        assert str(RenderProfilerError("plain")) == "plain"

    def test_to_dict(self):
        data = TraceNotFoundError("/tmp/x.json", "missing").to_dict()
        assert data["code"] == "TRACE_NOT_FOUND"
        assert data["exit_code"] == 31
        assert data["details"] == {"location": "/tmp/x.json", "reason": "missing"}

    def test_validation_errors_are_joined(self):
        error = TraceValidationError("t.json", ["a", "b"])
        assert error.errors == ["a", "b"]
        assert "a; b" in error.message

    def test_no_adapters_message(self):
        assert AdapterNotFoundError(None, []).message == "No adapters registered"


class TestWithRetry:
    """Test with_retry."""

    def test_success_needs_no_retry(self):
        assert with_retry(lambda: 42, CDP_RECOVERY, sleep=lambda s: None) == 42

    def test_retries_until_success_with_linear_backoff(self):
        calls = []
        sleeps = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise CDPConnectionError("localhost", 9222)
            return "ok"

        assert with_retry(flaky, CDP_RECOVERY, sleep=sleeps.append) == "ok"
        assert len(calls) == 3
        assert sleeps == [1.0, 2.0]

    def test_gives_up_after_max_retries(self):
        calls = []

        def always_fail():
            calls.append(1)
            raise CDPConnectionError("localhost", 9222)

        with pytest.raises(CDPConnectionError):
            with_retry(always_fail, CDP_RECOVERY, sleep=lambda s: None)
        assert len(calls) == CDP_RECOVERY.max_retries + 1

    def test_non_matching_error_is_not_retried(self):
        calls = []

        def fail():
            calls.append(1)
            raise TraceValidationError("t", ["x"])

        with pytest.raises(TraceValidationError):
            with_retry(fail, TRACE_RECOVERY, sleep=lambda s: None)
        assert len(calls) == 1

    def test_foreign_exceptions_propagate(self):
        strategy = RecoveryStrategy(name="any", should_retry=lambda e: True, max_retries=5)
        with pytest.raises(KeyError):
            with_retry(lambda: {}["missing"], strategy)
