"""Tests for sync error types."""

from queuesync.utils.errors import (
    CommandError,
    ErrorCode,
    MessageParseError,
    RateLimitedError,
    StreamConnectError,
    SyncError,
)


class TestSyncError:
    def test_to_dict(self):
        error = SyncError(ErrorCode.INTERNAL_ERROR, "Something broke", {"x": 1})
        assert error.to_dict() == {
            "errorCode": "INTERNAL_ERROR",
            "errorMessage": "Something broke",
            "details": {"x": 1},
            "recoverable": True,
        }

    def test_command_error_codes(self):
        rejected = CommandError("join", "q1", "Queue is full", status_code=409)
        unreachable = CommandError("join", "q1", "Failed to join queue")

        assert rejected.code == ErrorCode.COMMAND_FAILED.value
        assert unreachable.code == ErrorCode.COMMAND_UNREACHABLE.value
        assert str(rejected) == "Queue is full"
        assert rejected.details == {"command": "join", "queueId": "q1", "statusCode": 409}
        assert not rejected.recoverable

    def test_rate_limited(self):
        error = RateLimitedError(retry_after=3.0)
        assert error.code == ErrorCode.RATE_LIMITED.value
        assert error.recoverable

    def test_stream_connect_message(self):
        error = StreamConnectError("http://x/events", status_code=502, reason="bad gateway")
        assert error.message == "Could not open event stream at http://x/events (HTTP 502): bad gateway"

    def test_parse_error_truncates_raw(self):
        error = MessageParseError("bad", raw="x" * 500)
        assert len(error.details["raw"]) == 200
