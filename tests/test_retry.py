"""Tests for retry helpers."""
from unittest.mock import patch

import pytest

from diskprobe.core.command import ProbeContext
from diskprobe.core.errors import DiscoveryError, ErrorCode
from diskprobe.core.retry import call_with_retry, retry


def _failure():
    return DiscoveryError(ErrorCode.DISCOVERY_FAILED, "lsblk failed")


@patch("diskprobe.core.retry.time.sleep")
def test_retries_until_success(mock_sleep):
    attempts = []

    @retry(max_attempts=3, delay=1, backoff=2, exceptions=(DiscoveryError,))
    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise _failure()
        return "ok"

    assert flaky() == "ok"
    assert len(attempts) == 3
    assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]


@patch("diskprobe.core.retry.time.sleep")
def test_gives_up_and_reraises(mock_sleep):
    def always_fails():
        raise _failure()

    with pytest.raises(DiscoveryError):
        call_with_retry(always_fails, max_attempts=2, delay=0, exceptions=(DiscoveryError,))
    assert mock_sleep.call_count == 1


def test_other_exceptions_propagate_immediately():
    calls = []

    def broken():
        calls.append(1)
        raise KeyError("bug")

    with pytest.raises(KeyError):
        call_with_retry(broken, max_attempts=5, delay=0, exceptions=(DiscoveryError,))
    assert calls == [1]


@patch("diskprobe.core.retry.time.sleep")
def test_cancelled_context_stops_retrying(mock_sleep):
    ctx = ProbeContext()
    ctx.cancel()
    calls = []

    def fails():
        calls.append(1)
        raise _failure()

    with pytest.raises(DiscoveryError):
        call_with_retry(fails, max_attempts=5, delay=1, exceptions=(DiscoveryError,), ctx=ctx)
    assert calls == [1]
    mock_sleep.assert_not_called()


@patch("diskprobe.core.retry.time.sleep")
def test_wait_capped_by_deadline(mock_sleep):
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 2:
            raise _failure()
        return "ok"

    result = call_with_retry(flaky, max_attempts=3, delay=600, exceptions=(DiscoveryError,), ctx=ProbeContext(timeout=30))

    assert result == "ok"
    assert mock_sleep.call_args[0][0] <= 30


def test_single_attempt_does_not_sleep():
    with patch("diskprobe.core.retry.time.sleep") as mock_sleep:
        assert call_with_retry(lambda: 42, max_attempts=1) == 42
    mock_sleep.assert_not_called()


def test_invalid_attempts():
    with pytest.raises(ValueError):
        call_with_retry(lambda: None, max_attempts=0)
