#!/usr/bin/env python3
"""
SKADI - Retry Policy Tests

Run with: pytest tests/test_retry.py -v
"""

from unittest.mock import MagicMock

import pytest

from skadi.config import EngineConfig
from skadi.exceptions import (
    ConfirmationTimeout,
    RpcError,
    SigningCancelled,
    SigningError,
    TransactionRejected,
)
from skadi.logger import SkadiLogger
from skadi.transfer.retry import (
    FatalFailure,
    RetryableFailure,
    RetryPolicy,
    Success,
    classify_error,
    describe_rpc_error_code,
)


class Flaky:
    """Raises the queued errors in order, then returns 'done'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "done"


class TestClassification:
    """Text rules are checked in order; first match wins."""

    @pytest.mark.parametrize("message", [
        "Request timeout after 15s",
        "Connection reset by peer",
        "network unreachable",
        "Blockhash not found",
        "Node is behind by 120 slots",
        "429 Too Many Requests",
        "rate limit exceeded",
        "Insufficient funds for fee",
    ])
    def test_transient(self, message):
        assert classify_error(RpcError(message))

    @pytest.mark.parametrize("message", [
        "Transaction simulation failed: custom program error 0x1",
        "invalid account data for instruction",
        "Signature verification failed",
        "Account does not exist",
        "insufficient funds",
        "something nobody anticipated",
        "",
    ])
    def test_permanent(self, message):
        assert not classify_error(RpcError(message))

    def test_fee_rule_wins_over_plain_insufficient_funds(self):
        assert classify_error(Exception("insufficient funds for fee"))
        assert not classify_error(Exception("insufficient funds for rent"))

    def test_matching_is_case_insensitive(self):
        assert classify_error(Exception("TIMEOUT"))

    def test_none_is_not_retryable(self):
        assert not classify_error(None)

    @pytest.mark.parametrize("error", [
        TransactionRejected("sig", "network timeout in program"),
        ConfirmationTimeout("sig", 30.0, "processed"),
        SigningError("timeout waiting for device"),
        SigningCancelled("connection closed by user"),
    ])
    def test_always_fatal_types_ignore_text(self, error):
        assert not classify_error(error)

    def test_rpc_error_code_names(self):
        assert describe_rpc_error_code(-32002) == "Server error: Node is behind"
        assert describe_rpc_error_code(-32700) == "Parse error"
        assert describe_rpc_error_code(12345) == "Unknown error code: 12345"


class TestRetryPolicy:

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self, clock):
        """Two timeouts then success: two backoff sleeps, 1s then 2s."""
        policy = RetryPolicy(sleep=clock.sleep)
        op = Flaky(RpcError("timeout"), RpcError("timeout"))
        assert await policy.run(op) == "done"
        assert op.calls == 3
        assert clock.sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_last_error(self, clock):
        policy = RetryPolicy(sleep=clock.sleep)
        last = RpcError("node is behind (third)")
        op = Flaky(RpcError("timeout"), RpcError("rate limit"), last)
        with pytest.raises(RpcError) as exc:
            await policy.run(op)
        assert exc.value is last
        assert op.calls == 3
        # No sleep after the final attempt
        assert clock.sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_fatal_error_stops_immediately(self, clock):
        policy = RetryPolicy(sleep=clock.sleep)
        op = Flaky(RpcError("insufficient funds"))
        with pytest.raises(RpcError, match="insufficient funds"):
            await policy.run(op)
        assert op.calls == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_delay_is_capped(self, clock):
        policy = RetryPolicy(max_retries=5, sleep=clock.sleep)
        op = Flaky(*[RpcError("timeout")] * 4)
        assert await policy.run(op) == "done"
        assert clock.sleeps == [1.0, 2.0, 4.0, 5.0]

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self, clock):
        policy = RetryPolicy(max_retries=1, sleep=clock.sleep)
        with pytest.raises(RpcError):
            await policy.run(Flaky(RpcError("timeout")))
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_retries_are_logged(self, clock, logger, caplog):
        policy = RetryPolicy(sleep=clock.sleep, logger=logger)
        with caplog.at_level("WARNING", logger="SKADI"):
            await policy.run(Flaky(RpcError("timeout")))
        assert "Attempt 1/3 failed" in caplog.text

    @pytest.mark.asyncio
    async def test_retry_scheduled_arguments(self, clock):
        logger = MagicMock(spec=SkadiLogger)
        policy = RetryPolicy(sleep=clock.sleep, logger=logger)
        error = RpcError("rate limit")
        await policy.run(Flaky(error))
        logger.retry_scheduled.assert_called_once_with(1, 3, 1.0, error)

    @pytest.mark.asyncio
    async def test_attempt_tags_outcomes(self):
        policy = RetryPolicy()
        assert await policy.attempt(Flaky()) == Success("done")
        assert isinstance(await policy.attempt(Flaky(RpcError("timeout"))), RetryableFailure)
        assert isinstance(await policy.attempt(Flaky(RpcError("bad"))), FatalFailure)

    def test_zero_attempts_rejected(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=0)

    def test_delay_schedule(self):
        policy = RetryPolicy(initial_delay=0.5, max_delay=3.0)
        assert [policy.delay_for(n) for n in range(5)] == [0.5, 1.0, 2.0, 3.0, 3.0]

    def test_from_config(self):
        config = EngineConfig(max_retries=5, initial_retry_delay_seconds=0.25, max_retry_delay_seconds=2.0)
        policy = RetryPolicy.from_config(config)
        assert policy.max_retries == 5
        assert policy.initial_delay == 0.25
        assert policy.max_delay == 2.0
