#!/usr/bin/env python3
"""
SKADI - Retry Policy

Decides whether a failure is worth another attempt and runs an operation
under bounded exponential backoff.

Classification is by error text, checked in order; the first rule that
matches wins. Order matters: "insufficient funds for fee" is transient
(fee market) while plain "insufficient funds" is not.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar, Union

from skadi.config import EngineConfig
from skadi.exceptions import (
    ConfirmationTimeout,
    SigningCancelled,
    SigningError,
    TransactionRejected,
)
from skadi.logger import SkadiLogger

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 5.0  # seconds

# (all substrings must appear, retryable?)
_RULES: Tuple[Tuple[Tuple[str, ...], bool], ...] = (
    # Network
    (("timeout",), True),
    (("connection",), True),
    (("network",), True),
    # RPC node state
    (("blockhash not found",), True),
    (("node is behind",), True),
    (("too many requests",), True),
    (("rate limit",), True),
    # Fee market
    (("insufficient", "fee"), True),
    # Permanent
    (("transaction simulation failed",), False),
    (("invalid",), False),
    (("signature verification failed",), False),
    (("account does not exist",), False),
    (("insufficient funds",), False),
)

# Failures that no amount of retrying can fix, whatever their text says.
_ALWAYS_FATAL = (TransactionRejected, ConfirmationTimeout, SigningError, SigningCancelled)

_RPC_ERROR_CODES = {
    -32700: "Parse error",
    -32600: "Invalid request",
    -32601: "Method not found",
    -32602: "Invalid params",
    -32603: "Internal error",
    -32000: "Server error",
    -32001: "Server error: Send transaction preflight failure",
    -32002: "Server error: Node is behind",
    -32003: "Server error: Transaction signature verification failure",
    -32004: "Server error: Block not available",
    -32005: "Server error: Node is unhealthy",
    -32006: "Server error: Transaction simulation failed",
    -32007: "Server error: Blockhash not found",
    -32008: "Server error: Account in use",
    -32009: "Server error: Minimum context slot not reached",
    -32010: "Server error: Unsupported transaction version",
}


# ═══════════════════════════════════════════════════════════════════════════
#                               OUTCOMES
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Success:
    value: Any


@dataclass(frozen=True)
class RetryableFailure:
    cause: BaseException


@dataclass(frozen=True)
class FatalFailure:
    cause: BaseException


RetryableOutcome = Union[Success, RetryableFailure, FatalFailure]


def classify_error(error: Optional[BaseException]) -> bool:
    """True if the error looks transient. Unknown errors are not retried."""
    if error is None or isinstance(error, _ALWAYS_FATAL):
        return False
    message = str(error).lower()
    if not message:
        return False
    for needles, retryable in _RULES:
        if all(n in message for n in needles):
            return retryable
    return False


def classify(error: BaseException) -> Union[RetryableFailure, FatalFailure]:
    if classify_error(error):
        return RetryableFailure(error)
    return FatalFailure(error)


def describe_rpc_error_code(code: int) -> str:
    """Human-readable name for a JSON-RPC error code. Diagnostics only."""
    return _RPC_ERROR_CODES.get(code, f"Unknown error code: {code}")


# ═══════════════════════════════════════════════════════════════════════════
#                                POLICY
# ═══════════════════════════════════════════════════════════════════════════

class RetryPolicy:
    """
    Bounded exponential backoff.

    Attempt n (0-based) that fails retryably waits min(initial * 2**n, max)
    before attempt n+1. No wait after the last attempt. A fatal error, or
    the last retryable one, is re-raised unchanged.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[SkadiLogger] = None,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must allow at least one attempt")
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.sleep = sleep
        self.logger = logger

    @classmethod
    def from_config(cls, config: EngineConfig, logger: Optional[SkadiLogger] = None, **kwargs):
        return cls(
            max_retries=config.max_retries,
            initial_delay=config.initial_retry_delay_seconds,
            max_delay=config.max_retry_delay_seconds,
            logger=logger,
            **kwargs,
        )

    def delay_for(self, attempt: int) -> float:
        return min(self.initial_delay * 2 ** attempt, self.max_delay)

    async def attempt(self, operation: Callable[[], Awaitable[T]]) -> RetryableOutcome:
        """Run once and tag the outcome instead of raising."""
        try:
            return Success(await operation())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            return classify(e)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run operation until it succeeds, fails fatally, or attempts run out."""
        for attempt in range(self.max_retries):
            outcome = await self.attempt(operation)
            if isinstance(outcome, Success):
                return outcome.value
            if isinstance(outcome, FatalFailure) or attempt == self.max_retries - 1:
                raise outcome.cause

            delay = self.delay_for(attempt)
            if self.logger is not None:
                self.logger.retry_scheduled(attempt + 1, self.max_retries, delay, outcome.cause)
            await self.sleep(delay)

        raise AssertionError("unreachable")
