#!/usr/bin/env python3
"""
SKADI - Confirmation Tracker

Polls signature status until a transaction reaches the requested
commitment level, fails on the ledger, or runs out of time.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Awaitable, Callable, Optional, Union

from skadi.config import CommitmentTarget
from skadi.core.client import RpcClient
from skadi.exceptions import ConfirmationTimeout, RpcError, TransactionRejected
from skadi.logger import SkadiLogger


class ConfirmationStatus(IntEnum):
    """Commitment levels, ordered so comparisons mean 'at least as final as'."""

    UNKNOWN = 0
    PROCESSED = 1
    CONFIRMED = 2
    FINALIZED = 3

    @classmethod
    def parse(cls, value: Optional[str]) -> "ConfirmationStatus":
        try:
            return cls[(value or "").upper()]
        except KeyError:
            return cls.UNKNOWN

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class TransactionStatus:
    signature: str
    status: ConfirmationStatus
    confirmations: Optional[int] = None
    slot: Optional[int] = None
    error: Optional[str] = None


def _as_status(target: Union[ConfirmationStatus, CommitmentTarget, str]) -> ConfirmationStatus:
    if isinstance(target, ConfirmationStatus):
        return target
    if isinstance(target, CommitmentTarget):
        return ConfirmationStatus.parse(target.value)
    return ConfirmationStatus.parse(target)


class ConfirmationTracker:
    """
    Watches submitted signatures.

    Clock and sleep are injectable so tests can drive time by hand.
    """

    def __init__(
        self,
        rpc: RpcClient,
        logger: Optional[SkadiLogger] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.rpc = rpc
        self.logger = logger
        self.clock = clock
        self.sleep = sleep

    async def get_signature_status(self, signature: str) -> TransactionStatus:
        """Current ledger view of a signature. Never-seen signatures are UNKNOWN."""
        statuses = await self.rpc.get_signature_statuses([signature], search_transaction_history=True)
        raw = statuses[0] if statuses else None
        if raw is None:
            return TransactionStatus(signature=signature, status=ConfirmationStatus.UNKNOWN)
        return TransactionStatus(
            signature=signature,
            status=ConfirmationStatus.parse(raw.confirmation_status),
            confirmations=raw.confirmations,
            slot=raw.slot,
            error=str(raw.err) if raw.err is not None else None,
        )

    async def wait_for_confirmation(
        self,
        signature: str,
        target: Union[ConfirmationStatus, CommitmentTarget, str] = ConfirmationStatus.CONFIRMED,
        max_wait: float = 30.0,
        poll_interval: float = 1.0,
    ) -> TransactionStatus:
        """
        Block until signature reaches target.

        Raises TransactionRejected as soon as the ledger reports an execution
        error, ConfirmationTimeout once max_wait has elapsed. A failed poll
        is logged and the loop carries on. The reported status never moves
        backwards even if a lagging node answers a later poll.
        """
        wanted = _as_status(target)
        if wanted is ConfirmationStatus.UNKNOWN:
            raise ValueError(f"Cannot wait for confirmation level {target!r}")

        start = self.clock()
        best = ConfirmationStatus.UNKNOWN
        latest: Optional[TransactionStatus] = None

        while self.clock() - start < max_wait:
            try:
                observed = await self.get_signature_status(signature)
            except RpcError as e:
                if self.logger is not None:
                    self.logger.warning(f"Status poll failed for {signature[:16]}...: {e}")
            else:
                if observed.error is not None:
                    raise TransactionRejected(signature, observed.error)
                best = max(best, observed.status)
                latest = TransactionStatus(
                    signature=signature,
                    status=best,
                    confirmations=observed.confirmations,
                    slot=observed.slot if observed.slot is not None else (latest.slot if latest else None),
                )
                if best >= wanted:
                    return latest

            await self.sleep(poll_interval)

        raise ConfirmationTimeout(signature, self.clock() - start, best.label)
