#!/usr/bin/env python3
"""
SKADI - Hardware Signing Coordinator

Bridges a hardware signer waiting on a human to the UI that collects the
approval. Each request gets its own future, so any number of approvals
can be in flight and a late answer can never land on the wrong request.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

from skadi.exceptions import SigningCancelled, SigningError

logger = logging.getLogger(__name__)


class HardwareSignerChannel(Protocol):
    """Anything that can get a payload signed by a secure enclave."""

    async def request_signature(self, payload: bytes, derivation_path: str) -> bytes: ...


@dataclass
class PendingApproval:
    """A signing request waiting on the user."""
    request_id: str
    payload: bytes
    derivation_path: str
    future: asyncio.Future = field(repr=False)


class SigningCoordinator:
    """
    HardwareSignerChannel that parks each request until the UI answers.

    The UI learns about new requests through the optional listener (or by
    polling pending()) and answers with approve(), reject() or cancel().
    """

    def __init__(self, on_request: Optional[Callable[[PendingApproval], None]] = None):
        self.on_request = on_request
        self._pending: Dict[str, PendingApproval] = {}

    async def request_signature(self, payload: bytes, derivation_path: str) -> bytes:
        loop = asyncio.get_running_loop()
        approval = PendingApproval(
            request_id=str(uuid.uuid4()),
            payload=bytes(payload),
            derivation_path=derivation_path,
            future=loop.create_future(),
        )
        self._pending[approval.request_id] = approval
        logger.info("Signing approval requested: %s", approval.request_id)

        if self.on_request is not None:
            self.on_request(approval)

        try:
            return await approval.future
        finally:
            # Also runs on task cancellation, so abandoned requests never linger.
            self._pending.pop(approval.request_id, None)

    def pending(self) -> List[PendingApproval]:
        return [a for a in self._pending.values() if not a.future.done()]

    def _resolve(self, request_id: str) -> asyncio.Future:
        approval = self._pending.get(request_id)
        if approval is None or approval.future.done():
            raise KeyError(f"No pending signing request {request_id}")
        return approval.future

    def approve(self, request_id: str, signature: bytes) -> None:
        self._resolve(request_id).set_result(bytes(signature))
        logger.info("Signing approved: %s", request_id)

    def reject(self, request_id: str, reason: str = "rejected by signer") -> None:
        """The device or enclave refused; surfaces as SigningError."""
        self._resolve(request_id).set_exception(SigningError(reason))
        logger.warning("Signing rejected: %s (%s)", request_id, reason)

    def cancel(self, request_id: str) -> None:
        """The user dismissed the prompt; surfaces as SigningCancelled."""
        self._resolve(request_id).set_exception(SigningCancelled("User cancelled signing"))
        logger.info("Signing cancelled: %s", request_id)
