#!/usr/bin/env python3
"""
SKADI - Transaction Results

What a transfer hands back. Waiting on a signature is an ordinary
outcome, not an error, so it lives here beside success and failure.
"""

from dataclasses import dataclass
from typing import Optional, Union

from skadi.core import codec
from skadi.transfer.monitor import ConfirmationStatus


@dataclass(frozen=True)
class SigningRequest:
    """
    A compiled, unsigned transaction waiting for the fee payer's signature.
    The message bytes are exactly what must be signed.
    """
    message: bytes
    fee_payer: bytes
    recent_blockhash: str
    last_valid_block_height: int
    tracking_id: str
    description: str = ""

    @property
    def fee_payer_address(self) -> str:
        return codec.encode(self.fee_payer)


@dataclass(frozen=True)
class TransactionSuccess:
    signature: str
    status: ConfirmationStatus
    slot: Optional[int]
    tracking_id: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class NeedsSignature:
    request: SigningRequest

    @property
    def ok(self) -> bool:
        return False

    @property
    def tracking_id(self) -> str:
        return self.request.tracking_id


@dataclass(frozen=True)
class TransactionFailure:
    """Terminal failure. message is safe to show a user; it never holds key material."""
    message: str
    error: Optional[BaseException]
    tracking_id: str

    @property
    def ok(self) -> bool:
        return False


TransactionResult = Union[TransactionSuccess, NeedsSignature, TransactionFailure]
