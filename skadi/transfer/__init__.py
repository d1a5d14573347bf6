"""
SKADI Transfer - Retry policy, confirmation tracking and the transfer engine.
"""

from .engine import TransferEngine
from .monitor import ConfirmationStatus, ConfirmationTracker, TransactionStatus
from .results import (
    NeedsSignature,
    SigningRequest,
    TransactionFailure,
    TransactionResult,
    TransactionSuccess,
)
from .retry import (
    FatalFailure,
    RetryableFailure,
    RetryPolicy,
    Success,
    classify,
    classify_error,
    describe_rpc_error_code,
)

__all__ = [
    "TransferEngine",
    "ConfirmationStatus",
    "ConfirmationTracker",
    "TransactionStatus",
    "TransactionResult",
    "TransactionSuccess",
    "NeedsSignature",
    "TransactionFailure",
    "SigningRequest",
    "RetryPolicy",
    "Success",
    "RetryableFailure",
    "FatalFailure",
    "classify",
    "classify_error",
    "describe_rpc_error_code",
]
