#!/usr/bin/env python3
"""
SKADI - Custom Exception Hierarchy

Structured error types for precise error handling.
Codecs and crypto raise the narrow types; the transfer engine decides
which of them are worth another attempt.
"""

from typing import Optional


class SkadiError(Exception):
    """Base exception for all SKADI errors."""

    pass


class ConfigError(SkadiError):
    """Invalid or missing configuration."""

    pass


class WalletError(SkadiError):
    """Wallet or signer wiring error."""

    pass


# ---------------------------------------------------------------------------
#  Keys and signatures
# ---------------------------------------------------------------------------


class InvalidKeyLength(SkadiError):
    """Key material is neither a 32-byte seed nor a 64-byte keypair."""

    def __init__(self, length: int):
        self.length = length
        super().__init__(f"Key material must be 32 or 64 bytes, got {length}")


class SigningError(SkadiError):
    """Signing failed or the hardware signer could not be trusted."""

    pass


class SigningCancelled(SkadiError):
    """The user dismissed a hardware signing approval. Not a SigningError."""

    pass


# ---------------------------------------------------------------------------
#  Codecs
# ---------------------------------------------------------------------------


class InvalidCharacter(SkadiError, ValueError):
    """Base58 text contains a character outside the alphabet."""

    pass


class InvalidAddress(SkadiError, ValueError):
    """Text does not decode to a 32-byte address."""

    pass


class MalformedMessage(SkadiError, ValueError):
    """Wire bytes are truncated or structurally invalid."""

    pass


class MessageCompileError(SkadiError):
    """Instructions cannot be compiled into a legacy message."""

    pass


# ---------------------------------------------------------------------------
#  Program derived addresses
# ---------------------------------------------------------------------------


class InvalidSeeds(SkadiError):
    """Seeds are too long, too many, or hash onto the curve."""

    pass


class NoViableAddress(SkadiError):
    """All 256 bump seeds produced on-curve addresses."""

    pass


# ---------------------------------------------------------------------------
#  RPC and transaction lifecycle
# ---------------------------------------------------------------------------


class RpcError(SkadiError):
    """RPC transport or JSON-RPC error response."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        self.message = message
        super().__init__(f"RPC error {code}: {message}" if code is not None else message)


class TransactionError(SkadiError):
    """Base for failures tied to a submitted transaction."""

    def __init__(self, message: str, signature: Optional[str] = None):
        self.signature = signature
        super().__init__(message)


class TransactionRejected(TransactionError):
    """The ledger executed the transaction and reported an error. Never retried."""

    def __init__(self, signature: str, detail: str):
        self.detail = detail
        super().__init__(f"Transaction {signature} failed on-chain: {detail}", signature)


class ConfirmationTimeout(TransactionError):
    """The target confirmation level was not observed in time."""

    def __init__(self, signature: str, waited: float, last_status: str = "unknown"):
        self.waited = waited
        self.last_status = last_status
        super().__init__(
            f"Transaction {signature} not confirmed after {waited:.1f}s "
            f"(last status: {last_status})",
            signature,
        )
