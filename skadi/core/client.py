#!/usr/bin/env python3
"""
SKADI - Solana RPC Client

The four RPC calls a transfer needs, behind a small protocol so the
engine can be driven by a fake in tests. Unlike a fire-and-forget client
this one never swallows failures: every transport or JSON-RPC error
surfaces as RpcError so the retry policy can judge it.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.pubkey import Pubkey
from solders.signature import Signature

from skadi.config import EngineConfig
from skadi.core import codec
from skadi.exceptions import RpcError
from skadi.logger import SkadiLogger


@dataclass(frozen=True)
class BlockhashInfo:
    blockhash: str  # base58
    last_valid_block_height: int


@dataclass(frozen=True)
class SignatureStatus:
    """
    Ledger view of one signature. confirmation_status is one of
    "processed", "confirmed", "finalized" or None; err is the ledger's
    execution error, None on success.
    """
    slot: int
    confirmations: Optional[int]
    confirmation_status: Optional[str]
    err: Any = None


@dataclass(frozen=True)
class AccountInfo:
    lamports: int
    owner: str  # base58
    data: bytes = b""


class RpcClient(Protocol):
    """Request/response channel to a ledger node."""

    async def get_latest_blockhash(self) -> BlockhashInfo: ...

    async def send_raw_transaction(
        self,
        transaction: bytes,
        skip_preflight: bool = True,
        max_retries: Optional[int] = None,
    ) -> str: ...

    async def get_signature_statuses(
        self,
        signatures: Sequence[str],
        search_transaction_history: bool = True,
    ) -> List[Optional[SignatureStatus]]: ...

    async def get_account_info(self, address) -> Optional[AccountInfo]: ...

    async def close(self) -> None: ...


def _status_name(raw) -> Optional[str]:
    """solders renders TransactionConfirmationStatus as 'TransactionConfirmationStatus.Confirmed'."""
    if raw is None:
        return None
    return str(raw).rsplit(".", 1)[-1].lower()


# JSON-RPC codes for the error objects solders returns in place of a result
_ERROR_RESPONSE_CODES = {
    "ParseErrorMessage": -32700,
    "InvalidRequestMessage": -32600,
    "MethodNotFoundMessage": -32601,
    "InvalidParamsMessage": -32602,
    "InternalErrorMessage": -32603,
    "BlockCleanedUpMessage": -32001,
    "SendTransactionPreflightFailureMessage": -32002,
    "TransactionPrecompileVerificationFailureMessage": -32003,
    "BlockNotAvailableMessage": -32004,
    "NodeUnhealthyMessage": -32005,
    "SlotSkippedMessage": -32007,
    "LongTermStorageSlotSkippedMessage": -32009,
    "KeyExcludedFromSecondaryIndexMessage": -32010,
    "ScanErrorMessage": -32012,
    "BlockStatusNotAvailableYetMessage": -32014,
    "UnsupportedTransactionVersionMessage": -32015,
    "MinContextSlotNotReachedMessage": -32016,
}


def _rpc_error_from_response(name: str, response) -> RpcError:
    kind = type(response).__name__
    message = getattr(response, "message", None) or str(response) or kind
    return RpcError(f"{name}: {message}", _ERROR_RESPONSE_CODES.get(kind))


class SolanaRpcClient:
    """
    RpcClient over solana-py's AsyncClient.
    One instance is safe to share between concurrent transfers.
    """

    def __init__(self, config: EngineConfig, logger: SkadiLogger, client: Optional[AsyncClient] = None):
        self.config = config
        self.logger = logger
        self.client = client or AsyncClient(config.rpc_url, commitment=Confirmed)

    async def _call(self, name: str, awaitable):
        try:
            response = await asyncio.wait_for(awaitable, timeout=self.config.rpc_timeout_seconds)
        except asyncio.TimeoutError as e:
            self.logger.warning(f"RPC timeout: {name}")
            raise RpcError(f"{name}: request timeout after {self.config.rpc_timeout_seconds}s") from e
        except RPCException as e:
            detail = e.args[0] if e.args else e
            code = getattr(detail, "code", None)
            message = getattr(detail, "message", None) or str(detail)
            raise RpcError(f"{name}: {message}", code) from e
        except SolanaRpcException as e:
            raise RpcError(f"{name}: network error: {getattr(e, 'error_msg', e)}") from e

        # solders parses a JSON-RPC error body into an error object with no value
        if not hasattr(response, "value"):
            raise _rpc_error_from_response(name, response)
        return response

    async def get_latest_blockhash(self) -> BlockhashInfo:
        """Fetch a recent blockhash and its expiry height."""
        response = await self._call(
            "get_latest_blockhash",
            self.client.get_latest_blockhash(commitment=Confirmed),
        )
        return BlockhashInfo(
            blockhash=str(response.value.blockhash),
            last_valid_block_height=response.value.last_valid_block_height,
        )

    async def send_raw_transaction(
        self,
        transaction: bytes,
        skip_preflight: bool = True,
        max_retries: Optional[int] = None,
    ) -> str:
        """
        Broadcast signed wire bytes. Returns the signature in base58.
        """
        opts = TxOpts(
            skip_preflight=skip_preflight,
            preflight_commitment=Confirmed,
            max_retries=max_retries,
        )
        response = await self._call(
            "send_raw_transaction",
            self.client.send_raw_transaction(bytes(transaction), opts=opts),
        )
        return str(response.value)

    async def get_signature_statuses(
        self,
        signatures: Sequence[str],
        search_transaction_history: bool = True,
    ) -> List[Optional[SignatureStatus]]:
        """Statuses in request order; None where the node has never seen the signature."""
        sigs = [Signature.from_string(s) for s in signatures]
        response = await self._call(
            "get_signature_statuses",
            self.client.get_signature_statuses(
                sigs, search_transaction_history=search_transaction_history
            ),
        )
        statuses = []
        for raw in response.value or []:
            if raw is None:
                statuses.append(None)
                continue
            statuses.append(SignatureStatus(
                slot=raw.slot,
                confirmations=raw.confirmations,
                confirmation_status=_status_name(raw.confirmation_status),
                err=raw.err,
            ))
        return statuses

    async def get_account_info(self, address) -> Optional[AccountInfo]:
        """Account summary, or None if the account does not exist."""
        pubkey = Pubkey(codec.to_address_bytes(address))
        response = await self._call(
            "get_account_info",
            self.client.get_account_info(pubkey, commitment=Confirmed),
        )
        account = response.value
        if account is None:
            return None
        return AccountInfo(
            lamports=account.lamports,
            owner=str(account.owner),
            data=bytes(account.data) if account.data else b"",
        )

    async def close(self):
        """Graceful shutdown."""
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
