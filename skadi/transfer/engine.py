#!/usr/bin/env python3
"""
SKADI - Transfer Engine

The heart of SKADI.
build instructions -> fetch blockhash -> compile -> sign -> submit -> confirm

Every RPC step runs under the retry policy on its own, so a flaky
status poll never re-broadcasts a transaction. Every request gets a
tracking id that follows it through the logs and into its result.
"""

import uuid
from typing import Awaitable, Callable, List, Optional

from skadi.config import EngineConfig
from skadi.core import codec, ed25519
from skadi.core.client import BlockhashInfo, RpcClient
from skadi.core.wallet import TransactionSigner
from skadi.exceptions import SigningError
from skadi.logger import SkadiLogger
from skadi.protocol.instructions import (
    create_associated_token_account,
    system_transfer,
    token_transfer_checked,
)
from skadi.protocol.message import (
    Instruction,
    build_signed_transaction,
    compile_message,
    read_signer_keys,
    serialize_message,
)
from skadi.protocol.pda import get_associated_token_address
from skadi.transfer.monitor import ConfirmationTracker
from skadi.transfer.results import (
    NeedsSignature,
    SigningRequest,
    TransactionFailure,
    TransactionResult,
    TransactionSuccess,
)
from skadi.transfer.retry import RetryPolicy

MAX_U64 = 2**64 - 1


def _check_amount(amount: int, what: str = "amount") -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise ValueError(f"{what} must be an integer, got {type(amount).__name__}")
    if amount <= 0 or amount > MAX_U64:
        raise ValueError(f"{what} must be between 1 and {MAX_U64}, got {amount}")


def _check_decimals(decimals: int) -> None:
    if not isinstance(decimals, int) or not 0 <= decimals <= 255:
        raise ValueError(f"decimals must fit in a byte, got {decimals!r}")


def _display(address) -> str:
    if isinstance(address, str):
        return address
    return codec.encode(bytes(address))


class TransferEngine:
    """
    Native, fungible-token and NFT transfers end to end.

    send_* sign with the signer they are given (a hardware signer waits
    for its approval). prepare_* stop before signing and hand back a
    NeedsSignature for callers that run the approval flow themselves;
    complete_signature picks up from there.
    """

    def __init__(
        self,
        config: EngineConfig,
        rpc: RpcClient,
        logger: SkadiLogger,
        retry_policy: Optional[RetryPolicy] = None,
        tracker: Optional[ConfirmationTracker] = None,
    ):
        self.config = config
        self.rpc = rpc
        self.logger = logger
        self.retry = retry_policy or RetryPolicy.from_config(config, logger)
        self.tracker = tracker or ConfirmationTracker(rpc, logger)

    # ═══════════════════════════════════════════════════════════════════
    #                        ONE-SHOT TRANSFERS
    # ═══════════════════════════════════════════════════════════════════

    async def send_sol(self, signer: TransactionSigner, to, lamports: int) -> TransactionResult:
        """Send lamports from the signer's account to `to`."""
        return await self._execute(
            signer,
            "SOL",
            to,
            lamports,
            lambda payer: self._sol_instructions(payer, to, lamports),
        )

    async def send_token(
        self,
        signer: TransactionSigner,
        to,
        mint,
        amount: int,
        decimals: int,
    ) -> TransactionResult:
        """
        Send `amount` base units of `mint` from the signer's associated token
        account to the recipient's, creating the recipient's account first
        if it does not exist yet.
        """
        return await self._execute(
            signer,
            "token",
            to,
            amount,
            lambda payer: self._token_instructions(payer, to, mint, amount, decimals),
        )

    async def send_nft(self, signer: TransactionSigner, to, mint) -> TransactionResult:
        """An NFT is a token with supply 1 and no decimals."""
        return await self._execute(
            signer,
            "NFT",
            to,
            1,
            lambda payer: self._token_instructions(payer, to, mint, 1, 0),
        )

    # ═══════════════════════════════════════════════════════════════════
    #                         TWO-PHASE TRANSFERS
    # ═══════════════════════════════════════════════════════════════════

    async def prepare_sol_transfer(self, owner, to, lamports: int) -> TransactionResult:
        return await self._prepare_only(
            owner, "SOL", to, lamports,
            lambda payer: self._sol_instructions(payer, to, lamports),
        )

    async def prepare_token_transfer(self, owner, to, mint, amount: int, decimals: int) -> TransactionResult:
        return await self._prepare_only(
            owner, "token", to, amount,
            lambda payer: self._token_instructions(payer, to, mint, amount, decimals),
        )

    async def prepare_nft_transfer(self, owner, to, mint) -> TransactionResult:
        return await self._prepare_only(
            owner, "NFT", to, 1,
            lambda payer: self._token_instructions(payer, to, mint, 1, 0),
        )

    async def complete_signature(self, request: SigningRequest, signature: bytes) -> TransactionResult:
        """
        Finish a prepared transfer with the fee payer's signature.
        The signature is checked against the request before anything is sent.
        """
        tracking_id = request.tracking_id
        try:
            signature = bytes(signature)
            if len(read_signer_keys(request.message)) != 1:
                raise SigningError("Prepared transfer expects exactly one signer")
            if not ed25519.verify(request.message, signature, request.fee_payer):
                raise SigningError("Signature does not match the prepared transaction")
            wire = build_signed_transaction(request.message, [signature])
            return await self._submit_and_confirm(tracking_id, wire)
        except Exception as e:
            return self._failure(tracking_id, "Transfer failed", e)

    async def submit_signed_transaction(
        self, transaction: bytes, tracking_id: Optional[str] = None
    ) -> TransactionResult:
        """Submit and confirm wire bytes that were built and signed elsewhere."""
        tracking_id = tracking_id or self._new_tracking_id()
        try:
            return await self._submit_and_confirm(tracking_id, bytes(transaction))
        except Exception as e:
            return self._failure(tracking_id, "Submission failed", e)

    # ═══════════════════════════════════════════════════════════════════
    #                             PIPELINE
    # ═══════════════════════════════════════════════════════════════════

    @staticmethod
    def _new_tracking_id() -> str:
        return uuid.uuid4().hex[:12]

    async def _sol_instructions(self, owner: bytes, to, lamports: int) -> List[Instruction]:
        _check_amount(lamports, "lamports")
        return [system_transfer(owner, codec.to_address_bytes(to), lamports)]

    async def _token_instructions(
        self, owner: bytes, to, mint, amount: int, decimals: int
    ) -> List[Instruction]:
        _check_amount(amount)
        _check_decimals(decimals)
        to = codec.to_address_bytes(to)
        mint = codec.to_address_bytes(mint)
        source = get_associated_token_address(owner, mint)
        destination = get_associated_token_address(to, mint)

        instructions = []
        existing = await self.retry.run(lambda: self.rpc.get_account_info(destination))
        if existing is None:
            self.logger.debug(
                f"Recipient token account {codec.encode(destination)} missing; creating it"
            )
            instructions.append(create_associated_token_account(owner, destination, to, mint))
        instructions.append(token_transfer_checked(source, mint, destination, owner, amount, decimals))
        return instructions

    async def _build_request(
        self,
        tracking_id: str,
        fee_payer: bytes,
        description: str,
        build: Callable[[bytes], Awaitable[List[Instruction]]],
    ) -> SigningRequest:
        instructions = await build(fee_payer)
        blockhash: BlockhashInfo = await self.retry.run(self.rpc.get_latest_blockhash)
        message = compile_message(instructions, fee_payer, blockhash.blockhash)
        return SigningRequest(
            message=serialize_message(message),
            fee_payer=fee_payer,
            recent_blockhash=blockhash.blockhash,
            last_valid_block_height=blockhash.last_valid_block_height,
            tracking_id=tracking_id,
            description=description,
        )

    async def _prepare_only(
        self,
        owner,
        kind: str,
        to,
        amount: int,
        build: Callable[[bytes], Awaitable[List[Instruction]]],
    ) -> TransactionResult:
        tracking_id = self._new_tracking_id()
        self.logger.transfer_started(tracking_id, kind, _display(to), amount)
        try:
            request = await self._build_request(
                tracking_id,
                codec.to_address_bytes(owner),
                f"{kind} transfer of {amount} to {_display(to)}",
                build,
            )
        except Exception as e:
            return self._failure(tracking_id, "Could not prepare transfer", e)
        return NeedsSignature(request)

    async def _execute(
        self,
        signer: TransactionSigner,
        kind: str,
        to,
        amount: int,
        build: Callable[[bytes], Awaitable[List[Instruction]]],
    ) -> TransactionResult:
        tracking_id = self._new_tracking_id()
        self.logger.transfer_started(tracking_id, kind, _display(to), amount)
        try:
            request = await self._build_request(
                tracking_id,
                signer.public_key,
                f"{kind} transfer of {amount} to {_display(to)}",
                build,
            )
            wire = await signer.sign_transaction(request.message)
            return await self._submit_and_confirm(tracking_id, wire)
        except Exception as e:
            return self._failure(tracking_id, f"{kind} transfer failed", e)

    async def _submit_and_confirm(self, tracking_id: str, wire: bytes) -> TransactionSuccess:
        signature = await self.retry.run(
            lambda: self.rpc.send_raw_transaction(
                wire,
                skip_preflight=self.config.skip_preflight,
                max_retries=self.config.send_max_retries,
            )
        )
        self.logger.transaction_submitted(tracking_id, signature)

        status = await self.tracker.wait_for_confirmation(
            signature,
            target=self.config.confirmation_target,
            max_wait=self.config.confirmation_timeout_seconds,
            poll_interval=self.config.poll_interval_seconds,
        )
        self.logger.transaction_confirmed(tracking_id, signature, status.status.label)
        return TransactionSuccess(
            signature=signature,
            status=status.status,
            slot=status.slot,
            tracking_id=tracking_id,
        )

    def _failure(self, tracking_id: str, context: str, error: Exception) -> TransactionFailure:
        self.logger.error(f"[{tracking_id}] {context}", error)
        return TransactionFailure(message=f"{context}: {error}", error=error, tracking_id=tracking_id)
