#!/usr/bin/env python3
"""
SKADI - Transaction Signers

Your keys, your crypto. Two ways to sign:
- LocalSigner holds raw key material in memory for the call's lifetime
- HardwareSigner asks a secure enclave and waits for a human to approve

Both produce a 64-byte Ed25519 signature over the serialized message and
can place it in the right slot of a wire transaction.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from skadi.core import codec, ed25519
from skadi.core.signing import HardwareSignerChannel
from skadi.exceptions import InvalidKeyLength, SigningCancelled, SigningError, WalletError
from skadi.protocol.message import (
    SIGNATURE_LENGTH,
    build_signed_transaction,
    read_signer_keys,
    split_wire_transaction,
)

# Key material value that marks a wallet whose secret lives in a hardware vault.
HARDWARE_KEY_SENTINEL = b"SEED_VAULT"
DEFAULT_DERIVATION_PATH = "m/44'/501'/0'/0'"

_EMPTY_SIGNATURE = bytes(SIGNATURE_LENGTH)


class TransactionSigner(ABC):
    """Contract shared by every signer the engine can drive."""

    requires_approval: bool = False

    @property
    @abstractmethod
    def public_key(self) -> bytes:
        ...

    @property
    def address(self) -> str:
        return codec.encode(self.public_key)

    @abstractmethod
    async def sign_message(self, message: bytes) -> bytes:
        """64-byte signature over message."""

    async def sign_transaction(self, message: bytes) -> bytes:
        """
        Sign a serialized message and return wire bytes.
        Slots of other required signers are left zeroed.
        """
        signers = read_signer_keys(message)
        try:
            slot = signers.index(self.public_key)
        except ValueError:
            raise SigningError(f"{self.address} is not a required signer of this message") from None
        signatures = [_EMPTY_SIGNATURE] * len(signers)
        signatures[slot] = await self.sign_message(message)
        return build_signed_transaction(message, signatures)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


class LocalSigner(TransactionSigner):
    """
    Signs in-process with borrowed key material.
    Never logs the key, and repr shows only the address.
    """

    def __init__(self, key_material: bytes):
        key_material = bytes(key_material)
        try:
            self._public_key = ed25519.derive_public_key(key_material)
        except InvalidKeyLength as e:
            raise WalletError(str(e)) from e
        self._key = key_material

    @property
    def public_key(self) -> bytes:
        return self._public_key

    async def sign_message(self, message: bytes) -> bytes:
        return ed25519.sign(message, self._key)


class HardwareSigner(TransactionSigner):
    """
    Delegates to an external enclave. The enclave shows the message to the
    user, who approves or dismisses it; the returned signature is checked
    against the known public key before it is trusted.
    """

    requires_approval = True

    def __init__(
        self,
        public_key,
        channel: HardwareSignerChannel,
        derivation_path: str = DEFAULT_DERIVATION_PATH,
        approval_timeout: float = 120.0,
    ):
        self._public_key = codec.to_address_bytes(public_key)
        self.channel = channel
        self.derivation_path = derivation_path
        self.approval_timeout = approval_timeout

    @property
    def public_key(self) -> bytes:
        return self._public_key

    async def sign_message(self, message: bytes) -> bytes:
        message = bytes(message)
        try:
            signature = await asyncio.wait_for(
                self.channel.request_signature(message, self.derivation_path),
                timeout=self.approval_timeout,
            )
        except asyncio.TimeoutError as e:
            raise SigningError(
                f"Hardware approval not received within {self.approval_timeout:.0f}s"
            ) from e
        except (SigningError, SigningCancelled):
            raise
        except Exception as e:
            raise SigningError(f"Hardware signer failed: {e}") from e

        signature = bytes(signature)
        if not ed25519.verify(message, signature, self._public_key):
            raise SigningError("Hardware signer returned a signature that does not verify")
        return signature


def create_signer(
    key_material: bytes,
    public_key=None,
    channel: Optional[HardwareSignerChannel] = None,
    derivation_path: str = DEFAULT_DERIVATION_PATH,
    approval_timeout: float = 120.0,
) -> TransactionSigner:
    """
    Pick a signer for a wallet. HARDWARE_KEY_SENTINEL selects the hardware
    path, which needs both the vault's public key and a channel to it.
    """
    if bytes(key_material) == HARDWARE_KEY_SENTINEL:
        if channel is None or public_key is None:
            raise WalletError("Hardware wallet needs a public key and a signer channel")
        return HardwareSigner(public_key, channel, derivation_path, approval_timeout)
    return LocalSigner(key_material)


async def sign_wire_transaction(transaction: bytes, signer: TransactionSigner) -> bytes:
    """
    Add signer's signature to an externally built wire transaction.

    Works for legacy and versioned messages: only the header and key list
    are read to find the signer's slot. Existing signatures are kept.
    """
    signatures, message = split_wire_transaction(transaction)
    signers = read_signer_keys(message)
    try:
        slot = signers.index(signer.public_key)
    except ValueError:
        raise SigningError(f"{signer.address} is not a required signer of this transaction") from None
    if len(signatures) != len(signers):
        signatures = (signatures + [_EMPTY_SIGNATURE] * len(signers))[:len(signers)]
    signatures[slot] = await signer.sign_message(message)
    return build_signed_transaction(message, signatures)
