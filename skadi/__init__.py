"""
SKADI - Solana Transaction Engine

Builds, signs, submits and confirms ledger transactions from primitives:
Ed25519 keys, base58, compact wire encoding and program derived addresses.

Usage:
    from skadi import EngineConfig, SkadiLogger, SolanaRpcClient, TransferEngine, LocalSigner

    config = EngineConfig()
    logger = SkadiLogger(config)
    async with SolanaRpcClient(config, logger) as rpc:
        engine = TransferEngine(config, rpc, logger)
        result = await engine.send_sol(LocalSigner(key), recipient, 1_000_000)
"""

__version__ = "1.0.0"

# Core configuration
from skadi.config import CommitmentTarget, EngineConfig, SolanaNetwork

# Core components (before protocol: the signers import the message layout)
from skadi.core import (
    HARDWARE_KEY_SENTINEL,
    HardwareSigner,
    LocalSigner,
    SigningCoordinator,
    SolanaRpcClient,
    TransactionSigner,
    create_signer,
)

# Exceptions
from skadi.exceptions import (
    ConfigError,
    ConfirmationTimeout,
    InvalidAddress,
    InvalidCharacter,
    InvalidKeyLength,
    InvalidSeeds,
    MalformedMessage,
    MessageCompileError,
    NoViableAddress,
    RpcError,
    SigningCancelled,
    SigningError,
    SkadiError,
    TransactionError,
    TransactionRejected,
    WalletError,
)

# Logger
from skadi.logger import SkadiLogger

# Protocol
from skadi.protocol import compile_message, find_program_address, get_associated_token_address

# Transfer
from skadi.transfer import (
    ConfirmationStatus,
    ConfirmationTracker,
    NeedsSignature,
    RetryPolicy,
    TransactionFailure,
    TransactionSuccess,
    TransferEngine,
)

__all__ = [
    # Config
    "EngineConfig",
    "SolanaNetwork",
    "CommitmentTarget",
    # Exceptions
    "SkadiError",
    "ConfigError",
    "WalletError",
    "InvalidKeyLength",
    "SigningError",
    "SigningCancelled",
    "InvalidCharacter",
    "InvalidAddress",
    "MalformedMessage",
    "MessageCompileError",
    "InvalidSeeds",
    "NoViableAddress",
    "RpcError",
    "TransactionError",
    "TransactionRejected",
    "ConfirmationTimeout",
    # Logger
    "SkadiLogger",
    # Core
    "SolanaRpcClient",
    "TransactionSigner",
    "LocalSigner",
    "HardwareSigner",
    "SigningCoordinator",
    "HARDWARE_KEY_SENTINEL",
    "create_signer",
    # Protocol
    "compile_message",
    "find_program_address",
    "get_associated_token_address",
    # Transfer
    "TransferEngine",
    "RetryPolicy",
    "ConfirmationTracker",
    "ConfirmationStatus",
    "TransactionSuccess",
    "NeedsSignature",
    "TransactionFailure",
]
