"""
SKADI Core - Codec, Ed25519, RPC client and signers.
"""

# codec and ed25519 first: the signers pull in the message layout, which needs them.
from . import codec, ed25519
from .client import AccountInfo, BlockhashInfo, RpcClient, SignatureStatus, SolanaRpcClient
from .signing import HardwareSignerChannel, PendingApproval, SigningCoordinator
from .wallet import (
    HARDWARE_KEY_SENTINEL,
    HardwareSigner,
    LocalSigner,
    TransactionSigner,
    create_signer,
    sign_wire_transaction,
)

__all__ = [
    "codec",
    "ed25519",
    "RpcClient",
    "SolanaRpcClient",
    "BlockhashInfo",
    "SignatureStatus",
    "AccountInfo",
    "HardwareSignerChannel",
    "PendingApproval",
    "SigningCoordinator",
    "TransactionSigner",
    "LocalSigner",
    "HardwareSigner",
    "HARDWARE_KEY_SENTINEL",
    "create_signer",
    "sign_wire_transaction",
]
