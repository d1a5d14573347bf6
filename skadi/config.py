#!/usr/bin/env python3
"""
SKADI - Core Configuration

Network selection, retry and confirmation tuning, and environment management.
"""

import os
from dataclasses import dataclass
from enum import Enum

from dotenv import load_dotenv

_dotenv_loaded = False


def _ensure_dotenv() -> None:
    """Load .env file exactly once, on first call."""
    global _dotenv_loaded
    if not _dotenv_loaded:
        load_dotenv()
        _dotenv_loaded = True


class SolanaNetwork(Enum):
    """Clusters the engine knows how to reach without a custom URL."""

    DEVNET = "devnet"
    MAINNET = "mainnet"

    @property
    def default_rpc_url(self) -> str:
        if self is SolanaNetwork.MAINNET:
            return "https://api.mainnet-beta.solana.com"
        return "https://api.devnet.solana.com"


class CommitmentTarget(Enum):
    """Confirmation level a transfer waits for before reporting success."""

    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"


@dataclass
class EngineConfig:
    """
    Everything the transfer engine needs that is not key material.
    Keys are supplied per call by the caller's secure store, never here.
    """

    # Network & Connection
    network: SolanaNetwork | None = None  # None -> SKADI_NETWORK, else devnet
    custom_rpc_url: str = ""
    rpc_api_key: str = ""  # Appended as ?api-key= for providers like Helius
    rpc_timeout_seconds: float = 15.0

    # Retry policy
    max_retries: int = 3  # Total attempts, not extra attempts
    initial_retry_delay_seconds: float = 1.0
    max_retry_delay_seconds: float = 5.0

    # Submission
    skip_preflight: bool = True  # Stale simulated state causes false negatives
    send_max_retries: int | None = None  # RPC node rebroadcast count

    # Confirmation
    confirmation_target: CommitmentTarget = CommitmentTarget.CONFIRMED
    confirmation_timeout_seconds: float = 30.0
    poll_interval_seconds: float = 1.0

    # Hardware signing
    derivation_path: str = "m/44'/501'/0'/0'"
    approval_timeout_seconds: float = 120.0

    # Logging
    log_level: str = ""
    log_file: str = ""

    def __post_init__(self):
        """Fill env-based defaults after dataclass init (avoids module-level side effects)."""
        _ensure_dotenv()
        if self.network is None:
            self._network_name = os.getenv("SKADI_NETWORK", "devnet").lower()
            try:
                self.network = SolanaNetwork(self._network_name)
            except ValueError:
                self.network = SolanaNetwork.DEVNET  # reported by validate()
        else:
            self._network_name = self.network.value
        if not self.custom_rpc_url:
            self.custom_rpc_url = os.getenv("SKADI_RPC_URL", "")
        if not self.rpc_api_key:
            self.rpc_api_key = os.getenv("SKADI_RPC_API_KEY", "")
        if not self.log_level:
            self.log_level = os.getenv("SKADI_LOG_LEVEL", "INFO").upper()
        if not self.log_file:
            self.log_file = os.getenv("SKADI_LOG_FILE", "")

    @property
    def rpc_url(self) -> str:
        """Endpoint to talk to: custom URL wins over the network default."""
        base = self.custom_rpc_url or self.network.default_rpc_url
        if not self.rpc_api_key:
            return base
        separator = "&" if "?" in base else "?"
        return f"{base}{separator}api-key={self.rpc_api_key}"

    def __repr__(self) -> str:
        """Redact sensitive fields to prevent accidental secret leakage in logs."""
        api_key_display = "***" if self.rpc_api_key else "(empty)"
        endpoint = self.custom_rpc_url or self.network.default_rpc_url
        return (
            f"EngineConfig(network={self.network.value}, "
            f"rpc_url='{endpoint[:40]}', "
            f"rpc_api_key='{api_key_display}', "
            f"max_retries={self.max_retries}, "
            f"confirmation_target={self.confirmation_target.value})"
        )

    def validate(self) -> list[str]:
        """Collect every problem at once instead of failing on the first."""
        errors = []

        valid = [n.value for n in SolanaNetwork]
        if self._network_name not in valid:
            errors.append(f"SKADI_NETWORK must be one of {valid}")

        url = self.custom_rpc_url
        if url and not url.startswith("https://"):
            if not url.startswith("http://127.0.0.1") and not url.startswith("http://localhost"):
                errors.append("RPC URL must use HTTPS (plaintext HTTP leaks wallet data)")

        if self.rpc_timeout_seconds <= 0:
            errors.append("RPC timeout must be positive")

        if self.max_retries < 1:
            errors.append("max_retries must allow at least one attempt")

        if self.initial_retry_delay_seconds < 0:
            errors.append("Initial retry delay must be non-negative")

        if self.max_retry_delay_seconds < self.initial_retry_delay_seconds:
            errors.append("Max retry delay must be at least the initial delay")

        if self.send_max_retries is not None and self.send_max_retries < 0:
            errors.append("send_max_retries must be non-negative")

        if self.confirmation_timeout_seconds <= 0:
            errors.append("Confirmation timeout must be positive")

        if self.poll_interval_seconds <= 0:
            errors.append("Poll interval must be positive")

        if self.approval_timeout_seconds <= 0:
            errors.append("Approval timeout must be positive")

        if not self.derivation_path.startswith("m/"):
            errors.append("Derivation path must start with 'm/'")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Unknown log level: {self.log_level}")

        return errors
