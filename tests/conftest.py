"""
SKADI Test Suite - Shared Fixtures
"""

import hashlib
from typing import Dict, List, Optional

import pytest

from skadi.config import EngineConfig, SolanaNetwork
from skadi.core import codec
from skadi.core.client import AccountInfo, BlockhashInfo, SignatureStatus
from skadi.core.wallet import LocalSigner
from skadi.logger import SkadiLogger
from skadi.transfer.engine import TransferEngine
from skadi.transfer.monitor import ConfirmationTracker
from skadi.transfer.retry import RetryPolicy

# RFC 8032, section 7.1, test 1
RFC_SEED = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
RFC_PUBLIC_KEY = bytes.fromhex("d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a")
RFC_EMPTY_SIGNATURE = bytes.fromhex(
    "e5564300c360ac729086e2cc806e828a84877f1eb8e5d974d873e065224901555fb8821590a33bacc61e39701cf9b46bd25bf5f0595bbe24655141438e7a100b"
)


def address_from(label: str) -> bytes:
    """Deterministic 32-byte test address."""
    return hashlib.sha256(label.encode()).digest()


class FakeClock:
    """Manual clock: sleeping advances time instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeRpc:
    """
    Scriptable RpcClient.

    statuses is a queue of poll answers (SignatureStatus, None, or an
    exception to raise); the last entry repeats once the queue drains.
    """

    def __init__(self):
        self.blockhash = BlockhashInfo(codec.encode(address_from("blockhash")), 1_000)
        self.blockhash_errors: List[Exception] = []
        self.send_errors: List[Exception] = []
        self.accounts: Dict[bytes, AccountInfo] = {}
        self.statuses: list = [SignatureStatus(slot=42, confirmations=None, confirmation_status="confirmed")]
        self.sent: List[bytes] = []
        self.send_kwargs: List[dict] = []
        self.account_queries: List[bytes] = []
        self.status_queries = 0
        self.closed = False

    async def get_latest_blockhash(self) -> BlockhashInfo:
        if self.blockhash_errors:
            raise self.blockhash_errors.pop(0)
        return self.blockhash

    async def send_raw_transaction(self, transaction: bytes, skip_preflight: bool = True,
                                   max_retries: Optional[int] = None) -> str:
        if self.send_errors:
            raise self.send_errors.pop(0)
        self.sent.append(bytes(transaction))
        self.send_kwargs.append({"skip_preflight": skip_preflight, "max_retries": max_retries})
        # First signature slot, as a node would report it
        return codec.encode(bytes(transaction)[1:65])

    async def get_signature_statuses(self, signatures, search_transaction_history: bool = True):
        self.status_queries += 1
        answer = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(answer, Exception):
            raise answer
        return [answer for _ in signatures]

    async def get_account_info(self, address) -> Optional[AccountInfo]:
        address = codec.to_address_bytes(address)
        self.account_queries.append(address)
        return self.accounts.get(address)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def engine_config():
    """Devnet configuration with fast, deterministic timings."""
    return EngineConfig(
        network=SolanaNetwork.DEVNET,
        log_level="WARNING",
        confirmation_timeout_seconds=5.0,
        poll_interval_seconds=1.0,
    )


@pytest.fixture
def logger(engine_config):
    """Logger instance for tests."""
    return SkadiLogger(engine_config)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rpc():
    return FakeRpc()


@pytest.fixture
def signer():
    """LocalSigner over the RFC 8032 test seed."""
    return LocalSigner(RFC_SEED)


@pytest.fixture
def recipient():
    return address_from("recipient")


@pytest.fixture
def mint():
    return address_from("mint")


@pytest.fixture
def retry_policy(logger, clock):
    return RetryPolicy(sleep=clock.sleep, logger=logger)


@pytest.fixture
def tracker(rpc, logger, clock):
    return ConfirmationTracker(rpc, logger, clock=clock, sleep=clock.sleep)


@pytest.fixture
def engine(engine_config, rpc, logger, retry_policy, tracker):
    """Transfer engine wired to the fake RPC and manual clock."""
    return TransferEngine(engine_config, rpc, logger, retry_policy=retry_policy, tracker=tracker)
