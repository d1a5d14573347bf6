#!/usr/bin/env python3
"""
SKADI - Program Derived Addresses

A PDA is SHA-256(seeds || bump || program_id || "ProgramDerivedAddress")
whose digest is NOT a valid Ed25519 point, so no private key can sign
for it. The bump search walks 255 down to 0 and keeps the first
off-curve digest.

Also carries the exchange pool helpers: AMM config, pool, reserve and
LP mint addresses under the exchange program.
"""

import hashlib
import logging
import struct
from dataclasses import dataclass
from typing import Sequence, Tuple

from skadi.core import codec
from skadi.core.ed25519 import is_on_curve
from skadi.exceptions import InvalidSeeds, NoViableAddress
from skadi.protocol.instructions import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

logger = logging.getLogger(__name__)

PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEED_LENGTH = 32
MAX_SEEDS = 16  # including the bump

# ═══════════════════════════════════════════════════════════════════════════
#                        EXCHANGE PROGRAM CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

EXCHANGE_PROGRAM_ID = codec.decode_address("darkr3FB87qAZmgLwKov6Hk9Yiah5UT4rUYu8Zhthw1")
AMM_CONFIG_SEED = b"amm_config"
POOL_SEED = b"pool"
POOL_RESERVE_SEED = b"pool_reserve"
LIQUIDITY_SEED = b"lp"


@dataclass(frozen=True)
class PdaResult:
    """An off-curve address and the bump that produced it."""
    address: bytes
    bump_seed: int

    @property
    def address_b58(self) -> str:
        return codec.encode(self.address)


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise InvalidSeeds(f"At most {MAX_SEEDS} seeds allowed, got {len(seeds)}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            raise InvalidSeeds(f"Seed of {len(seed)} bytes exceeds {MAX_SEED_LENGTH}")


def _hash_seeds(seeds: Sequence[bytes], program_id: bytes) -> bytes:
    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(seed)
    hasher.update(program_id)
    hasher.update(PDA_MARKER)
    return hasher.digest()


def create_program_address(seeds: Sequence[bytes], program_id) -> bytes:
    """
    Hash seeds under program_id. Raises InvalidSeeds if the seeds break
    the length limits or the digest happens to land on the curve.
    """
    program_id = codec.to_address_bytes(program_id)
    seeds = [bytes(s) for s in seeds]
    _check_seeds(seeds)
    digest = _hash_seeds(seeds, program_id)
    if is_on_curve(digest):
        raise InvalidSeeds("Derived address lies on the Ed25519 curve")
    return digest


def find_program_address(seeds: Sequence[bytes], program_id) -> PdaResult:
    """Bump search from 255 down; the first off-curve digest wins."""
    program_id = codec.to_address_bytes(program_id)
    seeds = [bytes(s) for s in seeds]
    _check_seeds(seeds + [b"\xff"])
    for bump in range(255, -1, -1):
        address = _hash_seeds(seeds + [bytes([bump])], program_id)
        if is_on_curve(address):
            continue
        if bump < 255:
            logger.debug("PDA found at bump %d after %d on-curve candidates", bump, 255 - bump)
        return PdaResult(address=address, bump_seed=bump)
    raise NoViableAddress("Every bump seed from 255 to 0 produced an on-curve address")


def get_associated_token_address(owner, mint) -> bytes:
    """Canonical SPL token account of owner for mint."""
    return find_program_address(
        [codec.to_address_bytes(owner), TOKEN_PROGRAM_ID, codec.to_address_bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    ).address


# ═══════════════════════════════════════════════════════════════════════════
#                             POOL ADDRESSES
# ═══════════════════════════════════════════════════════════════════════════

def sort_addresses(mint_a, mint_b) -> Tuple[bytes, bytes]:
    """Canonical pair order: ascending raw bytes."""
    a = codec.to_address_bytes(mint_a)
    b = codec.to_address_bytes(mint_b)
    return (a, b) if a <= b else (b, a)


def get_amm_config_address(index: int = 0) -> bytes:
    return find_program_address(
        [AMM_CONFIG_SEED, struct.pack("<I", index)], EXCHANGE_PROGRAM_ID
    ).address


def get_pool_address(mint_a, mint_b) -> bytes:
    """Pool for a token pair. Argument order does not matter."""
    mint_x, mint_y = sort_addresses(mint_a, mint_b)
    return find_program_address(
        [POOL_SEED, get_amm_config_address(), mint_x, mint_y], EXCHANGE_PROGRAM_ID
    ).address


def get_pool_reserve_address(pool, mint) -> bytes:
    return find_program_address(
        [POOL_RESERVE_SEED, codec.to_address_bytes(pool), codec.to_address_bytes(mint)],
        EXCHANGE_PROGRAM_ID,
    ).address


def get_lp_mint_address(mint_a, mint_b) -> bytes:
    """LP token mint of the pool for a token pair."""
    pool = get_pool_address(mint_a, mint_b)
    return find_program_address([LIQUIDITY_SEED, pool], EXCHANGE_PROGRAM_ID).address
