#!/usr/bin/env python3
"""
SKADI - Program Derived Address Tests
"""

import struct

import pytest
from solders.pubkey import Pubkey
from solders.token.associated import get_associated_token_address as solders_ata

from skadi.core import codec
from skadi.core.ed25519 import is_on_curve
from skadi.exceptions import InvalidSeeds, NoViableAddress
from skadi.protocol import pda
from skadi.protocol.instructions import TOKEN_PROGRAM_ID
from tests.conftest import address_from

PROGRAM = address_from("program")


class TestFindProgramAddress:

    @pytest.mark.parametrize("seeds", [
        [],
        [b"metadata"],
        [b"vault", address_from("owner")],
        [b"a" * 32, b"b" * 32, b""],
    ])
    def test_matches_solders(self, seeds):
        expected, bump = Pubkey.find_program_address(seeds, Pubkey(PROGRAM))
        result = pda.find_program_address(seeds, PROGRAM)
        assert result.address == bytes(expected)
        assert result.bump_seed == bump

    def test_result_is_off_curve(self):
        for i in range(25):
            result = pda.find_program_address([b"seed", bytes([i])], PROGRAM)
            assert not is_on_curve(result.address)

    def test_accepts_base58_program_id(self):
        by_bytes = pda.find_program_address([b"x"], PROGRAM)
        by_text = pda.find_program_address([b"x"], codec.encode(PROGRAM))
        assert by_bytes == by_text
        assert by_text.address_b58 == codec.encode(by_text.address)

    def test_deterministic(self):
        assert pda.find_program_address([b"x"], PROGRAM) == pda.find_program_address([b"x"], PROGRAM)

    def test_bump_is_highest_off_curve(self):
        # Every bump above the winner must have hashed onto the curve.
        for i in range(40):
            seeds = [f"candidate-{i}".encode()]
            result = pda.find_program_address(seeds, PROGRAM)
            for higher in range(result.bump_seed + 1, 256):
                with pytest.raises(InvalidSeeds):
                    pda.create_program_address(seeds + [bytes([higher])], PROGRAM)

    def test_seed_too_long(self):
        with pytest.raises(InvalidSeeds):
            pda.find_program_address([b"x" * 33], PROGRAM)

    def test_too_many_seeds_leaves_no_room_for_bump(self):
        with pytest.raises(InvalidSeeds):
            pda.find_program_address([b"x"] * 16, PROGRAM)
        pda.find_program_address([b"x"] * 15, PROGRAM)

    def test_changing_one_seed_byte_changes_address(self):
        seed = bytearray(address_from("owner"))
        original = pda.find_program_address([b"vault", bytes(seed)], PROGRAM)
        for position in (0, 15, 31):
            flipped = bytearray(seed)
            flipped[position] ^= 0x01
            other = pda.find_program_address([b"vault", bytes(flipped)], PROGRAM)
            assert other.address != original.address

    def test_no_viable_address(self, monkeypatch):
        monkeypatch.setattr("skadi.protocol.pda.is_on_curve", lambda candidate: True)
        with pytest.raises(NoViableAddress):
            pda.find_program_address([b"metadata"], PROGRAM)


class TestCreateProgramAddress:

    def test_matches_solders_when_off_curve(self):
        result = pda.find_program_address([b"escrow"], PROGRAM)
        seeds = [b"escrow", bytes([result.bump_seed])]
        expected = Pubkey.create_program_address(seeds, Pubkey(PROGRAM))
        assert pda.create_program_address(seeds, PROGRAM) == bytes(expected)

    def test_on_curve_digest_rejected(self):
        rejected = 0
        for bump in range(255, -1, -1):
            try:
                pda.create_program_address([b"escrow", bytes([bump])], PROGRAM)
            except InvalidSeeds:
                rejected += 1
        assert rejected > 0

    def test_limits(self):
        with pytest.raises(InvalidSeeds):
            pda.create_program_address([b"x"] * 17, PROGRAM)
        with pytest.raises(InvalidSeeds):
            pda.create_program_address([b"x" * 33], PROGRAM)


class TestAssociatedTokenAddress:

    def test_matches_solders(self):
        for i in range(10):
            owner = address_from(f"owner-{i}")
            mint = address_from(f"mint-{i}")
            expected = solders_ata(Pubkey(owner), Pubkey(mint))
            assert pda.get_associated_token_address(owner, mint) == bytes(expected)

    def test_known_seed_order(self):
        owner, mint = address_from("o"), address_from("m")
        manual = pda.find_program_address(
            [owner, TOKEN_PROGRAM_ID, mint],
            "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL",
        )
        assert pda.get_associated_token_address(owner, mint) == manual.address


class TestPoolAddresses:

    def test_sort_is_by_raw_bytes(self):
        low, high = b"\x01" + bytes(31), b"\x02" + bytes(31)
        assert pda.sort_addresses(high, low) == (low, high)
        assert pda.sort_addresses(low, high) == (low, high)

    def test_amm_config_seeds(self):
        expected, _ = Pubkey.find_program_address(
            [b"amm_config", struct.pack("<I", 0)], Pubkey(pda.EXCHANGE_PROGRAM_ID)
        )
        assert pda.get_amm_config_address() == bytes(expected)

    def test_pool_is_order_independent(self):
        a, b = address_from("sol"), address_from("usdc")
        assert pda.get_pool_address(a, b) == pda.get_pool_address(b, a)
        assert pda.get_lp_mint_address(a, b) == pda.get_lp_mint_address(b, a)

    def test_pool_and_lp_mint_chain(self):
        a, b = address_from("sol"), address_from("usdc")
        x, y = pda.sort_addresses(a, b)
        program = Pubkey(pda.EXCHANGE_PROGRAM_ID)
        config, _ = Pubkey.find_program_address([b"amm_config", bytes(4)], program)
        pool, _ = Pubkey.find_program_address([b"pool", bytes(config), x, y], program)
        lp, _ = Pubkey.find_program_address([b"lp", bytes(pool)], program)
        reserve, _ = Pubkey.find_program_address([b"pool_reserve", bytes(pool), x], program)

        assert pda.get_pool_address(a, b) == bytes(pool)
        assert pda.get_lp_mint_address(a, b) == bytes(lp)
        assert pda.get_pool_reserve_address(bytes(pool), x) == bytes(reserve)
