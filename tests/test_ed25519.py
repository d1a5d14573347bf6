#!/usr/bin/env python3
"""
SKADI - Ed25519 Engine Tests

RFC 8032 vectors plus solders as an independent oracle.
"""

import hashlib

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from skadi.core import ed25519
from skadi.exceptions import InvalidKeyLength, SigningError
from tests.conftest import RFC_EMPTY_SIGNATURE, RFC_PUBLIC_KEY, RFC_SEED


class TestKeyDerivation:

    def test_seed_derives_rfc_public_key(self):
        assert ed25519.derive_public_key(RFC_SEED) == RFC_PUBLIC_KEY

    def test_keypair_returns_trailing_half_verbatim(self):
        keypair = RFC_SEED + RFC_PUBLIC_KEY
        assert ed25519.derive_public_key(keypair) == RFC_PUBLIC_KEY

    def test_keypair_tail_is_not_recomputed(self):
        # A 64-byte keypair is trusted as already expanded.
        fake_tail = b"\x07" * 32
        assert ed25519.derive_public_key(RFC_SEED + fake_tail) == fake_tail

    @pytest.mark.parametrize("length", [0, 31, 33, 63, 65])
    def test_other_lengths_rejected(self, length):
        with pytest.raises(InvalidKeyLength) as exc:
            ed25519.derive_public_key(b"\x01" * length)
        assert exc.value.length == length

    def test_matches_solders_for_many_seeds(self):
        for i in range(20):
            seed = hashlib.sha256(f"seed-{i}".encode()).digest()
            assert ed25519.derive_public_key(seed) == bytes(Keypair.from_seed(seed).pubkey())

    def test_clamping(self):
        scalar = ed25519.clamp_scalar(RFC_SEED)
        assert len(scalar) == 32
        assert scalar[0] & 0x07 == 0
        assert scalar[31] & 0x80 == 0
        assert scalar[31] & 0x40 == 0x40

    def test_secret_seed_is_first_half(self):
        assert ed25519.secret_seed(RFC_SEED + RFC_PUBLIC_KEY) == RFC_SEED
        assert ed25519.secret_seed(RFC_SEED) == RFC_SEED


class TestSigning:

    def test_rfc_empty_message(self):
        assert ed25519.sign(b"", RFC_SEED) == RFC_EMPTY_SIGNATURE

    def test_keypair_and_seed_sign_identically(self):
        message = b"transfer 1 SOL"
        assert ed25519.sign(message, RFC_SEED) == ed25519.sign(message, RFC_SEED + RFC_PUBLIC_KEY)

    def test_signing_is_deterministic(self):
        assert ed25519.sign(b"abc", RFC_SEED) == ed25519.sign(b"abc", RFC_SEED)

    def test_matches_solders(self):
        message = bytes(range(200))
        expected = bytes(Keypair.from_seed(RFC_SEED).sign_message(message))
        assert ed25519.sign(message, RFC_SEED) == expected

    def test_malformed_key_is_signing_error(self):
        with pytest.raises(SigningError):
            ed25519.sign(b"abc", b"\x01" * 10)


class TestVerification:

    def test_valid_signature(self):
        assert ed25519.verify(b"", RFC_EMPTY_SIGNATURE, RFC_PUBLIC_KEY)

    def test_tampered_message(self):
        assert not ed25519.verify(b"x", RFC_EMPTY_SIGNATURE, RFC_PUBLIC_KEY)

    @pytest.mark.parametrize("position", range(64))
    def test_tampered_signature(self, position):
        bad = bytearray(RFC_EMPTY_SIGNATURE)
        bad[position] ^= 0x01
        assert not ed25519.verify(b"", bytes(bad), RFC_PUBLIC_KEY)

    def test_wrong_lengths_return_false(self):
        assert not ed25519.verify(b"", RFC_EMPTY_SIGNATURE[:63], RFC_PUBLIC_KEY)
        assert not ed25519.verify(b"", RFC_EMPTY_SIGNATURE, RFC_PUBLIC_KEY[:31])

    def test_garbage_public_key_returns_false(self):
        assert not ed25519.verify(b"", RFC_EMPTY_SIGNATURE, b"\xff" * 32)

    def test_generated_keypair_round_trips(self):
        keypair = ed25519.generate_keypair()
        assert len(keypair) == 64
        assert ed25519.derive_public_key(keypair[:32]) == keypair[32:]
        signature = ed25519.sign(b"hello", keypair)
        assert ed25519.verify(b"hello", signature, keypair[32:])


class TestCurveMembership:

    def test_real_public_keys_are_on_curve(self):
        assert ed25519.is_on_curve(RFC_PUBLIC_KEY)
        assert ed25519.is_on_curve(bytes(Keypair().pubkey()))

    def test_wrong_length_is_not_on_curve(self):
        assert not ed25519.is_on_curve(RFC_PUBLIC_KEY[:31])

    def test_agrees_with_solders_on_hash_outputs(self):
        on, off = 0, 0
        for i in range(300):
            candidate = hashlib.sha256(i.to_bytes(4, "little")).digest()
            expected = Pubkey(candidate).is_on_curve()
            assert ed25519.is_on_curve(candidate) == expected, candidate.hex()
            on += expected
            off += not expected
        # Roughly half of random strings decode; both branches must be exercised.
        assert on > 50 and off > 50

    def test_identity_and_zero(self):
        identity = (1).to_bytes(32, "little")
        assert ed25519.is_on_curve(identity)
        assert ed25519.is_on_curve(bytes(32)) == Pubkey(bytes(32)).is_on_curve()
