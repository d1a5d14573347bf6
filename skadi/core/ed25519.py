#!/usr/bin/env python3
"""
SKADI - Ed25519 Engine

Key derivation, signing, verification and the curve-membership test that
program derived addresses depend on.

Key material is either a 32-byte seed or a 64-byte seed || public key
keypair (the layout most Solana wallets export). Signing is RFC 8032
deterministic Ed25519 via libsodium (PyNaCl).
"""

import hashlib

from nacl.bindings import crypto_scalarmult_ed25519_base_noclamp
from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import SigningKey, VerifyKey

from skadi.exceptions import InvalidKeyLength, SigningError

SEED_LENGTH = 32
KEYPAIR_LENGTH = 64
PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64

# Curve25519 field prime and the twisted Edwards constant d = -121665/121666
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


def _check_length(key: bytes) -> None:
    if len(key) not in (SEED_LENGTH, KEYPAIR_LENGTH):
        raise InvalidKeyLength(len(key))


def clamp_scalar(seed: bytes) -> bytes:
    """
    Expand a seed into the Ed25519 private scalar.

    SHA-512 the seed, clear the low three bits of byte 0, clear the top bit
    and set the second-highest bit of byte 31, keep the low 32 bytes.
    """
    digest = bytearray(hashlib.sha512(seed).digest()[:32])
    digest[0] &= 0xF8
    digest[31] &= 0x7F
    digest[31] |= 0x40
    return bytes(digest)


def derive_public_key(key: bytes) -> bytes:
    """Public key for a seed (derived) or a keypair (trailing half, verbatim)."""
    key = bytes(key)
    _check_length(key)
    if len(key) == KEYPAIR_LENGTH:
        return key[SEED_LENGTH:]
    return crypto_scalarmult_ed25519_base_noclamp(clamp_scalar(key))


def secret_seed(key: bytes) -> bytes:
    """The 32-byte signing secret inside either key layout."""
    key = bytes(key)
    _check_length(key)
    return key[:SEED_LENGTH]


def sign(message: bytes, key: bytes) -> bytes:
    """Detached 64-byte signature over message."""
    try:
        seed = secret_seed(key)
    except InvalidKeyLength as e:
        raise SigningError(f"Cannot sign with malformed key material: {e}") from e
    try:
        return SigningKey(seed).sign(bytes(message)).signature
    except (CryptoError, TypeError, ValueError) as e:
        raise SigningError(f"Ed25519 signing failed: {e}") from e


def verify(message: bytes, signature: bytes, public_key: bytes) -> bool:
    """True only for a well-formed, valid signature. Never raises on bad input."""
    if len(signature) != SIGNATURE_LENGTH or len(public_key) != PUBLIC_KEY_LENGTH:
        return False
    try:
        VerifyKey(bytes(public_key)).verify(bytes(message), bytes(signature))
    except (BadSignatureError, CryptoError, TypeError, ValueError):
        return False
    return True


def generate_keypair() -> bytes:
    """Fresh random 64-byte keypair (seed || public key)."""
    signing_key = SigningKey.generate()
    return bytes(signing_key) + bytes(signing_key.verify_key)


def is_on_curve(candidate: bytes) -> bool:
    """
    Whether 32 bytes decompress to a point on edwards25519.

    Mirrors the ledger's own check: take y from the low 255 bits (reduced
    mod p), and accept iff x^2 = (y^2 - 1) / (d*y^2 + 1) has a square root.
    The sign bit is not consulted. d*y^2 + 1 is never zero because d is a
    non-square.
    """
    if len(candidate) != PUBLIC_KEY_LENGTH:
        return False
    y = int.from_bytes(bytes(candidate), "little") & ((1 << 255) - 1)
    y %= _P
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    if x2 == 0:
        return True
    # Euler's criterion
    return pow(x2, (_P - 1) // 2, _P) == 1
