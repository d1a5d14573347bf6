#!/usr/bin/env python3
"""
SKADI - Base58 Codec

Addresses, blockhashes and signatures travel as base58 text.
Leading zero bytes map to leading '1' characters in both directions.
"""

import base58

from skadi.exceptions import InvalidAddress, InvalidCharacter

ADDRESS_LENGTH = 32


def encode(data: bytes) -> str:
    """Bytes to base58 text. Empty input gives an empty string."""
    return base58.b58encode(bytes(data)).decode("ascii")


def decode(text: str) -> bytes:
    """Base58 text to bytes, rejecting anything outside the alphabet."""
    if not isinstance(text, str):
        raise TypeError(f"base58 input must be str, got {type(text).__name__}")
    if text != text.strip():
        raise InvalidCharacter("Whitespace is not part of the base58 alphabet")
    try:
        return base58.b58decode(text)
    except ValueError as e:
        raise InvalidCharacter(str(e)) from e


def decode_address(text: str) -> bytes:
    """Decode an address and insist on exactly 32 bytes."""
    try:
        raw = decode(text)
    except InvalidCharacter as e:
        raise InvalidAddress(f"Invalid address {text!r}: {e}") from e
    if len(raw) != ADDRESS_LENGTH:
        raise InvalidAddress(
            f"Invalid address {text!r}: decodes to {len(raw)} bytes, expected {ADDRESS_LENGTH}"
        )
    return raw


def is_valid_address(text: str) -> bool:
    try:
        decode_address(text)
    except (InvalidAddress, TypeError):
        return False
    return True


def to_address_bytes(address) -> bytes:
    """Accept either raw 32 bytes or base58 text; return raw bytes."""
    if isinstance(address, str):
        return decode_address(address)
    raw = bytes(address)
    if len(raw) != ADDRESS_LENGTH:
        raise InvalidAddress(f"Address must be {ADDRESS_LENGTH} bytes, got {len(raw)}")
    return raw
