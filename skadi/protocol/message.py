#!/usr/bin/env python3
"""
SKADI - Transaction Message Compiler

Turns a list of instructions into the legacy message layout the ledger
signs and executes, and wraps signed messages into wire transactions.

Message layout:
- 3 bytes: header (required signatures, read-only signed, read-only unsigned)
- compact-array: 32-byte account keys
- 32 bytes: recent blockhash
- compact-array: instructions, each
    - 1 byte: program id index
    - compact-array: account indices (1 byte each)
    - compact-array: opaque data

Account keys are ordered by first appearance: fee payer, then for every
instruction its accounts followed by its program id. Index stability
depends on this order.

Limitations of that ordering:
- signers are not moved to the front, so instructions with extra signers
  must reference them before any non-signer account
- read-only counts in the header are always zero, so every account is
  locked writable
"""

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from skadi.core import codec
from skadi.exceptions import MalformedMessage, MessageCompileError

BLOCKHASH_LENGTH = 32
SIGNATURE_LENGTH = 64
MAX_ACCOUNT_KEYS = 256  # indices are a single byte
MAX_COMPACT_LENGTH = 0x1FFFFF  # three 7-bit groups
VERSION_PREFIX_MASK = 0x80


# ═══════════════════════════════════════════════════════════════════════════
#                        COMPACT-ARRAY LENGTHS
# ═══════════════════════════════════════════════════════════════════════════

def encode_length(length: int) -> bytes:
    """
    Compact-array length prefix: little-endian 7-bit groups, high bit set
    on every byte except the last.
    """
    if length < 0 or length > MAX_COMPACT_LENGTH:
        raise ValueError(f"Compact length out of range: {length}")
    if length < 0x80:
        return bytes([length])
    if length < 0x4000:
        return bytes([0x80 | (length & 0x7F), length >> 7])
    return bytes([
        0x80 | (length & 0x7F),
        0x80 | ((length >> 7) & 0x7F),
        length >> 14,
    ])


def decode_length(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Read a compact length at offset. Returns (value, bytes consumed)."""
    value = 0
    for i in range(3):
        if offset + i >= len(data):
            raise MalformedMessage("Truncated compact-array length")
        byte = data[offset + i]
        value |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return value, i + 1
    raise MalformedMessage("Compact-array length longer than three bytes")


# ═══════════════════════════════════════════════════════════════════════════
#                              DATA MODEL
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AccountMeta:
    """An account an instruction touches, and how."""
    pubkey: bytes
    is_signer: bool
    is_writable: bool

    def __post_init__(self):
        object.__setattr__(self, "pubkey", codec.to_address_bytes(self.pubkey))


@dataclass(frozen=True)
class Instruction:
    """Program id, ordered account metas, opaque data. Immutable."""
    program_id: bytes
    accounts: Tuple[AccountMeta, ...]
    data: bytes = b""

    def __post_init__(self):
        object.__setattr__(self, "program_id", codec.to_address_bytes(self.program_id))
        object.__setattr__(self, "accounts", tuple(self.accounts))
        object.__setattr__(self, "data", bytes(self.data))


@dataclass(frozen=True)
class MessageHeader:
    num_required_signatures: int
    num_readonly_signed_accounts: int = 0
    num_readonly_unsigned_accounts: int = 0

    def to_bytes(self) -> bytes:
        return bytes([
            self.num_required_signatures,
            self.num_readonly_signed_accounts,
            self.num_readonly_unsigned_accounts,
        ])


@dataclass(frozen=True)
class CompiledInstruction:
    """Instruction with addresses replaced by indices into the key list."""
    program_id_index: int
    accounts: Tuple[int, ...]
    data: bytes


@dataclass(frozen=True)
class CompiledMessage:
    header: MessageHeader
    account_keys: Tuple[bytes, ...]
    recent_blockhash: bytes
    instructions: Tuple[CompiledInstruction, ...] = field(default_factory=tuple)

    @property
    def fee_payer(self) -> bytes:
        return self.account_keys[0]

    def signer_keys(self) -> Tuple[bytes, ...]:
        return self.account_keys[:self.header.num_required_signatures]

    def serialize(self) -> bytes:
        return serialize_message(self)


# ═══════════════════════════════════════════════════════════════════════════
#                              COMPILATION
# ═══════════════════════════════════════════════════════════════════════════

def compile_message(
    instructions: Sequence[Instruction],
    payer,
    recent_blockhash,
) -> CompiledMessage:
    """
    Compile instructions against a fee payer and blockhash.

    The payer always signs and sits at index 0. Every other distinct
    signer adds one required signature. Read-only counts are left at zero.

    Keys are not reordered, so extra signers must be the first accounts
    seen after the payer. Raises MessageCompileError if one lands outside
    the leading signer range.
    """
    payer = codec.to_address_bytes(payer)
    if isinstance(recent_blockhash, str):
        recent_blockhash = codec.decode(recent_blockhash)
    recent_blockhash = bytes(recent_blockhash)
    if len(recent_blockhash) != BLOCKHASH_LENGTH:
        raise MessageCompileError(
            f"Recent blockhash must be {BLOCKHASH_LENGTH} bytes, got {len(recent_blockhash)}"
        )

    account_keys: List[bytes] = [payer]
    index_of = {payer: 0}

    def _add(key: bytes) -> None:
        if key not in index_of:
            index_of[key] = len(account_keys)
            account_keys.append(key)

    extra_signers = set()
    for instruction in instructions:
        for meta in instruction.accounts:
            _add(meta.pubkey)
            if meta.is_signer and meta.pubkey != payer:
                extra_signers.add(meta.pubkey)
        _add(instruction.program_id)

    if len(account_keys) > MAX_ACCOUNT_KEYS:
        raise MessageCompileError(
            f"Message references {len(account_keys)} accounts; at most {MAX_ACCOUNT_KEYS} fit"
        )

    num_signers = 1 + len(extra_signers)
    for key in sorted(extra_signers, key=index_of.get):
        if index_of[key] >= num_signers:
            raise MessageCompileError(
                f"Signer {codec.encode(key)} sits at index {index_of[key]}, outside the "
                f"{num_signers} leading signer slots; reference signers before other accounts"
            )

    compiled = tuple(
        CompiledInstruction(
            program_id_index=index_of[instruction.program_id],
            accounts=tuple(index_of[meta.pubkey] for meta in instruction.accounts),
            data=instruction.data,
        )
        for instruction in instructions
    )

    return CompiledMessage(
        header=MessageHeader(num_required_signatures=num_signers),
        account_keys=tuple(account_keys),
        recent_blockhash=recent_blockhash,
        instructions=compiled,
    )


def serialize_message(message: CompiledMessage) -> bytes:
    """Legacy wire bytes of a compiled message. These are the bytes signed."""
    parts = [message.header.to_bytes(), encode_length(len(message.account_keys))]
    parts.extend(message.account_keys)
    parts.append(message.recent_blockhash)
    parts.append(encode_length(len(message.instructions)))
    for instruction in message.instructions:
        parts.append(bytes([instruction.program_id_index]))
        parts.append(encode_length(len(instruction.accounts)))
        parts.append(bytes(instruction.accounts))
        parts.append(encode_length(len(instruction.data)))
        parts.append(instruction.data)
    return b"".join(parts)


def build_signed_transaction(message: bytes, signatures: Sequence[bytes]) -> bytes:
    """Wire transaction: compact signature count, signatures, message."""
    for signature in signatures:
        if len(signature) != SIGNATURE_LENGTH:
            raise ValueError(f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}")
    return encode_length(len(signatures)) + b"".join(bytes(s) for s in signatures) + bytes(message)


# ═══════════════════════════════════════════════════════════════════════════
#                               DECODING
# ═══════════════════════════════════════════════════════════════════════════

class _Reader:
    """Cursor over wire bytes that fails loudly on truncation."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = data
        self.offset = offset

    def take(self, count: int) -> bytes:
        end = self.offset + count
        if end > len(self.data):
            raise MalformedMessage(
                f"Need {count} bytes at offset {self.offset}, only {len(self.data) - self.offset} left"
            )
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def length(self) -> int:
        value, consumed = decode_length(self.data, self.offset)
        self.offset += consumed
        return value


def deserialize_message(data: bytes) -> CompiledMessage:
    """Parse legacy message bytes back into a CompiledMessage."""
    data = bytes(data)
    if data and data[0] & VERSION_PREFIX_MASK:
        raise MalformedMessage("Versioned message; only legacy messages can be decoded")
    reader = _Reader(data)
    header = MessageHeader(*reader.take(3))
    account_keys = tuple(reader.take(32) for _ in range(reader.length()))
    blockhash = reader.take(BLOCKHASH_LENGTH)
    instructions = []
    for _ in range(reader.length()):
        program_id_index = reader.take(1)[0]
        accounts = tuple(reader.take(reader.length()))
        payload = reader.take(reader.length())
        instructions.append(CompiledInstruction(program_id_index, accounts, payload))
    if reader.offset != len(data):
        raise MalformedMessage(f"{len(data) - reader.offset} trailing bytes after message")
    for instruction in instructions:
        for index in (instruction.program_id_index, *instruction.accounts):
            if index >= len(account_keys):
                raise MalformedMessage(f"Account index {index} out of range")
    return CompiledMessage(header, account_keys, blockhash, tuple(instructions))


def split_wire_transaction(data: bytes) -> Tuple[List[bytes], bytes]:
    """Separate a wire transaction into its signature slots and message bytes."""
    reader = _Reader(bytes(data))
    signatures = [reader.take(SIGNATURE_LENGTH) for _ in range(reader.length())]
    return signatures, reader.data[reader.offset:]


def read_signer_keys(message: bytes) -> Tuple[bytes, ...]:
    """
    Required signer keys of a legacy or versioned (v0) message.
    Only the header and key list are read, so address-table lookups
    further on do not matter.
    """
    reader = _Reader(bytes(message))
    if message and message[0] & VERSION_PREFIX_MASK:
        reader.take(1)
    num_required = reader.take(3)[0]
    keys = tuple(reader.take(32) for _ in range(reader.length()))
    if num_required > len(keys):
        raise MalformedMessage("Header requires more signers than there are keys")
    return keys[:num_required]
