#!/usr/bin/env python3
"""
SKADI - Instruction Factory

Byte layouts for the handful of well-known programs a wallet talks to:
native transfers, SPL token transfers, and associated token account
creation. Every builder is a pure function returning an Instruction.
"""

import struct

from skadi.core import codec
from skadi.protocol.message import AccountMeta, Instruction


# ═══════════════════════════════════════════════════════════════════════════
#                           WELL-KNOWN PROGRAMS
# ═══════════════════════════════════════════════════════════════════════════

SYSTEM_PROGRAM_ID = codec.decode_address("11111111111111111111111111111111")
TOKEN_PROGRAM_ID = codec.decode_address("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = codec.decode_address("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
RENT_SYSVAR_ID = codec.decode_address("SysvarRent111111111111111111111111111111111")

# Instruction discriminators
SYSTEM_TRANSFER = 2  # u32 LE
TOKEN_TRANSFER = 3  # u8
TOKEN_TRANSFER_CHECKED = 12  # u8
ATA_CREATE_IDEMPOTENT = 1  # u8; plain create has empty data

LAMPORTS_PER_SOL = 1_000_000_000


def system_transfer(from_pubkey, to_pubkey, lamports: int) -> Instruction:
    """
    Move lamports between two system accounts.

    Data: u32 LE 2 || u64 LE lamports (12 bytes)
    """
    data = struct.pack("<IQ", SYSTEM_TRANSFER, lamports)
    return Instruction(
        program_id=SYSTEM_PROGRAM_ID,
        accounts=(
            AccountMeta(pubkey=from_pubkey, is_signer=True, is_writable=True),
            AccountMeta(pubkey=to_pubkey, is_signer=False, is_writable=True),
        ),
        data=data,
    )


def token_transfer(source, destination, authority, amount: int) -> Instruction:
    """
    Unchecked SPL transfer between two token accounts.

    Data: u8 3 || u64 LE amount (9 bytes)
    """
    data = struct.pack("<BQ", TOKEN_TRANSFER, amount)
    return Instruction(
        program_id=TOKEN_PROGRAM_ID,
        accounts=(
            AccountMeta(pubkey=source, is_signer=False, is_writable=True),
            AccountMeta(pubkey=destination, is_signer=False, is_writable=True),
            AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        ),
        data=data,
    )


def token_transfer_checked(
    source,
    mint,
    destination,
    authority,
    amount: int,
    decimals: int,
) -> Instruction:
    """
    SPL transfer that also asserts the mint and its decimals.
    The token program refuses the transfer if either does not match.

    Data: u8 12 || u64 LE amount || u8 decimals (10 bytes)
    """
    data = struct.pack("<BQB", TOKEN_TRANSFER_CHECKED, amount, decimals)
    return Instruction(
        program_id=TOKEN_PROGRAM_ID,
        accounts=(
            AccountMeta(pubkey=source, is_signer=False, is_writable=True),
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
            AccountMeta(pubkey=destination, is_signer=False, is_writable=True),
            AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        ),
        data=data,
    )


def create_associated_token_account(
    payer,
    associated_account,
    owner,
    mint,
    idempotent: bool = False,
) -> Instruction:
    """
    Create the canonical token account for (owner, mint), paid by payer.

    The plain form fails if the account already exists; the idempotent
    form succeeds either way.
    """
    data = bytes([ATA_CREATE_IDEMPOTENT]) if idempotent else b""
    return Instruction(
        program_id=ASSOCIATED_TOKEN_PROGRAM_ID,
        accounts=(
            AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
            AccountMeta(pubkey=associated_account, is_signer=False, is_writable=True),
            AccountMeta(pubkey=owner, is_signer=False, is_writable=False),
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
            AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(pubkey=RENT_SYSVAR_ID, is_signer=False, is_writable=False),
        ),
        data=data,
    )
