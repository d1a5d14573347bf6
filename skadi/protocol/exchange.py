#!/usr/bin/env python3
"""
SKADI - Exchange Program Instructions

Liquidity pool instructions for the exchange program: create a pool,
deposit into it, withdraw from it. Every builder is pure; it derives
the pool, reserve, LP mint and user token accounts itself.

Instruction data (little endian):
- create_pool:        discriminator || u64 amount_x || u64 amount_y
- deposit_liquidity:  discriminator || u64 max_amount_x || u64 max_amount_y
- withdraw_liquidity: discriminator || u64 lp_amount || u64 min_amount_x || u64 min_amount_y

Amounts are raw base units of each mint.
"""

import struct
from dataclasses import dataclass

from skadi.core import codec
from skadi.protocol.instructions import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    RENT_SYSVAR_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from skadi.protocol.message import AccountMeta, Instruction
from skadi.protocol.pda import (
    EXCHANGE_PROGRAM_ID,
    get_amm_config_address,
    get_associated_token_address,
    get_lp_mint_address,
    get_pool_address,
    get_pool_reserve_address,
)

# Anchor instruction discriminators from the program IDL
CREATE_POOL_DISCRIMINATOR = bytes([222, 189, 94, 47, 237, 144, 6, 106])
DEPOSIT_LIQUIDITY_DISCRIMINATOR = bytes([234, 23, 19, 183, 87, 193, 12, 2])
WITHDRAW_LIQUIDITY_DISCRIMINATOR = bytes([224, 129, 244, 17, 76, 86, 157, 147])


@dataclass(frozen=True)
class PoolAccounts:
    """Every address a liquidity instruction touches for one user and pair."""
    user: bytes
    mint_x: bytes
    mint_y: bytes
    pool: bytes
    lp_mint: bytes
    reserve_x: bytes
    reserve_y: bytes
    user_token_x: bytes
    user_token_y: bytes
    user_lp_token: bytes

    @classmethod
    def derive(cls, user, mint_x, mint_y) -> "PoolAccounts":
        user = codec.to_address_bytes(user)
        mint_x = codec.to_address_bytes(mint_x)
        mint_y = codec.to_address_bytes(mint_y)
        pool = get_pool_address(mint_x, mint_y)
        lp_mint = get_lp_mint_address(mint_x, mint_y)
        return cls(
            user=user,
            mint_x=mint_x,
            mint_y=mint_y,
            pool=pool,
            lp_mint=lp_mint,
            reserve_x=get_pool_reserve_address(pool, mint_x),
            reserve_y=get_pool_reserve_address(pool, mint_y),
            user_token_x=get_associated_token_address(user, mint_x),
            user_token_y=get_associated_token_address(user, mint_y),
            user_lp_token=get_associated_token_address(user, lp_mint),
        )


def _liquidity_accounts(accounts: PoolAccounts) -> tuple:
    # Shared by deposit and withdraw
    return (
        AccountMeta(pubkey=accounts.user, is_signer=True, is_writable=True),
        AccountMeta(pubkey=accounts.pool, is_signer=False, is_writable=True),
        AccountMeta(pubkey=accounts.lp_mint, is_signer=False, is_writable=True),
        AccountMeta(pubkey=accounts.reserve_x, is_signer=False, is_writable=True),
        AccountMeta(pubkey=accounts.reserve_y, is_signer=False, is_writable=True),
        AccountMeta(pubkey=accounts.user_token_x, is_signer=False, is_writable=True),
        AccountMeta(pubkey=accounts.user_token_y, is_signer=False, is_writable=True),
        AccountMeta(pubkey=accounts.user_lp_token, is_signer=False, is_writable=True),
        AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
    )


def create_pool(user, mint_x, mint_y, amount_x: int, amount_y: int) -> Instruction:
    """
    Open a pool for (mint_x, mint_y) and seed it with the user's tokens.
    The user pays for the new accounts and receives the first LP tokens.
    """
    accounts = PoolAccounts.derive(user, mint_x, mint_y)
    data = CREATE_POOL_DISCRIMINATOR + struct.pack("<QQ", amount_x, amount_y)
    return Instruction(
        program_id=EXCHANGE_PROGRAM_ID,
        accounts=(
            AccountMeta(pubkey=accounts.user, is_signer=True, is_writable=True),
            AccountMeta(pubkey=get_amm_config_address(), is_signer=False, is_writable=False),
            AccountMeta(pubkey=accounts.pool, is_signer=False, is_writable=True),
            AccountMeta(pubkey=accounts.lp_mint, is_signer=False, is_writable=True),
            AccountMeta(pubkey=accounts.mint_x, is_signer=False, is_writable=False),
            AccountMeta(pubkey=accounts.mint_y, is_signer=False, is_writable=False),
            AccountMeta(pubkey=accounts.reserve_x, is_signer=False, is_writable=True),
            AccountMeta(pubkey=accounts.reserve_y, is_signer=False, is_writable=True),
            AccountMeta(pubkey=accounts.user_token_x, is_signer=False, is_writable=True),
            AccountMeta(pubkey=accounts.user_token_y, is_signer=False, is_writable=True),
            AccountMeta(pubkey=accounts.user_lp_token, is_signer=False, is_writable=True),
            AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(pubkey=ASSOCIATED_TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(pubkey=RENT_SYSVAR_ID, is_signer=False, is_writable=False),
        ),
        data=data,
    )


def deposit_liquidity(user, mint_x, mint_y, max_amount_x: int, max_amount_y: int) -> Instruction:
    """Add liquidity, spending at most the given amount of each token."""
    accounts = PoolAccounts.derive(user, mint_x, mint_y)
    data = DEPOSIT_LIQUIDITY_DISCRIMINATOR + struct.pack("<QQ", max_amount_x, max_amount_y)
    return Instruction(
        program_id=EXCHANGE_PROGRAM_ID,
        accounts=_liquidity_accounts(accounts),
        data=data,
    )


def withdraw_liquidity(
    user,
    mint_x,
    mint_y,
    lp_amount: int,
    min_amount_x: int,
    min_amount_y: int,
) -> Instruction:
    """Burn lp_amount LP tokens; fails on-chain if either payout is below its minimum."""
    accounts = PoolAccounts.derive(user, mint_x, mint_y)
    data = WITHDRAW_LIQUIDITY_DISCRIMINATOR + struct.pack("<QQQ", lp_amount, min_amount_x, min_amount_y)
    return Instruction(
        program_id=EXCHANGE_PROGRAM_ID,
        accounts=_liquidity_accounts(accounts),
        data=data,
    )
