"""
SKADI Protocol - Message layout, instruction builders and program addresses.
"""

from .exchange import (
    PoolAccounts,
    create_pool,
    deposit_liquidity,
    withdraw_liquidity,
)
from .instructions import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    RENT_SYSVAR_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    create_associated_token_account,
    system_transfer,
    token_transfer,
    token_transfer_checked,
)
from .message import (
    AccountMeta,
    CompiledInstruction,
    CompiledMessage,
    Instruction,
    MessageHeader,
    build_signed_transaction,
    compile_message,
    decode_length,
    deserialize_message,
    encode_length,
    serialize_message,
    split_wire_transaction,
)
from .pda import (
    EXCHANGE_PROGRAM_ID,
    PdaResult,
    create_program_address,
    find_program_address,
    get_associated_token_address,
    get_lp_mint_address,
    get_pool_address,
    get_pool_reserve_address,
)

__all__ = [
    "AccountMeta",
    "Instruction",
    "MessageHeader",
    "CompiledInstruction",
    "CompiledMessage",
    "compile_message",
    "serialize_message",
    "deserialize_message",
    "build_signed_transaction",
    "split_wire_transaction",
    "encode_length",
    "decode_length",
    "SYSTEM_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "ASSOCIATED_TOKEN_PROGRAM_ID",
    "RENT_SYSVAR_ID",
    "system_transfer",
    "token_transfer",
    "token_transfer_checked",
    "create_associated_token_account",
    "PdaResult",
    "create_program_address",
    "find_program_address",
    "get_associated_token_address",
    "EXCHANGE_PROGRAM_ID",
    "get_pool_address",
    "get_pool_reserve_address",
    "get_lp_mint_address",
    "PoolAccounts",
    "create_pool",
    "deposit_liquidity",
    "withdraw_liquidity",
]
