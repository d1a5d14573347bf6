#!/usr/bin/env python3
"""
SKADI - Command Line

Address derivation, transfers, status lookups and PDA derivation from
a terminal. Key material comes from SKADI_PRIVATE_KEY (base58, 32-byte
seed or 64-byte keypair) and is never echoed.
"""

import argparse
import asyncio
import os
import sys
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from skadi.config import EngineConfig
from skadi.core import codec
from skadi.core.client import SolanaRpcClient
from skadi.core.wallet import LocalSigner
from skadi.exceptions import ConfigError, SkadiError
from skadi.logger import SkadiLogger
from skadi.protocol.instructions import LAMPORTS_PER_SOL
from skadi.protocol.pda import (
    find_program_address,
    get_amm_config_address,
    get_lp_mint_address,
    get_pool_address,
    get_pool_reserve_address,
    sort_addresses,
)
from skadi.transfer.engine import TransferEngine
from skadi.transfer.monitor import ConfirmationTracker
from skadi.transfer.results import TransactionFailure, TransactionResult, TransactionSuccess

KEY_ENV_VAR = "SKADI_PRIVATE_KEY"


def load_key_material() -> bytes:
    """Read the signing key from the environment. Never logged."""
    encoded = os.getenv(KEY_ENV_VAR, "").strip()
    if not encoded:
        raise ConfigError(f"{KEY_ENV_VAR} is not set")
    try:
        return codec.decode(encoded)
    except SkadiError as e:
        raise ConfigError(f"{KEY_ENV_VAR} is not valid base58") from e


def sol_to_lamports(text: str) -> int:
    """Exact decimal conversion; rejects sub-lamport precision."""
    try:
        value = Decimal(text) * LAMPORTS_PER_SOL
    except InvalidOperation as e:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from e
    if value != value.to_integral_value():
        raise argparse.ArgumentTypeError(f"{text} SOL is finer than one lamport")
    return int(value)


def parse_seed(text: str) -> bytes:
    """
    Seed syntax for the pda command:
      addr:<base58>  32-byte address
      hex:<hex>      raw bytes
      u8:<n>, u32:<n>, u64:<n>  little-endian integers
      anything else  UTF-8 text
    """
    kind, sep, value = text.partition(":")
    if not sep:
        return text.encode()
    if kind == "addr":
        return codec.decode_address(value)
    if kind == "hex":
        return bytes.fromhex(value)
    widths = {"u8": 1, "u32": 4, "u64": 8}
    if kind in widths:
        try:
            return int(value).to_bytes(widths[kind], "little")
        except OverflowError as e:
            raise argparse.ArgumentTypeError(f"{value} does not fit in {kind}") from e
    return text.encode()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skadi",
        description="SKADI - Solana transaction engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the wallet address for SKADI_PRIVATE_KEY
  python -m skadi address

  # Send 0.05 SOL on devnet
  python -m skadi send-sol <recipient> --sol 0.05

  # Send 12.5 USDC (6 decimals) = 12500000 base units
  python -m skadi send-token <recipient> --mint <mint> --amount 12500000 --decimals 6

  # Derive a PDA
  python -m skadi pda <program-id> metadata addr:<mint>

Environment Variables (or use .env file):
  SKADI_PRIVATE_KEY   - base58 seed or keypair used to sign
  SKADI_NETWORK       - devnet (default) or mainnet
  SKADI_RPC_URL       - custom RPC endpoint
  SKADI_RPC_API_KEY   - API key appended to the RPC URL
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("address", help="Print the signing wallet's address")

    send_sol = sub.add_parser("send-sol", help="Transfer native SOL")
    send_sol.add_argument("to", help="Recipient address")
    amount = send_sol.add_mutually_exclusive_group(required=True)
    amount.add_argument("--sol", type=sol_to_lamports, dest="lamports", help="Amount in SOL")
    amount.add_argument("--lamports", type=int, dest="lamports", help="Amount in lamports")

    send_token = sub.add_parser("send-token", help="Transfer an SPL token")
    send_token.add_argument("to", help="Recipient wallet address (not token account)")
    send_token.add_argument("--mint", required=True)
    send_token.add_argument("--amount", type=int, required=True, help="Amount in base units")
    send_token.add_argument("--decimals", type=int, required=True)

    send_nft = sub.add_parser("send-nft", help="Transfer an NFT")
    send_nft.add_argument("to", help="Recipient wallet address")
    send_nft.add_argument("--mint", required=True)

    status = sub.add_parser("status", help="Look up a transaction signature")
    status.add_argument("signature")

    pda = sub.add_parser("pda", help="Derive a program address")
    pda.add_argument("program_id")
    pda.add_argument("seeds", nargs="*", type=parse_seed, help="Seeds (see parse syntax)")

    pool = sub.add_parser("pool", help="Derive exchange pool addresses for a token pair")
    pool.add_argument("mint_a")
    pool.add_argument("mint_b")

    return parser


def render_result(console: Console, result: TransactionResult) -> None:
    if isinstance(result, TransactionSuccess):
        text = Text()
        text.append(f"Signature: {result.signature}\n", style="bold green")
        text.append(f"Status:    {result.status.label}\n", style="white")
        text.append(f"Slot:      {result.slot}\n", style="white")
        text.append(f"Tracking:  {result.tracking_id}", style="dim")
        console.print(Panel(text, title="Transfer confirmed", border_style="green"))
    elif isinstance(result, TransactionFailure):
        text = Text()
        text.append(f"{result.message}\n", style="bold red")
        text.append(f"Tracking:  {result.tracking_id}", style="dim")
        console.print(Panel(text, title="Transfer failed", border_style="red"))
    else:
        console.print(Panel(
            Text(f"Awaiting signature ({result.tracking_id})", style="yellow"),
            title="Pending",
            border_style="yellow",
        ))


def _address_table(title: str, rows: List[tuple]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold bright_cyan", border_style="dim")
    table.add_column("Name", style="white")
    table.add_column("Address")
    table.add_column("Bump", justify="right")
    for row in rows:
        table.add_row(*[str(v) for v in row])
    return table


async def _run_transfer(args, config: EngineConfig, logger: SkadiLogger, console: Console) -> int:
    signer = LocalSigner(load_key_material())
    async with SolanaRpcClient(config, logger) as rpc:
        engine = TransferEngine(config, rpc, logger)
        if args.command == "send-sol":
            result = await engine.send_sol(signer, args.to, args.lamports)
        elif args.command == "send-token":
            result = await engine.send_token(signer, args.to, args.mint, args.amount, args.decimals)
        else:
            result = await engine.send_nft(signer, args.to, args.mint)
    render_result(console, result)
    return 0 if result.ok else 1


async def _run_status(args, config: EngineConfig, logger: SkadiLogger, console: Console) -> int:
    async with SolanaRpcClient(config, logger) as rpc:
        status = await ConfirmationTracker(rpc, logger).get_signature_status(args.signature)
    table = Table(show_header=False, border_style="dim")
    table.add_row("Signature", status.signature)
    table.add_row("Status", status.status.label)
    table.add_row("Slot", str(status.slot))
    table.add_row("Confirmations", str(status.confirmations))
    table.add_row("Error", Text(status.error or "-", style="red" if status.error else "dim"))
    console.print(table)
    return 1 if status.error else 0


def _run_pool(args, console: Console) -> int:
    mint_x, mint_y = sort_addresses(args.mint_a, args.mint_b)
    pool = get_pool_address(mint_x, mint_y)
    rows = [
        ("AMM config", codec.encode(get_amm_config_address()), ""),
        ("Pool", codec.encode(pool), ""),
        ("Reserve X", codec.encode(get_pool_reserve_address(pool, mint_x)), ""),
        ("Reserve Y", codec.encode(get_pool_reserve_address(pool, mint_y)), ""),
        ("LP mint", codec.encode(get_lp_mint_address(mint_x, mint_y)), ""),
    ]
    console.print(_address_table("Exchange pool", rows))
    return 0


async def main(argv: Optional[List[str]] = None, console: Optional[Console] = None) -> int:
    """
    The entry point.
    Returns a process exit code: 0 success, 1 failed transfer, 2 bad input.
    """
    args = build_parser().parse_args(argv)
    console = console or Console()

    config = EngineConfig()
    errors = config.validate()
    if errors:
        for err in errors:
            console.print(f"[red]Config error:[/red] {err}")
        return 2
    logger = SkadiLogger(config)

    try:
        if args.command == "address":
            console.print(LocalSigner(load_key_material()).address)
            return 0
        if args.command == "pda":
            result = find_program_address(args.seeds, args.program_id)
            console.print(_address_table("Program address", [("PDA", result.address_b58, result.bump_seed)]))
            return 0
        if args.command == "pool":
            return _run_pool(args, console)
        if args.command == "status":
            return await _run_status(args, config, logger, console)
        return await _run_transfer(args, config, logger, console)
    except (SkadiError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return 2


def run() -> None:
    """Console-script wrapper."""
    sys.exit(asyncio.run(main()))
