"""
Command-line interface for the UTXO wallet client.
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Annotated, Any

import httpx
import typer
from loguru import logger
from pydantic import ValidationError

from xchainwallet.client import UtxoClient
from xchainwallet.config import Settings
from xchainwallet.context import WalletContext
from xchainwallet.errors import WalletError
from xchainwallet.models import FeeOption
from xchainwallet.wallet.address import validate_address

app = typer.Typer(
    name="xchain-wallet",
    help="UTXO wallet client - addresses, balances, history and transfers",
    add_completion=False,
)


def setup_logging(level: str) -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def load_mnemonic(mnemonic: str | None, mnemonic_file: Path | None) -> str:
    """
    Load mnemonic from argument, file, or environment variable.

    Priority:
    1. --mnemonic argument
    2. --mnemonic-file argument
    3. MNEMONIC_FILE environment variable (path to mnemonic file)
    4. MNEMONIC environment variable

    Raises:
        ValueError: If no mnemonic source is available
    """
    if mnemonic:
        return mnemonic

    actual_mnemonic_file = mnemonic_file
    if not actual_mnemonic_file:
        env_mnemonic_file = os.environ.get("MNEMONIC_FILE")
        if env_mnemonic_file:
            actual_mnemonic_file = Path(env_mnemonic_file)

    if actual_mnemonic_file:
        if not actual_mnemonic_file.exists():
            raise ValueError(f"Mnemonic file not found: {actual_mnemonic_file}")
        return actual_mnemonic_file.read_text().strip()

    env_mnemonic = os.environ.get("MNEMONIC")
    if env_mnemonic:
        return env_mnemonic

    raise ValueError(
        "Mnemonic required. Use --mnemonic, --mnemonic-file, MNEMONIC_FILE, or MNEMONIC env var"
    )


def load_settings(**overrides: Any) -> Settings:
    """Settings from env/.env, with CLI options taking precedence when given."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def build_client(settings: Settings) -> UtxoClient:
    return settings.create_client()


def build_context(
    settings: Settings, mnemonic: str | None, mnemonic_file: Path | None
) -> WalletContext:
    phrase = load_mnemonic(mnemonic, mnemonic_file)
    return WalletContext(
        phrase=phrase, network=settings.network, address_type=settings.address_type
    )


def run(coro: Any) -> Any:
    """Run a coroutine, turning wallet errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except (WalletError, ValueError) as e:
        logger.error(str(e))
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        logger.error(f"Backend request failed: {e}")
        raise typer.Exit(1)


MnemonicOption = Annotated[
    str | None, typer.Option("--mnemonic", help="Wallet mnemonic phrase")
]
MnemonicFileOption = Annotated[
    Path | None, typer.Option("--mnemonic-file", "-f", help="Path to mnemonic file")
]
NetworkOption = Annotated[
    str | None, typer.Option("--network", "-n", help="Bitcoin network (default: XCHAIN_NETWORK)")
]
BackendOption = Annotated[
    str | None, typer.Option("--backend", "-b", help="Backend: esplora | bitcoin_core")
]
LogLevelOption = Annotated[str | None, typer.Option("--log-level", "-l", help="Log level")]


def _init(
    network: str | None, backend: str | None = None, log_level: str | None = None, **extra: Any
) -> Settings:
    try:
        settings = load_settings(network=network, backend=backend, **extra)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(1)
    setup_logging(log_level or settings.log_level)
    return settings


@app.command()
def address(
    index: Annotated[int, typer.Option("--index", "-i", help="Address index")] = 0,
    address_type: Annotated[
        str | None, typer.Option("--type", "-t", help="Address type: p2pkh | p2wpkh")
    ] = None,
    mnemonic: MnemonicOption = None,
    mnemonic_file: MnemonicFileOption = None,
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Derive a receive address."""
    settings = _init(network, log_level=log_level, address_type=address_type)
    try:
        context = build_context(settings, mnemonic, mnemonic_file)
        typer.echo(context.address(index))
    except (WalletError, ValueError) as e:
        logger.error(str(e))
        raise typer.Exit(1)


@app.command()
def validate(
    addr: Annotated[str, typer.Argument(help="Address to validate")],
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Check whether an address is valid for the network."""
    settings = _init(network, log_level=log_level)
    if validate_address(addr, settings.network):
        typer.echo(f"{addr} is a valid {settings.network.value} address")
    else:
        typer.echo(f"{addr} is NOT a valid {settings.network.value} address")
        raise typer.Exit(1)


@app.command()
def balance(
    addr: Annotated[str, typer.Argument(help="Address to query")],
    network: NetworkOption = None,
    backend: BackendOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Show the balance of an address."""
    settings = _init(network, backend, log_level)
    run(_run_balance(build_client(settings), addr))


async def _run_balance(client: UtxoClient, addr: str) -> None:
    try:
        for item in await client.get_balance(addr):
            typer.echo(f"{item.asset}: {item.amount:,}")
    finally:
        await client.close()


@app.command()
def history(
    addr: Annotated[str, typer.Argument(help="Address to query")],
    offset: Annotated[int, typer.Option("--offset", help="Transactions to skip")] = 0,
    limit: Annotated[int, typer.Option("--limit", help="Page size")] = 10,
    network: NetworkOption = None,
    backend: BackendOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """List transactions touching an address."""
    settings = _init(network, backend, log_level)
    run(_run_history(build_client(settings), addr, offset, limit))


async def _run_history(client: UtxoClient, addr: str, offset: int, limit: int) -> None:
    try:
        page = await client.get_transactions(addr, offset=offset, limit=limit)
        typer.echo(f"Total transactions: {page.total}")
        for tx in page.txs:
            sent = sum(f.amount for f in tx.from_ if f.from_address == addr)
            received = sum(t.amount for t in tx.to if t.to_address == addr)
            typer.echo(f"{tx.date:%Y-%m-%d %H:%M} {tx.hash} {received - sent:+,}")
    finally:
        await client.close()


@app.command()
def fees(
    memo: Annotated[str | None, typer.Option("--memo", "-m", help="Memo to price in")] = None,
    network: NetworkOption = None,
    backend: BackendOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Show fee rates and minimum fees per tier."""
    settings = _init(network, backend, log_level)
    run(_run_fees(build_client(settings), memo))


async def _run_fees(client: UtxoClient, memo: str | None) -> None:
    try:
        rates = await client.get_fee_rates()
        fee_amounts = await client.get_fees(memo)
        for option in FeeOption:
            typer.echo(
                f"{option.value:<8} {rates.get(option):>10.2f} sat/byte  "
                f"min fee {fee_amounts.get(option):,}"
            )
    finally:
        await client.close()


@app.command()
def send(
    destination: Annotated[str, typer.Option("--to", "-d", help="Destination address")],
    amount: Annotated[int, typer.Option("--amount", "-a", help="Amount in sats")],
    memo: Annotated[str | None, typer.Option("--memo", "-m", help="OP_RETURN memo")] = None,
    fee_rate: Annotated[
        float | None, typer.Option("--fee-rate", help="sat/byte (default: network fast tier)")
    ] = None,
    index: Annotated[int, typer.Option("--index", "-i", help="Address index to spend from")] = 0,
    spend_unconfirmed: Annotated[
        bool, typer.Option("--spend-unconfirmed", help="Allow unconfirmed inputs")
    ] = False,
    mnemonic: MnemonicOption = None,
    mnemonic_file: MnemonicFileOption = None,
    network: NetworkOption = None,
    backend: BackendOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Build, sign and broadcast a transfer."""
    settings = _init(network, backend, log_level)
    try:
        context = build_context(settings, mnemonic, mnemonic_file)
    except (WalletError, ValueError) as e:
        logger.error(str(e))
        raise typer.Exit(1)

    txid = run(
        _run_send(
            build_client(settings),
            context,
            destination,
            amount,
            memo,
            fee_rate,
            index,
            spend_unconfirmed or None,
        )
    )
    typer.echo(txid)


async def _run_send(
    client: UtxoClient,
    context: WalletContext,
    destination: str,
    amount: int,
    memo: str | None,
    fee_rate: float | None,
    index: int,
    spend_unconfirmed: bool | None,
) -> str:
    try:
        return await client.transfer(
            context,
            destination,
            amount,
            memo=memo,
            fee_rate=fee_rate,
            wallet_index=index,
            spend_unconfirmed=spend_unconfirmed,
        )
    finally:
        await client.close()


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
