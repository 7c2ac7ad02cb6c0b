#!/usr/bin/env python3
"""
Directed Stake CLI

Command-line interface for director records and stake reconciliation.

Usage:
    directed-stake current [--authority KEY]
    directed-stake set <validator> [--only-if-unset]
    directed-stake close [--rent-destination KEY]
    directed-stake reconcile <snapshot.csv> [--output FILE]

The signing wallet is read from the environment variable named by
`wallet_env` (default WALLET), as a JSON byte array or base58 secret key.
"""

import asyncio
from pathlib import Path
from typing import Optional

import click

from .config import DirectedStakeConfig, load_config
from .crypto.address import AddressDeriver
from .crypto.keys import Keypair, PublicKey
from .director import DirectorLedgerClient, DirectorLifecycleManager
from .exceptions import (
    ConfigurationError,
    DirectedStakeException,
    InvalidKeyError,
    MalformedSnapshotError,
)
from .reconcile import (
    ReconciliationEngine,
    aggregate,
    load_snapshot,
    to_ui_amount,
    write_reconciled_csv,
)
from .rpc import HttpLedgerTransport


def format_address(address, short: bool = False) -> str:
    """Format address for display."""
    text = str(address)
    if short:
        return f"{text[:6]}...{text[-6:]}"
    return text


def parse_key(value: str, label: str) -> PublicKey:
    try:
        return PublicKey.from_string(value)
    except InvalidKeyError as e:
        raise click.BadParameter(str(e), param_hint=label)


def make_transport(config: DirectedStakeConfig) -> HttpLedgerTransport:
    return HttpLedgerTransport(
        config.rpc_url,
        commitment=config.commitment,
        request_timeout=config.request_timeout,
        confirm_timeout=config.confirm_timeout,
        poll_interval=config.poll_interval,
    )


def load_wallet(config: DirectedStakeConfig) -> Keypair:
    try:
        return Keypair.from_environment(config.wallet_env)
    except (ConfigurationError, InvalidKeyError) as e:
        raise click.ClickException(f"Failed to load wallet: {e}")


def run(coro):
    """Run a command coroutine, turning library errors into CLI errors."""
    try:
        return asyncio.run(coro)
    except MalformedSnapshotError as e:
        raise click.ClickException(f"Snapshot rejected: {e}")
    except DirectedStakeException as e:
        raise click.ClickException(f"{type(e).__name__}: {e}")


@click.group()
@click.version_option(version="0.1.0", prog_name="directed-stake")
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path), help="TOML config file")
@click.option("--rpc-url", help="Ledger JSON-RPC URL")
@click.option("--program-id", help="Directed stake program id (base58)")
@click.pass_context
def cli(ctx, config_path: Optional[Path], rpc_url: Optional[str], program_id: Optional[str]):
    """Directed Stake Command Line Interface

    Direct a wallet's stake to a validator and reconcile holder snapshots
    against director records.
    """
    try:
        ctx.obj = load_config(config_path, overrides={"rpc_url": rpc_url, "program_id": program_id})
    except ConfigurationError as e:
        raise click.ClickException(str(e))


@cli.command("current")
@click.option("--authority", "-a", help="Authority to inspect (default: the configured wallet)")
@click.pass_obj
def current_cmd(config: DirectedStakeConfig, authority: Optional[str]):
    """Show the validator a wallet currently directs to.

    Examples:

        directed-stake current

        directed-stake current --authority <KEY>
    """
    key = parse_key(authority, "--authority") if authority else load_wallet(config).public_key

    async def _current():
        async with make_transport(config) as transport:
            manager = DirectorLifecycleManager(transport, config.program)
            return await manager.get_current_target(key)

    target = run(_current())
    click.echo(f"Authority:         {key}")
    click.echo(f"Current validator: {target if target else 'NONE'}")


@cli.command("set")
@click.argument("validator")
@click.option("--only-if-unset", is_flag=True, help="Do nothing if a validator is already set")
@click.pass_obj
def set_cmd(config: DirectedStakeConfig, validator: str, only_if_unset: bool):
    """Direct the wallet's stake to VALIDATOR (vote account).

    Creates the director record on first use. A record created concurrently
    by another process is detected and the change is resubmitted as an
    update.
    """
    target = parse_key(validator, "VALIDATOR")
    wallet = load_wallet(config)

    async def _set():
        async with make_transport(config) as transport:
            manager = DirectorLifecycleManager(transport, config.program)
            if only_if_unset:
                current = await manager.get_current_target(wallet.public_key)
                if current is not None:
                    return current, None
            return None, await manager.set_target_resolving_conflict(wallet, target)

    existing, result = run(_set())
    if result is None:
        click.echo(f"Validator already set to {existing}; nothing to do.")
        return
    action = "Created director and set" if result.initialized else "Updated"
    click.echo(click.style(f"✓ {action} validator {target}", fg="green"))
    click.echo(f"Signature: {result.signature}")


@cli.command("close")
@click.option("--rent-destination", "-r", help="Receives the record's rent (default: the wallet)")
@click.pass_obj
def close_cmd(config: DirectedStakeConfig, rent_destination: Optional[str]):
    """Close the wallet's director record and reclaim its rent."""
    wallet = load_wallet(config)
    destination = (
        parse_key(rent_destination, "--rent-destination") if rent_destination else wallet.public_key
    )

    async def _close():
        async with make_transport(config) as transport:
            manager = DirectorLifecycleManager(transport, config.program)
            return await manager.close(wallet, destination)

    result = run(_close())
    click.echo(click.style(f"✓ Director closed; rent sent to {destination}", fg="green"))
    click.echo(f"Signature: {result.signature}")


@cli.command("reconcile")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Write reconciled entries as CSV")
@click.pass_obj
def reconcile_cmd(config: DirectedStakeConfig, snapshot: Path, output: Optional[Path]):
    """Compute stake directed to each validator from a holder SNAPSHOT.

    SNAPSHOT is a CSV with header `wallet,balance`, balances in smallest
    token units. Director records are read in one full scan, so records
    changed after the scan are not reflected.
    """
    async def _reconcile():
        holdings = load_snapshot(snapshot)
        async with make_transport(config) as transport:
            records = await DirectorLedgerClient(transport, config.program).fetch_all()
        engine = ReconciliationEngine(AddressDeriver(config.program))
        return holdings, engine.reconcile(holdings, records)

    holdings, entries = run(_reconcile())
    distribution = aggregate(entries, holdings)
    decimals = config.token_decimals

    click.echo()
    click.echo(f"Holders: {len(holdings)}   Directed wallets: {len(entries)}")
    click.echo()
    for validator, amount in distribution.ranked():
        click.echo(f"  {format_address(validator)}  {format(to_ui_amount(amount, decimals), 'f')}")
    click.echo()
    click.echo(f"Directed:   {format(to_ui_amount(distribution.directed_total, decimals), 'f')}")
    click.echo(f"Undirected: {format(to_ui_amount(distribution.undirected_total, decimals), 'f')}")
    click.echo(f"Total:      {format(to_ui_amount(distribution.snapshot_total, decimals), 'f')}")

    if output:
        rows = write_reconciled_csv(entries, output)
        click.echo(f"\nWrote {rows} entries to {output}")


def main():
    cli()


if __name__ == "__main__":
    main()
