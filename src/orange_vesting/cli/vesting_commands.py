#!/usr/bin/env python3
"""
Orange Vesting CLI Commands - Vesting Deployment Interface

Operates a vesting deployment persisted in a JSON state file:
- Deploy the token and vesting contract (runs the generation event)
- Start vesting and write schedules per direction
- Claim, inspect accounts and contract status
- Rescue foreign tokens sent to the contract
"""

from __future__ import annotations

import json
import logging
import sys
import time
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import click
import yaml
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from orange_vesting.core.config import ConfigurationError, VestingConfig
from orange_vesting.core.exceptions import ContractExecutionError
from orange_vesting.core.logging_standards import configure_logging
from orange_vesting.core.state_store import Deployment, StateStore, deploy
from orange_vesting.core.vesting.directions import DIRECTION_TERMS, Direction

logger = logging.getLogger(__name__)
console = Console()

DIRECTION_CHOICES = [direction.slug for direction in Direction]


def _handle_cli_error(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, exc_info=True)
    code = getattr(exc, "code", type(exc).__name__)
    console.print(f"[bold red]Error:[/] {code}: {exc}")
    sys.exit(exit_code)


def _parse_amount(raw: Any, decimals: int, raw_units: bool) -> int:
    """Parse a whole-token amount (or base units with ``raw_units``) into base units."""
    try:
        value = Decimal(str(raw).replace("_", ""))
    except InvalidOperation as exc:
        raise click.BadParameter(f"Invalid amount: {raw!r}") from exc
    if not raw_units:
        value = value * (Decimal(10) ** decimals)
    if value != value.to_integral_value():
        raise click.BadParameter(f"Amount {raw!r} has more precision than the token supports")
    return int(value)


def _format_amount(units: int, decimals: int) -> str:
    whole = Decimal(units) / (Decimal(10) ** decimals)
    return f"{whole.normalize():f}"


def _read_allocations(path: Path) -> list[dict[str, Any]]:
    """Load allocation entries from a YAML or JSON file."""
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or []
    if isinstance(data, dict):
        data = data.get("allocations", [])
    if not isinstance(data, list):
        raise click.ClickException(f"Allocations file {path} must contain a list of entries.")
    for entry in data:
        if not isinstance(entry, dict) or "account" not in entry or "amount" not in entry:
            raise click.ClickException("Each allocation needs 'account' and 'amount' keys.")
    return data


def _output(ctx: click.Context, payload: dict[str, Any]) -> bool:
    """Print JSON when --json-output is set. Returns True if printed."""
    if ctx.obj.get("json_output"):
        click.echo(json.dumps(payload, indent=2, default=str))
        return True
    return False


class VestingSession:
    """Loads a deployment, runs one command against it and persists the result."""

    def __init__(self, state_file: str, now: int | None, config: VestingConfig) -> None:
        self.store = StateStore(state_file)
        self.now = now
        self.config = config

    def time_provider(self) -> int:
        return self.now if self.now is not None else int(time.time())

    def load(self) -> Deployment:
        return self.store.load(
            time_provider=self.time_provider,
            metrics_enabled=self.config.metrics_enabled,
        )

    def save(self, deployment: Deployment) -> None:
        self.store.save(deployment)


@click.group()
@click.option(
    "--state-file",
    envvar="ORANGE_STATE_FILE",
    type=click.Path(dir_okay=False),
    help="JSON state file holding the deployment.",
)
@click.option("--now", type=int, help="Override the current Unix timestamp.")
@click.option("--json-output", is_flag=True, help="Output raw JSON")
@click.option("--log-level", default=None, help="Root log level (defaults to ORANGE_LOG_LEVEL).")
@click.pass_context
def cli(ctx: click.Context, state_file: str | None, now: int | None, json_output: bool, log_level: str | None):
    """
    Orange Vesting CLI

    Deploy, fund and operate the multi-direction token vesting ledger.
    """
    try:
        config = VestingConfig.from_env()
    except ConfigurationError as exc:
        _handle_cli_error(exc)
    configure_logging(log_level or config.log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["json_output"] = json_output
    ctx.obj["session"] = VestingSession(state_file or config.state_file, now, config)


@cli.command("deploy")
@click.option("--admin", "admin", envvar="ORANGE_ADMIN_ADDRESS", required=True, help="Admin address.")
@click.option("--force", is_flag=True, help="Overwrite an existing state file.")
@click.pass_context
def deploy_command(ctx: click.Context, admin: str, force: bool):
    """Deploy the token and vesting contract and run the generation event."""
    session: VestingSession = ctx.obj["session"]
    if session.store.exists() and not force:
        raise click.ClickException(f"State file {session.store.path} already exists (use --force).")
    try:
        deployment = deploy(admin, config=session.config, time_provider=session.time_provider)
        session.save(deployment)
    except ContractExecutionError as exc:
        _handle_cli_error(exc)

    payload = {
        "token": deployment.token.address,
        "vesting": deployment.vesting.address,
        "admin": deployment.vesting.admin,
        "supply": deployment.token.total_supply,
    }
    if _output(ctx, payload):
        return
    console.print(Panel.fit(
        f"Token:   {payload['token']}\n"
        f"Vesting: {payload['vesting']}\n"
        f"Admin:   {payload['admin']}\n"
        f"Supply:  {_format_amount(payload['supply'], deployment.token.decimals)} {deployment.token.symbol}",
        title="[bold green]Vesting deployed[/]",
    ))


@cli.command("start")
@click.option("--caller", required=True, help="Admin address.")
@click.pass_context
def start_command(ctx: click.Context, caller: str):
    """Set the vesting start timestamp (one-shot)."""
    session: VestingSession = ctx.obj["session"]
    try:
        deployment = session.load()
        started_at = deployment.vesting.set_vesting_start_timestamp(caller)
        session.save(deployment)
    except ContractExecutionError as exc:
        _handle_cli_error(exc)

    if _output(ctx, {"vesting_start_timestamp": started_at}):
        return
    console.print(f"[green]Vesting started at[/] {started_at}")


@cli.command("set-vest")
@click.argument("direction", type=click.Choice(DIRECTION_CHOICES))
@click.option("--caller", required=True, help="Admin address.")
@click.option(
    "--allocations",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML/JSON list of {account, amount} entries.",
)
@click.option("--entry", "entries", multiple=True, help="ACCOUNT=AMOUNT (repeatable).")
@click.option("--raw-units", is_flag=True, help="Amounts are base units, not whole tokens.")
@click.pass_context
def set_vest_command(
    ctx: click.Context,
    direction: str,
    caller: str,
    allocations: Path | None,
    entries: tuple[str, ...],
    raw_units: bool,
):
    """Create or adjust schedules for DIRECTION in one atomic batch."""
    session: VestingSession = ctx.obj["session"]
    items: list[dict[str, Any]] = _read_allocations(allocations) if allocations else []
    for entry in entries:
        account, sep, amount = entry.partition("=")
        if not sep:
            raise click.BadParameter(f"Entry {entry!r} must look like ACCOUNT=AMOUNT")
        items.append({"account": account.strip(), "amount": amount.strip()})

    try:
        deployment = session.load()
        decimals = deployment.token.decimals
        accounts = [str(item["account"]) for item in items]
        amounts = [_parse_amount(item["amount"], decimals, raw_units) for item in items]
        created = deployment.vesting.set_vest_for(caller, Direction.parse(direction), accounts, amounts)
        session.save(deployment)
    except ContractExecutionError as exc:
        _handle_cli_error(exc)

    if _output(ctx, {"created": [record.to_dict() for record in created]}):
        return
    table = Table(title=f"{Direction.parse(direction).name} schedules", box=box.ROUNDED)
    table.add_column("Account", style="cyan")
    table.add_column("Amount", justify="right")
    table.add_column("Cliff (s)", justify="right")
    table.add_column("Vesting (s)", justify="right")
    for record in created:
        table.add_row(
            record.account,
            _format_amount(record.amount, decimals),
            str(record.cliff_seconds),
            str(record.vesting_seconds),
        )
    console.print(table)


@cli.command("claim")
@click.option("--caller", required=True, help="Beneficiary address.")
@click.pass_context
def claim_command(ctx: click.Context, caller: str):
    """Claim everything unlocked for CALLER across all directions."""
    session: VestingSession = ctx.obj["session"]
    try:
        deployment = session.load()
        before = len(deployment.vesting.events)
        amount = deployment.vesting.claim(caller)
        session.save(deployment)
    except ContractExecutionError as exc:
        _handle_cli_error(exc)

    records = deployment.vesting.events[before:]
    payload = {"claimed": amount, "records": [record.to_dict() for record in records]}
    if _output(ctx, payload):
        return
    decimals = deployment.token.decimals
    console.print(
        f"[green]Claimed[/] {_format_amount(amount, decimals)} {deployment.token.symbol}"
    )
    for record in records:
        console.print(f"  {record.direction.name}: {_format_amount(record.amount, decimals)}")


@cli.command("info")
@click.argument("account")
@click.pass_context
def info_command(ctx: click.Context, account: str):
    """Show ACCOUNT's schedules per direction and summed totals."""
    session: VestingSession = ctx.obj["session"]
    try:
        deployment = session.load()
    except ContractExecutionError as exc:
        _handle_cli_error(exc)

    vesting = deployment.vesting
    rows = []
    for direction in Direction:
        schedule = vesting.schedule_of(account, direction)
        rows.append({
            "direction": direction.name,
            "cliff_seconds": schedule.cliff_seconds,
            "vesting_seconds": schedule.vesting_seconds,
            "total_amount": schedule.total_amount,
            "claimed_amount": schedule.claimed_amount,
            "unlocked_amount": vesting.unlocked_of(account, direction),
        })
    info = vesting.get_total_vesting_info(account)
    payload = {"account": account.lower(), "schedules": rows, "totals": info._asdict()}
    if _output(ctx, payload):
        return

    decimals = deployment.token.decimals
    table = Table(title=f"Vesting for {account.lower()}", box=box.ROUNDED)
    table.add_column("Direction", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Claimed", justify="right")
    table.add_column("Unlocked", justify="right", style="green")
    for row in rows:
        if not row["total_amount"]:
            continue
        table.add_row(
            row["direction"],
            _format_amount(row["total_amount"], decimals),
            _format_amount(row["claimed_amount"], decimals),
            _format_amount(row["unlocked_amount"], decimals),
        )
    console.print(table)
    console.print(
        f"Total {_format_amount(info.total_amount, decimals)} | "
        f"unlocked {_format_amount(info.unlocked_amount, decimals)} | "
        f"claimed {_format_amount(info.claimed_amount, decimals)} | "
        f"locked {_format_amount(info.locked_amount, decimals)}"
    )


@cli.command("status")
@click.pass_context
def status_command(ctx: click.Context):
    """Show contract-wide state and invariant checks."""
    session: VestingSession = ctx.obj["session"]
    try:
        deployment = session.load()
    except ContractExecutionError as exc:
        _handle_cli_error(exc)

    vesting = deployment.vesting
    report = vesting.verify_invariants()
    payload = {
        "vesting": vesting.address,
        "token": deployment.token.address,
        "admin": vesting.admin,
        "vesting_start_timestamp": vesting.vesting_start_timestamp,
        "committed_total": vesting.committed_total,
        "available_amount": vesting.available_amount(),
        "is_consistent": report["is_consistent"],
    }
    if _output(ctx, payload):
        return

    decimals = deployment.token.decimals
    table = Table(title="Vesting status", box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Vesting", payload["vesting"])
    table.add_row("Token", payload["token"])
    table.add_row("Admin", payload["admin"])
    table.add_row("Started at", str(payload["vesting_start_timestamp"] or "not started"))
    table.add_row("Committed", _format_amount(payload["committed_total"], decimals))
    table.add_row("Available", _format_amount(payload["available_amount"], decimals))
    table.add_row("Consistent", "[green]yes[/]" if report["is_consistent"] else "[red]NO[/]")
    console.print(table)


@cli.command("directions")
@click.pass_context
def directions_command(ctx: click.Context):
    """List directions with their cliff and vesting durations."""
    rows = [
        {
            "tag": int(direction),
            "direction": direction.slug,
            "cliff_seconds": terms.cliff_seconds,
            "vesting_seconds": terms.vesting_seconds,
        }
        for direction, terms in DIRECTION_TERMS.items()
    ]
    if _output(ctx, {"directions": rows}):
        return
    table = Table(title="Vesting directions", box=box.ROUNDED)
    table.add_column("Tag", justify="right")
    table.add_column("Direction", style="cyan")
    table.add_column("Cliff (s)", justify="right")
    table.add_column("Vesting (s)", justify="right")
    for row in rows:
        table.add_row(str(row["tag"]), row["direction"], str(row["cliff_seconds"]), str(row["vesting_seconds"]))
    console.print(table)


@cli.command("mint-foreign")
@click.option("--creator", required=True, help="Owner of the foreign token.")
@click.option("--symbol", default="BUSD", show_default=True)
@click.option("--amount", required=True, help="Whole tokens minted into the vesting contract.")
@click.pass_context
def mint_foreign_command(ctx: click.Context, creator: str, symbol: str, amount: str):
    """Deploy a foreign token and mint it into the vesting contract."""
    session: VestingSession = ctx.obj["session"]
    try:
        deployment = session.load()
        foreign = deployment.registry.create_token(creator, f"{symbol} Mock", symbol)
        foreign.mint(creator, deployment.vesting.address, _parse_amount(amount, foreign.decimals, False))
        session.save(deployment)
    except ContractExecutionError as exc:
        _handle_cli_error(exc)

    if _output(ctx, {"token": foreign.address, "balance": foreign.balance_of(deployment.vesting.address)}):
        return
    console.print(f"[green]Foreign token[/] {foreign.address} ({symbol}) minted to {deployment.vesting.address}")


@cli.command("rescue")
@click.argument("token_address")
@click.argument("to")
@click.argument("amount")
@click.option("--caller", required=True, help="Admin address.")
@click.option("--raw-units", is_flag=True, help="AMOUNT is base units, not whole tokens.")
@click.pass_context
def rescue_command(ctx: click.Context, token_address: str, to: str, amount: str, caller: str, raw_units: bool):
    """Transfer a foreign token held by the vesting contract to TO."""
    session: VestingSession = ctx.obj["session"]
    try:
        deployment = session.load()
        foreign = deployment.registry.get_token(token_address)
        decimals = foreign.decimals if foreign is not None else 18
        units = _parse_amount(amount, decimals, raw_units)
        deployment.vesting.rescue_erc20(caller, token_address, to, units)
        session.save(deployment)
    except ContractExecutionError as exc:
        _handle_cli_error(exc)

    if _output(ctx, {"token": token_address.lower(), "to": to.lower(), "amount": units}):
        return
    console.print(f"[green]Rescued[/] {amount} of {token_address.lower()} to {to.lower()}")
