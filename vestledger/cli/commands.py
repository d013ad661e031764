"""
vestledger/cli/commands.py

Operator commands. Each one opens a Session from the home directory, runs one
or more engine operations, and saves the state only if every step succeeded.

Exit codes:
    0  success
    1  operation rejected (configuration, lifecycle, transfer, unknown beneficiary)
    2  environment error (unreadable state file, journal, config file)
"""

import functools
import json
import sys
from pathlib import Path
from typing import Optional

import click

from vestledger.config import load_config
from vestledger.core.crypto import OperatorKey
from vestledger.core.exceptions import (
    ConfigurationError,
    JournalError,
    StoreError,
    VestingError,
)
from vestledger.core.models import SettlementResult, VestingInfo
from vestledger.core.time import format_timestamp, parse_timestamp, unix_now
from vestledger.core.units import format_units, parse_units
from vestledger.cli.session import JOURNAL_FILE, KEY_FILE, Session
from vestledger.ledger.journal import Journal


def _fail(message: str, code: int) -> None:
    click.echo(click.style(f"ERROR: {message}", fg="red"), err=True)
    sys.exit(code)


def handle_errors(func):
    """Map the exception taxonomy onto exit codes."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (StoreError, JournalError) as exc:
            _fail(str(exc), 2)
        except VestingError as exc:
            _fail(str(exc), 1)
    return wrapper


def _parse_at(at: Optional[str]) -> Optional[int]:
    if at is None:
        return None
    try:
        return parse_timestamp(at)
    except (TypeError, ValueError) as exc:
        raise click.BadParameter(str(exc), param_hint="--at")


def _open(ctx: click.Context, at: Optional[str] = None) -> Session:
    return Session.open(ctx.obj["home"], at=_parse_at(at))


def _load_network(config_file: str, network: str):
    try:
        return load_config(Path(config_file), network)
    except ConfigurationError as exc:
        _fail(str(exc), 2)


# ── deploy ────────────────────────────────────────────────────────────────────

@click.command(name="deploy")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--network", required=True, help="Network section of the config file.")
@click.option("--start", "start_now", is_flag=True, default=False,
              help="Start vesting right after configuring.")
@click.pass_context
@handle_errors
def deploy_command(ctx: click.Context, config_file: str, network: str, start_now: bool) -> None:
    """
    Configure assets and schedule from CONFIG_FILE, optionally starting.

    \b
    Example:
      vestledger deploy networks.yaml --network bscTestnet --start
    """
    cfg = _load_network(config_file, network)

    session = _open(ctx)
    vesting = session.vesting
    vesting.replace_asset_registry(cfg.assets)
    session.treasury.sync_registry(vesting.state.registry)
    vesting.replace_schedule(cfg.milestones, cfg.beneficiaries, cfg.allocation_matrix)
    if start_now:
        vesting.start()
    session.save()

    click.echo(
        f"Configured {network}: {len(cfg.assets)} asset(s), "
        f"{len(cfg.milestones)} milestone(s), {len(cfg.beneficiaries)} beneficiary(ies)"
        + ("  [started]" if start_now else "")
    )


# ── set-assets / set-schedule ─────────────────────────────────────────────────

@click.command(name="set-assets")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--network", required=True, help="Network section of the config file.")
@click.pass_context
@handle_errors
def set_assets_command(ctx: click.Context, config_file: str, network: str) -> None:
    """Replace only the asset registry from CONFIG_FILE. Configuring only."""
    cfg = _load_network(config_file, network)

    session = _open(ctx)
    session.vesting.replace_asset_registry(cfg.assets)
    session.treasury.sync_registry(session.vesting.state.registry)
    session.save()

    click.echo(
        "Assets replaced: "
        + ", ".join(f"[{a.index}] {a.handle}" for a in session.vesting.list_assets())
    )


@click.command(name="set-schedule")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--network", required=True, help="Network section of the config file.")
@click.pass_context
@handle_errors
def set_schedule_command(ctx: click.Context, config_file: str, network: str) -> None:
    """Replace only the milestone schedule from CONFIG_FILE. Configuring only."""
    cfg = _load_network(config_file, network)

    session = _open(ctx)
    session.vesting.replace_schedule(cfg.milestones, cfg.beneficiaries, cfg.allocation_matrix)
    session.save()

    click.echo(
        f"Schedule replaced: {len(cfg.milestones)} milestone(s), "
        f"{len(cfg.beneficiaries)} beneficiary(ies)"
    )


# ── start ─────────────────────────────────────────────────────────────────────

@click.command(name="start")
@click.pass_context
@handle_errors
def start_command(ctx: click.Context) -> None:
    """Freeze configuration and open claims."""
    session = _open(ctx)
    session.vesting.start()
    session.save()
    click.echo("Vesting started")


# ── fund ──────────────────────────────────────────────────────────────────────

@click.command(name="fund")
@click.argument("handle")
@click.argument("amount")
@click.pass_context
@handle_errors
def fund_command(ctx: click.Context, handle: str, amount: str) -> None:
    """
    Add AMOUNT (whole units, e.g. 1800 or 0.5) of asset HANDLE to the pool.
    """
    session = _open(ctx)
    token = session.treasury.token(handle)
    try:
        native = parse_units(amount, token.decimals)
    except (TypeError, ValueError) as exc:
        raise click.BadParameter(str(exc), param_hint="AMOUNT")
    session.treasury.fund(handle, native)
    session.save()
    click.echo(
        f"Funded {format_units(native, token.decimals)} {handle}  "
        f"(pool: {format_units(session.treasury.pool_balance(handle), token.decimals)})"
    )


# ── claim ─────────────────────────────────────────────────────────────────────

@click.command(name="claim")
@click.argument("beneficiary")
@click.option("--at", default=None, metavar="TIMESTAMP",
              help="Settle as of this past time (unix seconds or ISO-8601). Default: now.")
@click.option("--strict", is_flag=True, default=False,
              help="Fail if BENEFICIARY is not in the schedule instead of doing nothing.")
@click.option("--format", "fmt", type=click.Choice(["human", "json"]), default="human",
              show_default=True)
@click.pass_context
@handle_errors
def claim_command(
    ctx:         click.Context,
    beneficiary: str,
    at:          Optional[str],
    strict:      bool,
    fmt:         str,
) -> None:
    """
    Settle whatever BENEFICIARY is owed, on anyone's behalf.

    --at may back-date a settlement but never move it past the current time:
    the claim is saved, and nothing may be paid before it has vested.
    """
    pinned = _parse_at(at)
    if pinned is not None and pinned > unix_now():
        raise click.BadParameter("cannot settle at a future time", param_hint="--at")
    session = Session.open(ctx.obj["home"], at=pinned)
    result = session.vesting.settle(beneficiary, strict=strict)
    session.save()

    if fmt == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_settlement(result)


def _print_settlement(result: SettlementResult) -> None:
    if result.is_noop:
        click.echo(f"Nothing to claim for {result.beneficiary}")
        return
    for leg in result.disbursements:
        click.echo(f"  paid {format_units(leg.normalized_amount)}  via {leg.handle}")
    click.echo(
        f"Claimed {format_units(result.disbursed)} for {result.beneficiary}"
        f"  (total claimed {format_units(result.claimed_after)})"
    )
    if result.remaining:
        click.echo(click.style(
            f"  {format_units(result.remaining)} still owed; pool underfunded",
            fg="yellow",
        ))


# ── info ──────────────────────────────────────────────────────────────────────

@click.command(name="info")
@click.argument("beneficiary")
@click.option("--at", default=None, metavar="TIMESTAMP",
              help="Report as of this time. Default: now.")
@click.option("--format", "fmt", type=click.Choice(["human", "json"]), default="human",
              show_default=True)
@click.pass_context
@handle_errors
def info_command(ctx: click.Context, beneficiary: str, at: Optional[str], fmt: str) -> None:
    """Show allocation, vested, claimed and claimable amounts for BENEFICIARY."""
    session = _open(ctx, at)
    info = session.vesting.vesting_info(beneficiary)
    if fmt == "json":
        out = info.to_dict()
        out["started"] = session.vesting.started
        click.echo(json.dumps(out, indent=2))
    else:
        _print_info(info, session.vesting.started)


def _print_info(info: VestingInfo, started: bool) -> None:
    click.echo(f"Beneficiary  {info.beneficiary}")
    click.echo(f"Status       {'started' if started else 'configuring'}")
    if not info.allocation:
        click.echo("Allocation   none")
    for ts, amount in info.allocation:
        click.echo(f"  {format_timestamp(ts)}  {format_units(amount)}")
    click.echo(f"Total        {format_units(info.total_allocation)}")
    click.echo(f"Vested       {format_units(info.vested)}")
    click.echo(f"Claimed      {format_units(info.claimed)}")
    click.echo(f"Claimable    {format_units(info.claimable)}")
    if info.next_milestone is not None:
        click.echo(f"Next         {format_timestamp(info.next_milestone)}")


# ── assets ────────────────────────────────────────────────────────────────────

@click.command(name="assets")
@click.option("--format", "fmt", type=click.Choice(["human", "json"]), default="human",
              show_default=True)
@click.pass_context
@handle_errors
def assets_command(ctx: click.Context, fmt: str) -> None:
    """List registered assets in disbursement order with pool balances."""
    session = _open(ctx)
    rows = []
    for asset in session.vesting.list_assets():
        balance = (
            session.treasury.pool_balance(asset.handle)
            if asset.handle in session.treasury.tokens else 0
        )
        rows.append({**asset.to_dict(), "pool_balance": str(balance)})

    if fmt == "json":
        click.echo(json.dumps(rows, indent=2))
        return
    if not rows:
        click.echo("No assets registered")
    for row in rows:
        click.echo(
            f"  [{row['index']}] {row['handle']}  decimals={row['decimals']}  "
            f"pool={format_units(int(row['pool_balance']), row['decimals'])}"
        )


# ── verify ────────────────────────────────────────────────────────────────────

@click.command(name="verify")
@click.option("--quiet", is_flag=True, default=False,
              help="Suppress output. Exit code only (0=valid, 1=invalid, 2=error).")
@click.pass_context
@handle_errors
def verify_command(ctx: click.Context, quiet: bool) -> None:
    """Verify the disbursement journal: sequence, hash chain, signatures."""
    home = Path(ctx.obj["home"])
    path = home / JOURNAL_FILE
    if not path.exists():
        if not quiet:
            click.echo(click.style(f"ERROR: journal not found: {path}", fg="red"), err=True)
        sys.exit(2)

    key_path = home / KEY_FILE
    key = OperatorKey.load(key_path) if key_path.exists() else OperatorKey.generate()
    report = Journal(path, key).verify()

    if not quiet:
        counts = "  ".join(f"{k}: {v}" for k, v in sorted(report.record_type_counts.items()))
        click.echo(f"Journal      {path}")
        click.echo(f"Records      {report.total_records}  {counts}")
        for v in report.violations:
            click.echo(click.style(
                f"  seq {v.at_sequence}  {v.violation_type}  {v.detail}", fg="red",
            ))
        if report.valid:
            click.echo(click.style("VALID", fg="green"))
        else:
            click.echo(click.style(f"INVALID  {len(report.violations)} violation(s)", fg="red"))

    sys.exit(0 if report.valid else 1)
