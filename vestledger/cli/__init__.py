"""
vestledger/cli/__init__.py

vestledger CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    vestledger = "vestledger.cli:cli"

Adding a new command:
    1. Add a @click.command() to vestledger/cli/commands.py
    2. cli.add_command(your_command) below
"""

import logging

import click

from vestledger.config import resolve_home
from vestledger.cli.commands import (
    assets_command,
    claim_command,
    deploy_command,
    fund_command,
    info_command,
    set_assets_command,
    set_schedule_command,
    start_command,
    verify_command,
)


@click.group()
@click.version_option(package_name="vestledger")
@click.option("--home", default=None, metavar="DIR",
              help="State directory. Default: $VESTLEDGER_HOME or .vestledger")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log engine activity.")
@click.pass_context
def cli(ctx: click.Context, home: str, verbose: bool) -> None:
    """
    vestledger — milestone vesting ledger with multi-asset settlement.

    \b
    Quick start:
      vestledger deploy networks.yaml --network local --start
      vestledger fund USDT 1800
      vestledger claim 0xBeneficiary
      vestledger info 0xBeneficiary
      vestledger verify
    """
    ctx.ensure_object(dict)
    ctx.obj["home"] = resolve_home(home)
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


cli.add_command(deploy_command)
cli.add_command(set_assets_command)
cli.add_command(set_schedule_command)
cli.add_command(start_command)
cli.add_command(fund_command)
cli.add_command(claim_command)
cli.add_command(info_command)
cli.add_command(assets_command)
cli.add_command(verify_command)
