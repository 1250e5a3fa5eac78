"""
Keyplan CLI - Command line interface.

Each command builds one goal action and hands it to the planner.
"""

import asyncio
import sys
from pathlib import Path

import click
from loguru import logger

from keyplan import __version__
from keyplan.core.exceptions import KeyplanError, PlanAbortedError
from keyplan.core.types import AuthorizingGroupType, GroupRights

EXIT_INTERRUPTED = 130

AUTHORIZATION_TYPES = click.Choice([t.value for t in AuthorizingGroupType], case_sensitive=False)


@click.group()
@click.version_option(version=__version__, prog_name="keyplan")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default ~/.keyplan/config.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log to stderr as well")
@click.pass_context
def cli(ctx, config_path, verbose):
    """
    Keyplan - Plan and apply KeyHub directory changes.

    Every command describes a wanted state. Keyplan works out the steps to
    reach it, shows them, and executes them after confirmation.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    from keyplan.utils.logger import setup_logger

    setup_logger(verbose=verbose)


def _run_goal(ctx, action) -> None:
    """Load config, run the goal and map the outcome to an exit code."""
    from keyplan.action.runner import run
    from keyplan.audit.logger import AuditLogger
    from keyplan.config.loader import load_config
    from keyplan.ui.console import ConsoleUI
    from keyplan.utils.logger import setup_logger

    ui = ConsoleUI()
    try:
        config = load_config(ctx.obj["config_path"])
        setup_logger(verbose=ctx.obj["verbose"], config=config.logging)
        report = asyncio.run(run(config, action, ui=ui, audit=AuditLogger()))

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        ui.warning("\nInterrupted")
        sys.exit(EXIT_INTERRUPTED)

    except PlanAbortedError as e:
        logger.warning(str(e))
        ui.error(str(e))
        sys.exit(1)

    except KeyplanError as e:
        logger.error(f"Fatal error: {e}")
        ui.error(str(e))
        sys.exit(1)

    if not report.success:
        sys.exit(1)


@cli.command("ensure-in-group")
@click.argument("account")
@click.argument("group")
@click.option(
    "--rights",
    type=click.Choice(["manager", "normal"], case_sensitive=False),
    default=None,
    help="Required rights (any membership if omitted)",
)
@click.pass_context
def ensure_in_group(ctx, account, group, rights):
    """Make ACCOUNT a member of GROUP."""
    from keyplan.actions import AccountInGroup

    _run_goal(ctx, AccountInGroup(account, group, GroupRights(rights.upper()) if rights else None))


@cli.command("ensure-not-in-group")
@click.argument("account")
@click.argument("group")
@click.pass_context
def ensure_not_in_group(ctx, account, group):
    """Remove ACCOUNT from GROUP."""
    from keyplan.actions import AccountNotInGroup

    _run_goal(ctx, AccountNotInGroup(account, group))


@cli.command("ensure-in-ou")
@click.argument("account")
@click.argument("ou")
@click.pass_context
def ensure_in_ou(ctx, account, ou):
    """
    Add ACCOUNT to organizational unit OU.

    Pass "account-3-placeholder" as ACCOUNT to use a third account that
    logs in when needed.
    """
    from keyplan.actions import AccountInOU

    _run_goal(ctx, AccountInOU(account, ou))


@cli.command("connect-authorization")
@click.argument("subject")
@click.argument("authorizing")
@click.option("--type", "-t", "authorization_type", type=AUTHORIZATION_TYPES, required=True,
              help="Kind of authorization")
@click.pass_context
def connect_authorization(ctx, subject, authorizing, authorization_type):
    """Make AUTHORIZING the authorizing group of SUBJECT."""
    from keyplan.actions import ConnectGroupAuthorization

    _run_goal(
        ctx,
        ConnectGroupAuthorization(subject, authorizing, AuthorizingGroupType(authorization_type.upper())),
    )


@cli.command("disconnect-authorization")
@click.argument("subject")
@click.option("--type", "-t", "authorization_type", type=AUTHORIZATION_TYPES, required=True,
              help="Kind of authorization")
@click.pass_context
def disconnect_authorization(ctx, subject, authorization_type):
    """Remove the authorizing group of SUBJECT."""
    from keyplan.actions import DisconnectGroupAuthorization

    _run_goal(ctx, DisconnectGroupAuthorization(subject, AuthorizingGroupType(authorization_type.upper())))


@cli.command("transfer-ownership")
@click.argument("system")
@click.argument("name")
@click.argument("group")
@click.pass_context
def transfer_ownership(ctx, system, name, group):
    """Make GROUP the owner of group NAME on SYSTEM."""
    from keyplan.actions import GroupOwnerOfGroupOnSystem

    _run_goal(ctx, GroupOwnerOfGroupOnSystem(system, name, group))


@cli.command("set-secret")
@click.option("--secret", prompt="Client secret", hide_input=True, confirmation_prompt=True)
def set_secret(secret):
    """Store the OAuth2 client secret in the system keyring."""
    from keyplan.secrets.store import CLIENT_SECRET_NAME, SecretStore
    from keyplan.ui.console import ConsoleUI

    ui = ConsoleUI()
    store = SecretStore()
    if not store.is_secure:
        ui.error("No system keyring available, the secret cannot be stored")
        sys.exit(1)
    store.set(CLIENT_SECRET_NAME, secret)
    ui.success("Client secret stored")


def main() -> None:
    """Entry point for the keyplan CLI."""
    cli()


if __name__ == "__main__":
    main()
