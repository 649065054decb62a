"""Config command implementation.

Manages the popfetch configuration file.
"""

from pathlib import Path

import typer
from typing_extensions import Annotated

from popfetch.config import (
    CONFIG_FILE,
    get_account,
    init_config,
    load_config,
    set_config_value,
)
from popfetch.config.paths import CONFIG_DIR, DEFAULT_MAILDIR
from popfetch.config.schema import AccountConfig
from popfetch.errors import ConfigurationError
from popfetch.storage import ensure_maildir

app = typer.Typer(help="Manage configuration")

# Keys whose values are never printed
_SECRET_KEYS = {"password"}


@app.command()
def init(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite existing config")
    ] = False,
    maildir: Annotated[
        Path, typer.Option("--maildir", help="Maildir to prepare for delivery")
    ] = DEFAULT_MAILDIR,
):
    """Initialize configuration directory, template config file and Maildir."""
    created = init_config(overwrite=force)

    if created:
        typer.echo(f"Created config directory: {CONFIG_DIR}")
        typer.echo(f"Created config file: {CONFIG_FILE}")
    else:
        typer.echo(f"Config already exists at {CONFIG_FILE}")
        typer.echo("Use --force to overwrite.")

    # Delivery never creates directories, so set up cur/ new/ tmp/ now
    try:
        ensure_maildir(maildir.expanduser())
    except OSError as e:
        typer.echo(f"Cannot create Maildir {maildir}: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Maildir ready: {maildir}")

    if created:
        typer.echo()
        typer.echo("Edit the config file to add your POP3 accounts.")


@app.command()
def show(
    account: Annotated[
        str | None, typer.Option("--account", "-a", help="Show specific account")
    ] = None,
):
    """Display current configuration.

    Passwords are redacted in output.
    """
    try:
        config = load_config()
    except ConfigurationError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    if not config:
        typer.echo("No configuration found.")
        typer.echo(f"Run 'popfetch config init' to create {CONFIG_FILE}")
        return

    # Display defaults section
    if "defaults" in config:
        typer.echo("[defaults]")
        for key, value in config["defaults"].items():
            typer.echo(f"  {key} = {value}")
        typer.echo()

    # Display accounts
    accounts = config.get("accounts", {})

    if not accounts:
        typer.echo("No accounts configured.")
        return

    if account:
        # Show specific account
        acct = get_account(config, account)
        if acct is not None:
            _display_account(account, acct)
        else:
            typer.echo(f"Account '{account}' not found.", err=True)
            raise typer.Exit(1)
    else:
        # Show all accounts
        for name, acct in accounts.items():
            _display_account(name, acct)


def _display_account(name: str, account: AccountConfig) -> None:
    """Display a single account configuration with redacted secrets."""
    typer.echo(f"[accounts.{name}]")
    for key, value in account.items():
        if key in _SECRET_KEYS:
            # Redact secret but indicate it's set
            display_value = "***REDACTED***" if value else "(not set)"
        else:
            display_value = value
        typer.echo(f"  {key} = {display_value}")
    typer.echo()


@app.command("set")
def set_value(
    key: Annotated[
        str,
        typer.Argument(help="Configuration key (dot notation, e.g., 'defaults.timeout')"),
    ],
    value: Annotated[str, typer.Argument(help="Configuration value")],
):
    """Set a configuration value using dot notation.

    Examples:
        popfetch config set defaults.timeout 60
        popfetch config set accounts.work.keep true
    """
    try:
        set_config_value(key, value)
        typer.echo(f"Set {key} = {value}")
    except (ValueError, ConfigurationError) as e:
        typer.echo(f"Invalid value: {e}", err=True)
        raise typer.Exit(1)
