"""Fetch command implementation."""

from pathlib import Path

import typer
from typing_extensions import Annotated

from popfetch.config import get_account_names, load_config
from popfetch.errors import ConfigurationError
from popfetch.fetch import AccountStatus, AccountSummary, Orchestrator
from popfetch.log import configure_logging

app = typer.Typer(help="Fetch mail from POP3 accounts into Maildir")


@app.callback(invoke_without_command=True)
def fetch(
    ctx: typer.Context,
    account: Annotated[
        list[str] | None,
        typer.Option("--account", "-a", help="Fetch only this account (repeatable)"),
    ] = None,
    config_file: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file to use")
    ] = None,
    sequential: Annotated[
        bool, typer.Option("--sequential", help="Fetch accounts one at a time")
    ] = False,
    lock_dir: Annotated[
        Path | None, typer.Option("--lock-dir", help="Directory for account locks")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show protocol and per-message detail")
    ] = False,
    quiet: Annotated[
        bool, typer.Option("--quiet", "-q", help="Only report failed accounts")
    ] = False,
):
    """Fetch mail from all configured POP3 accounts."""
    configure_logging(verbose=verbose, quiet=quiet)

    try:
        config = load_config(config_file)
        names = get_account_names(config)
    except ConfigurationError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    if not names:
        typer.echo("No accounts configured.", err=True)
        typer.echo()
        typer.echo("Run 'popfetch config init' and add an account to config.toml")
        raise typer.Exit(1)

    if account:
        unknown = [name for name in account if name not in names]
        if unknown:
            typer.echo(f"Unknown account(s): {', '.join(unknown)}", err=True)
            raise typer.Exit(1)
        names = account

    report = Orchestrator(config, lock_dir=lock_dir).run(names, sequential=sequential)

    for summary in report.summaries:
        if quiet and not summary.status.is_error:
            continue
        typer.echo(_format_summary(summary))
        if verbose:
            for line in _format_messages(summary):
                typer.echo(line)

    if not quiet:
        typer.echo(f"Total: {len(report.summaries)} accounts in {report.elapsed:.2f}s")

    if report.has_errors:
        raise typer.Exit(1)


def _format_summary(summary: AccountSummary) -> str:
    """Format the one-line report for an account."""
    if summary.status is not AccountStatus.ok:
        line = f"{summary.name}: {summary.status.value}"
        if summary.error:
            line += f" ({summary.error})"
        return line

    line = (
        f"{summary.name}: {summary.message_count} messages, "
        f"{summary.delivered} delivered, {summary.deleted} deleted"
    )
    if summary.failed:
        line += f", {summary.failed} failed"
    return line + f" ({summary.elapsed:.2f}s)"


def _format_messages(summary: AccountSummary) -> list[str]:
    """Format per-message outcomes for verbose output."""
    lines = []
    for message in summary.messages:
        size = "?" if message.size is None else message.size
        line = (
            f"  #{message.index} ({size} bytes): "
            f"{message.delivery.value}, {message.deletion.value}"
        )
        if message.error:
            line += f" - {message.error}"
        lines.append(line)
    return lines
