"""Unlock command implementation.

Removes a lock left behind by a run that crashed or was killed.
"""

from pathlib import Path

import typer
from typing_extensions import Annotated

from popfetch.config.settings import check_account_name
from popfetch.errors import ConfigurationError
from popfetch.fetch import AccountLock

app = typer.Typer(help="Remove a stale account lock")


@app.callback(invoke_without_command=True)
def unlock(
    ctx: typer.Context,
    account: Annotated[str, typer.Argument(help="Account whose lock to remove")],
    lock_dir: Annotated[
        Path | None, typer.Option("--lock-dir", help="Directory for account locks")
    ] = None,
):
    """Remove the lock of an account.

    Only do this when no popfetch run is working on the account.
    """
    try:
        check_account_name(account)
    except ConfigurationError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)

    lock = AccountLock(account, lock_dir)
    pid = lock.owner_pid()

    if not lock.break_lock():
        typer.echo(f"Account '{account}' is not locked.")
        return

    owner = f" (held by PID {pid})" if pid is not None else ""
    typer.echo(f"Removed lock {lock.lock_file}{owner}")
