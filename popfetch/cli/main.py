"""Main CLI entry point for popfetch."""

import typer

from popfetch import __version__
from popfetch.cli import commands

app = typer.Typer(
    name="popfetch",
    help="Fetch mail from POP3 accounts into local Maildir mailboxes",
    no_args_is_help=True,
)

# Register command groups
app.add_typer(commands.fetch.app, name="fetch")
app.add_typer(commands.unlock.app, name="unlock")
app.add_typer(commands.config.app, name="config")


@app.command()
def version():
    """Show version information."""
    typer.echo(f"popfetch version {__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
