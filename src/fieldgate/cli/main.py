"""fieldgate CLI entry point."""

import logging
import os

import click


@click.group()
@click.option(
    "--log-level",
    default=lambda: os.environ.get("FIELDGATE_LOG_LEVEL", "warning"),
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    help="Logging level (default: $FIELDGATE_LOG_LEVEL or warning).",
)
def cli(log_level: str):
    """fieldgate — declarative form validation CLI."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")


# Register subcommands
from fieldgate.cli.check_cmd import check, lint  # noqa: E402

cli.add_command(lint)
cli.add_command(check)
