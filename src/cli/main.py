"""CLI entry point for the Gmail forwarder bot."""

import logging

import click
from dotenv import load_dotenv

from src.cli.commands import run, schedule, state

logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log progress at INFO level.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Forward this period's notification email, at most once per period."""
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,  # keep report output clean
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    ctx.ensure_object(dict)


cli.add_command(run)
cli.add_command(schedule)
cli.add_command(state)
