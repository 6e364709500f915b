"""CLI command implementations — run once, run on a schedule, inspect stored state."""

from __future__ import annotations

import logging
from datetime import datetime

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from src.config.settings import ConfigurationError, Settings
from src.core.result import Failure
from src.jobs.forwarder import build_state_store, run_once
from src.jobs.scheduler import DEFAULT_RUN_TIME, create_forwarder_scheduler
from src.scheduling.duplicates import normalize

logger = logging.getLogger(__name__)
console = Console(width=200)

_PREVIEW_CHARS = 120


def load_settings() -> Settings:
    """Settings from the environment, or a clean CLI error listing what's missing."""
    try:
        return Settings.from_env()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc


def parse_now(value: str | None, settings: Settings) -> datetime | None:
    """Parse the --now override; naive values are read in the configured timezone."""
    if value is None:
        return None
    try:
        moment = datetime.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter(f"{value!r} is not an ISO-8601 timestamp", param_hint="--now") from exc
    if moment.tzinfo is not None:
        return moment
    if settings.timezone is not None:
        return moment.replace(tzinfo=settings.timezone)
    return moment.astimezone()


@click.command()
@click.option("--now", "now_text", default=None, help="Run as if it were this ISO-8601 time.")
def run(now_text: str | None) -> None:
    """Decide whether this period's email is due; if so forward it and record it."""
    settings = load_settings()
    report = run_once(settings, parse_now(now_text, settings))
    click.echo(report)


@click.command()
@click.option(
    "--at", "run_time", default=None,
    help="Daily time (HH:MM) to check whether an email is due. "
    f"Defaults to the run-after time of a weekly schedule, else {DEFAULT_RUN_TIME}.",
)
def schedule(run_time: str | None) -> None:
    """Stay running and check once a day (only one check ever runs at a time)."""
    settings = load_settings()
    scheduler = create_forwarder_scheduler(settings, run_time, click.echo)
    click.echo(f"Scheduler started for {settings.job_name!r} — Ctrl+C to stop")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Interrupted — goodbye")


@click.command()
def state() -> None:
    """Show what was sent last, as recorded in the state store."""
    settings = load_settings()
    store = build_state_store(settings)
    loaded = store.load()
    if isinstance(loaded, Failure):
        raise click.ClickException(loaded.reason.message)

    run_state = loaded.value
    if run_state is None:
        console.print(
            f"[yellow]No state stored at {store.path} on {store.store_name} yet — "
            "the next scheduled run will send.[/yellow]"
        )
        return

    body = normalize(run_state.email_contents, settings.duplicate_check).strip()
    preview = body[:_PREVIEW_CHARS] + ("…" if len(body) > _PREVIEW_CHARS else "")

    table = Table(box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    table.add_row("Store", f"{store.store_name} {store.path}")
    table.add_row("Last email sent", run_state.last_email_sent.isoformat())
    table.add_row("Stored characters", str(len(run_state.email_contents)))
    table.add_row(
        f"Compared text ({settings.duplicate_check.value})",
        escape(preview) if preview else "[dim](empty)[/dim]",
    )
    console.print(table)
