"""Runtime settings — read once at startup from the environment and validated eagerly.

Values come from environment variables (``.env`` is loaded by the CLI via
python-dotenv).  A key missing from the environment may instead be supplied
as a file named after the key inside the ``credentials/`` directory, which
keeps long OAuth secrets out of shell history.

Validation is all-or-nothing: every missing key is reported in one
ConfigurationError before any network call is made.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from email.utils import parseaddr
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.jobs.templating import placeholders
from src.scheduling.duplicates import DuplicateCheck
from src.scheduling.schedule import (
    MonthlySchedule,
    Schedule,
    WeeklySchedule,
    parse_days_of_month,
    parse_days_of_week,
    parse_run_after,
)
from src.storage.state import DEFAULT_STATE_PATH

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path("credentials")
_DEFAULT_JOB_NAME = "gmailer-bot"

DROPBOX_TOKEN_KEY = "GMAILER_DROPBOX_ACCESS_TOKEN"

#: Keys that must be present (and non-empty) for any run.
REQUIRED_SETTINGS: tuple[str, ...] = (
    "GMAILER_GMAIL_CLIENT_ID",
    "GMAILER_GMAIL_CLIENT_SECRET",
    "GMAILER_GMAIL_REFRESH_TOKEN",
    DROPBOX_TOKEN_KEY,
    "GMAILER_GMAIL_QUERY",
    "GMAILER_RUN_ON_DAYS",
    "GMAILER_FROM_ADDRESS",
    "GMAILER_FROM_FULLNAME",
    "GMAILER_TO_ADDRESS",
    "GMAILER_TO_FULLNAME",
    "GMAILER_BCC_ADDRESS",
)

#: Names a GMAILER_SUBJECT_TEMPLATE may reference.
SUBJECT_BINDINGS: frozenset[str] = frozenset({"subject", "month", "year", "date"})

STATE_BACKENDS: tuple[str, ...] = ("dropbox", "local")


class ConfigurationError(ValueError):
    """Raised at startup when required settings are missing or malformed."""


@dataclass(frozen=True)
class GmailCredentials:
    """OAuth client + refresh token for the mailbox the bot reads and sends from."""

    client_id: str
    client_secret: str
    refresh_token: str
    access_token: str | None = None


@dataclass(frozen=True)
class Settings:
    """Everything one run needs; constructed once and passed explicitly."""

    gmail: GmailCredentials
    query: str
    schedule: Schedule
    from_address: str
    from_fullname: str
    to_address: str
    to_fullname: str
    bcc_addresses: tuple[str, ...]
    dropbox_access_token: str = ""
    duplicate_check: DuplicateCheck = DuplicateCheck.SEPARATOR
    state_path: str = DEFAULT_STATE_PATH
    state_backend: str = "dropbox"
    local_state_dir: Path = field(default_factory=lambda: Path("data"))
    subject_template: str | None = None
    timezone: tzinfo | None = None
    job_name: str = _DEFAULT_JOB_NAME

    def now(self) -> datetime:
        """Current time as an aware datetime in the configured (or local) zone."""
        if self.timezone is not None:
            return datetime.now(self.timezone)
        return datetime.now().astimezone()

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        config_dir: Path | None = _DEFAULT_CONFIG_DIR,
    ) -> Settings:
        """Build Settings from environment variables (or credential files).

        Raises:
            ConfigurationError: listing every missing key, or every malformed value.
        """
        env = os.environ if environ is None else environ

        def lookup(key: str) -> str | None:
            value = (env.get(key) or "").strip()
            if not value and config_dir is not None and (config_dir / key).is_file():
                value = (config_dir / key).read_text(encoding="utf-8").strip()
            return value or None

        backend = (lookup("GMAILER_STATE_BACKEND") or "dropbox").lower()
        required = [
            key for key in REQUIRED_SETTINGS
            if not (backend == "local" and key == DROPBOX_TOKEN_KEY)
        ]
        missing = [key for key in required if lookup(key) is None]
        if missing:
            plural = "s" if len(missing) > 1 else ""
            raise ConfigurationError(
                f"Config value{plural} required for {', '.join(missing)} but not found."
            )

        values = {key: lookup(key) or "" for key in required}
        problems: list[str] = []

        if backend not in STATE_BACKENDS:
            problems.append(
                f"GMAILER_STATE_BACKEND must be one of {', '.join(STATE_BACKENDS)}, got {backend!r}"
            )

        schedule = _parse_schedule(
            values["GMAILER_RUN_ON_DAYS"], lookup("GMAILER_RUN_AFTER_TIME"), problems
        )

        bcc = tuple(a.strip() for a in values["GMAILER_BCC_ADDRESS"].split(",") if a.strip())
        for key, addresses in (
            ("GMAILER_FROM_ADDRESS", [values["GMAILER_FROM_ADDRESS"]]),
            ("GMAILER_TO_ADDRESS", [values["GMAILER_TO_ADDRESS"]]),
            ("GMAILER_BCC_ADDRESS", list(bcc)),
        ):
            bad = [a for a in addresses if not _is_email_address(a)]
            if bad or not addresses:
                problems.append(f"{key} is not a valid address list: {', '.join(bad) or '(empty)'}")

        duplicate_check = DuplicateCheck.SEPARATOR
        mode = lookup("GMAILER_DUPLICATE_CHECK")
        if mode is not None:
            try:
                duplicate_check = DuplicateCheck(mode.lower())
            except ValueError:
                choices = ", ".join(m.value for m in DuplicateCheck)
                problems.append(f"GMAILER_DUPLICATE_CHECK must be one of {choices}, got {mode!r}")

        timezone: tzinfo | None = None
        zone_name = lookup("GMAILER_TIMEZONE")
        if zone_name is not None:
            try:
                timezone = ZoneInfo(zone_name)
            except (ZoneInfoNotFoundError, ValueError):
                problems.append(f"GMAILER_TIMEZONE {zone_name!r} is not a known timezone")

        subject_template = lookup("GMAILER_SUBJECT_TEMPLATE")
        if subject_template is not None:
            unknown = placeholders(subject_template) - SUBJECT_BINDINGS
            if unknown:
                problems.append(
                    "GMAILER_SUBJECT_TEMPLATE uses unknown placeholder(s): "
                    + ", ".join(sorted(unknown))
                )

        if problems or schedule is None:
            raise ConfigurationError("Invalid configuration:\n  " + "\n  ".join(problems))

        settings = cls(
            gmail=GmailCredentials(
                client_id=values["GMAILER_GMAIL_CLIENT_ID"],
                client_secret=values["GMAILER_GMAIL_CLIENT_SECRET"],
                refresh_token=values["GMAILER_GMAIL_REFRESH_TOKEN"],
                access_token=lookup("GMAILER_GMAIL_ACCESS_TOKEN"),
            ),
            query=values["GMAILER_GMAIL_QUERY"],
            schedule=schedule,
            from_address=values["GMAILER_FROM_ADDRESS"],
            from_fullname=values["GMAILER_FROM_FULLNAME"],
            to_address=values["GMAILER_TO_ADDRESS"],
            to_fullname=values["GMAILER_TO_FULLNAME"],
            bcc_addresses=bcc,
            dropbox_access_token=values.get(DROPBOX_TOKEN_KEY, ""),
            duplicate_check=duplicate_check,
            state_path=lookup("GMAILER_STATE_PATH") or DEFAULT_STATE_PATH,
            state_backend=backend,
            local_state_dir=Path(lookup("GMAILER_LOCAL_STATE_DIR") or "data"),
            subject_template=subject_template,
            timezone=timezone,
            job_name=lookup("GMAILER_JOB_NAME") or _DEFAULT_JOB_NAME,
        )
        logger.debug("Loaded settings for job %r (%s)", settings.job_name, settings.schedule)
        return settings


def _parse_schedule(
    run_on_days: str, run_after: str | None, problems: list[str]
) -> Schedule | None:
    """Day-of-month list → monthly; weekday names plus a run-after time → weekly."""
    if run_after is None:
        try:
            return MonthlySchedule(parse_days_of_month(run_on_days))
        except ValueError:
            problems.append(
                f"GMAILER_RUN_ON_DAYS must be comma-separated days of the month, got {run_on_days!r}"
            )
            return None

    schedule_problems = len(problems)
    try:
        days = parse_days_of_week(run_on_days)
    except ValueError as exc:
        problems.append(f"GMAILER_RUN_ON_DAYS: {exc}")
    try:
        after = parse_run_after(run_after)
    except ValueError:
        problems.append(f"GMAILER_RUN_AFTER_TIME must be HH:MM, got {run_after!r}")
    if len(problems) > schedule_problems:
        return None
    return WeeklySchedule(days, after)


def _is_email_address(value: str) -> bool:
    _, address = parseaddr(value)
    return bool(address) and address == value.strip() and "@" in address and " " not in address
