"""Shared pytest fixtures."""

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from src.config.settings import GmailCredentials, Settings
from src.scheduling.schedule import MonthlySchedule


@pytest.fixture
def june_first() -> datetime:
    """The reference run time used throughout: 1 June 2018, midnight UTC."""
    return datetime(2018, 6, 1, 0, 0, 0, tzinfo=timezone.utc)


def _make_settings(**overrides: object) -> Settings:
    """Settings with every required value filled in; override any field."""
    values: dict[str, object] = {
        "gmail": GmailCredentials("client-id", "client-secret", "refresh-token"),
        "query": "from:rota@example.com",
        "schedule": MonthlySchedule((1,)),
        "from_address": "bot@example.com",
        "from_fullname": "Rota Bot",
        "to_address": "team@example.com",
        "to_fullname": "The Team",
        "bcc_addresses": ("alice@example.com", "bob@example.com"),
        "dropbox_access_token": "dropbox-token",
    }
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Factory fixture: make_settings(schedule=..., subject_template=...)."""
    return _make_settings


@pytest.fixture
def settings() -> Settings:
    return _make_settings()
