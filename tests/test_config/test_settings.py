"""Tests for Settings.from_env — environments are plain dicts, never os.environ."""

from datetime import time
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from src.config.settings import REQUIRED_SETTINGS, ConfigurationError, Settings
from src.scheduling.duplicates import DuplicateCheck
from src.scheduling.schedule import MonthlySchedule, WeeklySchedule
from src.storage.state import DEFAULT_STATE_PATH


def _env(**overrides: str) -> dict[str, str]:
    env = {
        "GMAILER_GMAIL_CLIENT_ID": "client-id",
        "GMAILER_GMAIL_CLIENT_SECRET": "client-secret",
        "GMAILER_GMAIL_REFRESH_TOKEN": "refresh-token",
        "GMAILER_DROPBOX_ACCESS_TOKEN": "dropbox-token",
        "GMAILER_GMAIL_QUERY": "from:rota@example.com",
        "GMAILER_RUN_ON_DAYS": "1, 15",
        "GMAILER_FROM_ADDRESS": "bot@example.com",
        "GMAILER_FROM_FULLNAME": "Rota Bot",
        "GMAILER_TO_ADDRESS": "team@example.com",
        "GMAILER_TO_FULLNAME": "The Team",
        "GMAILER_BCC_ADDRESS": "alice@example.com, bob@example.com",
    }
    env.update(overrides)
    return env


def _load(env: dict[str, str]) -> Settings:
    return Settings.from_env(env, config_dir=None)


class TestRequiredValues:
    def test_complete_environment(self) -> None:
        settings = _load(_env())
        assert settings.gmail.client_id == "client-id"
        assert settings.gmail.access_token is None
        assert settings.query == "from:rota@example.com"
        assert settings.schedule == MonthlySchedule((1, 15))
        assert settings.bcc_addresses == ("alice@example.com", "bob@example.com")
        assert settings.dropbox_access_token == "dropbox-token"

    def test_defaults(self) -> None:
        settings = _load(_env())
        assert settings.duplicate_check is DuplicateCheck.SEPARATOR
        assert settings.state_path == DEFAULT_STATE_PATH
        assert settings.state_backend == "dropbox"
        assert settings.subject_template is None
        assert settings.timezone is None
        assert settings.job_name == "gmailer-bot"

    def test_single_missing_key(self) -> None:
        env = _env()
        del env["GMAILER_GMAIL_QUERY"]
        with pytest.raises(ConfigurationError) as exc_info:
            _load(env)
        assert str(exc_info.value) == "Config value required for GMAILER_GMAIL_QUERY but not found."

    def test_every_missing_key_reported_at_once(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            _load({})
        assert str(exc_info.value) == (
            f"Config values required for {', '.join(REQUIRED_SETTINGS)} but not found."
        )

    def test_blank_value_counts_as_missing(self) -> None:
        with pytest.raises(ConfigurationError, match="GMAILER_TO_FULLNAME"):
            _load(_env(GMAILER_TO_FULLNAME="   "))

    def test_local_backend_needs_no_dropbox_token(self) -> None:
        env = _env(GMAILER_STATE_BACKEND="local", GMAILER_LOCAL_STATE_DIR="/tmp/gmailer")
        del env["GMAILER_DROPBOX_ACCESS_TOKEN"]
        settings = _load(env)
        assert settings.state_backend == "local"
        assert settings.local_state_dir == Path("/tmp/gmailer")
        assert settings.dropbox_access_token == ""


class TestCredentialFiles:
    def test_missing_env_value_read_from_file(self, tmp_path: Path) -> None:
        env = _env()
        del env["GMAILER_GMAIL_REFRESH_TOKEN"]
        (tmp_path / "GMAILER_GMAIL_REFRESH_TOKEN").write_text("from-file\n", encoding="utf-8")

        settings = Settings.from_env(env, config_dir=tmp_path)

        assert settings.gmail.refresh_token == "from-file"

    def test_environment_wins_over_file(self, tmp_path: Path) -> None:
        (tmp_path / "GMAILER_GMAIL_QUERY").write_text("from:file", encoding="utf-8")
        assert Settings.from_env(_env(), config_dir=tmp_path).query == "from:rota@example.com"

    def test_missing_config_dir_is_fine(self, tmp_path: Path) -> None:
        assert Settings.from_env(_env(), config_dir=tmp_path / "absent").query


class TestOptionalValues:
    def test_weekly_schedule_with_run_after(self) -> None:
        settings = _load(_env(GMAILER_RUN_ON_DAYS="Tuesday, friday", GMAILER_RUN_AFTER_TIME="09:30"))
        assert settings.schedule == WeeklySchedule((1, 4), time(9, 30))

    def test_duplicate_check_mode(self) -> None:
        settings = _load(_env(GMAILER_DUPLICATE_CHECK="Message-ID"))
        assert settings.duplicate_check is DuplicateCheck.MESSAGE_ID

    def test_timezone_and_state_path(self) -> None:
        settings = _load(_env(GMAILER_TIMEZONE="Europe/London", GMAILER_STATE_PATH="/rota.json"))
        assert settings.timezone == ZoneInfo("Europe/London")
        assert settings.state_path == "/rota.json"
        assert settings.now().tzinfo == ZoneInfo("Europe/London")

    def test_subject_template(self) -> None:
        settings = _load(_env(GMAILER_SUBJECT_TEMPLATE="{{subject}} ({{month}})"))
        assert settings.subject_template == "{{subject}} ({{month}})"

    def test_access_token_is_optional_extra(self) -> None:
        assert _load(_env(GMAILER_GMAIL_ACCESS_TOKEN="ya29")).gmail.access_token == "ya29"

    def test_now_is_timezone_aware_without_zone(self) -> None:
        assert _load(_env()).now().tzinfo is not None


class TestInvalidValues:
    @pytest.mark.parametrize(
        ("overrides", "fragment"),
        [
            ({"GMAILER_RUN_ON_DAYS": "1, 32"}, "GMAILER_RUN_ON_DAYS must be comma-separated days"),
            ({"GMAILER_RUN_ON_DAYS": "Funday", "GMAILER_RUN_AFTER_TIME": "09:00"}, "GMAILER_RUN_ON_DAYS"),
            ({"GMAILER_RUN_ON_DAYS": "Monday", "GMAILER_RUN_AFTER_TIME": "9am"}, "GMAILER_RUN_AFTER_TIME"),
            ({"GMAILER_TO_ADDRESS": "not an address"}, "GMAILER_TO_ADDRESS"),
            ({"GMAILER_BCC_ADDRESS": "alice@example.com, nope"}, "GMAILER_BCC_ADDRESS"),
            ({"GMAILER_DUPLICATE_CHECK": "fuzzy"}, "GMAILER_DUPLICATE_CHECK must be one of"),
            ({"GMAILER_TIMEZONE": "Mars/Olympus"}, "GMAILER_TIMEZONE"),
            ({"GMAILER_STATE_BACKEND": "s3"}, "GMAILER_STATE_BACKEND must be one of"),
            ({"GMAILER_SUBJECT_TEMPLATE": "{{weather}}"}, "unknown placeholder(s): weather"),
        ],
    )
    def test_rejected(self, overrides: dict[str, str], fragment: str) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            _load(_env(**overrides))
        message = str(exc_info.value)
        assert message.startswith("Invalid configuration:")
        assert fragment in message

    def test_all_problems_reported_together(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            _load(_env(GMAILER_TIMEZONE="Nowhere/Else", GMAILER_DUPLICATE_CHECK="fuzzy"))
        assert "GMAILER_TIMEZONE" in str(exc_info.value)
        assert "GMAILER_DUPLICATE_CHECK" in str(exc_info.value)

    def test_configuration_error_is_value_error(self) -> None:
        assert issubclass(ConfigurationError, ValueError)
