"""Unit tests for structured logging and settings."""

import json
import logging

from casework.config import Settings
from casework.logging import JSONFormatter


class TestJSONFormatter:

    def test_extra_fields_are_merged(self):
        record = logging.LogRecord(
            "casework.cases", logging.INFO, __file__, 10, "Saved %s", ("int-1",), None
        )
        record.case_id = "case-1"
        record.event = "intervention_saved"

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Saved int-1"
        assert data["level"] == "INFO"
        assert data["case_id"] == "case-1"
        assert data["event"] == "intervention_saved"
        assert "args" not in data


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TIMEZONE", raising=False)

        settings = Settings(_env_file=None)

        assert settings.timezone == "Europe/Madrid"
        assert settings.tzinfo.key == "Europe/Madrid"
        assert settings.default_event_minutes == 60

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("TIMEZONE", "Atlantic/Canary")
        monkeypatch.setenv("RECENT_ACTIVITY_DAYS", "7")

        settings = Settings(_env_file=None)

        assert settings.tzinfo.key == "Atlantic/Canary"
        assert settings.recent_activity_days == 7
