"""Tests for the click command line interface.

The merge commands run against a FakeFetcher patched in for CalendarFetcher,
and serve runs with uvicorn.run replaced, so no sockets are opened.
"""

import os

import pytest
from click.testing import CliRunner

import cli as cli_module
from cli import cli
from tests.fixtures.core.configs import (
    HOME_URL,
    WORK_URL,
    calendar_source,
    create_config_document,
    url_source,
    write_config,
)
from tests.fixtures.core.events import create_ics
from tests.fixtures.core.fetchers import FakeFetcher

WORK_ICS = create_ics(
    {"uid": "w1", "summary": "Standup", "location": "Room 4"},
    {"uid": "w2", "summary": "Lunch"},
)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def patched_fetcher(monkeypatch):
    """Replace CalendarFetcher in the cli module with a FakeFetcher."""
    fetcher = FakeFetcher({WORK_URL: WORK_ICS})
    monkeypatch.setattr(cli_module, "CalendarFetcher", lambda timeout: fetcher)
    return fetcher


# =============================================================================
# check
# =============================================================================


class TestCheck:
    """Tests for the check command."""

    def test_valid_configuration(self, runner, tmp_path):
        calendars = {
            "work": {"sources": [url_source(WORK_URL)]},
            "all": {"sources": [calendar_source("work"), url_source(HOME_URL)]},
        }
        path = write_config(tmp_path / "config.json", create_config_document(calendars))

        result = runner.invoke(cli, ["check", "--config", str(path)])

        assert result.exit_code == 0
        assert "Configuration OK: 2 calendar(s)" in result.output
        assert "    - calendar:work" in result.output
        assert f"    - {HOME_URL}" in result.output
        assert result.output.index("  all") < result.output.index("  work")

    def test_config_from_environment(self, runner, config_file):
        result = runner.invoke(cli, ["check"], env={"ICAL_MERGE_CONFIG": str(config_file)})

        assert result.exit_code == 0
        assert "Configuration OK: 1 calendar(s)" in result.output

    def test_yaml_configuration(self, runner, tmp_path):
        path = tmp_path / "calendars.yaml"
        path.write_text(
            "calendars:\n  work:\n    sources:\n      - url: https://example.com/work.ics\n",
            encoding="utf-8",
        )

        result = runner.invoke(cli, ["check", "--config", str(path)])

        assert result.exit_code == 0
        assert "Configuration OK: 1 calendar(s)" in result.output

    def test_cycle_is_reported(self, runner, tmp_path):
        calendars = {
            "a": {"sources": [calendar_source("b")]},
            "b": {"sources": [calendar_source("a")]},
        }
        path = write_config(tmp_path / "config.json", create_config_document(calendars))

        result = runner.invoke(cli, ["check", "--config", str(path)])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        assert "a -> b -> a" in result.output

    def test_invalid_json(self, runner, tmp_path):
        path = write_config(tmp_path / "config.json", "{ not json")

        result = runner.invoke(cli, ["check", "--config", str(path)])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_malformed_environment_override(self, runner, config_file):
        result = runner.invoke(
            cli, ["check", "--config", str(config_file)], env={"ICAL_MERGE_SERVER": "{not json"}
        )

        assert result.exit_code == 1
        assert "Invalid configuration override" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["check", "--config", str(tmp_path / "absent.json")])

        assert result.exit_code == 1
        assert "Cannot read configuration file" in result.output


# =============================================================================
# events / ical
# =============================================================================


class TestEvents:
    """Tests for the events command."""

    def test_prints_event_summaries(self, runner, config_file, patched_fetcher):
        result = runner.invoke(cli, ["events", "work", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Standup" in result.output
        assert "Lunch" in result.output
        assert "2 event(s), 0 source error(s)" in result.output
        assert patched_fetcher.urls == [WORK_URL]

    def test_source_errors_are_reported(self, runner, tmp_path, patched_fetcher):
        calendars = {"work": {"sources": [url_source(WORK_URL), url_source(HOME_URL)]}}
        path = write_config(tmp_path / "config.json", create_config_document(calendars))

        result = runner.invoke(cli, ["events", "work", "--config", str(path)])

        assert result.exit_code == 0
        assert f"Source error: {HOME_URL}" in result.output
        assert "2 event(s), 1 source error(s)" in result.output

    def test_unknown_calendar(self, runner, config_file, patched_fetcher):
        result = runner.invoke(cli, ["events", "missing", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Available calendars: work" in result.output
        assert patched_fetcher.calls == []


class TestIcal:
    """Tests for the ical command."""

    def test_writes_calendar_to_stdout(self, runner, config_file, patched_fetcher):
        result = runner.invoke(cli, ["ical", "work", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "BEGIN:VCALENDAR" in result.output
        assert "X-WR-CALNAME:work" in result.output
        assert "SUMMARY:Standup" in result.output

    def test_writes_calendar_to_file(self, runner, config_file, tmp_path, patched_fetcher):
        output = tmp_path / "merged.ics"

        result = runner.invoke(
            cli, ["ical", "work", "--config", str(config_file), "--output", str(output)]
        )

        assert result.exit_code == 0
        body = output.read_bytes()
        assert body.startswith(b"BEGIN:VCALENDAR")
        assert body.count(b"BEGIN:VEVENT") == 2
        assert "Wrote 2 event(s)" in result.output

    def test_steps_are_applied(self, runner, tmp_path, patched_fetcher):
        calendars = {
            "work": {
                "sources": [url_source(WORK_URL)],
                "steps": [{"type": "allow", "patterns": ["^Stand"]}],
            }
        }
        path = write_config(tmp_path / "config.json", create_config_document(calendars))

        result = runner.invoke(cli, ["ical", "work", "--config", str(path)])

        assert result.exit_code == 0
        assert "SUMMARY:Standup" in result.output
        assert "SUMMARY:Lunch" not in result.output


# =============================================================================
# serve
# =============================================================================


class TestServe:
    """Tests for the serve command."""

    @pytest.fixture
    def uvicorn_calls(self, monkeypatch):
        calls = []
        monkeypatch.setattr(cli_module.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
        # Registered so serve's environment writes are undone after the test.
        for name in ("CONFIG", "CONFIG_FORMAT", "POLL_INTERVAL", "LOG_LEVEL"):
            monkeypatch.setenv(f"ICAL_MERGE_{name}", "unset")
            monkeypatch.delenv(f"ICAL_MERGE_{name}")
        return calls

    def test_uses_server_section(self, runner, tmp_path, uvicorn_calls):
        document = create_config_document(server={"bind_address": "0.0.0.0", "port": 9000})
        path = write_config(tmp_path / "config.json", document)

        result = runner.invoke(cli, ["serve", "--config", str(path)])

        assert result.exit_code == 0
        assert uvicorn_calls == [("main:app", {"host": "0.0.0.0", "port": 9000, "log_level": "info"})]

    def test_options_override_config(self, runner, config_file, uvicorn_calls):
        result = runner.invoke(
            cli,
            ["--log-level", "debug", "serve", "--config", str(config_file), "--bind", "::1", "--port", "8123"],
        )

        assert result.exit_code == 0
        assert uvicorn_calls == [("main:app", {"host": "::1", "port": 8123, "log_level": "debug"})]

    def test_exports_settings_for_the_app(self, runner, config_file, uvicorn_calls):
        result = runner.invoke(
            cli, ["serve", "--config", str(config_file), "--poll-interval", "0.5", "--format", "json"]
        )

        assert result.exit_code == 0
        assert os.environ["ICAL_MERGE_CONFIG"] == str(config_file)
        assert os.environ["ICAL_MERGE_CONFIG_FORMAT"] == "json"
        assert os.environ["ICAL_MERGE_POLL_INTERVAL"] == "0.5"
        assert os.environ["ICAL_MERGE_LOG_LEVEL"] == "INFO"

    def test_invalid_config_does_not_start(self, runner, tmp_path, uvicorn_calls):
        path = write_config(tmp_path / "config.json", {"calendars": {}})

        result = runner.invoke(cli, ["serve", "--config", str(path)])

        assert result.exit_code == 1
        assert uvicorn_calls == []
