"""Unit tests for configuration document parsing.

Tests cover schema defaults, the url/calendar source choice, step
validation, the three document formats and environment overrides.
"""

import json

import pytest

from models.config import (
    AllowStep,
    CalendarSource,
    Configuration,
    DenyStep,
    ReplaceStep,
    StripStep,
    UrlSource,
    detect_format,
    load_document,
    parse_configuration,
)
from models.exceptions import ConfigError
from tests.fixtures.core.configs import WORK_URL, calendar_source, create_config_document, url_source


def parse(document, format="json"):
    return parse_configuration(json.dumps(document).encode(), format)


# =============================================================================
# Defaults
# =============================================================================


class TestDefaults:
    """Tests for default values."""

    def test_server_defaults(self, config_document):
        config = parse(config_document)

        assert config.server.bind_address == "127.0.0.1"
        assert config.server.port == 8080
        assert config.server.fetch_timeout == 30.0

    def test_step_defaults(self):
        allow = AllowStep(patterns=["x"])
        replace = ReplaceStep(pattern="x")

        assert allow.mode == "any"
        assert allow.fields == ["summary", "description"]
        assert replace.replacement == ""
        assert replace.field == "summary"

    def test_calendar_steps_default_empty(self, config_document):
        config = parse(config_document)

        assert config.calendars["work"].steps == []
        assert config.calendars["work"].sources[0].steps == []


# =============================================================================
# Sources
# =============================================================================


class TestSources:
    """Tests for the url/calendar source choice."""

    def test_url_and_calendar_sources(self):
        config = parse(
            create_config_document(
                {
                    "base": {"sources": [url_source(WORK_URL)]},
                    "derived": {"sources": [calendar_source("base")]},
                }
            )
        )

        base_source = config.calendars["base"].sources[0]
        derived_source = config.calendars["derived"].sources[0]
        assert isinstance(base_source, UrlSource)
        assert isinstance(derived_source, CalendarSource)
        assert base_source.identifier == WORK_URL
        assert derived_source.identifier == "calendar:base"

    def test_both_keys_rejected(self):
        document = create_config_document(
            {"work": {"sources": [{"url": WORK_URL, "calendar": "other"}]}}
        )

        with pytest.raises(ConfigError, match="both 'url' and 'calendar'"):
            parse(document)

    def test_neither_key_rejected(self):
        document = create_config_document({"work": {"sources": [{"steps": []}]}})

        with pytest.raises(ConfigError, match="either 'url' or 'calendar'"):
            parse(document)

    def test_empty_url_rejected(self):
        with pytest.raises(ConfigError):
            parse(create_config_document({"work": {"sources": [{"url": ""}]}}))

    def test_unknown_source_key_rejected(self):
        document = create_config_document(
            {"work": {"sources": [{"url": WORK_URL, "filters": []}]}}
        )

        with pytest.raises(ConfigError):
            parse(document)

    def test_calendar_without_sources_rejected(self):
        with pytest.raises(ConfigError):
            parse(create_config_document({"work": {"sources": []}}))

    def test_no_calendars_rejected(self):
        with pytest.raises(ConfigError, match="No calendars configured"):
            parse({"calendars": {}})


# =============================================================================
# Steps
# =============================================================================


class TestSteps:
    """Tests for step validation."""

    def test_steps_discriminated_by_type(self):
        document = create_config_document(
            {
                "work": {
                    "sources": [
                        url_source(
                            WORK_URL,
                            {"type": "deny", "patterns": ["Lunch"]},
                            {"type": "strip", "field": "reminder"},
                        )
                    ]
                }
            }
        )
        steps = parse(document).calendars["work"].sources[0].steps

        assert isinstance(steps[0], DenyStep)
        assert isinstance(steps[1], StripStep)

    def test_strip_accepts_component_key(self):
        step = StripStep.model_validate({"type": "strip", "component": "reminder"})

        assert step.field == "reminder"

    def test_strip_rejects_other_components(self):
        with pytest.raises(ValueError):
            StripStep.model_validate({"type": "strip", "field": "attendee"})

    def test_unknown_step_type_rejected(self):
        document = create_config_document(
            {"work": {"sources": [url_source(WORK_URL, {"type": "explode"})]}}
        )

        with pytest.raises(ConfigError):
            parse(document)

    def test_empty_patterns_rejected(self):
        with pytest.raises(ValueError):
            AllowStep(patterns=[])

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            AllowStep(patterns=["x"], fields=["attendee"])

    def test_unknown_transform_rejected(self):
        document = create_config_document(
            {"work": {"sources": [url_source(WORK_URL, {"type": "case", "transform": "camel"})]}}
        )

        with pytest.raises(ConfigError):
            parse(document)


# =============================================================================
# Formats
# =============================================================================


class TestFormats:
    """Tests for format detection and document decoding."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("config.json", "json"),
            ("config.yaml", "yaml"),
            ("config.YML", "yaml"),
            ("config.toml", "toml"),
            ("config.conf", "json"),
        ],
    )
    def test_detect_format(self, name, expected):
        assert detect_format(name) == expected

    def test_yaml_document(self):
        raw = b"""
calendars:
  work:
    sources:
      - url: https://example.com/work.ics
        steps:
          - type: deny
            patterns: ["Lunch"]
"""
        config = parse_configuration(raw, "yaml")

        assert config.calendars["work"].sources[0].url == WORK_URL

    def test_toml_document(self):
        raw = b"""
[server]
port = 9000

[[calendars.work.sources]]
url = "https://example.com/work.ics"

[[calendars.work.steps]]
type = "case"
transform = "title"
"""
        config = parse_configuration(raw, "toml")

        assert config.server.port == 9000
        assert config.calendars["work"].steps[0].transform == "title"

    def test_invalid_json(self):
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_document(b"{not json", "json")

    def test_invalid_yaml(self):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_document(b"calendars: [unclosed", "yaml")

    def test_invalid_toml(self):
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_document(b"calendars = = 1", "toml")

    def test_top_level_must_be_mapping(self):
        with pytest.raises(ConfigError, match="mapping"):
            load_document(b"[1, 2]", "json")


# =============================================================================
# Environment overrides
# =============================================================================


class TestEnvironmentOverrides:
    """Tests for ICAL_MERGE_ prefixed environment variables."""

    def test_env_overrides_document(self, monkeypatch):
        monkeypatch.setenv("ICAL_MERGE_SERVER__PORT", "9090")
        config = parse(create_config_document(server={"port": 8081, "bind_address": "0.0.0.0"}))

        assert config.server.port == 9090
        assert config.server.bind_address == "0.0.0.0"

    def test_env_override_is_validated(self, monkeypatch):
        monkeypatch.setenv("ICAL_MERGE_SERVER__PORT", "not-a-port")

        with pytest.raises(ConfigError):
            parse(create_config_document())

    def test_configuration_is_frozen(self, config_document):
        config = Configuration(**config_document)

        with pytest.raises(ValueError):
            config.server = None
