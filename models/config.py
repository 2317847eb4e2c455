"""Configuration document models.

This module defines the declarative shape of a configuration document:
server settings, virtual calendars, their sources and processing steps.
Documents may be JSON, YAML or TOML. Scalar fields can be overridden from
the environment with the ``ICAL_MERGE_`` prefix and ``__`` as the nesting
delimiter, e.g. ``ICAL_MERGE_SERVER__PORT=9090``. Environment values win over
the document.

Semantic checks that span calendars (dangling references, cycles) and regex
compilation happen in ``models.validation``.
"""

import json
import tomllib
from pathlib import Path
from typing import Annotated, Any, Literal, Union

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    Discriminator,
    Field,
    Tag,
    ValidationError,
    field_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    SettingsError,
)

from models.event import EventField
from models.exceptions import ConfigError

ConfigFormat = Literal["json", "yaml", "toml"]
MatchMode = Literal["any", "all"]
CaseTransform = Literal["lower", "upper", "sentence", "title"]
StripComponent = Literal["reminder"]

ENV_PREFIX = "ICAL_MERGE_"

_EXTENSION_FORMATS: dict[str, ConfigFormat] = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
}


# Steps


class AllowStep(BaseModel):
    """Keep only events matching the patterns.

    Args:
        patterns: Regular expressions tested against the chosen fields.
        mode: ``any`` keeps the event if one pattern matches, ``all`` requires
            every pattern to match.
        fields: Event fields searched by each pattern.
    """

    type: Literal["allow"] = "allow"
    patterns: list[str] = Field(min_length=1, description="Regex patterns")
    mode: MatchMode = Field(default="any", description="Pattern combination mode")
    fields: list[EventField] = Field(
        default_factory=lambda: ["summary", "description"],
        min_length=1,
        description="Fields to search",
    )

    class Config:
        extra = "forbid"
        frozen = True


class DenyStep(BaseModel):
    """Drop events matching the patterns. Same shape as AllowStep."""

    type: Literal["deny"] = "deny"
    patterns: list[str] = Field(min_length=1, description="Regex patterns")
    mode: MatchMode = Field(default="any", description="Pattern combination mode")
    fields: list[EventField] = Field(
        default_factory=lambda: ["summary", "description"],
        min_length=1,
        description="Fields to search",
    )

    class Config:
        extra = "forbid"
        frozen = True


class ReplaceStep(BaseModel):
    """Substitute every match of a pattern in one field.

    Args:
        pattern: Regular expression to search for.
        replacement: Replacement text; may reference capture groups as
            ``$1``, ``${name}``, ``\\1`` or ``\\g<name>``.
        field: The field to rewrite.
    """

    type: Literal["replace"] = "replace"
    pattern: str = Field(description="Regex pattern")
    replacement: str = Field(default="", description="Replacement text")
    field: EventField = Field(default="summary", description="Field to rewrite")

    class Config:
        extra = "forbid"
        frozen = True


class CaseStep(BaseModel):
    """Change the letter case of one field."""

    type: Literal["case"] = "case"
    transform: CaseTransform = Field(description="Case transformation")
    field: EventField = Field(default="summary", description="Field to transform")

    class Config:
        extra = "forbid"
        frozen = True


class StripStep(BaseModel):
    """Remove a sub-component from events. Only reminders are supported."""

    type: Literal["strip"] = "strip"
    field: StripComponent = Field(
        validation_alias=AliasChoices("field", "component"),
        description="Component to remove",
    )

    class Config:
        extra = "forbid"
        frozen = True


Step = Annotated[
    Union[AllowStep, DenyStep, ReplaceStep, CaseStep, StripStep],
    Field(discriminator="type"),
]


# Sources


class UrlSource(BaseModel):
    """A remote iCalendar feed.

    Args:
        url: Feed address. ``webcal://`` and ``webcals://`` are accepted.
        steps: Steps applied to every event of this feed.
    """

    url: str = Field(min_length=1, description="Feed URL")
    steps: list[Step] = Field(default_factory=list, description="Source steps")

    class Config:
        extra = "forbid"
        frozen = True

    @property
    def identifier(self) -> str:
        return self.url


class CalendarSource(BaseModel):
    """Another virtual calendar used as a source.

    Args:
        calendar: Id of the referenced calendar.
        steps: Steps applied on top of the referenced calendar's merged events.
    """

    calendar: str = Field(min_length=1, description="Referenced calendar id")
    steps: list[Step] = Field(default_factory=list, description="Source steps")

    class Config:
        extra = "forbid"
        frozen = True

    @property
    def identifier(self) -> str:
        return f"calendar:{self.calendar}"


def _source_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "calendar" if "calendar" in value else "url"
    if isinstance(value, CalendarSource):
        return "calendar"
    return "url"


SourceConfig = Annotated[
    Union[
        Annotated[UrlSource, Tag("url")],
        Annotated[CalendarSource, Tag("calendar")],
    ],
    Discriminator(_source_kind),
]


class CalendarConfig(BaseModel):
    """One virtual calendar.

    Args:
        sources: Ordered sources; output keeps this order.
        steps: Steps applied after all sources are merged.
    """

    sources: list[SourceConfig] = Field(min_length=1, description="Calendar sources")
    steps: list[Step] = Field(default_factory=list, description="Calendar steps")

    class Config:
        extra = "forbid"
        frozen = True

    @field_validator("sources", mode="before")
    @classmethod
    def validate_source_discriminator(cls, sources: Any) -> Any:
        """Require exactly one of ``url`` / ``calendar`` on every source.

        Raises:
            ValueError: If a source sets both keys or neither.
        """
        if not isinstance(sources, list):
            return sources
        for index, source in enumerate(sources):
            if not isinstance(source, dict):
                continue
            has_url = "url" in source
            has_calendar = "calendar" in source
            if has_url and has_calendar:
                raise ValueError(
                    f"source {index} sets both 'url' and 'calendar'; choose one"
                )
            if not has_url and not has_calendar:
                raise ValueError(
                    f"source {index} must set either 'url' or 'calendar'"
                )
        return sources


class ServerConfig(BaseModel):
    """HTTP server and fetch settings.

    Args:
        bind_address: Address the server listens on.
        port: Port the server listens on.
        fetch_timeout: Per-source fetch timeout in seconds.
    """

    bind_address: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Listen port")
    fetch_timeout: float = Field(default=30.0, gt=0, description="Fetch timeout (s)")

    class Config:
        extra = "forbid"
        frozen = True


class Configuration(BaseSettings):
    """A complete configuration document.

    Args:
        server: Server settings.
        calendars: Virtual calendars keyed by id; the id is the routing key.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="forbid",
        frozen=True,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    calendars: dict[str, CalendarConfig] = Field(description="Virtual calendars")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment overrides the document, which arrives as init kwargs.
        return env_settings, init_settings

    @field_validator("calendars")
    @classmethod
    def validate_calendars(cls, calendars: dict[str, CalendarConfig]) -> dict[str, CalendarConfig]:
        """Require at least one calendar with a non-blank id.

        Raises:
            ValueError: If no calendars are configured or an id is blank.
        """
        if not calendars:
            raise ValueError("No calendars configured")
        for calendar_id in calendars:
            if not calendar_id.strip():
                raise ValueError("Calendar ids cannot be empty")
        return calendars


# Loading


def detect_format(path: str | Path) -> ConfigFormat:
    """Guess the document format from the file extension.

    Unknown extensions are treated as JSON.
    """
    return _EXTENSION_FORMATS.get(Path(path).suffix.lower(), "json")


def load_document(raw: bytes, format: ConfigFormat) -> dict[str, Any]:
    """Decode raw document bytes into a plain mapping.

    Args:
        raw: Document contents.
        format: Document syntax.

    Returns:
        The decoded top-level mapping.

    Raises:
        ConfigError: If the bytes aren't valid for the format or the top level
            isn't a mapping.
    """
    try:
        text = raw.decode("utf-8-sig")
        if format == "json":
            data = json.loads(text)
        elif format == "yaml":
            data = yaml.safe_load(text)
        elif format == "toml":
            data = tomllib.loads(text)
        else:
            raise ConfigError(f"Unsupported configuration format: {format}")
    except UnicodeDecodeError as exc:
        raise ConfigError(f"Configuration is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError("Configuration document must be a mapping at the top level")
    return data


def parse_configuration(raw: bytes, format: ConfigFormat) -> Configuration:
    """Decode and schema-validate a configuration document.

    Args:
        raw: Document contents.
        format: Document syntax.

    Returns:
        The validated declarative Configuration.

    Raises:
        ConfigError: If decoding or schema validation fails.
    """
    data = load_document(raw, format)
    try:
        return Configuration(**data)
    except ValidationError as exc:
        raise ConfigError(_format_validation_error(exc)) from exc
    except SettingsError as exc:
        # Malformed ICAL_MERGE_* override in the environment.
        raise ConfigError(f"Invalid configuration override: {exc}") from exc
    except TypeError as exc:
        # Non-string top-level keys (possible in YAML) can't become kwargs.
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _format_validation_error(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location or '<root>'}: {error.get('msg', 'invalid')}")
    return "Invalid configuration: " + "; ".join(messages)
