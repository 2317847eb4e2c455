"""Fixtures for configuration documents, files and snapshots."""

import json
from pathlib import Path
from typing import Any

import pytest

from models.config import Configuration
from models.validation import ConfigSnapshot, compile_configuration

WORK_URL = "https://example.com/work.ics"
HOME_URL = "https://example.com/home.ics"


def url_source(url: str = WORK_URL, *steps: dict) -> dict[str, Any]:
    """Create a URL source entry."""
    source: dict[str, Any] = {"url": url}
    if steps:
        source["steps"] = list(steps)
    return source


def calendar_source(calendar_id: str, *steps: dict) -> dict[str, Any]:
    """Create a calendar reference source entry."""
    source: dict[str, Any] = {"calendar": calendar_id}
    if steps:
        source["steps"] = list(steps)
    return source


def create_config_document(
    calendars: dict[str, Any] | None = None,
    server: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a configuration document with sensible defaults.

    Args:
        calendars: Calendars keyed by id (defaults to one "work" calendar
            with a single URL source).
        server: Server section; omitted when None.

    Returns:
        A plain mapping, as decoded from JSON.
    """
    if calendars is None:
        calendars = {"work": {"sources": [url_source(WORK_URL)]}}
    document: dict[str, Any] = {"calendars": calendars}
    if server is not None:
        document["server"] = server
    return document


def write_config(path: Path, document: dict[str, Any] | str) -> Path:
    """Write a document as JSON (or raw text) and return the path."""
    text = document if isinstance(document, str) else json.dumps(document)
    path.write_text(text, encoding="utf-8")
    return path


def create_snapshot(
    calendars: dict[str, Any] | None = None,
    server: dict[str, Any] | None = None,
) -> ConfigSnapshot:
    """Create a compiled snapshot from a document built by create_config_document()."""
    return compile_configuration(Configuration(**create_config_document(calendars, server)))


@pytest.fixture
def config_document():
    """Provide the default configuration document."""
    return create_config_document()


@pytest.fixture
def config_file(tmp_path):
    """Provide a JSON config file holding the default document."""
    return write_config(tmp_path / "config.json", create_config_document())
