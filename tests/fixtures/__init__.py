"""Test fixtures for ical-merge.

This package provides reusable test fixtures:
- core: Events and iCalendar bodies, configuration documents and
  snapshots, and a scripted fake fetcher
- api: TestClient setup with injected store and fetcher
"""
