"""Shared fixtures for dockerstep unit tests."""

from __future__ import annotations

import logging
from typing import Iterator

import pytest
import structlog

from dockerstep.logging import set_correlation_id
from dockerstep.settings import Server, Settings
from tests.unit.helpers import RecordingBuilder, make_server


@pytest.fixture
def builder() -> RecordingBuilder:
    """Create a recording client builder."""
    return RecordingBuilder()


@pytest.fixture
def server() -> Server:
    """Create a fully populated server credential."""
    return make_server()


@pytest.fixture
def settings(server: Server) -> Settings:
    """Create a settings store holding the test server credential."""
    return Settings(servers=[server])


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Reset logging configuration after each test."""
    yield
    root = logging.getLogger()
    root.handlers.clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    set_correlation_id(None)
