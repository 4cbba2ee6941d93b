"""Pytest configuration and shared fixtures for corsa tests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def reset_config() -> Generator[None]:
    """Drop any configuration set by a previous test."""
    import corsa._config as config_module

    config_module._config = None
    yield
    config_module._config = None


@pytest.fixture
def restore_root_logger() -> Generator[None]:
    """Restore root and corsa logger state changed by configure_logging()."""
    loggers = [logging.getLogger(), logging.getLogger('corsa')]
    saved = [(lg, lg.handlers[:], lg.level, lg.propagate) for lg in loggers]
    yield
    for lg, handlers, level, propagate in saved:
        lg.handlers[:] = handlers
        lg.setLevel(level)
        lg.propagate = propagate
