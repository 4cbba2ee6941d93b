"""Configuration: ChannelConfig, environment detection, and initialization."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from corsa._logging import configure_logging

__all__ = [
    'ChannelConfig',
    'get_config',
    'init',
]

_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass(frozen=True)
class ChannelConfig:
    """Process-wide defaults for channels.

    Attributes:
        default_capacity: Buffer capacity used by `channel()` when no capacity
            is passed. None = unbounded.
        log_level: Logging level (e.g., "DEBUG", "INFO"). None = silent.
    """

    default_capacity: int | None = None
    log_level: str | None = None


# Global configuration (set by init() or on first get_config())
_config: ChannelConfig | None = None


def _detect_capacity() -> int | None:
    """Read the default capacity from CORSA_DEFAULT_CAPACITY.

    Empty, "unbounded" and "inf" mean unbounded. Invalid values are ignored with
    a warning.
    """
    raw = os.environ.get('CORSA_DEFAULT_CAPACITY', '').strip().lower()
    if raw in ('', 'unbounded', 'inf'):
        return None
    try:
        capacity = int(raw)
    except ValueError:
        logging.warning("Invalid CORSA_DEFAULT_CAPACITY value '%s', using unbounded", raw)
        return None
    if capacity < 0:
        logging.warning("Negative CORSA_DEFAULT_CAPACITY value '%s', using unbounded", raw)
        return None
    return capacity


def _detect_log_level() -> str | None:
    """Read the log level from CORSA_LOG_LEVEL (None when unset or unknown)."""
    raw = os.environ.get('CORSA_LOG_LEVEL', '').strip().upper()
    if not raw:
        return None
    if raw not in _LOG_LEVELS:
        logging.warning("Unknown CORSA_LOG_LEVEL value '%s', logging stays silent", raw)
        return None
    return raw


def init(
    default_capacity: int | None = None,
    log_level: str | None = None,
) -> ChannelConfig:
    """Initialize corsa with the given defaults.

    Args:
        default_capacity: Default buffer capacity for `channel()`.
            Read from CORSA_DEFAULT_CAPACITY if None.
        log_level: Logging level ("DEBUG", "INFO", etc.).
            Read from CORSA_LOG_LEVEL if None; None = silent.

    Returns:
        The ChannelConfig that was set.

    Raises:
        ValueError: If default_capacity is negative.

    Example:
        ```python
        import corsa

        corsa.init(default_capacity=64, log_level="DEBUG")
        tx, rx = corsa.channel()  # bounded at 64
        ```
    """
    global _config  # noqa: PLW0603

    if default_capacity is None:
        resolved_capacity = _detect_capacity()
    elif default_capacity < 0:
        msg = f'default_capacity must be >= 0, got {default_capacity}'
        raise ValueError(msg)
    else:
        resolved_capacity = default_capacity

    resolved_level = log_level.upper() if log_level is not None else _detect_log_level()

    _config = ChannelConfig(default_capacity=resolved_capacity, log_level=resolved_level)

    if resolved_level is not None:
        configure_logging(resolved_level)

    return _config


def get_config() -> ChannelConfig:
    """Get the current configuration, initializing from the environment on first use.

    Example:
        ```python
        from corsa import init, get_config

        init(default_capacity=8)
        assert get_config().default_capacity == 8
        ```
    """
    if _config is None:
        return init()
    return _config
