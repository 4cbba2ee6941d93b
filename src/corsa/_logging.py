"""Structured logging for corsa.

corsa logs through structlog loggers wrapped around stdlib loggers in the
`corsa` namespace. Level filtering happens first, against the stdlib level, so
an application that never configures logging pays nothing for channel debug
events and sees none of them.

`configure_logging()` attaches a single structlog `ProcessorFormatter` handler.
By default it sits on the `corsa` logger only. With `capture_foreign=True` it
replaces the root handlers instead, so records from other libraries share the
same JSON (or console) output.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, TextIO

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

    LogHook = Callable[[dict[str, Any]], None]

__all__ = [
    'add_log_hook',
    'clear_log_hooks',
    'configure_logging',
    'get_logger',
    'remove_log_hook',
]

LOGGER_NAMESPACE = 'corsa'

_log_hooks: list[LogHook] = []

logging.getLogger(LOGGER_NAMESPACE).addHandler(logging.NullHandler())


def _run_hooks(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for hook in tuple(_log_hooks):
        try:
            hook(dict(event_dict))
        except Exception:  # noqa: S110
            pass  # a failing hook must not break logging
    return event_dict


def _pre_chain() -> list[Any]:
    """Processors applied to corsa events and to foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt='iso', utc=True),
        structlog.stdlib.ExtraAdder(),
        _run_hooks,
    ]


def _event_chain() -> list[Any]:
    return [
        structlog.stdlib.filter_by_level,
        *_pre_chain(),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]


class _CorsaHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Marker type so reconfiguring replaces only the handler corsa installed."""


def configure_logging(
    level: str = 'INFO',
    *,
    json_output: bool = True,
    capture_foreign: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Send corsa log events to `stream` (stderr by default).

    Calling it again replaces the handler installed by the previous call.

    Args:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL").
        json_output: If True, emit JSON lines. If False, use console output,
            colored when the stream is a terminal.
        capture_foreign: If True, install the handler on the root logger so
            every stdlib record is rendered the same way.
        stream: Where rendered lines are written.
    """
    out = stream if stream is not None else sys.stderr
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=out.isatty())
    )
    handler = _CorsaHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    numeric_level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    corsa_logger = logging.getLogger(LOGGER_NAMESPACE)
    target = logging.getLogger() if capture_foreign else corsa_logger

    for existing in (logging.getLogger(), corsa_logger):
        for old in [h for h in existing.handlers if isinstance(h, _CorsaHandler)]:
            existing.removeHandler(old)
    if capture_foreign:
        target.handlers.clear()

    target.addHandler(handler)
    target.setLevel(numeric_level)
    corsa_logger.setLevel(numeric_level)
    corsa_logger.propagate = capture_foreign


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Get a structlog logger over the stdlib logger `name`.

    Args:
        name: Logger name, usually the caller's `__name__`. Defaults to the
            `corsa` namespace.
        **initial_values: Key/value pairs bound into every event.

    Returns:
        A lazily bound structlog stdlib `BoundLogger`.
    """
    return structlog.wrap_logger(
        logging.getLogger(name or LOGGER_NAMESPACE),
        processors=_event_chain(),
        wrapper_class=structlog.stdlib.BoundLogger,
        **initial_values,
    )


def add_log_hook(hook: LogHook) -> None:
    """Call `hook` with a copy of every event dict that passes the level filter.

    Useful for metrics or for asserting on log events in tests.
    """
    _log_hooks.append(hook)


def remove_log_hook(hook: LogHook) -> None:
    """Unregister `hook`. Unknown hooks are ignored."""
    if hook in _log_hooks:
        _log_hooks.remove(hook)


def clear_log_hooks() -> None:
    _log_hooks.clear()
