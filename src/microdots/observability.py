"""Structured logging helpers shared by every Microdots component.

Purpose
    Keep every emission of logging data predictable and contextual without
    forcing callers to adopt a specific logging backend. The library stays
    silent until the CLI (or a host application) attaches a handler.

Contents
    - ``TRACE_ID``: context variable storing the active run identifier.
    - ``get_logger``: returns the shared package logger (quiet by default).
    - ``bind_trace_id``: binds or clears the active run identifier.
    - ``log_debug`` / ``log_info`` / ``log_warning`` / ``log_error``: emit
      structured entries via a single private emitter.
    - ``make_event``: convenience builder for structured event payloads.
    - ``attach_stderr_handler``: opt-in console handler used by ``--verbose``.

System Integration
    Used by adapters, the application services, and the composition root so
    that every resolution step, link operation, and install run carries the
    same run metadata.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any, Final, Mapping

TRACE_ID: ContextVar[str | None] = ContextVar("microdots_trace_id", default=None)
"""Identifier of the current CLI run propagated through logging helpers.

Why
    A single ``relink`` touches many files; correlating those events requires
    a shared identifier without threading it through every call.
"""

_LOGGER: Final[logging.Logger] = logging.getLogger("microdots")
_LOGGER.addHandler(logging.NullHandler())


class _ContextFormatter(logging.Formatter):
    """Render the structured ``context`` mapping after the message."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = getattr(record, "context", None)
        if not context:
            return base
        fields = " ".join(f"{key}={value}" for key, value in context.items() if value is not None)
        return f"{base} {fields}" if fields else base


def get_logger() -> logging.Logger:
    """Expose the package logger so applications may attach handlers.

    Why
        Leaves the library silent by default while giving host applications full
        control over handler and formatter configuration.
    """

    return _LOGGER


def attach_stderr_handler(level: int = logging.DEBUG) -> logging.Handler:
    """Attach a console handler writing structured records to ``stderr``.

    Why
        ``microdots --verbose`` should narrate discovery and linking decisions
        without contaminating the summary written to ``stdout``.
    Outputs
        The installed handler so callers may remove it again.
    """

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_ContextFormatter("[%(levelname)s] %(message)s"))
    _LOGGER.addHandler(handler)
    _LOGGER.setLevel(level)
    return handler


def bind_trace_id(trace_id: str | None) -> None:
    """Bind or clear the active run identifier.

    What
        Stores ``trace_id`` in :data:`TRACE_ID`; ``None`` clears the binding.
    Side Effects
        Mutates the context variable visible to subsequent logging helpers.

    Examples
    --------
    >>> bind_trace_id('abc123')
    >>> TRACE_ID.get()
    'abc123'
    >>> bind_trace_id(None)
    >>> TRACE_ID.get() is None
    True
    """

    TRACE_ID.set(trace_id)


def log_debug(message: str, **fields: Any) -> None:
    """Emit a structured debug log entry that includes the trace context."""

    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    """Emit a structured info log entry that includes the trace context."""

    _emit(logging.INFO, message, fields)


def log_warning(message: str, **fields: Any) -> None:
    """Emit a structured warning log entry that includes the trace context."""

    _emit(logging.WARNING, message, fields)


def log_error(message: str, **fields: Any) -> None:
    """Emit a structured error log entry that includes the trace context."""

    _emit(logging.ERROR, message, fields)


def make_event(
    phase: str,
    path: str | None,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a structured logging payload for a lifecycle event.

    Inputs
        phase: Name of the step being observed (``"discovery"``, ``"public"``,
            ``"local"``, ``"infrastructure"``...).
        path: Filesystem path associated with the event, if available.
        payload: Optional mapping with extra diagnostic detail.
    Outputs
        dict[str, Any]: Data safe to unpack into :func:`log_*` helpers.

    Examples
    --------
    >>> make_event('public', None, {'topics': 3})
    {'phase': 'public', 'path': None, 'topics': 3}
    """

    event = _base_event(phase, path)
    return _merge_payload(event, payload)


def _emit(level: int, message: str, fields: Mapping[str, Any]) -> None:
    """Send a log entry through the shared logger with contextual metadata."""

    _LOGGER.log(level, message, extra={"context": _with_trace(fields)})


def _with_trace(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Attach the current trace identifier to the provided structured fields."""

    context = {"trace_id": TRACE_ID.get()}
    context.update(fields)
    return context


def _base_event(phase: str, path: str | None) -> dict[str, Any]:
    return {"phase": phase, "path": path}


def _merge_payload(event: dict[str, Any], payload: Mapping[str, Any] | None) -> dict[str, Any]:
    if payload:
        event |= dict(payload)
    return event
