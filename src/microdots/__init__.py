"""Public package surface for ``microdots``.

Exposes the composition-root entry points (``status``, ``relink``,
``repair_infrastructure``, ``ensure_dotlocal``, ``install``), the report types
they return, the error taxonomy, and the logging hooks so scripts can drive
Microdots without going through the CLI.
"""

from __future__ import annotations

from .core import (
    DotlocalSetup,
    StatusReport,
    build_resolver,
    ensure_dotlocal,
    install,
    relink,
    repair_infrastructure,
    status,
    validate_configuration,
)
from .domain.errors import (
    CircularReference,
    ConfigParseAnomaly,
    Conflict,
    FatalError,
    MicrodotsError,
    NotFound,
    PermissionDenied,
)
from .domain.models import (
    DiscoveryMethod,
    InfrastructureReport,
    InstallReport,
    LinkAction,
    LinkOutcome,
    LinkReport,
    LocalPathResolution,
    Origin,
)
from .observability import bind_trace_id, get_logger

__all__ = [
    "CircularReference",
    "ConfigParseAnomaly",
    "Conflict",
    "DiscoveryMethod",
    "DotlocalSetup",
    "FatalError",
    "InfrastructureReport",
    "InstallReport",
    "LinkAction",
    "LinkOutcome",
    "LinkReport",
    "LocalPathResolution",
    "MicrodotsError",
    "NotFound",
    "Origin",
    "PermissionDenied",
    "StatusReport",
    "bind_trace_id",
    "build_resolver",
    "ensure_dotlocal",
    "get_logger",
    "install",
    "relink",
    "repair_infrastructure",
    "status",
    "validate_configuration",
]
