"""In-process memo for dotlocal discovery results."""

from __future__ import annotations

from ..domain.models import LocalPathResolution
from ..observability import log_debug


class PathCache:
    """Hold at most one :class:`LocalPathResolution` for the current process.

    Why
    ----
    ``status`` and ``relink`` consult the resolver several times per run; the
    checks touch up to a dozen paths. The cache is injected into the resolver
    rather than kept as module state so invalidation is an explicit call.

    Examples
    --------
    >>> from microdots.domain.models import NOT_FOUND
    >>> cache = PathCache()
    >>> cache.get() is None
    True
    >>> cache.set(NOT_FOUND)
    >>> cache.get() is NOT_FOUND
    True
    >>> cache.clear()
    >>> cache.get() is None
    True
    """

    def __init__(self) -> None:
        self._value: LocalPathResolution | None = None

    def get(self) -> LocalPathResolution | None:
        return self._value

    def set(self, resolution: LocalPathResolution) -> None:
        self._value = resolution

    def clear(self) -> None:
        if self._value is not None:
            log_debug("resolution_cache_cleared", phase="discovery", path=None)
        self._value = None
