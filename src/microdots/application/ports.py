"""Application-layer ports describing collaborator responsibilities.

Purpose
-------
Define the structural contracts that adapters must satisfy so the application
services (symlink engine, infrastructure linker, installer) can be composed and
tested without depending on concrete implementations.

Contents
--------
* :class:`ConfigLoader` – extracts the explicit local-path override.
* :class:`ResolutionCache` – memoises a :class:`LocalPathResolution`.
* :class:`LocalPathResolver` – runs the precedence discovery.
* :class:`TopicEnumerator` – lists topics and their convention members.
* :class:`LinkPrimitive` – the single "replace link at path" mutation.

System Role
-----------
These protocols keep the dependency rule intact: application services import
only this module and the domain, while :mod:`microdots.core` wires in the
default adapters.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from ..domain.models import LocalPathResolution, Origin, Topic


@runtime_checkable
class ConfigLoader(Protocol):
    """Read the explicit dotlocal override from a ``dotfiles.conf`` file."""

    def load(self, config_path: Path) -> str | None:
        """Return the configured path (unexpanded) or ``None``."""


@runtime_checkable
class ResolutionCache(Protocol):
    """In-process memo for the last resolution."""

    def get(self) -> LocalPathResolution | None:
        """Return the stored resolution or ``None``."""

    def set(self, resolution: LocalPathResolution) -> None:
        """Store *resolution*, replacing any previous value."""

    def clear(self) -> None:
        """Forget the stored resolution."""


@runtime_checkable
class LocalPathResolver(Protocol):
    """Locate the private configuration root."""

    def resolve(self) -> LocalPathResolution:
        """Return the highest-precedence existing candidate or the sentinel."""


@runtime_checkable
class TopicEnumerator(Protocol):
    """Enumerate topic directories and their convention members."""

    def list_topics(self, root: Path, origin: Origin | None = None) -> Sequence[Topic]:
        """Return topics under *root* in lexicographic order."""

    def list_subtopics(self, topic: Topic) -> Sequence[Topic]:
        """Return the directories nested one level inside *topic*."""

    def list_files(self, topic: Topic, role: str) -> Sequence[Path]:
        """Return members of *topic* (and one sub-topic level) playing *role*."""


@runtime_checkable
class LinkPrimitive(Protocol):
    """Callable performing every symlink creation in the package."""

    def __call__(self, destination: Path, source: Path, *, backup: bool = False) -> Path | None:
        """Point *destination* at *source*; return the backup path if one was made."""
