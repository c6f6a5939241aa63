"""Domain value objects and operation reports.

Purpose
-------
Describe the results that flow between discovery, linking, and installation
without performing any I/O. Adapters produce these objects; the CLI renders
them.

Contents
--------
* :class:`DiscoveryMethod` – how the dotlocal root was found.
* :class:`LocalPathResolution` – outcome of one resolution pass and the
  :data:`NOT_FOUND` sentinel.
* :class:`Origin` – whether a topic lives in the public or the local root.
* :class:`Topic` / :class:`SymlinkTarget` – discovered filesystem entities.
* :class:`LinkAction` / :class:`LinkOutcome` – result of one link attempt.
* :class:`LinkReport` / :class:`InfrastructureReport` / :class:`InstallReport`
  – aggregated, itemised batch results.
* :class:`ConfigValues` – parsed ``dotfiles.conf`` content.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class DiscoveryMethod(str, Enum):
    """Precedence level that produced a :class:`LocalPathResolution`.

    Members are listed highest priority first; ``CREATED_DEFAULT`` is only
    produced by the explicit ``ensure_dotlocal`` operation.
    """

    EXPLICIT_CONFIG = "explicit_config"
    SYMLINK = "symlink"
    DIRECTORY = "directory"
    STANDARD_DEFAULT = "standard_default"
    CLOUD_DISCOVERED = "cloud_discovered"
    CREATED_DEFAULT = "created_default"
    NONE = "none"

    @property
    def description(self) -> str:
        """Return the human readable label shown by ``microdots status``.

        Examples
        --------
        >>> DiscoveryMethod.SYMLINK.description
        'existing .dotlocal symlink'
        """

        return _METHOD_DESCRIPTIONS[self]


_METHOD_DESCRIPTIONS = {
    DiscoveryMethod.EXPLICIT_CONFIG: "dotfiles.conf (explicit configuration)",
    DiscoveryMethod.SYMLINK: "existing .dotlocal symlink",
    DiscoveryMethod.DIRECTORY: "existing .dotlocal directory",
    DiscoveryMethod.STANDARD_DEFAULT: "standard ~/.dotlocal directory",
    DiscoveryMethod.CLOUD_DISCOVERED: "cloud storage auto-discovery",
    DiscoveryMethod.CREATED_DEFAULT: "created default directory",
    DiscoveryMethod.NONE: "not found",
}


@dataclass(frozen=True, slots=True)
class LocalPathResolution:
    """Outcome of one dotlocal discovery pass.

    Attributes
    ----------
    path:
        Absolute directory path, or ``None`` when nothing was found.
    method:
        Precedence level that matched.
    provider:
        Cloud provider label for ``cloud_discovered`` results.
    """

    path: Path | None
    method: DiscoveryMethod
    provider: str | None = None

    @property
    def found(self) -> bool:
        return self.method is not DiscoveryMethod.NONE and self.path is not None

    def as_dict(self) -> dict[str, object]:
        return {
            "path": str(self.path) if self.path is not None else None,
            "method": self.method.value,
            "description": self.method.description,
            "provider": self.provider,
        }


NOT_FOUND = LocalPathResolution(path=None, method=DiscoveryMethod.NONE)


class Origin(str, Enum):
    """Tree a topic (and therefore a link source) comes from."""

    PUBLIC = "public"
    LOCAL = "local"


@dataclass(frozen=True, slots=True)
class Topic:
    """A configuration domain directory such as ``git`` or ``vim``.

    ``parent`` names the enclosing topic for sub-topics (one level only).
    """

    name: str
    path: Path
    origin: Origin
    parent: str | None = None


@dataclass(frozen=True, slots=True)
class SymlinkTarget:
    """Maps a destination under ``$HOME`` to the file that should back it."""

    source: Path
    destination: Path
    origin: Origin


class LinkAction(str, Enum):
    """Classification of a single link attempt."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    CONFLICT = "conflict"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class LinkOutcome:
    """Result of routing one destination through the link primitive.

    ``backup`` holds the path a conflicting object was moved to when ``force``
    was in effect.
    """

    destination: Path
    source: Path | None
    action: LinkAction
    detail: str = ""
    backup: Path | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "destination": str(self.destination),
            "source": str(self.source) if self.source is not None else None,
            "action": self.action.value,
            "detail": self.detail,
            "backup": str(self.backup) if self.backup is not None else None,
        }


@dataclass(slots=True)
class LinkReport:
    """Aggregated result of :meth:`SymlinkEngine.create_all`.

    Examples
    --------
    >>> report = LinkReport()
    >>> report.record(LinkOutcome(Path('/h/.vimrc'), Path('/d/vim/vimrc.symlink'), LinkAction.CREATED))
    >>> report.counts()
    {'created': 1, 'updated': 0, 'skipped': 0, 'conflicts': 0, 'errors': 0, 'removed': 0}
    >>> report.ok
    True
    """

    dry_run: bool = False
    created: list[LinkOutcome] = field(default_factory=list)
    updated: list[LinkOutcome] = field(default_factory=list)
    skipped: list[LinkOutcome] = field(default_factory=list)
    conflicts: list[LinkOutcome] = field(default_factory=list)
    errors: list[LinkOutcome] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)

    def record(self, outcome: LinkOutcome) -> None:
        bucket = {
            LinkAction.CREATED: self.created,
            LinkAction.UPDATED: self.updated,
            LinkAction.SKIPPED: self.skipped,
            LinkAction.CONFLICT: self.conflicts,
            LinkAction.ERROR: self.errors,
        }[outcome.action]
        bucket.append(outcome)

    def counts(self) -> dict[str, int]:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "skipped": len(self.skipped),
            "conflicts": len(self.conflicts),
            "errors": len(self.errors),
            "removed": len(self.removed),
        }

    @property
    def ok(self) -> bool:
        return not self.conflicts and not self.errors

    @property
    def failures(self) -> list[LinkOutcome]:
        return [*self.conflicts, *self.errors]


@dataclass(slots=True)
class InfrastructureReport:
    """Aggregated result of :class:`InfrastructureLinker` mutations.

    ``skipped`` lists entries whose public source does not exist.
    """

    created: list[LinkOutcome] = field(default_factory=list)
    updated: list[LinkOutcome] = field(default_factory=list)
    unchanged: list[LinkOutcome] = field(default_factory=list)
    skipped: list[LinkOutcome] = field(default_factory=list)
    errors: list[LinkOutcome] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "unchanged": len(self.unchanged),
            "skipped": len(self.skipped),
            "errors": len(self.errors),
        }

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True, slots=True)
class InstallOutcome:
    """Exit status of one topic installer."""

    topic: str
    script: Path
    returncode: int
    output: str = ""


@dataclass(slots=True)
class InstallReport:
    succeeded: list[InstallOutcome] = field(default_factory=list)
    failed: list[InstallOutcome] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {"succeeded": len(self.succeeded), "failed": len(self.failed)}

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass(frozen=True, slots=True)
class ConfigValues:
    """Recognised keys from ``dotfiles.conf`` plus parse warnings.

    ``dotlocal`` already applies the ``DOTLOCAL`` over ``LOCAL_PATH``
    preference; values are unexpanded.
    """

    source: Path | None = None
    dotlocal: str | None = None
    backup_path: str | None = None
    auto_snapshot: str | None = None
    anomalies: tuple[str, ...] = ()


__all__ = [
    "ConfigValues",
    "DiscoveryMethod",
    "InfrastructureReport",
    "InstallOutcome",
    "InstallReport",
    "LinkAction",
    "LinkOutcome",
    "LinkReport",
    "LocalPathResolution",
    "NOT_FOUND",
    "Origin",
    "SymlinkTarget",
    "Topic",
]
