"""Infrastructure symlinks inside the dotlocal root.

Purpose
-------
Give the private dotlocal tree access to shared resources of the public root
(core library, documentation, guides) through a fixed set of symlinks, and
keep that set healthy.

Contents
--------
* :class:`InfrastructureEntry` / :data:`INFRASTRUCTURE_SYMLINKS` – the fixed set.
* :class:`InfrastructureLinker` – ``inspect``, ``validate``, ``ensure``, ``repair``.

System Role
-----------
Called by ``status`` (validate), ``repair-infrastructure`` (repair), and
``init-dotlocal`` (ensure). It only ever touches ``<local_root>/<name>`` for the
names below and writes through the shared link primitive.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..adapters.filesystem.links import DestinationState, inspect_destination, lexists, replace_link
from ..domain.errors import Conflict, FatalError, MicrodotsError
from ..domain.models import InfrastructureReport, LinkAction, LinkOutcome
from ..observability import log_error, log_info, log_warning, make_event
from .ports import LinkPrimitive


@dataclass(frozen=True, slots=True)
class InfrastructureEntry:
    """One link ``<local_root>/<name>`` → ``<public_root>/<source>``."""

    name: str
    source: str

    def source_path(self, public_root: Path) -> Path:
        return public_root / self.source

    def target_path(self, local_root: Path) -> Path:
        return local_root / self.name


INFRASTRUCTURE_SYMLINKS: tuple[InfrastructureEntry, ...] = (
    InfrastructureEntry("core", "core"),
    InfrastructureEntry("docs", "docs"),
    InfrastructureEntry("MICRODOTS.md", "MICRODOTS.md"),
    InfrastructureEntry("CLAUDE.md", "CLAUDE.md"),
    InfrastructureEntry("TASKS.md", "TASKS.md"),
    InfrastructureEntry("COMPLIANCE.md", "docs/architecture/COMPLIANCE.md"),
)

_DEFECT_LABELS = {
    DestinationState.ABSENT: "missing",
    DestinationState.WRONG_LINK: "wrong or broken symlink",
    DestinationState.FOREIGN: "not a symlink",
}


@dataclass(frozen=True, slots=True)
class Defect:
    entry: InfrastructureEntry
    state: DestinationState
    path: Path

    @property
    def label(self) -> str:
        return _DEFECT_LABELS[self.state]


class InfrastructureLinker:
    """Create, check, and repair :data:`INFRASTRUCTURE_SYMLINKS`.

    Entries whose public source does not exist are ignored by every
    operation; they are reported as ``skipped`` by :meth:`ensure`.
    """

    def __init__(
        self,
        *,
        entries: tuple[InfrastructureEntry, ...] = INFRASTRUCTURE_SYMLINKS,
        link: LinkPrimitive = replace_link,
    ) -> None:
        self.entries = entries
        self.link = link

    def inspect(self, local_root: Path, public_root: Path) -> list[Defect]:
        """Return one :class:`Defect` per unhealthy entry; read-only."""

        defects: list[Defect] = []
        for entry in self.entries:
            source = entry.source_path(public_root)
            if not lexists(source):
                continue
            target = entry.target_path(local_root)
            state = inspect_destination(target, source)
            if state is not DestinationState.CORRECT:
                defects.append(Defect(entry, state, target))
        return defects

    def validate(self, local_root: Path, public_root: Path) -> int:
        """Return the number of defective entries without changing anything."""

        defects = self.inspect(local_root, public_root)
        for defect in defects:
            log_warning("infrastructure_defect", phase="infrastructure", path=str(defect.path), defect=defect.label)
        return len(defects)

    def ensure(self, local_root: Path, public_root: Path, force: bool = False) -> InfrastructureReport:
        """Create missing entries and correct wrong symlinks.

        What
        ----
        * Absent → created.
        * Symlink to the wrong place (or broken) → replaced, regardless of
          ``force``.
        * Correct symlink → unchanged.
        * Non-symlink → backed up and replaced only with ``force``; otherwise
          recorded as an error and left untouched.

        Raises
        ------
        FatalError
            ``local_root`` is not an existing directory.
        """

        if not local_root.is_dir():
            raise FatalError(f"Dotlocal directory does not exist: {local_root}")
        report = InfrastructureReport()
        for entry in self.entries:
            self._ensure_entry(entry, local_root, public_root, force, report)
        log_info("infrastructure_ensured", **make_event("infrastructure", str(local_root), report.counts()))
        return report

    def repair(self, local_root: Path, public_root: Path) -> InfrastructureReport:
        """Validate, then :meth:`ensure` with ``force`` so conflicts are backed up."""

        issues = self.validate(local_root, public_root)
        log_info("infrastructure_repair_started", phase="infrastructure", path=str(local_root), issues=issues)
        report = self.ensure(local_root, public_root, force=True)
        remaining = self.validate(local_root, public_root)
        if remaining:
            log_error("infrastructure_repair_incomplete", phase="infrastructure", path=str(local_root), remaining=remaining)
        return report

    def _ensure_entry(
        self,
        entry: InfrastructureEntry,
        local_root: Path,
        public_root: Path,
        force: bool,
        report: InfrastructureReport,
    ) -> None:
        source = entry.source_path(public_root)
        target = entry.target_path(local_root)
        if not lexists(source):
            report.skipped.append(LinkOutcome(target, source, LinkAction.SKIPPED, "source missing in public root"))
            return
        state = inspect_destination(target, source)
        if state is DestinationState.CORRECT:
            report.unchanged.append(LinkOutcome(target, source, LinkAction.SKIPPED, "already linked"))
            return
        try:
            backup = self.link(target, source, backup=force)
        except Conflict as exc:
            report.errors.append(LinkOutcome(target, source, LinkAction.CONFLICT, f"{exc}; rerun with force to back it up"))
            return
        except (MicrodotsError, OSError) as exc:
            report.errors.append(LinkOutcome(target, source, LinkAction.ERROR, str(exc)))
            log_error("infrastructure_link_failed", phase="infrastructure", path=str(target), error=str(exc))
            return
        if state is DestinationState.ABSENT:
            report.created.append(LinkOutcome(target, source, LinkAction.CREATED))
        else:
            report.updated.append(LinkOutcome(target, source, LinkAction.UPDATED, _DEFECT_LABELS[state], backup))
