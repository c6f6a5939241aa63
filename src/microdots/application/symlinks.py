"""Two-phase precedence symlinking.

Purpose
-------
Produce the ``$HOME`` symlink forest in which the local tree always wins and
the public tree is the baseline.

Contents
--------
* :func:`destination_for` – ``name.symlink`` → ``~/.name``.
* :class:`SymlinkEngine` – ``plan``, ``create_all``, ``clean_broken``,
  ``list_managed``.

System Role
-----------
Phase 1 walks the public root, Phase 2 the local root; Phase 2 starts only
after Phase 1 has finished. Destinations that the local tree provides are left
to Phase 2, so a public link is never observable for them. Every write goes
through the injected link primitive (:func:`replace_link` by default).
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from ..adapters.filesystem.links import (
    DestinationState,
    creates_cycle,
    inspect_destination,
    is_broken_link,
    is_link,
    read_link_once,
    remove_link,
    replace_link,
)
from ..adapters.topics.default import DefaultTopicEnumerator, Role
from ..domain.errors import CircularReference, Conflict, FatalError, MicrodotsError
from ..domain.models import LinkAction, LinkOutcome, LinkReport, Origin, SymlinkTarget
from ..observability import log_debug, log_error, log_info, log_warning, make_event
from .ports import LinkPrimitive, TopicEnumerator

SYMLINK_SUFFIX = ".symlink"


def destination_for(source: Path, home: Path) -> Path:
    """Return the ``$HOME`` path a ``*.symlink`` source is linked to.

    Examples
    --------
    >>> destination_for(Path('/d/git/gitconfig.symlink'), Path('/home/me'))
    PosixPath('/home/me/.gitconfig')
    >>> destination_for(Path('/d/zsh/.zshenv.symlink'), Path('/home/me'))
    PosixPath('/home/me/.zshenv')
    """

    base = source.name[: -len(SYMLINK_SUFFIX)] if source.name.endswith(SYMLINK_SUFFIX) else source.name
    return home / (base if base.startswith(".") else f".{base}")


class SymlinkEngine:
    """Merge the public and local trees into ``$HOME``.

    Parameters
    ----------
    enumerator:
        Topic enumerator; defaults to :class:`DefaultTopicEnumerator`.
    link:
        The link primitive every write is routed through.
    """

    def __init__(
        self,
        *,
        enumerator: TopicEnumerator | None = None,
        link: LinkPrimitive = replace_link,
    ) -> None:
        self.enumerator = enumerator or DefaultTopicEnumerator()
        self.link = link

    def plan(self, public_root: Path, local_root: Path | None, home: Path) -> list[SymlinkTarget]:
        """Return the merged target set: one entry per destination, local wins."""

        merged: dict[Path, SymlinkTarget] = {}
        for target in self._targets(public_root, Origin.PUBLIC, home):
            merged.setdefault(target.destination, target)
        for target in self._local_targets(local_root, home):
            if target.destination not in merged or merged[target.destination].origin is Origin.PUBLIC:
                merged[target.destination] = target
        return sorted(merged.values(), key=lambda item: item.destination.name)

    def create_all(
        self,
        public_root: Path,
        local_root: Path | None,
        home: Path,
        *,
        dry_run: bool = False,
        force: bool = False,
        assume_absent: Iterable[Path] = (),
    ) -> LinkReport:
        """Link every public source, then every local source over it.

        Why
        ----
        Local configuration must override public defaults file by file while
        re-runs stay no-ops.

        What
        ----
        * Phase 1: each public ``*.symlink`` whose destination the local tree
          does not provide is linked. An existing non-symlink is a conflict
          unless ``force`` (backup, then link).
        * Phase 2: each local ``*.symlink`` replaces whatever symlink sits at
          its destination, without needing ``force``.
        * Correct links are reported as ``skipped``; ``dry_run`` reports the
          same classification without mutating anything.
        * ``assume_absent`` lists destinations a preceding dry-run step would
          have removed; the preview classifies them as absent.

        Raises
        ------
        FatalError
            ``home`` does not exist or is not a directory.
        """

        _require_home(home)
        report = LinkReport(dry_run=dry_run)
        absent = frozenset(assume_absent) if dry_run else frozenset()
        local_targets = self._local_targets(local_root, home)
        provided_locally = {target.destination for target in local_targets}

        public_targets = self._targets(public_root, Origin.PUBLIC, home)
        log_info("phase_started", **make_event("public", str(public_root), {"sources": len(public_targets), "dry_run": dry_run}))
        seen: dict[Path, Path] = {}
        for target in public_targets:
            if target.destination in provided_locally:
                log_debug("deferred_to_local", phase="public", path=str(target.destination), source=str(target.source))
                continue
            self._apply(target, report, seen, dry_run=dry_run, force=force, absent=absent)

        if local_root is None:
            log_info("phase_skipped", **make_event("local", None, {"reason": "no dotlocal root"}))
        else:
            log_info("phase_started", **make_event("local", str(local_root), {"sources": len(local_targets), "dry_run": dry_run}))
            seen = {}
            for target in local_targets:
                self._apply(target, report, seen, dry_run=dry_run, force=force, absent=absent)

        log_info("links_complete", **make_event("summary", str(home), report.counts()))
        return report

    def clean_broken(self, home: Path, *, dry_run: bool = False, report: LinkReport | None = None) -> int:
        """Remove dangling symlinks directly inside *home*; return how many.

        Only links whose target no longer exists are candidates. Links to an
        existing but unexpected target are left alone, and subdirectories are
        not scanned.
        """

        _require_home(home)
        try:
            entries = sorted(home.iterdir(), key=lambda item: item.name)
        except OSError as exc:
            raise FatalError(f"Cannot list home directory {home}: {exc.strerror}") from exc
        removed = 0
        for entry in entries:
            if not is_broken_link(entry):
                continue
            if not dry_run:
                try:
                    remove_link(entry)
                except (MicrodotsError, OSError) as exc:
                    log_error("broken_link_not_removed", phase="clean", path=str(entry), error=str(exc))
                    continue
            log_info("broken_link_removed", phase="clean", path=str(entry), dry_run=dry_run)
            removed += 1
            if report is not None:
                report.removed.append(entry)
        return removed

    def list_managed(self, home: Path, public_root: Path, local_root: Path | None) -> list[SymlinkTarget]:
        """Return the links in *home* that point into the public or local root."""

        managed: list[SymlinkTarget] = []
        try:
            entries = sorted(home.iterdir(), key=lambda item: item.name)
        except OSError:
            return managed
        for entry in entries:
            if not is_link(entry):
                continue
            target = read_link_once(entry)
            if target is None:
                continue
            if local_root is not None and _is_within(target, local_root):
                managed.append(SymlinkTarget(target, entry, Origin.LOCAL))
            elif _is_within(target, public_root):
                managed.append(SymlinkTarget(target, entry, Origin.PUBLIC))
        return managed

    def _apply(
        self,
        target: SymlinkTarget,
        report: LinkReport,
        seen: dict[Path, Path],
        *,
        dry_run: bool,
        force: bool,
        absent: frozenset[Path] = frozenset(),
    ) -> None:
        destination, source = target.destination, target.source
        if destination in seen:
            report.record(
                LinkOutcome(destination, source, LinkAction.SKIPPED, f"already provided by {seen[destination]}")
            )
            log_warning("duplicate_destination", phase=target.origin.value, path=str(destination), source=str(source))
            return
        seen[destination] = source

        state = DestinationState.ABSENT if destination in absent else inspect_destination(destination, source)
        if state is DestinationState.CORRECT:
            report.record(LinkOutcome(destination, source, LinkAction.SKIPPED, "already linked"))
            return
        if dry_run:
            report.record(self._preview(target, state, force))
            return

        action = LinkAction.CREATED if state is DestinationState.ABSENT else LinkAction.UPDATED
        try:
            backup = self.link(destination, source, backup=force)
        except Conflict as exc:
            report.record(LinkOutcome(destination, source, LinkAction.CONFLICT, str(exc)))
            log_warning("link_conflict", phase=target.origin.value, path=str(destination))
            return
        except (MicrodotsError, OSError) as exc:
            report.record(LinkOutcome(destination, source, LinkAction.ERROR, str(exc)))
            log_error("link_failed", phase=target.origin.value, path=str(destination), error=str(exc))
            return
        detail = "local override" if target.origin is Origin.LOCAL and action is LinkAction.UPDATED else ""
        report.record(LinkOutcome(destination, source, action, detail, backup))
        log_debug("link_" + action.value, phase=target.origin.value, path=str(destination), source=str(source))

    @staticmethod
    def _preview(target: SymlinkTarget, state: DestinationState, force: bool) -> LinkOutcome:
        destination, source = target.destination, target.source
        if creates_cycle(destination, source):
            return LinkOutcome(destination, source, LinkAction.ERROR, str(CircularReference(f"{source} resolves back to {destination}")))
        if state is DestinationState.ABSENT:
            return LinkOutcome(destination, source, LinkAction.CREATED, "would create")
        if state is DestinationState.WRONG_LINK:
            return LinkOutcome(destination, source, LinkAction.UPDATED, "would replace existing link")
        if force:
            return LinkOutcome(destination, source, LinkAction.UPDATED, "would back up and replace")
        return LinkOutcome(destination, source, LinkAction.CONFLICT, f"{destination} exists and is not a symlink")

    def _local_targets(self, local_root: Path | None, home: Path) -> list[SymlinkTarget]:
        if local_root is None:
            return []
        return self._targets(local_root, Origin.LOCAL, home)

    def _targets(self, root: Path, origin: Origin, home: Path) -> list[SymlinkTarget]:
        return list(self._iter_targets(root, origin, home))

    def _iter_targets(self, root: Path, origin: Origin, home: Path) -> Iterable[SymlinkTarget]:
        for topic in self.enumerator.list_topics(root, origin):
            for source in self.enumerator.list_files(topic, Role.SYMLINK):
                yield SymlinkTarget(source=source, destination=destination_for(source, home), origin=origin)


def _require_home(home: Path) -> None:
    try:
        usable = home.is_dir()
    except OSError:
        usable = False
    if not usable:
        raise FatalError(f"Home directory does not exist: {home}")


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True
