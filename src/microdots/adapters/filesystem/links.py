"""Filesystem checks and the single link-replace primitive.

Purpose
-------
Own every interaction with symlinks on disk. :func:`replace_link` is the only
function in the package that creates a symlink; the symlink engine (both
phases) and the infrastructure linker route every write through it so the
backup policy, error mapping, and logging live in one place.

Contents
--------
* :class:`DestinationState` / :func:`inspect_destination` – read-only
  classification of a destination relative to its desired source.
* :func:`read_link_once` – one-hop ``readlink`` with relative-target handling.
* :func:`replace_link` – atomically point a path at a source.
* :func:`backup_path_for` / :func:`remove_link` / :func:`is_broken_link`.

System Role
-----------
Adapter layer. Read-only checks swallow ``OSError`` (a path we cannot stat is treated as
absent); mutations translate ``OSError`` into the domain taxonomy.
"""

from __future__ import annotations

import errno
import os
import time
import uuid
from enum import Enum
from pathlib import Path

from ...domain.errors import CircularReference, Conflict, PermissionDenied
from ...observability import log_debug, log_info, log_warning

#: Maximum number of ``readlink`` hops followed when checking a source for a
#: cycle back onto the destination.
MAX_LINK_DEPTH = 8

_TEMP_MARKER = "microdots"


class DestinationState(str, Enum):
    """Relationship between a destination path and its desired source."""

    ABSENT = "absent"
    CORRECT = "correct"
    WRONG_LINK = "wrong_link"
    FOREIGN = "foreign"


def lexists(path: Path) -> bool:
    """Return ``True`` when *path* exists without following a final symlink."""

    try:
        os.lstat(path)
    except OSError:
        return False
    return True


def is_link(path: Path) -> bool:
    try:
        return path.is_symlink()
    except OSError:
        return False


def is_dir(path: Path) -> bool:
    """Return ``True`` for a readable directory (following symlinks)."""

    try:
        return path.is_dir() and os.access(path, os.R_OK | os.X_OK)
    except OSError:
        return False


def is_accessible_dir(path: Path) -> bool:
    """Return ``True`` for a directory the current user can read and write."""

    try:
        return path.is_dir() and os.access(path, os.R_OK | os.W_OK | os.X_OK)
    except OSError:
        return False


def is_broken_link(path: Path) -> bool:
    """Return ``True`` for a symlink whose target is missing."""

    return is_link(path) and not _exists(path)


def read_link_once(link: Path) -> Path | None:
    """Return the immediate target of *link* as an absolute, normalised path.

    Relative targets are interpreted against the link's directory. Only one
    hop is taken; chains are never followed here.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> root = Path(tmp.name)
    >>> (root / 'data').mkdir()
    >>> (root / 'alias').symlink_to('data')
    >>> read_link_once(root / 'alias') == root / 'data'
    True
    >>> read_link_once(root / 'data') is None
    True
    >>> tmp.cleanup()
    """

    try:
        raw = os.readlink(link)
    except OSError:
        return None
    target = Path(raw)
    if not target.is_absolute():
        target = link.parent / target
    return Path(os.path.normpath(target))


def points_to(destination: Path, source: Path) -> bool:
    """Return ``True`` when *destination* is a symlink resolving to *source*."""

    if not is_link(destination):
        return False
    target = read_link_once(destination)
    if target is None:
        return False
    if target == Path(os.path.normpath(source)):
        return True
    if not (_exists(destination) and _exists(source)):
        return False
    return os.path.realpath(destination) == os.path.realpath(source)


def inspect_destination(destination: Path, source: Path) -> DestinationState:
    """Classify *destination* without touching the filesystem.

    Broken links and links to another target are both ``WRONG_LINK``; any
    non-symlink object is ``FOREIGN``.
    """

    if not lexists(destination):
        return DestinationState.ABSENT
    if is_link(destination):
        return DestinationState.CORRECT if points_to(destination, source) else DestinationState.WRONG_LINK
    return DestinationState.FOREIGN


def creates_cycle(destination: Path, source: Path, *, max_depth: int = MAX_LINK_DEPTH) -> bool:
    """Return ``True`` when linking *destination* to *source* would loop.

    The source chain is followed for at most ``max_depth`` hops; revisiting a
    path or reaching the destination counts as a cycle.
    """

    target = Path(os.path.normpath(destination))
    current = Path(os.path.normpath(source))
    seen: set[Path] = set()
    for _ in range(max_depth):
        if current == target or current in seen:
            return True
        seen.add(current)
        if not is_link(current):
            return False
        following = read_link_once(current)
        if following is None:
            return False
        current = following
    return True


def backup_path_for(path: Path, *, now: float | None = None) -> Path:
    """Return a free ``<path>.backup.<unix-timestamp>`` name.

    A ``-N`` counter is appended when several backups happen within the same
    second.
    """

    stamp = int(time.time() if now is None else now)
    candidate = path.with_name(f"{path.name}.backup.{stamp}")
    counter = 1
    while lexists(candidate):
        candidate = path.with_name(f"{path.name}.backup.{stamp}-{counter}")
        counter += 1
    return candidate


def replace_link(destination: Path, source: Path, *, backup: bool = False) -> Path | None:
    """Point *destination* at *source*, replacing an existing symlink atomically.

    Why
    ----
    Every symlink the package writes goes through here, so the conflict and
    backup policy is defined exactly once.

    What
    ----
    * An existing symlink (correct, wrong, or broken) is replaced in a single
      ``rename`` so readers never observe a missing destination.
    * An existing non-symlink raises :class:`Conflict` unless *backup* is set,
      in which case it is renamed to :func:`backup_path_for` first.
    * When the write fails after a backup was taken, the backup is moved back.

    Returns
    -------
    Path | None
        The backup location when a conflicting object was moved aside.

    Raises
    ------
    Conflict
        Destination is a real file or directory and *backup* is ``False``.
    CircularReference
        *source* resolves back onto *destination*.
    PermissionDenied
        The OS refused the operation.
    """

    if creates_cycle(destination, source):
        raise CircularReference(f"{source} resolves back to {destination}")

    moved_to: Path | None = None
    if lexists(destination) and not is_link(destination):
        if not backup:
            raise Conflict(f"{destination} exists and is not a symlink")
        moved_to = backup_path_for(destination)
        _guarded(os.rename, destination, moved_to)
        log_info("conflict_backed_up", phase="link", path=str(destination), backup=str(moved_to))

    temporary = temporary_name_for(destination)
    try:
        _guarded(os.symlink, source, temporary)
        try:
            _guarded(os.replace, temporary, destination)
        except (PermissionDenied, OSError):
            _discard(temporary)
            raise
    except (PermissionDenied, OSError):
        if moved_to is not None:
            _restore(moved_to, destination)
        raise
    log_debug("link_written", phase="link", path=str(destination), source=str(source))
    return moved_to


def temporary_name_for(destination: Path) -> Path:
    """Return an unused hidden sibling name for staging a new link.

    Existing objects are never reused, so a user file that happens to carry
    a similar name is left alone.
    """

    hidden = destination.name if destination.name.startswith(".") else f".{destination.name}"
    while True:
        candidate = destination.with_name(f"{hidden}.{_TEMP_MARKER}-{uuid.uuid4().hex[:8]}")
        if not lexists(candidate):
            return candidate


def remove_link(path: Path) -> None:
    """Remove the symlink at *path*; refuses to delete anything else."""

    if not is_link(path):
        raise Conflict(f"{path} is not a symlink")
    _guarded(os.unlink, path)


def _guarded(operation, *args) -> None:
    """Run an ``os`` mutation, mapping permission failures to the domain type."""

    try:
        operation(*args)
    except OSError as exc:
        if exc.errno in (errno.EACCES, errno.EPERM, errno.EROFS):
            raise PermissionDenied(f"{operation.__name__} {args[0]}: {exc.strerror}") from exc
        raise


def _discard(path: Path) -> None:
    try:
        os.unlink(path)
    except OSError:
        log_debug("temporary_link_left", phase="link", path=str(path))


def _restore(backup: Path, destination: Path) -> None:
    """Move a backup back in place after a failed write."""

    try:
        os.rename(backup, destination)
    except OSError as exc:
        log_warning("backup_not_restored", phase="link", path=str(destination), backup=str(backup), error=exc.strerror)
        return
    log_info("backup_restored", phase="link", path=str(destination), backup=str(backup))


def _exists(path: Path) -> bool:
    try:
        return path.exists()
    except OSError:
        return False
