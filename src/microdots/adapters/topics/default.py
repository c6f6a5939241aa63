"""Topic discovery and the filename convention table.

Purpose
-------
Implement the :class:`microdots.application.ports.TopicEnumerator` protocol.
A topic is a directory under a root (public or local); its behaviour is
declared by filenames such as ``gitconfig.symlink`` or ``install.sh``.

Contents
--------
* :class:`Role` / :data:`CONVENTIONS` – ordered ``(pattern, role)`` table; the
  only place filename conventions are spelled out.
* :func:`classify` – first role whose pattern matches a filename.
* :class:`DefaultTopicEnumerator` – lists topics, sub-topics, and members.

System Role
-----------
Consumed by the symlink engine (``symlink`` role) and the install
orchestrator (``install`` role). Nothing is cached: the tree is re-read on
every call because users edit it between invocations.
"""

from __future__ import annotations

from enum import Enum
from fnmatch import fnmatchcase
from pathlib import Path

from ...domain.models import Origin, Topic
from ...observability import log_debug, log_warning
from ..filesystem.links import is_link


class Role(str, Enum):
    """What a member file contributes to its topic."""

    PATH = "path"
    COMPLETION = "completion"
    SHELL = "shell"
    SYMLINK = "symlink"
    INSTALL = "install"


#: Consulted top to bottom; the first matching pattern decides the role.
CONVENTIONS: tuple[tuple[str, Role], ...] = (
    ("path.zsh", Role.PATH),
    ("completion.zsh", Role.COMPLETION),
    ("*.zsh", Role.SHELL),
    ("*.symlink", Role.SYMLINK),
    ("install.sh", Role.INSTALL),
)

#: Directory names that are never topics (in addition to hidden directories).
RESERVED_NAMES = frozenset({"core", "backups", "vscode-backup", "tests", "__pycache__", "CVS"})

_IGNORED_SUFFIXES = (".example",)


def classify(filename: str) -> Role | None:
    """Return the role of *filename* or ``None`` when no convention matches.

    Examples
    --------
    >>> classify('path.zsh')
    <Role.PATH: 'path'>
    >>> classify('aliases.zsh')
    <Role.SHELL: 'shell'>
    >>> classify('gitconfig.symlink')
    <Role.SYMLINK: 'symlink'>
    >>> classify('gitconfig.symlink.example') is None
    True
    """

    if filename.endswith(_IGNORED_SUFFIXES):
        return None
    for pattern, role in CONVENTIONS:
        if fnmatchcase(filename, pattern):
            return role
    return None


def is_reserved(name: str) -> bool:
    """Return ``True`` for names excluded from topic enumeration.

    Examples
    --------
    >>> [is_reserved(n) for n in ('core', '.git', '.dotlocal', 'git')]
    [True, True, True, False]
    """

    return name.startswith(".") or name in RESERVED_NAMES


class DefaultTopicEnumerator:
    """List topics and their convention members in lexicographic order.

    Symlinked directories are not descended into, so the infrastructure links
    inside a dotlocal root (``core``, ``docs``) never show up as topics.
    """

    def __init__(self, *, origin: Origin | None = None) -> None:
        self._origin = origin

    def list_topics(self, root: Path, origin: Origin | None = None) -> list[Topic]:
        """Return the top-level topics under *root*.

        A missing or unreadable root yields an empty list.
        """

        resolved_origin = origin or self._origin or Origin.PUBLIC
        topics = [
            Topic(name=entry.name, path=entry, origin=resolved_origin)
            for entry in _child_directories(root)
        ]
        log_debug("topics_listed", phase=resolved_origin.value, path=str(root), count=len(topics))
        return topics

    def list_subtopics(self, topic: Topic) -> list[Topic]:
        """Return the directories nested one level inside *topic*."""

        if topic.parent is not None:
            return []
        return [
            Topic(name=entry.name, path=entry, origin=topic.origin, parent=topic.name)
            for entry in _child_directories(topic.path)
        ]

    def list_files(self, topic: Topic, role: Role | str) -> list[Path]:
        """Return members of *topic* playing *role*, then those of its sub-topics.

        ``*.symlink`` directories count as members (they are linked whole);
        every other role only matches regular files.
        """

        wanted = Role(role)
        members = _members(topic.path, wanted)
        for subtopic in self.list_subtopics(topic):
            members.extend(_members(subtopic.path, wanted))
        return members


def _members(directory: Path, role: Role) -> list[Path]:
    matches: list[Path] = []
    for entry in _sorted_entries(directory):
        if classify(entry.name) is not role:
            continue
        if _is_file(entry) or (role is Role.SYMLINK and _is_dir(entry)):
            matches.append(entry)
    return matches


def _child_directories(root: Path) -> list[Path]:
    """Return non-reserved, non-symlinked subdirectories that are not members."""

    children: list[Path] = []
    for entry in _sorted_entries(root):
        if is_reserved(entry.name) or is_link(entry) or classify(entry.name) is not None:
            continue
        if _is_dir(entry):
            children.append(entry)
    return children


def _is_file(entry: Path) -> bool:
    try:
        return entry.is_file()
    except OSError:
        return False


def _is_dir(entry: Path) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False


def _sorted_entries(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir(), key=lambda entry: entry.name)
    except FileNotFoundError:
        return []
    except OSError as exc:
        log_warning("directory_unreadable", phase="topics", path=str(directory), error=exc.strerror)
        return []
