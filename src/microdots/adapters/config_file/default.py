"""``dotfiles.conf`` adapter.

Purpose
-------
Implement the :class:`microdots.application.ports.ConfigLoader` protocol by
reading the optional ``dotfiles.conf`` file at the public root. The file looks
like a shell fragment but is never executed: only ``KEY=value`` assignment
lines are understood, everything else is reported and skipped.

Contents
--------
* :class:`DotfilesConfLoader` – ``load`` (explicit override) and ``read``
  (all recognised keys plus anomalies).
* :func:`expand_value` – ``~`` / ``$HOME`` expansion, nothing else.
* :func:`configured_path` – the same expansion, anchored at the public root.
* :func:`validate_config` – human readable findings for ``validate-config``.
* :func:`write_discovered_config` – record a cloud-discovered root once.
* Helpers (`_scan`, `_parse_line`, `_unquote`) that perform the parsing.

System Role
-----------
Feeds precedence level 1 of the dotlocal resolver and the
``validate-config`` CLI command.
"""

from __future__ import annotations

import re
from collections import Counter
from pathlib import Path
from typing import Iterator, NamedTuple

from ...domain.errors import ConfigParseAnomaly, NotFound
from ...domain.models import ConfigValues
from ...observability import log_debug, log_info, log_warning

#: Keys understood by Microdots. ``LOCAL_PATH`` is the legacy alias of
#: ``DOTLOCAL``; the latter wins when both are present.
RECOGNISED_KEYS = ("DOTLOCAL", "LOCAL_PATH", "BACKUP_PATH", "AUTO_SNAPSHOT")

_ASSIGNMENT = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=(.*)$")
_SUBSTITUTION_MARKERS = ("$(", "`")

_GENERATED_HEADER = """\
# Dotfiles Configuration
# Auto-generated by microdots init-dotlocal

# Local configuration directory (discovered via cloud auto-discovery)
"""


class _Assignment(NamedTuple):
    line: int
    key: str
    value: str


class DotfilesConfLoader:
    """Parse ``dotfiles.conf`` as a restricted list of assignments."""

    def load(self, config_path: Path) -> str | None:
        """Return the explicit dotlocal override or ``None``.

        A missing or unreadable file is not an error.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> conf = Path(tmp.name) / 'dotfiles.conf'
        >>> _ = conf.write_text("DOTLOCAL='~/Private/dotlocal'  # private\\n", encoding='utf-8')
        >>> DotfilesConfLoader().load(conf)
        '~/Private/dotlocal'
        >>> DotfilesConfLoader().load(Path(tmp.name) / 'missing.conf') is None
        True
        >>> tmp.cleanup()
        """

        return self.read(config_path).dotlocal

    def read(self, config_path: Path) -> ConfigValues:
        """Return every recognised key together with parse anomalies.

        An unreadable file is logged and treated like a missing one so that
        discovery falls through to the next precedence level.
        """

        try:
            items = list(_scan(config_path))
        except NotFound:
            log_debug("config_not_found", phase="config", path=str(config_path))
            return ConfigValues()
        except OSError as exc:
            log_warning("config_unreadable", phase="config", path=str(config_path), error=exc.strerror)
            return ConfigValues(source=config_path, anomalies=(f"cannot read {config_path}: {exc.strerror}",))
        values: dict[str, str] = {}
        anomalies: list[str] = []
        for item in items:
            if isinstance(item, ConfigParseAnomaly):
                anomalies.append(str(item))
                continue
            if item.key not in RECOGNISED_KEYS:
                log_debug("config_key_ignored", phase="config", path=str(config_path), key=item.key)
                continue
            values[item.key] = item.value
        log_debug("config_loaded", phase="config", path=str(config_path), keys=sorted(values))
        return ConfigValues(
            source=config_path,
            dotlocal=values.get("DOTLOCAL") or values.get("LOCAL_PATH") or None,
            backup_path=values.get("BACKUP_PATH"),
            auto_snapshot=values.get("AUTO_SNAPSHOT"),
            anomalies=tuple(anomalies),
        )


def expand_value(value: str, home: Path) -> Path:
    """Expand a leading ``~`` and literal ``$HOME``/``${HOME}`` tokens.

    Why
    ----
    Existing ``dotfiles.conf`` files were written for a shell that expanded
    these. No other variable is expanded, so the value cannot reach anything
    beyond the home directory the caller passes in.

    Examples
    --------
    >>> str(expand_value('~/Dropbox/Dotlocal', Path('/home/me')))
    '/home/me/Dropbox/Dotlocal'
    >>> str(expand_value('${HOME}/.private', Path('/home/me')))
    '/home/me/.private'
    >>> str(expand_value('/opt/dotlocal', Path('/home/me')))
    '/opt/dotlocal'
    """

    text = value.replace("${HOME}", str(home)).replace("$HOME", str(home))
    if text == "~":
        return home
    if text.startswith("~/"):
        return home / text[2:]
    return Path(text)


def configured_path(value: str, home: Path, public_root: Path) -> Path:
    """Expand *value* and anchor a relative result at *public_root*.

    Examples
    --------
    >>> str(configured_path('local', Path('/home/me'), Path('/home/me/.dotfiles')))
    '/home/me/.dotfiles/local'
    >>> str(configured_path('~/x', Path('/home/me'), Path('/srv/dots')))
    '/home/me/x'
    """

    candidate = expand_value(value, home)
    if not candidate.is_absolute():
        candidate = public_root / candidate
    return candidate


def validate_config(config_path: Path, home: Path, public_root: Path | None = None) -> list[str]:
    """Return findings about common ``dotfiles.conf`` mistakes.

    The checks are: duplicate ``DOTLOCAL``/``LOCAL_PATH`` definitions, both
    keys defined, lines that are not assignments (for example an uncommented
    ``ln -s``), a configured directory that does not exist, and duplicate
    ``BACKUP_PATH`` definitions. An absent file yields no findings.
    Relative directories are checked against *public_root* (the directory
    holding the file when omitted), the same rule discovery applies.
    """

    try:
        items = list(_scan(config_path))
    except NotFound:
        return []
    except OSError as exc:
        return [f"Cannot read {config_path}: {exc.strerror}"]
    findings: list[str] = []
    assignments: list[_Assignment] = []
    for item in items:
        if isinstance(item, ConfigParseAnomaly):
            findings.append(str(item))
        else:
            assignments.append(item)

    counts = Counter(item.key for item in assignments)
    for key in ("DOTLOCAL", "LOCAL_PATH"):
        if counts[key] > 1:
            lines = ", ".join(str(item.line) for item in assignments if item.key == key)
            findings.append(f"{key} is defined {counts[key]} times (lines {lines}); the last definition wins")
    if counts["DOTLOCAL"] and counts["LOCAL_PATH"]:
        findings.append("Both DOTLOCAL and LOCAL_PATH are defined; DOTLOCAL takes precedence, consider removing LOCAL_PATH")
    if counts["BACKUP_PATH"] > 1:
        findings.append(f"BACKUP_PATH is defined {counts['BACKUP_PATH']} times; only the last one is used")

    configured = DotfilesConfLoader().read(config_path).dotlocal
    if configured:
        anchor = public_root if public_root is not None else config_path.parent
        if not _is_dir(configured_path(configured, home, anchor)):
            findings.append(f"Configured dotlocal directory does not exist: {configured}")
    return findings


def write_discovered_config(config_path: Path, dotlocal: Path) -> bool:
    """Record a cloud-discovered dotlocal root in a new ``dotfiles.conf``.

    An existing file is never touched. Returns ``True`` when the file was
    written; a write failure is logged and reported as ``False``.
    """

    if _exists(config_path):
        return False
    try:
        config_path.write_text(f'{_GENERATED_HEADER}DOTLOCAL="{dotlocal}"\n', encoding="utf-8")
    except OSError as exc:
        log_warning("config_not_written", phase="config", path=str(config_path), error=exc.strerror)
        return False
    log_info("config_written", phase="config", path=str(config_path), dotlocal=str(dotlocal))
    return True


def _scan(path: Path) -> Iterator[_Assignment | ConfigParseAnomaly]:
    """Yield assignments and anomalies line by line; never raises for content."""

    for line_number, raw_line in enumerate(_read_lines(path), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            yield _parse_line(line_number, line)
        except ConfigParseAnomaly as exc:
            log_warning("config_line_skipped", phase="config", path=str(path), line=line_number, reason=str(exc))
            yield exc


def _read_lines(path: Path) -> list[str]:
    """Return the lines of *path*; raise :class:`NotFound` when there is no file."""

    try:
        with path.open("r", encoding="utf-8", errors="replace") as handle:
            return handle.readlines()
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
        raise NotFound(str(path)) from exc


def _parse_line(line_number: int, line: str) -> _Assignment:
    """Parse one stripped, non-comment line or raise :class:`ConfigParseAnomaly`.

    Examples
    --------
    >>> _parse_line(1, 'DOTLOCAL="/srv/dotlocal"')
    _Assignment(line=1, key='DOTLOCAL', value='/srv/dotlocal')
    >>> _parse_line(2, 'ln -s ~/a ~/b')
    Traceback (most recent call last):
    ...
    microdots.domain.errors.ConfigParseAnomaly: line 2: not a KEY=value assignment, ignored: ln -s ~/a ~/b
    """

    match = _ASSIGNMENT.match(line)
    if match is None:
        raise ConfigParseAnomaly(f"line {line_number}: not a KEY=value assignment, ignored: {line}")
    key, raw_value = match.group(1), match.group(2).strip()
    if any(marker in raw_value for marker in _SUBSTITUTION_MARKERS):
        raise ConfigParseAnomaly(f"line {line_number}: command substitution in {key} is not allowed, ignored")
    return _Assignment(line_number, key, _unquote(raw_value))


def _unquote(value: str) -> str:
    """Return the text inside leading quotes, or a bare value without its comment.

    Anything after the closing quote other than a ``# comment`` is dropped.

    Examples
    --------
    >>> _unquote("'~/Dotlocal'")
    '~/Dotlocal'
    >>> _unquote('"/srv/dotlocal"  # private')
    '/srv/dotlocal'
    >>> _unquote('~/Dotlocal  # private')
    '~/Dotlocal'
    """

    if value[:1] in {'"', "'"}:
        closing = value.find(value[0], 1)
        if closing != -1:
            return value[1:closing]
        return value[1:]
    if value.startswith("#"):
        return ""
    if " #" in value or "\t#" in value:
        return re.split(r"\s#", value, maxsplit=1)[0].strip()
    return value


def _exists(path: Path) -> bool:
    try:
        return path.exists() or path.is_symlink()
    except OSError:
        return True


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False
