"""Dotlocal path resolution.

Purpose
-------
Implement the :class:`microdots.application.ports.LocalPathResolver` protocol:
find the private configuration root by probing five precedence levels in a
fixed order and stopping at the first match.

Contents
--------
* :data:`CLOUD_LOCATIONS` – fixed, ordered cloud-storage candidates.
* :class:`DefaultLocalPathResolver` – the precedence algorithm.
* :func:`_provider_for` – label a cloud candidate for status output.

System Role
-----------
Feeds the infrastructure linker, the symlink engine, and ``status``. The
resolver is a read-only lookup: it never creates directories or links and its
only side effect is populating the injected cache.

Precedence
----------
1. ``DOTLOCAL``/``LOCAL_PATH`` in ``<public_root>/dotfiles.conf``.
2. ``<public_root>/.dotlocal`` as a symlink (one ``readlink`` hop).
3. ``<public_root>/.dotlocal`` as a plain directory.
4. ``<home>/.dotlocal``.
5. Cloud storage locations, then ``/Volumes/*/Dotlocal``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, NamedTuple

from ...application.ports import ConfigLoader, ResolutionCache
from ...domain.models import NOT_FOUND, DiscoveryMethod, LocalPathResolution
from ...observability import log_debug, log_info, log_warning
from ..config_file.default import configured_path
from ..filesystem.links import is_dir, is_link, lexists, read_link_once

CONFIG_FILENAME = "dotfiles.conf"
DOTLOCAL_NAME = ".dotlocal"
VOLUME_DIRNAME = "Dotlocal"


class CloudLocation(NamedTuple):
    """A cloud-storage candidate relative to the home directory."""

    relative: str
    provider: str


#: Checked in order at level 5 before any mounted volume.
CLOUD_LOCATIONS: tuple[CloudLocation, ...] = (
    CloudLocation("Library/Mobile Documents/com~apple~CloudDocs/Dotlocal", "iCloud Drive"),
    CloudLocation("Library/Mobile Documents/com~apple~CloudDocs/Dotfiles/dotlocal", "iCloud Drive"),
    CloudLocation("Dropbox/Dotlocal", "Dropbox"),
    CloudLocation("Google Drive/Dotlocal", "Google Drive"),
    CloudLocation("OneDrive/Dotlocal", "OneDrive"),
)


class DefaultLocalPathResolver:
    """Resolve the dotlocal root for one public root / home pair.

    Why
    ----
    Centralise discovery so ``status`` can explain *why* a path was chosen and
    ``relink`` always links against the same root.
    """

    def __init__(
        self,
        *,
        public_root: Path,
        home: Path,
        cache: ResolutionCache,
        config_loader: ConfigLoader,
        volumes_root: Path | None = None,
    ) -> None:
        """Store the roots and collaborators used during resolution.

        Parameters
        ----------
        public_root / home:
            Directories the precedence levels are relative to.
        cache:
            Memo consulted before probing and populated afterwards.
        config_loader:
            Parser for ``dotfiles.conf`` (level 1).
        volumes_root:
            Directory scanned for ``*/Dotlocal`` mounts. Defaults to
            ``/Volumes``; tests point it into a sandbox.
        """

        self.public_root = public_root
        self.home = home
        self.cache = cache
        self.config_loader = config_loader
        self.volumes_root = volumes_root if volumes_root is not None else Path("/Volumes")

    def resolve(self) -> LocalPathResolution:
        """Return the cached resolution or check the five levels in order.

        Side Effects
        ------------
        Populates the cache (also with the not-found sentinel) and emits
        ``dotlocal_resolved`` / ``dotlocal_not_found`` events.
        """

        cached = self.cache.get()
        if cached is not None:
            return cached
        resolution = self._discover()
        self.cache.set(resolution)
        if resolution.found:
            log_info(
                "dotlocal_resolved",
                phase="discovery",
                path=str(resolution.path),
                method=resolution.method.value,
                provider=resolution.provider,
            )
        else:
            log_info("dotlocal_not_found", phase="discovery", path=None)
        return resolution

    def describe_type(self) -> str:
        """Return the configured kind of dotlocal without validating targets.

        Mirrors what a user set up: ``explicit`` when ``dotfiles.conf`` names a
        path (even a missing one), then ``symlink``, ``directory``,
        ``standard``, or ``none``.
        """

        if self.config_loader.load(self.config_path):
            return "explicit"
        candidate = self.public_root / DOTLOCAL_NAME
        if is_link(candidate):
            return "symlink"
        if lexists(candidate) and is_dir(candidate):
            return "directory"
        if is_dir(self.home / DOTLOCAL_NAME):
            return "standard"
        return "none"

    @property
    def config_path(self) -> Path:
        return self.public_root / CONFIG_FILENAME

    def _discover(self) -> LocalPathResolution:
        for level in (self._explicit_config, self._public_symlink, self._public_directory, self._home_default):
            resolution = level()
            if resolution is not None:
                return resolution
        return self._cloud() or NOT_FOUND

    def _explicit_config(self) -> LocalPathResolution | None:
        configured = self.config_loader.load(self.config_path)
        if not configured:
            return None
        candidate = configured_path(configured, self.home, self.public_root)
        if is_dir(candidate):
            return LocalPathResolution(candidate, DiscoveryMethod.EXPLICIT_CONFIG)
        log_warning("configured_dotlocal_missing", phase="discovery", path=str(candidate), level=1)
        return None

    def _public_symlink(self) -> LocalPathResolution | None:
        link = self.public_root / DOTLOCAL_NAME
        if not is_link(link):
            return None
        target = read_link_once(link)
        if target is None or target == link:
            log_warning("dotlocal_symlink_unusable", phase="discovery", path=str(link), level=2)
            return None
        if is_dir(target):
            return LocalPathResolution(target, DiscoveryMethod.SYMLINK)
        log_warning("dotlocal_symlink_broken", phase="discovery", path=str(link), target=str(target), level=2)
        return None

    def _public_directory(self) -> LocalPathResolution | None:
        candidate = self.public_root / DOTLOCAL_NAME
        if is_link(candidate) or not is_dir(candidate):
            return None
        return LocalPathResolution(candidate, DiscoveryMethod.DIRECTORY)

    def _home_default(self) -> LocalPathResolution | None:
        candidate = self.home / DOTLOCAL_NAME
        if is_dir(candidate):
            return LocalPathResolution(candidate, DiscoveryMethod.STANDARD_DEFAULT)
        return None

    def _cloud(self) -> LocalPathResolution | None:
        for candidate, provider in self._cloud_candidates():
            if is_dir(candidate):
                return LocalPathResolution(candidate, DiscoveryMethod.CLOUD_DISCOVERED, provider)
        return None

    def _cloud_candidates(self) -> Iterable[tuple[Path, str]]:
        for location in CLOUD_LOCATIONS:
            yield self.home / location.relative, location.provider
        for volume in _list_volumes(self.volumes_root):
            yield volume / VOLUME_DIRNAME, _provider_for(volume)


def _list_volumes(volumes_root: Path) -> list[Path]:
    """Return mounted volumes in name order; unreadable roots yield nothing."""

    try:
        entries = sorted(volumes_root.iterdir())
    except OSError:
        return []
    log_debug("volumes_scanned", phase="discovery", path=str(volumes_root), count=len(entries))
    return entries


def _provider_for(volume: Path) -> str:
    """Label a mounted volume for status output.

    Examples
    --------
    >>> _provider_for(Path('/Volumes/My Shared Files'))
    'Network Storage'
    >>> _provider_for(Path('/Volumes/Backup'))
    'Volume Backup'
    """

    if volume.name == "My Shared Files":
        return "Network Storage"
    return f"Volume {volume.name}"
