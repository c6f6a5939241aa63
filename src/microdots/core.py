"""Composition root for ``microdots``.

Purpose
-------
Provide the entry points the CLI (and scripts) call: each wires the default
adapters into the application services for one public root / home pair and
returns a structured report.

Contents
--------
* :func:`build_resolver` – resolver wired with the ``dotfiles.conf`` loader
  and a cache.
* :func:`status` – dry read of discovery plus infrastructure validation.
* :func:`relink` – optional broken-link cleanup, then two-phase linking.
* :func:`repair_infrastructure` – fix the dotlocal infrastructure links.
* :func:`ensure_dotlocal` – explicit creation of ``~/.dotlocal``.
* :func:`install` – run topic installers.
* :func:`validate_configuration` – ``dotfiles.conf`` findings.

System Role
-----------
The only module that knows every concrete adapter. Each entry point binds a
fresh trace identifier so all events of one command can be correlated.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from .adapters.config_file.default import DotfilesConfLoader, validate_config, write_discovered_config
from .adapters.filesystem.links import is_accessible_dir
from .adapters.path_resolvers.default import DOTLOCAL_NAME, DefaultLocalPathResolver
from .application.cache import PathCache
from .application.infrastructure import Defect, InfrastructureLinker
from .application.install import InstallOrchestrator
from .application.ports import ResolutionCache
from .application.symlinks import SymlinkEngine
from .domain.errors import FatalError
from .domain.models import (
    DiscoveryMethod,
    InfrastructureReport,
    InstallReport,
    LinkReport,
    LocalPathResolution,
    SymlinkTarget,
)
from .observability import bind_trace_id, log_info


@dataclass(slots=True)
class StatusReport:
    """Everything ``microdots status`` prints."""

    public_root: Path
    home: Path
    resolution: LocalPathResolution
    dotlocal_type: str
    accessible: bool = False
    defects: list[Defect] = field(default_factory=list)
    managed: list[SymlinkTarget] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.resolution.found and self.accessible and not self.defects

    def as_dict(self) -> dict[str, object]:
        return {
            "public_root": str(self.public_root),
            "home": str(self.home),
            "dotlocal": self.resolution.as_dict(),
            "type": self.dotlocal_type,
            "exists": self.accessible,
            "infrastructure_defects": [
                {"name": defect.entry.name, "path": str(defect.path), "defect": defect.label}
                for defect in self.defects
            ],
            "managed_links": [
                {"destination": str(item.destination), "source": str(item.source), "origin": item.origin.value}
                for item in self.managed
            ],
        }


def build_resolver(
    public_root: Path,
    home: Path,
    *,
    cache: ResolutionCache | None = None,
    volumes_root: Path | None = None,
) -> DefaultLocalPathResolver:
    """Return a resolver wired with the default config loader."""

    return DefaultLocalPathResolver(
        public_root=public_root,
        home=home,
        cache=cache if cache is not None else PathCache(),
        config_loader=DotfilesConfLoader(),
        volumes_root=volumes_root,
    )


def status(
    *,
    public_root: Path,
    home: Path,
    resolver: DefaultLocalPathResolver | None = None,
) -> StatusReport:
    """Resolve the dotlocal root and validate its infrastructure without mutating anything."""

    bind_trace_id(_new_trace_id())
    public_root, home = _absolute(public_root), _absolute(home)
    resolver = resolver or build_resolver(public_root, home)
    resolution = resolver.resolve()
    report = StatusReport(
        public_root=public_root,
        home=home,
        resolution=resolution,
        dotlocal_type=resolver.describe_type(),
    )
    if resolution.found:
        report.accessible = is_accessible_dir(resolution.path)
        report.defects = InfrastructureLinker().inspect(resolution.path, public_root)
    report.managed = SymlinkEngine().list_managed(home, public_root, resolution.path)
    return report


def relink(
    *,
    public_root: Path,
    home: Path,
    dry_run: bool = False,
    force: bool = False,
    clean: bool = False,
    resolver: DefaultLocalPathResolver | None = None,
    engine: SymlinkEngine | None = None,
) -> LinkReport:
    """Run :meth:`SymlinkEngine.create_all`, optionally after ``clean_broken``.

    A dry run with ``clean`` previews the links as if the dangling ones had
    already been removed, so both runs report the same counts.

    Raises
    ------
    FatalError
        The public root or the home directory is missing.
    """

    bind_trace_id(_new_trace_id())
    public_root, home = _absolute(public_root), _absolute(home)
    _require_public_root(public_root)
    resolver = resolver or build_resolver(public_root, home)
    engine = engine or SymlinkEngine()
    resolution = resolver.resolve()
    removed: list[Path] = []
    if clean:
        scratch = LinkReport(dry_run=dry_run)
        engine.clean_broken(home, dry_run=dry_run, report=scratch)
        removed = scratch.removed
    report = engine.create_all(
        public_root,
        resolution.path,
        home,
        dry_run=dry_run,
        force=force,
        assume_absent=removed,
    )
    report.removed.extend(removed)
    return report


def repair_infrastructure(
    *,
    public_root: Path,
    home: Path,
    resolver: DefaultLocalPathResolver | None = None,
) -> InfrastructureReport:
    """Repair the infrastructure links of the resolved dotlocal root.

    Raises
    ------
    FatalError
        No dotlocal root could be resolved.
    """

    bind_trace_id(_new_trace_id())
    public_root, home = _absolute(public_root), _absolute(home)
    resolver = resolver or build_resolver(public_root, home)
    resolution = resolver.resolve()
    if not resolution.found:
        raise FatalError("Cannot repair: no dotlocal directory found (run `microdots init-dotlocal`)")
    return InfrastructureLinker().repair(resolution.path, public_root)


@dataclass(slots=True)
class DotlocalSetup:
    """Result of :func:`ensure_dotlocal`."""

    resolution: LocalPathResolution
    infrastructure: InfrastructureReport
    config_written: Path | None = None


def ensure_dotlocal(
    *,
    public_root: Path,
    home: Path,
    resolver: DefaultLocalPathResolver | None = None,
) -> DotlocalSetup:
    """Create ``~/.dotlocal`` when discovery finds nothing, then ensure infrastructure.

    This is the only operation that creates the default directory; resolution
    itself never does. The cache is cleared after the directory is created so
    later lookups see it. A root found in cloud storage is recorded in a new
    ``dotfiles.conf`` when the public root has none, so later runs resolve
    it explicitly.
    """

    bind_trace_id(_new_trace_id())
    public_root, home = _absolute(public_root), _absolute(home)
    resolver = resolver or build_resolver(public_root, home)
    resolution = resolver.resolve()
    config_written: Path | None = None
    if not resolution.found:
        default = home / DOTLOCAL_NAME
        try:
            default.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FatalError(f"Cannot create {default}: {exc.strerror}") from exc
        resolver.cache.clear()
        log_info("dotlocal_created", phase="discovery", path=str(default))
        resolution = LocalPathResolution(default, DiscoveryMethod.CREATED_DEFAULT)
    elif resolution.method is DiscoveryMethod.CLOUD_DISCOVERED and public_root.is_dir():
        if write_discovered_config(resolver.config_path, resolution.path):
            config_written = resolver.config_path
    return DotlocalSetup(
        resolution=resolution,
        infrastructure=InfrastructureLinker().ensure(resolution.path, public_root),
        config_written=config_written,
    )


def install(
    *,
    public_root: Path,
    home: Path,
    dry_run: bool = False,
    resolver: DefaultLocalPathResolver | None = None,
    orchestrator: InstallOrchestrator | None = None,
) -> InstallReport:
    """Run every topic installer, public before local."""

    bind_trace_id(_new_trace_id())
    public_root, home = _absolute(public_root), _absolute(home)
    _require_public_root(public_root)
    resolver = resolver or build_resolver(public_root, home)
    orchestrator = orchestrator or InstallOrchestrator()
    return orchestrator.run_all(public_root, resolver.resolve().path, dry_run=dry_run)


def validate_configuration(*, public_root: Path, home: Path) -> list[str]:
    """Return findings for ``<public_root>/dotfiles.conf``."""

    public_root, home = _absolute(public_root), _absolute(home)
    resolver = build_resolver(public_root, home)
    return validate_config(resolver.config_path, home, public_root)


def _absolute(path: Path) -> Path:
    """Expand ``~`` and anchor a relative path at the working directory.

    Symlinks are kept, so a link created from a public root reached through
    a symlink still points through it.

    Examples
    --------
    >>> _absolute(Path('/srv/./dots/../dots'))
    PosixPath('/srv/dots')
    >>> _absolute(Path('dots')).is_absolute()
    True
    """

    return Path(os.path.abspath(os.path.expanduser(path)))


def _require_public_root(public_root: Path) -> None:
    if not public_root.is_dir():
        raise FatalError(f"Dotfiles directory does not exist: {public_root}")


def _new_trace_id() -> str:
    return uuid.uuid4().hex[:12]


__all__ = [
    "DotlocalSetup",
    "StatusReport",
    "build_resolver",
    "ensure_dotlocal",
    "install",
    "relink",
    "repair_infrastructure",
    "status",
    "validate_configuration",
]
