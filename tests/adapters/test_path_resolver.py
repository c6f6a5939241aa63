"""Dotlocal discovery tests.

The precedence grid builds every combination of candidates the five levels can
offer and checks that the highest level present always wins. The remaining
scenarios cover fall-through on unusable candidates, the cache, and the
read-only guarantee.
"""

from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from microdots.application.cache import PathCache
from microdots.core import build_resolver
from microdots.domain.models import NOT_FOUND, DiscoveryMethod
from tests.support import DotfilesSandbox, create_dotfiles_sandbox, snapshot


@pytest.fixture()
def sandbox(tmp_path: Path) -> DotfilesSandbox:
    return create_dotfiles_sandbox(tmp_path)


def _resolver(sandbox: DotfilesSandbox, cache: PathCache | None = None):
    return build_resolver(sandbox.public_root, sandbox.home, cache=cache, volumes_root=sandbox.volumes)


@pytest.mark.parametrize(
    ("explicit", "public_kind", "home_default", "cloud"),
    list(itertools.product([False, True], [None, "symlink", "directory"], [False, True], [None, "dropbox", "volume"])),
)
def test_highest_available_level_wins(sandbox: DotfilesSandbox, explicit, public_kind, home_default, cloud) -> None:
    expected = []
    if explicit:
        target = sandbox.directory(sandbox.root / "explicit")
        sandbox.config(f'DOTLOCAL="{target}"\n')
        expected.append((target, DiscoveryMethod.EXPLICIT_CONFIG))
    if public_kind == "symlink":
        target = sandbox.directory(sandbox.root / "linked")
        (sandbox.public_root / ".dotlocal").symlink_to(target)
        expected.append((target, DiscoveryMethod.SYMLINK))
    elif public_kind == "directory":
        target = sandbox.directory(sandbox.public_root / ".dotlocal")
        expected.append((target, DiscoveryMethod.DIRECTORY))
    if home_default:
        expected.append((sandbox.directory(sandbox.home_dotlocal), DiscoveryMethod.STANDARD_DEFAULT))
    if cloud == "dropbox":
        expected.append((sandbox.directory(sandbox.home / "Dropbox" / "Dotlocal"), DiscoveryMethod.CLOUD_DISCOVERED))
    elif cloud == "volume":
        expected.append((sandbox.directory(sandbox.volumes / "USB" / "Dotlocal"), DiscoveryMethod.CLOUD_DISCOVERED))

    resolution = _resolver(sandbox).resolve()

    if not expected:
        assert resolution == NOT_FOUND
    else:
        path, method = expected[0]
        assert resolution.path == path
        assert resolution.method is method


def test_missing_explicit_target_falls_through(sandbox: DotfilesSandbox) -> None:
    sandbox.config("DOTLOCAL=~/does-not-exist\n")
    home_dotlocal = sandbox.directory(sandbox.home_dotlocal)
    resolution = _resolver(sandbox).resolve()
    assert resolution.path == home_dotlocal
    assert resolution.method is DiscoveryMethod.STANDARD_DEFAULT


def test_explicit_tilde_and_relative_values(sandbox: DotfilesSandbox) -> None:
    private = sandbox.directory(sandbox.home / "Private" / "dotlocal")
    sandbox.config("DOTLOCAL=~/Private/dotlocal\n")
    assert _resolver(sandbox).resolve().path == private

    relative = sandbox.directory(sandbox.public_root / "local-config")
    sandbox.config("LOCAL_PATH=local-config\n")
    assert _resolver(sandbox).resolve().path == relative


def test_broken_public_symlink_falls_through(sandbox: DotfilesSandbox) -> None:
    (sandbox.public_root / ".dotlocal").symlink_to(sandbox.root / "vanished")
    home_dotlocal = sandbox.directory(sandbox.home_dotlocal)
    resolution = _resolver(sandbox).resolve()
    assert resolution.path == home_dotlocal


def test_circular_public_symlink_is_skipped(sandbox: DotfilesSandbox) -> None:
    link = sandbox.public_root / ".dotlocal"
    link.symlink_to(link)
    assert _resolver(sandbox).resolve() == NOT_FOUND


def test_symlink_is_followed_one_hop_only(sandbox: DotfilesSandbox) -> None:
    real = sandbox.directory(sandbox.root / "real")
    hop = sandbox.root / "hop"
    hop.symlink_to(real)
    (sandbox.public_root / ".dotlocal").symlink_to(hop)
    resolution = _resolver(sandbox).resolve()
    assert resolution.method is DiscoveryMethod.SYMLINK
    assert resolution.path == hop


def test_cloud_order_and_providers(sandbox: DotfilesSandbox) -> None:
    icloud = sandbox.directory(sandbox.home / "Library/Mobile Documents/com~apple~CloudDocs/Dotlocal")
    sandbox.directory(sandbox.home / "Dropbox" / "Dotlocal")
    resolution = _resolver(sandbox).resolve()
    assert resolution.path == icloud
    assert resolution.provider == "iCloud Drive"


def test_volumes_scanned_in_name_order(sandbox: DotfilesSandbox) -> None:
    sandbox.directory(sandbox.volumes / "Zeta" / "Dotlocal")
    shared = sandbox.directory(sandbox.volumes / "My Shared Files" / "Dotlocal")
    resolution = _resolver(sandbox).resolve()
    assert resolution.path == shared
    assert resolution.provider == "Network Storage"


def test_cache_returns_stale_value_until_cleared(sandbox: DotfilesSandbox) -> None:
    cache = PathCache()
    resolver = _resolver(sandbox, cache)
    assert resolver.resolve() == NOT_FOUND

    created = sandbox.directory(sandbox.home_dotlocal)
    assert resolver.resolve() == NOT_FOUND

    cache.clear()
    assert resolver.resolve().path == created


def test_resolution_never_mutates_the_tree(sandbox: DotfilesSandbox) -> None:
    sandbox.config("DOTLOCAL=~/missing\n")
    (sandbox.public_root / ".dotlocal").symlink_to(sandbox.root / "gone")
    before = snapshot(sandbox.root)
    _resolver(sandbox).resolve()
    assert snapshot(sandbox.root) == before


@pytest.mark.parametrize(
    ("setup", "expected"),
    [
        ("explicit", "explicit"),
        ("symlink", "symlink"),
        ("directory", "directory"),
        ("standard", "standard"),
        ("nothing", "none"),
    ],
)
def test_describe_type(sandbox: DotfilesSandbox, setup: str, expected: str) -> None:
    if setup == "explicit":
        sandbox.config("DOTLOCAL=~/not-created-yet\n")
    elif setup == "symlink":
        (sandbox.public_root / ".dotlocal").symlink_to(sandbox.root / "anywhere")
    elif setup == "directory":
        sandbox.directory(sandbox.public_root / ".dotlocal")
    elif setup == "standard":
        sandbox.directory(sandbox.home_dotlocal)
    assert _resolver(sandbox).describe_type() == expected
