"""Whole-workflow scenarios driven through the public package API."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

import microdots
from microdots import DiscoveryMethod, FatalError, Origin
from microdots.adapters.filesystem.links import read_link_once
from tests.support import DotfilesSandbox, create_dotfiles_sandbox


@pytest.fixture()
def sandbox(tmp_path: Path) -> DotfilesSandbox:
    sandbox = create_dotfiles_sandbox(tmp_path)
    sandbox.public("git/gitconfig.symlink", "[user]\n")
    sandbox.public("vim/vimrc.symlink", "set number\n")
    sandbox.public("core/lib.sh", "# core\n")
    sandbox.public("MICRODOTS.md", "# guide\n")
    return sandbox


def test_fresh_machine_to_personalised_home(sandbox: DotfilesSandbox) -> None:
    roots = {"public_root": sandbox.public_root, "home": sandbox.home}

    setup = microdots.ensure_dotlocal(**roots)
    assert setup.resolution.method is DiscoveryMethod.CREATED_DEFAULT
    assert setup.infrastructure.ok and setup.infrastructure.counts()["created"] == 2
    assert setup.config_written is None

    sandbox.write(sandbox.home_dotlocal, "git/gitconfig.symlink", "[user]\nemail = me@example.com\n")
    report = microdots.relink(**roots)
    assert report.ok
    assert read_link_once(sandbox.home / ".gitconfig") == sandbox.home_dotlocal / "git" / "gitconfig.symlink"

    current = microdots.status(**roots)
    assert current.ok
    assert current.resolution.method is DiscoveryMethod.STANDARD_DEFAULT
    assert {item.destination.name: item.origin for item in current.managed} == {
        ".gitconfig": Origin.LOCAL,
        ".vimrc": Origin.PUBLIC,
    }


def test_ensure_dotlocal_keeps_existing_root(sandbox: DotfilesSandbox) -> None:
    explicit = sandbox.directory(sandbox.root / "Private")
    sandbox.config(f"DOTLOCAL={explicit}\n")
    setup = microdots.ensure_dotlocal(public_root=sandbox.public_root, home=sandbox.home)
    assert setup.resolution.path == explicit
    assert setup.config_written is None
    assert not sandbox.home_dotlocal.exists()


def test_relink_clean_in_dry_run_keeps_dangling_links(sandbox: DotfilesSandbox) -> None:
    stale = sandbox.home / ".stale"
    stale.symlink_to(sandbox.root / "vanished")
    report = microdots.relink(public_root=sandbox.public_root, home=sandbox.home, dry_run=True, clean=True)
    assert report.removed == [stale]
    assert stale.is_symlink()


def test_install_requires_public_root(sandbox: DotfilesSandbox) -> None:
    with pytest.raises(FatalError):
        microdots.install(public_root=sandbox.root / "missing", home=sandbox.home)


def test_public_and_local_topics_merge_into_three_links(tmp_path: Path) -> None:
    sandbox = create_dotfiles_sandbox(tmp_path)
    sandbox.public("vim/vimrc.symlink", "set number\n")
    sandbox.public("git/gitconfig.symlink", "[user]\nname = public\n")
    local = sandbox.directory(sandbox.home_dotlocal)
    sandbox.write(local, "git/gitconfig.symlink", "[user]\nname = private\n")
    sandbox.write(local, "ssh/config.symlink", "Host *\n")

    report = microdots.relink(public_root=sandbox.public_root, home=sandbox.home)

    assert report.counts()["created"] == 3
    assert report.counts()["skipped"] == 0
    assert report.counts()["errors"] == 0
    links = sorted(entry.name for entry in sandbox.home.iterdir() if entry.is_symlink())
    assert links == [".config", ".gitconfig", ".vimrc"]
    assert (sandbox.home / ".gitconfig").read_text(encoding="utf-8") == "[user]\nname = private\n"
    assert read_link_once(sandbox.home / ".vimrc") == sandbox.public_root / "vim" / "vimrc.symlink"
    assert read_link_once(sandbox.home / ".config") == local / "ssh" / "config.symlink"


def test_dry_run_clean_preview_matches_real_run(sandbox: DotfilesSandbox) -> None:
    stale = sandbox.home / ".vimrc"
    stale.symlink_to(sandbox.root / "vanished" / "vimrc")
    roots = {"public_root": sandbox.public_root, "home": sandbox.home, "clean": True}

    preview = microdots.relink(dry_run=True, **roots)
    assert stale.is_symlink()
    real = microdots.relink(**roots)

    assert preview.counts() == real.counts()
    assert real.counts()["created"] == 2
    assert real.counts()["updated"] == 0
    assert real.counts()["removed"] == 1


def test_cloud_discovered_root_is_recorded_in_new_config(sandbox: DotfilesSandbox) -> None:
    dropbox = sandbox.directory(sandbox.home / "Dropbox" / "Dotlocal")
    setup = microdots.ensure_dotlocal(public_root=sandbox.public_root, home=sandbox.home)

    assert setup.resolution.method is DiscoveryMethod.CLOUD_DISCOVERED
    conf = sandbox.public_root / "dotfiles.conf"
    assert setup.config_written == conf
    assert f'DOTLOCAL="{dropbox}"' in conf.read_text(encoding="utf-8")
    again = microdots.status(public_root=sandbox.public_root, home=sandbox.home)
    assert again.resolution.method is DiscoveryMethod.EXPLICIT_CONFIG
    assert again.resolution.path == dropbox


def test_existing_config_is_never_rewritten(sandbox: DotfilesSandbox) -> None:
    sandbox.directory(sandbox.home / "Dropbox" / "Dotlocal")
    conf = sandbox.config("# keep me\nBACKUP_PATH=~/Backups\n")
    setup = microdots.ensure_dotlocal(public_root=sandbox.public_root, home=sandbox.home)

    assert setup.resolution.method is DiscoveryMethod.CLOUD_DISCOVERED
    assert setup.config_written is None
    assert conf.read_text(encoding="utf-8") == "# keep me\nBACKUP_PATH=~/Backups\n"


def test_status_reports_whether_dotlocal_is_accessible(sandbox: DotfilesSandbox, monkeypatch: pytest.MonkeyPatch) -> None:
    sandbox.directory(sandbox.home_dotlocal)
    roots = {"public_root": sandbox.public_root, "home": sandbox.home}
    assert microdots.status(**roots).as_dict()["exists"] is True

    real_access = os.access

    def deny_writes(path, mode, *args, **kwargs):
        if Path(path) == sandbox.home_dotlocal and mode & os.W_OK:
            return False
        return real_access(path, mode, *args, **kwargs)

    monkeypatch.setattr(os, "access", deny_writes)
    report = microdots.status(**roots)
    assert report.resolution.found
    assert report.accessible is False
    assert report.as_dict()["exists"] is False
    assert not report.ok


def test_relative_roots_are_made_absolute(sandbox: DotfilesSandbox, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(sandbox.root)
    roots = {"public_root": Path("dotfiles"), "home": Path("home")}

    first = microdots.relink(**roots)
    second = microdots.relink(**roots)

    assert first.counts()["created"] == 2
    assert second.counts()["skipped"] == 2
    assert read_link_once(sandbox.home / ".vimrc") == sandbox.public_root / "vim" / "vimrc.symlink"
    assert (sandbox.home / ".vimrc").read_text(encoding="utf-8") == "set number\n"
