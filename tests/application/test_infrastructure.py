"""Infrastructure link tests: ensure, validate, repair."""

from __future__ import annotations

from pathlib import Path

import pytest

from microdots.adapters.filesystem.links import read_link_once
from microdots.application.infrastructure import INFRASTRUCTURE_SYMLINKS, InfrastructureLinker
from microdots.domain.errors import FatalError
from tests.support import DotfilesSandbox, create_dotfiles_sandbox, snapshot


@pytest.fixture()
def sandbox(tmp_path: Path) -> DotfilesSandbox:
    sandbox = create_dotfiles_sandbox(tmp_path)
    sandbox.public("core/lib/common.sh", "# shared\n")
    sandbox.public("docs/README.md", "# docs\n")
    sandbox.public("MICRODOTS.md", "# guide\n")
    sandbox.public("CLAUDE.md", "# assistant\n")
    sandbox.public("docs/architecture/COMPLIANCE.md", "# rules\n")
    sandbox.directory(sandbox.home_dotlocal)
    return sandbox


def test_fixed_entry_names() -> None:
    assert [entry.name for entry in INFRASTRUCTURE_SYMLINKS] == [
        "core",
        "docs",
        "MICRODOTS.md",
        "CLAUDE.md",
        "TASKS.md",
        "COMPLIANCE.md",
    ]


def test_ensure_creates_links_and_skips_missing_sources(sandbox: DotfilesSandbox) -> None:
    local = sandbox.home_dotlocal
    report = InfrastructureLinker().ensure(local, sandbox.public_root)

    assert report.counts() == {"created": 5, "updated": 0, "unchanged": 0, "skipped": 1, "errors": 0}
    assert read_link_once(local / "COMPLIANCE.md") == sandbox.public_root / "docs" / "architecture" / "COMPLIANCE.md"
    assert not (local / "TASKS.md").exists()


def test_ensure_is_idempotent(sandbox: DotfilesSandbox) -> None:
    linker = InfrastructureLinker()
    linker.ensure(sandbox.home_dotlocal, sandbox.public_root)
    before = snapshot(sandbox.root)
    report = linker.ensure(sandbox.home_dotlocal, sandbox.public_root)
    assert snapshot(sandbox.root) == before
    assert report.counts()["unchanged"] == 5


def test_validate_counts_defects_without_mutating(sandbox: DotfilesSandbox) -> None:
    local = sandbox.home_dotlocal
    (local / "docs").symlink_to(sandbox.root / "wrong")
    (local / "CLAUDE.md").write_text("local copy\n", encoding="utf-8")
    before = snapshot(sandbox.root)

    linker = InfrastructureLinker()
    defects = {defect.entry.name: defect.label for defect in linker.inspect(local, sandbox.public_root)}

    assert snapshot(sandbox.root) == before
    assert linker.validate(local, sandbox.public_root) == 5
    assert defects["docs"] == "wrong or broken symlink"
    assert defects["CLAUDE.md"] == "not a symlink"
    assert defects["core"] == "missing"


def test_ensure_without_force_leaves_real_files(sandbox: DotfilesSandbox) -> None:
    local = sandbox.home_dotlocal
    (local / "CLAUDE.md").write_text("local copy\n", encoding="utf-8")
    report = InfrastructureLinker().ensure(local, sandbox.public_root)
    assert [outcome.destination.name for outcome in report.errors] == ["CLAUDE.md"]
    assert (local / "CLAUDE.md").read_text(encoding="utf-8") == "local copy\n"


def test_repair_fixes_every_defect(sandbox: DotfilesSandbox) -> None:
    local = sandbox.home_dotlocal
    (local / "docs").symlink_to(sandbox.root / "wrong")
    (local / "CLAUDE.md").write_text("local copy\n", encoding="utf-8")

    linker = InfrastructureLinker()
    report = linker.repair(local, sandbox.public_root)

    assert report.ok
    assert linker.validate(local, sandbox.public_root) == 0
    backups = [outcome.backup for outcome in report.updated if outcome.backup is not None]
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "local copy\n"


def test_missing_local_root_is_fatal(sandbox: DotfilesSandbox) -> None:
    with pytest.raises(FatalError):
        InfrastructureLinker().ensure(sandbox.root / "absent", sandbox.public_root)
