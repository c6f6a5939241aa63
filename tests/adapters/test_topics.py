"""Topic enumeration and filename convention tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from microdots.adapters.topics.default import CONVENTIONS, DefaultTopicEnumerator, Role, classify
from microdots.domain.models import Origin


@pytest.fixture()
def tree(tmp_path: Path) -> Path:
    root = tmp_path / "dotfiles"
    for relative in [
        "git/gitconfig.symlink",
        "git/install.sh",
        "git/aliases.zsh",
        "git/path.zsh",
        "vim/vimrc.symlink",
        "vim/vimrc.symlink.example",
        "vim/plugins/plug.symlink",
        "vim/plugins/deep/ignored.symlink",
        "core/lib.zsh",
        ".git/config",
        "backups/old.symlink",
        "tests/test.symlink",
        "README.md",
    ]:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="utf-8")
    (root / "ssh" / "config.symlink").mkdir(parents=True)
    return root


def test_conventions_table_order() -> None:
    assert [role for _, role in CONVENTIONS] == [Role.PATH, Role.COMPLETION, Role.SHELL, Role.SYMLINK, Role.INSTALL]
    assert classify("completion.zsh") is Role.COMPLETION
    assert classify("install.sh") is Role.INSTALL
    assert classify("README.md") is None


def test_topics_are_sorted_and_reserved_names_skipped(tree: Path) -> None:
    topics = DefaultTopicEnumerator().list_topics(tree, Origin.LOCAL)
    assert [topic.name for topic in topics] == ["git", "ssh", "vim"]
    assert {topic.origin for topic in topics} == {Origin.LOCAL}


def test_symlink_members_include_one_subtopic_level(tree: Path) -> None:
    enumerator = DefaultTopicEnumerator()
    vim = next(topic for topic in enumerator.list_topics(tree) if topic.name == "vim")
    members = enumerator.list_files(vim, Role.SYMLINK)
    assert members == [tree / "vim" / "vimrc.symlink", tree / "vim" / "plugins" / "plug.symlink"]


def test_symlink_directories_are_members(tree: Path) -> None:
    enumerator = DefaultTopicEnumerator()
    ssh = next(topic for topic in enumerator.list_topics(tree) if topic.name == "ssh")
    assert enumerator.list_files(ssh, "symlink") == [tree / "ssh" / "config.symlink"]
    assert enumerator.list_subtopics(ssh) == []


def test_roles_are_exclusive(tree: Path) -> None:
    enumerator = DefaultTopicEnumerator()
    git = next(topic for topic in enumerator.list_topics(tree) if topic.name == "git")
    assert enumerator.list_files(git, Role.PATH) == [tree / "git" / "path.zsh"]
    assert enumerator.list_files(git, Role.SHELL) == [tree / "git" / "aliases.zsh"]
    assert enumerator.list_files(git, Role.INSTALL) == [tree / "git" / "install.sh"]


def test_symlinked_directories_are_not_topics(tree: Path, tmp_path: Path) -> None:
    elsewhere = tmp_path / "elsewhere"
    (elsewhere / "zsh").mkdir(parents=True)
    (tree / "docs").symlink_to(elsewhere)
    names = [topic.name for topic in DefaultTopicEnumerator().list_topics(tree)]
    assert "docs" not in names


def test_missing_root_yields_nothing(tmp_path: Path) -> None:
    assert DefaultTopicEnumerator().list_topics(tmp_path / "absent") == []
