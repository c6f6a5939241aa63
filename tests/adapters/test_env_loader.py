"""Environment adapter tests for public-root and home resolution."""

from __future__ import annotations

from pathlib import Path

from hypothesis import given
from hypothesis import strategies as st

from microdots.adapters.env.default import DefaultEnvironment


def test_dotfiles_root_prefers_dotfiles_root_over_zsh() -> None:
    env = DefaultEnvironment(environ={"HOME": "/home/me", "DOTFILES_ROOT": "/srv/a", "ZSH": "/srv/b"})
    assert env.dotfiles_root() == Path("/srv/a")


def test_empty_variables_are_ignored() -> None:
    env = DefaultEnvironment(environ={"HOME": "/home/me", "DOTFILES_ROOT": "", "ZSH": ""})
    assert env.dotfiles_root() == Path("/home/me/.dotfiles")


def test_home_falls_back_to_account_home() -> None:
    assert DefaultEnvironment(environ={}).home() == Path.home()


def test_relative_variables_are_anchored_at_working_directory(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    env = DefaultEnvironment(environ={"HOME": "home", "DOTFILES_ROOT": "dots"})
    assert env.home() == Path.cwd() / "home"
    assert env.dotfiles_root() == Path.cwd() / "dots"
    assert env.dotfiles_root().is_absolute()


SEGMENTS = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789_-", min_size=1, max_size=12)


@given(st.lists(SEGMENTS, min_size=1, max_size=4))
def test_home_is_taken_verbatim(segments: list[str]) -> None:
    home = "/" + "/".join(segments)
    env = DefaultEnvironment(environ={"HOME": home})
    assert env.home() == Path(home)
    assert env.dotfiles_root() == Path(home) / ".dotfiles"
