"""Shared sandbox for Microdots tests.

``create_dotfiles_sandbox`` lays out a public dotfiles root, a home directory,
and an empty volumes root under ``tmp_path`` so every test can shape exactly the
tree it needs and the real account is never touched.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class DotfilesSandbox:
    root: Path
    public_root: Path
    home: Path
    volumes: Path

    @property
    def env(self) -> dict[str, str]:
        """Environment pointing the CLI at the sandbox."""

        return {"HOME": str(self.home), "DOTFILES_ROOT": str(self.public_root), "ZSH": ""}

    @property
    def home_dotlocal(self) -> Path:
        return self.home / ".dotlocal"

    def write(self, base: Path, relative: str, content: str = "") -> Path:
        """Write *content* to ``base/relative`` creating parents."""

        path = base / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def public(self, relative: str, content: str = "") -> Path:
        return self.write(self.public_root, relative, content)

    def directory(self, path: Path) -> Path:
        path.mkdir(parents=True, exist_ok=True)
        return path

    def config(self, body: str) -> Path:
        """Write ``dotfiles.conf`` at the public root."""

        return self.public("dotfiles.conf", body)


def create_dotfiles_sandbox(tmp_path: Path) -> DotfilesSandbox:
    root = tmp_path
    sandbox = DotfilesSandbox(
        root=root,
        public_root=root / "dotfiles",
        home=root / "home",
        volumes=root / "Volumes",
    )
    for directory in (sandbox.public_root, sandbox.home, sandbox.volumes):
        directory.mkdir(parents=True, exist_ok=True)
    return sandbox


def snapshot(root: Path) -> dict[str, tuple[str, str]]:
    """Describe every entry below *root* without following symlinks.

    Used to prove that read-only operations leave the tree byte-for-byte alone.
    """

    state: dict[str, tuple[str, str]] = {}
    for current, dirnames, filenames in os.walk(root, followlinks=False):
        for name in [*dirnames, *filenames]:
            path = Path(current) / name
            key = str(path.relative_to(root))
            if path.is_symlink():
                state[key] = ("link", os.readlink(path))
            elif path.is_dir():
                state[key] = ("dir", "")
            else:
                state[key] = ("file", path.read_text(encoding="utf-8", errors="replace"))
    return state


__all__ = ["DotfilesSandbox", "create_dotfiles_sandbox", "snapshot"]
