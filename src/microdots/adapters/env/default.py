"""Environment variable adapter.

Purpose
-------
Translate process environment variables into the two roots every command
needs: the public dotfiles root and the home directory.

Key behaviours
--------------
* ``DOTFILES_ROOT`` wins over ``ZSH`` (the variable the shell layer exports),
  which wins over ``~/.dotfiles``.
* ``HOME`` is read from the supplied mapping so tests can point the whole
  system at a sandbox without touching the real account.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from ...observability import log_debug

DEFAULT_DOTFILES_DIRNAME = ".dotfiles"
ROOT_VARIABLES = ("DOTFILES_ROOT", "ZSH")


class DefaultEnvironment:
    """Resolve roots from an environment mapping.

    Parameters
    ----------
    environ:
        Mapping to read from. Defaults to :data:`os.environ`.
    """

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        self._environ = dict(os.environ if environ is None else environ)

    def home(self) -> Path:
        """Return ``$HOME`` from the mapping, falling back to :meth:`Path.home`.

        Examples
        --------
        >>> str(DefaultEnvironment(environ={'HOME': '/home/demo'}).home())
        '/home/demo'
        """

        value = self._environ.get("HOME")
        return (Path(value).expanduser() if value else Path.home()).absolute()

    def dotfiles_root(self) -> Path:
        """Return the public root following the variable precedence.

        Relative values are anchored at the working directory.

        Examples
        --------
        >>> env = DefaultEnvironment(environ={'HOME': '/home/demo', 'ZSH': '/srv/dots'})
        >>> str(env.dotfiles_root())
        '/srv/dots'
        >>> str(DefaultEnvironment(environ={'HOME': '/home/demo'}).dotfiles_root())
        '/home/demo/.dotfiles'
        """

        for variable in ROOT_VARIABLES:
            value = self._environ.get(variable)
            if value:
                log_debug("dotfiles_root_from_env", phase="environment", path=value, variable=variable)
                return Path(value).expanduser().absolute()
        return self.home() / DEFAULT_DOTFILES_DIRNAME
