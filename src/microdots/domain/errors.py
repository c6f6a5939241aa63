"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by adapters, application services, and
the CLI. The hierarchy lives in the domain layer so outer layers may depend on
it without creating import cycles.

Contents
--------
* :class:`MicrodotsError` – umbrella base class.
* :class:`NotFound` – a looked-up path does not exist.
* :class:`PermissionDenied` – the filesystem refused an operation.
* :class:`Conflict` – a destination holds an object the engine did not expect.
* :class:`CircularReference` – a symlink resolves back onto itself.
* :class:`ConfigParseAnomaly` – a ``dotfiles.conf`` line could not be used.
* :class:`FatalError` – the whole operation is meaningless (e.g. no ``$HOME``).

System Role
-----------
Only :class:`FatalError` escapes the application layer. Every other type is
recorded per item inside a report so one bad file never stops a batch run;
the classes still exist so detail strings and tests can name the category.
"""

from __future__ import annotations


class MicrodotsError(Exception):
    """Base type for all exceptions emitted by ``microdots``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class NotFound(MicrodotsError):
    """Represents a missing path.

    Never user-facing: discovery folds it into "try the next level" and the
    engines fold it into empty results.
    """


class PermissionDenied(MicrodotsError):
    """Raised by the link primitive when the OS refuses a mutation.

    The application layer records it against the affected destination and
    continues with the next item.
    """


class Conflict(MicrodotsError):
    """A destination exists and is not a symlink.

    Resolved only when the caller opted into ``force`` (the object is backed up
    before it is replaced).
    """


class CircularReference(MicrodotsError):
    """A symlink resolves back to itself or to the path being written."""


class ConfigParseAnomaly(MicrodotsError):
    """A malformed or unsafe line inside ``dotfiles.conf``.

    Typical Sources
    ---------------
    Command substitutions, shell commands such as ``ln -s``, or lines without
    an ``=``. The loader records these as warnings and skips the line.
    """


class FatalError(MicrodotsError):
    """Aborts the current command (exit code 2).

    Raised when an operation cannot meaningfully start, for example when the
    home directory does not exist.
    """
