"""CLI adapter for ``microdots`` built on ``lib_cli_exit_tools``.

Purpose
-------
Expose discovery, linking, and repair as shell commands so a user can see why
a dotlocal root was chosen, preview a relink, and fix broken infrastructure.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command with ``--dotfiles``/``--home``/``--verbose`` and
  traceback handling wired into ``lib_cli_exit_tools``.
* :func:`cli_status`, :func:`cli_relink`, :func:`cli_repair_infrastructure`,
  :func:`cli_install`, :func:`cli_init_dotlocal`, :func:`cli_validate_config`,
  :func:`cli_info` – subcommands.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
Outermost layer. Commands call :mod:`microdots.core` and render its reports.
Exit codes: ``0`` success, ``1`` when a report recorded failures, ``2`` for
fatal conditions such as a missing home directory.
"""

from __future__ import annotations

import functools
import json
import sys
from importlib import metadata
from pathlib import Path
from typing import Callable, Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from . import core
from .adapters.env.default import DefaultEnvironment
from .domain.errors import FatalError
from .domain.models import LinkOutcome
from .observability import attach_stderr_handler, get_logger

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000

EXIT_FAILURES: Final[int] = 1
EXIT_FATAL: Final[int] = 2


def _resolve_version() -> str:
    """Return the installed package version, or ``"0.0.0"`` for source checkouts."""

    try:
        return metadata.version("microdots")
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Convention-based dotfiles with a private dotlocal overlay",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="microdots",
    message="microdots version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option(
    "--dotfiles",
    "dotfiles",
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True, resolve_path=True),
    default=None,
    help="Public dotfiles root (defaults to $DOTFILES_ROOT, $ZSH, then ~/.dotfiles)",
)
@click.option(
    "--home",
    "home",
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True, resolve_path=True),
    default=None,
    help="Home directory receiving the links (defaults to $HOME)",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log discovery and link decisions to stderr")
@click.pass_context
def cli(ctx: click.Context, traceback: bool, dotfiles: Optional[Path], home: Optional[Path], verbose: bool) -> None:
    """Root command storing roots and traceback preference for subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``; attaches a stderr
        log handler for the duration of the command when ``--verbose`` is set.
    """

    ctx.ensure_object(dict)
    environment = DefaultEnvironment()
    ctx.obj["traceback"] = traceback
    ctx.obj["home"] = home or environment.home()
    ctx.obj["public_root"] = dotfiles or environment.dotfiles_root()
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback
    if verbose:
        handler = attach_stderr_handler()
        ctx.call_on_close(lambda: get_logger().removeHandler(handler))


def _fatal_as_exit(command: Callable[..., None]) -> Callable[..., None]:
    """Turn :class:`FatalError` into a one-line message and exit code 2."""

    @functools.wraps(command)
    def wrapper(*args, **kwargs) -> None:
        try:
            command(*args, **kwargs)
        except FatalError as exc:
            click.echo(f"Error: {exc}", err=True)
            raise SystemExit(EXIT_FATAL) from exc

    return wrapper


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata("microdots")
    except metadata.PackageNotFoundError:
        click.echo("microdots (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'microdots')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("status", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit the status as JSON")
@click.pass_context
@_fatal_as_exit
def cli_status(ctx: click.Context, as_json: bool) -> None:
    """Show which dotlocal directory is in use, why, and whether its infrastructure is healthy."""

    report = core.status(public_root=ctx.obj["public_root"], home=ctx.obj["home"])
    if as_json:
        click.echo(json.dumps(report.as_dict(), indent=2))
    else:
        resolution = report.resolution
        click.echo(f"Dotfiles : {report.public_root}")
        click.echo(f"Dotlocal : {resolution.path if resolution.found else '(none)'}")
        method = resolution.method.description
        if resolution.provider:
            method = f"{method} ({resolution.provider})"
        click.echo(f"Method   : {method}")
        click.echo(f"Type     : {report.dotlocal_type}")
        if resolution.found:
            click.echo(f"Access   : {'read/write' if report.accessible else 'not readable or not writable'}")
        click.echo(f"Links    : {len(report.managed)} managed in {report.home}")
        if resolution.found:
            click.echo(f"Infrastructure defects: {len(report.defects)}")
            for defect in report.defects:
                click.echo(f"  {defect.entry.name:<15} {defect.label}")
    if report.defects or (report.resolution.found and not report.accessible):
        raise SystemExit(EXIT_FAILURES)


@cli.command("relink", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--dry-run", is_flag=True, default=False, help="Report what would change without touching the filesystem")
@click.option(
    "--force/--no-force",
    default=False,
    show_default=True,
    help="Back up real files that block a link and replace them",
)
@click.option("--clean", is_flag=True, default=False, help="Remove dangling symlinks in $HOME first")
@click.pass_context
@_fatal_as_exit
def cli_relink(ctx: click.Context, dry_run: bool, force: bool, clean: bool) -> None:
    """Link every topic's ``*.symlink`` files into $HOME, local overriding public."""

    report = core.relink(
        public_root=ctx.obj["public_root"],
        home=ctx.obj["home"],
        dry_run=dry_run,
        force=force,
        clean=clean,
    )
    title = "Symlink preview (dry-run)" if dry_run else "Symlinks"
    _echo_counts(title, report.counts())
    for outcome in [*report.created, *report.updated]:
        if dry_run or outcome.backup is not None:
            _echo_outcome(outcome)
    _echo_failures(report.failures)
    if not report.ok:
        raise SystemExit(EXIT_FAILURES)


@cli.command("repair-infrastructure", context_settings=CLICK_CONTEXT_SETTINGS)
@click.pass_context
@_fatal_as_exit
def cli_repair_infrastructure(ctx: click.Context) -> None:
    """Recreate missing or wrong infrastructure links inside the dotlocal directory."""

    report = core.repair_infrastructure(public_root=ctx.obj["public_root"], home=ctx.obj["home"])
    _echo_counts("Infrastructure", report.counts())
    for outcome in report.updated:
        _echo_outcome(outcome)
    _echo_failures(report.errors)
    if not report.ok:
        raise SystemExit(EXIT_FAILURES)


@cli.command("init-dotlocal", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option(
    "--force/--no-force",
    default=False,
    show_default=True,
    help="Back up real files that block an infrastructure link",
)
@click.pass_context
@_fatal_as_exit
def cli_init_dotlocal(ctx: click.Context, force: bool) -> None:
    """Create ~/.dotlocal when no dotlocal directory exists and link its infrastructure."""

    setup = core.ensure_dotlocal(public_root=ctx.obj["public_root"], home=ctx.obj["home"])
    resolution, report = setup.resolution, setup.infrastructure
    click.echo(f"Dotlocal : {resolution.path} ({resolution.method.description})")
    if setup.config_written is not None:
        click.echo(f"Config   : wrote {setup.config_written}")
    if force and report.errors:
        report = core.repair_infrastructure(public_root=ctx.obj["public_root"], home=ctx.obj["home"])
    _echo_counts("Infrastructure", report.counts())
    _echo_failures(report.errors)
    if not report.ok:
        raise SystemExit(EXIT_FAILURES)


@cli.command("install", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--dry-run", is_flag=True, default=False, help="List installers without running them")
@click.pass_context
@_fatal_as_exit
def cli_install(ctx: click.Context, dry_run: bool) -> None:
    """Run every topic's install.sh, public topics first."""

    report = core.install(public_root=ctx.obj["public_root"], home=ctx.obj["home"], dry_run=dry_run)
    _echo_counts("Installers (dry-run)" if dry_run else "Installers", report.counts())
    for outcome in report.failed:
        click.echo(f"  failed    {outcome.topic} (exit {outcome.returncode}): {outcome.script}")
    if not report.ok:
        raise SystemExit(EXIT_FAILURES)


@cli.command("validate-config", context_settings=CLICK_CONTEXT_SETTINGS)
@click.pass_context
def cli_validate_config(ctx: click.Context) -> None:
    """Check dotfiles.conf for duplicate keys, shell commands, and missing directories."""

    findings = core.validate_configuration(public_root=ctx.obj["public_root"], home=ctx.obj["home"])
    if not findings:
        click.echo("Configuration is valid")
        return
    for finding in findings:
        click.echo(f"  {finding}")
    raise SystemExit(EXIT_FAILURES)


def _echo_counts(title: str, counts: dict[str, int]) -> None:
    click.echo(f"{title}:")
    for name, value in counts.items():
        click.echo(f"  {name:<10}: {value}")


def _echo_outcome(outcome: LinkOutcome) -> None:
    line = f"  {outcome.action.value:<9} {outcome.destination} -> {outcome.source}"
    if outcome.backup is not None:
        line += f" (backup: {outcome.backup})"
    elif outcome.detail:
        line += f" ({outcome.detail})"
    click.echo(line)


def _echo_failures(failures: Sequence[LinkOutcome]) -> None:
    if not failures:
        return
    click.echo("Failures:")
    for outcome in failures:
        click.echo(f"  {outcome.action.value:<9} {outcome.destination}: {outcome.detail}")


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="microdots",
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
