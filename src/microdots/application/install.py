"""Run topic installers (public first, then local)."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Callable, Mapping

from ..adapters.topics.default import DefaultTopicEnumerator, Role
from ..domain.models import InstallOutcome, InstallReport, Origin
from ..observability import log_error, log_info, make_event
from .ports import TopicEnumerator

Runner = Callable[..., subprocess.CompletedProcess]


class InstallOrchestrator:
    """Execute every ``install.sh`` found by the topic enumerator.

    The scripts are opaque: a nonzero exit is recorded against its topic and
    the next script still runs. Each script runs with its own directory as
    the working directory and sees ``DOTFILES_ROOT`` (and ``DOTLOCAL`` when a
    local root is known) in its environment.
    """

    def __init__(
        self,
        *,
        enumerator: TopicEnumerator | None = None,
        runner: Runner = subprocess.run,
        shell: str = "sh",
    ) -> None:
        self.enumerator = enumerator or DefaultTopicEnumerator()
        self.runner = runner
        self.shell = shell

    def run_all(
        self,
        public_root: Path,
        local_root: Path | None,
        *,
        dry_run: bool = False,
        environ: Mapping[str, str] | None = None,
    ) -> InstallReport:
        report = InstallReport()
        env = dict(os.environ if environ is None else environ)
        env["DOTFILES_ROOT"] = str(public_root)
        if local_root is not None:
            env["DOTLOCAL"] = str(local_root)

        roots = [(public_root, Origin.PUBLIC)]
        if local_root is not None:
            roots.append((local_root, Origin.LOCAL))
        for root, origin in roots:
            for topic in self.enumerator.list_topics(root, origin):
                for script in self.enumerator.list_files(topic, Role.INSTALL):
                    label = f"{origin.value}:{script.parent.relative_to(root).as_posix()}"
                    outcome = self._run(label, script, env, dry_run)
                    if outcome.returncode == 0:
                        report.succeeded.append(outcome)
                    else:
                        report.failed.append(outcome)
        log_info("install_complete", **make_event("install", str(public_root), report.counts()))
        return report

    def _run(self, label: str, script: Path, env: dict[str, str], dry_run: bool) -> InstallOutcome:
        if dry_run:
            log_info("install_planned", phase="install", path=str(script), topic=label)
            return InstallOutcome(label, script, 0, "dry-run: not executed")
        log_info("install_started", phase="install", path=str(script), topic=label)
        try:
            completed = self.runner(
                [self.shell, str(script)],
                cwd=str(script.parent),
                env=env,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            log_error("install_not_started", phase="install", path=str(script), error=str(exc))
            return InstallOutcome(label, script, 127, str(exc))
        output = (completed.stdout or "") + (completed.stderr or "")
        if completed.returncode != 0:
            log_error("install_failed", phase="install", path=str(script), returncode=completed.returncode)
        return InstallOutcome(label, script, completed.returncode, output)
