"""
orchestrator.py

Responsibility: Sync a freshly marked project's working tree and publish the result.

Steps (each logged, none fatal for the batch):
1) run the project's sync script
2) commit all changes when the working tree is dirty
3) `git pull --rebase` after a successful commit
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from repobatch.errors import ExternalCommandFailure, GitError
from repobatch.git import SYNC_COMMIT_MESSAGE, GitRepo
from repobatch.runlog import RunLog

ScriptRunner = Callable[[Sequence[str], Path], None]


def run_script(cmd: Sequence[str], cwd: Path) -> None:
    try:
        subprocess.run(
            list(cmd),
            cwd=str(cwd),
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
    except subprocess.CalledProcessError as e:
        raise ExternalCommandFailure(
            f"Command failed: {' '.join(cmd)}\n\n{e.stdout}",
            command=" ".join(cmd),
            output=e.stdout or "",
        ) from e
    except OSError as e:
        raise ExternalCommandFailure(f"Command could not start: {' '.join(cmd)}: {e}", command=" ".join(cmd)) from e


@dataclass(frozen=True)
class SyncOutcome:
    ran_script: bool = False
    script_ok: bool = False
    committed: bool = False
    pulled: bool = False
    reason: str = ""


def sync_and_commit(
    local_dir: Path,
    *,
    log: RunLog,
    script_name: str = "sync.sh",
    command: Sequence[str] = ("bash",),
    runner: ScriptRunner = run_script,
    repo_factory: Callable[[Path], GitRepo] = GitRepo,
) -> SyncOutcome:
    script = local_dir / script_name
    if not script.is_file():
        log.info(f"No {script_name} in {local_dir}, sync skipped")
        return SyncOutcome(reason="no-script")

    script_ok = True
    try:
        runner([*command, str(script)], local_dir)
        log.write("SYNC", f"Ran {script} in {local_dir}")
    except ExternalCommandFailure as e:
        script_ok = False
        log.warn(f"Sync script failed in {local_dir}: {e}")

    repo = repo_factory(local_dir)
    try:
        dirty = repo.has_changes()
    except GitError as e:
        log.warn(f"Cannot read working-tree status in {local_dir}: {e}")
        return SyncOutcome(ran_script=True, script_ok=script_ok, reason="status-failed")
    if not dirty:
        log.info(f"No changes in {local_dir}")
        return SyncOutcome(ran_script=True, script_ok=script_ok, reason="no-changes")

    try:
        repo.add_all()
        repo.commit(SYNC_COMMIT_MESSAGE)
    except GitError as e:
        log.warn(f"Commit failed in {local_dir}: {e}")
        return SyncOutcome(ran_script=True, script_ok=script_ok, reason="commit-failed")
    log.write("COMMIT", f"Committed changes in {local_dir}")

    try:
        repo.pull_rebase()
    except GitError as e:
        log.warn(f"Rebase pull failed in {local_dir} (possible conflict): {e}")
        return SyncOutcome(ran_script=True, script_ok=script_ok, committed=True, reason="pull-failed")
    log.write("SYNC", f"Rebased {local_dir} onto upstream")
    return SyncOutcome(ran_script=True, script_ok=script_ok, committed=True, pulled=True)
