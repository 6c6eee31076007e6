"""
git.py

Responsibility: Local working-tree operations via the `git` executable.

Every command goes through `GitRepo._run`, which raises `GitError` carrying the
combined stdout/stderr on a non-zero exit. Callers decide whether a failure is
fatal for the current project.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from repobatch.errors import GitError

INITIAL_COMMIT_MESSAGE = "initial commit"
SYNC_COMMIT_MESSAGE = "auto-commit after sync"


@dataclass(frozen=True)
class RemoteEntry:
    name: str
    url: str
    direction: str  # "fetch" or "push"


def parse_remote_lines(output: str) -> list[RemoteEntry]:
    """
    Parse `git remote -v` output, e.g. `origin\thttps://github.com/o/n.git (fetch)`.
    """
    entries: list[RemoteEntry] = []
    for raw in output.splitlines():
        parts = raw.split()
        if len(parts) < 2:
            continue
        direction = parts[2].strip("()") if len(parts) > 2 else ""
        entries.append(RemoteEntry(name=parts[0], url=parts[1], direction=direction))
    return entries


def run_command(cmd: Sequence[str], *, cwd: Path) -> str:
    """
    Run a subprocess command, raising a GitError on failure. Returns combined output.
    """
    try:
        proc = subprocess.run(
            list(cmd),
            cwd=str(cwd),
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
    except subprocess.CalledProcessError as e:
        raise GitError(
            f"Command failed: {' '.join(cmd)}\n\n{e.stdout}",
            command=" ".join(cmd),
            output=e.stdout or "",
        ) from e
    except OSError as e:
        raise GitError(f"Command could not start: {' '.join(cmd)}: {e}", command=" ".join(cmd)) from e
    return proc.stdout or ""


class GitRepo:
    def __init__(self, path: str | Path, git: str = "git") -> None:
        self.path = Path(path)
        self._git = git

    def _run(self, *args: str) -> str:
        return run_command([self._git, *args], cwd=self.path)

    def exists(self) -> bool:
        return self.path.is_dir()

    def has_git_metadata(self) -> bool:
        return (self.path / ".git").exists()

    def remotes(self) -> list[RemoteEntry]:
        if not self.has_git_metadata():
            return []
        return parse_remote_lines(self._run("remote", "-v"))

    def has_remote(self, name: str) -> bool:
        return any(entry.name == name for entry in self.remotes())

    def init(self, branch: str = "main") -> None:
        self._run("init", "-b", branch)

    def add_all(self) -> None:
        self._run("add", "-A")

    def commit(self, message: str) -> None:
        self._run("commit", "-m", message)

    def has_changes(self) -> bool:
        return bool(self._run("status", "--porcelain").strip())

    def add_remote(self, name: str, url: str) -> None:
        self._run("remote", "add", name, url)

    def push_current(self, remote: str = "origin") -> None:
        self._run("push", "-u", remote, "HEAD")

    def pull_rebase(self) -> None:
        self._run("pull", "--rebase")
