"""
classifier.py

Responsibility: Classify a repository's remote state into a disposition.

Precedence: private is checked before fork, so a private fork reports as
EXISTS_PRIVATE. Local remote entries are collected for the log entry only and
never influence the disposition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from repobatch.errors import GitError
from repobatch.git import GitRepo, RemoteEntry
from repobatch.github_client import RemoteRepo
from repobatch.runlog import RunLog


class RepoReader(Protocol):
    def get_repo(self, owner: str, name: str) -> RemoteRepo | None: ...


class Disposition(str, Enum):
    NOT_FOUND = "not-found"
    EXISTS_PRIVATE = "exists-private"
    EXISTS_FORK = "exists-fork"
    EXISTS_PUBLIC_NON_FORK = "exists-public"


@dataclass(frozen=True)
class Classification:
    owner: str
    name: str
    disposition: Disposition
    repo: RemoteRepo | None = None
    local_remotes: tuple[RemoteEntry, ...] = field(default_factory=tuple)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


def disposition_of(repo: RemoteRepo | None) -> Disposition:
    if repo is None:
        return Disposition.NOT_FOUND
    if repo.private:
        return Disposition.EXISTS_PRIVATE
    if repo.fork:
        return Disposition.EXISTS_FORK
    return Disposition.EXISTS_PUBLIC_NON_FORK


def _local_remotes(local_dir: Path | None, repo_factory: Callable[[Path], GitRepo]) -> tuple[RemoteEntry, ...]:
    if local_dir is None or not local_dir.is_dir():
        return ()
    try:
        return tuple(repo_factory(local_dir).remotes())
    except GitError:
        return ()


def classify(
    client: RepoReader,
    owner: str,
    name: str,
    local_dir: Path | None = None,
    *,
    repo_factory: Callable[[Path], GitRepo] = GitRepo,
) -> Classification:
    repo = client.get_repo(owner, name)
    return Classification(
        owner=owner,
        name=name,
        disposition=disposition_of(repo),
        repo=repo,
        local_remotes=_local_remotes(local_dir, repo_factory),
    )


def log_classification(log: RunLog, result: Classification) -> None:
    """
    Record a skip outcome. NOT_FOUND is left for the planner to log.
    """
    remotes = ""
    if result.local_remotes:
        remotes = " (local remotes: " + ", ".join(f"{r.name} {r.url} {r.direction}" for r in result.local_remotes) + ")"
    if result.disposition is Disposition.EXISTS_PRIVATE:
        log.warn(f"SKIP PRIVATE {result.full_name}: repository is private{remotes}")
    elif result.disposition is Disposition.EXISTS_FORK:
        log.warn(f"SKIP FORK {result.full_name}: repository is a fork{remotes}")
    elif result.disposition is Disposition.EXISTS_PUBLIC_NON_FORK:
        log.write("EXIST", f"{result.full_name} already exists{remotes}")
