"""
planner.py

Responsibility: Decide how a missing repository gets created, then create it.

- No local directory                      -> REMOTE_ONLY
- Local directory without `.git`          -> init `main`, commit, SOURCE_LINKED
- Local `.git` without an `origin` remote -> SOURCE_LINKED
- Local `.git` with `origin`              -> REMOTE_ONLY (existing linkage is kept)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from repobatch.errors import ExternalCommandFailure
from repobatch.git import INITIAL_COMMIT_MESSAGE, GitRepo
from repobatch.github_client import RemoteRepo
from repobatch.lists import ProjectSpec
from repobatch.runlog import RunLog


class RepoCreator(Protocol):
    def create_repo(self, owner: str, spec: ProjectSpec, *, description: str | None = None) -> RemoteRepo: ...


class Strategy(str, Enum):
    REMOTE_ONLY = "remote-only"
    SOURCE_LINKED = "source-linked"


@dataclass(frozen=True)
class CreationPlan:
    strategy: Strategy
    local_dir: Path | None = None
    needs_init: bool = False

    def __post_init__(self) -> None:
        if self.strategy is Strategy.SOURCE_LINKED and self.local_dir is None:
            raise ValueError("Source-linked creation requires a local directory")


def plan_creation(local_dir: Path, *, repo_factory: Callable[[Path], GitRepo] = GitRepo) -> CreationPlan:
    repo = repo_factory(local_dir)
    if not repo.exists():
        return CreationPlan(strategy=Strategy.REMOTE_ONLY)
    if not repo.has_git_metadata():
        return CreationPlan(strategy=Strategy.SOURCE_LINKED, local_dir=local_dir, needs_init=True)
    if repo.has_remote("origin"):
        return CreationPlan(strategy=Strategy.REMOTE_ONLY, local_dir=local_dir)
    return CreationPlan(strategy=Strategy.SOURCE_LINKED, local_dir=local_dir)


@dataclass(frozen=True)
class CreationResult:
    ok: bool
    plan: CreationPlan
    repo: RemoteRepo | None = None
    error: str = ""


def execute_plan(
    plan: CreationPlan,
    *,
    client: RepoCreator,
    owner: str,
    spec: ProjectSpec,
    log: RunLog,
    remote_protocol: str = "https",
    repo_factory: Callable[[Path], GitRepo] = GitRepo,
) -> CreationResult:
    """
    Run the plan. Failures are logged as ERROR and returned, never raised.
    """
    full_name = f"{owner}/{spec.name}"
    try:
        if plan.strategy is Strategy.REMOTE_ONLY:
            created = client.create_repo(owner, spec)
        else:
            local = repo_factory(plan.local_dir)
            if plan.needs_init:
                local.init("main")
                local.add_all()
                local.commit(INITIAL_COMMIT_MESSAGE)
            created = client.create_repo(owner, spec)
            local.add_remote("origin", created.remote_url(remote_protocol))
            local.push_current("origin")
    except ExternalCommandFailure as e:
        log.error(f"Failed to create {full_name} ({plan.strategy.value}): {e}")
        return CreationResult(ok=False, plan=plan, error=str(e))

    where = f" from {plan.local_dir}" if plan.strategy is Strategy.SOURCE_LINKED else ""
    log.success(f"Created {full_name} ({plan.strategy.value}){where}")
    return CreationResult(ok=True, plan=plan, repo=created)
