from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from repobatch.config import Settings
from repobatch.errors import AccountSwitchError, GitError, GitHubError
from repobatch.git import RemoteEntry
from repobatch.github_client import RemoteRepo
from repobatch.lists import ProjectSpec
from repobatch.runlog import RunLog


class FakeGitHub:
    """In-memory stand-in for GitHubClient."""

    def __init__(self, repos: list[RemoteRepo] | None = None) -> None:
        self.repos: dict[tuple[str, str], RemoteRepo] = {(r.owner, r.name): r for r in repos or []}
        self.created: list[tuple[str, ProjectSpec]] = []
        self.edits: list[tuple[str, str, str]] = []
        self.fail_create: set[str] = set()
        self.fail_get: set[str] = set()

    def get_repo(self, owner: str, name: str) -> RemoteRepo | None:
        if name in self.fail_get:
            raise GitHubError(f"GitHub API error 500 GET /repos/{owner}/{name}: boom", status_code=500)
        return self.repos.get((owner, name))

    def create_repo(self, owner: str, spec: ProjectSpec, *, description: str | None = None) -> RemoteRepo:
        if spec.name in self.fail_create:
            raise GitHubError("GitHub API error 422 POST /user/repos: name already exists", status_code=422)
        repo = RemoteRepo(
            owner=owner,
            name=spec.name,
            description=spec.description if description is None else description,
            private=spec.visibility != "public",
            fork=False,
            clone_url=f"https://github.com/{owner}/{spec.name}.git",
            ssh_url=f"git@github.com:{owner}/{spec.name}.git",
        )
        self.created.append((owner, spec))
        self.repos[(owner, spec.name)] = repo
        return repo

    def edit_description(self, owner: str, name: str, description: str) -> RemoteRepo:
        self.edits.append((owner, name, description))
        repo = replace(self.repos[(owner, name)], description=description)
        self.repos[(owner, name)] = repo
        return repo


class FakeSwitcher:
    def __init__(self, client: FakeGitHub, *, fail: set[str] | None = None) -> None:
        self.client = client
        self.fail = fail or set()
        self.current: str | None = None
        self.switches: list[str] = []

    def switch(self, account: str) -> FakeGitHub:
        self.switches.append(account)
        if account in self.fail:
            raise AccountSwitchError(f"Account {account} did not become active within 0s")
        self.current = account
        return self.client


class FakeGitRepo:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.git = False
        self.remote_entries: list[RemoteEntry] = []
        self.dirty = False
        self.fail: set[str] = set()
        self.calls: list[tuple[str, ...]] = []

    def _call(self, *args: str) -> None:
        self.calls.append(args)
        if args[0] in self.fail:
            raise GitError(f"Command failed: git {' '.join(args)}", command="git " + " ".join(args))

    def link(self, url: str, name: str = "origin") -> None:
        self.git = True
        self.remote_entries += [RemoteEntry(name, url, "fetch"), RemoteEntry(name, url, "push")]

    def exists(self) -> bool:
        return self.path.is_dir()

    def has_git_metadata(self) -> bool:
        return self.git

    def remotes(self) -> list[RemoteEntry]:
        return list(self.remote_entries)

    def has_remote(self, name: str) -> bool:
        return any(r.name == name for r in self.remote_entries)

    def init(self, branch: str = "main") -> None:
        self._call("init", branch)
        self.git = True

    def add_all(self) -> None:
        self._call("add")

    def commit(self, message: str) -> None:
        self._call("commit", message)

    def has_changes(self) -> bool:
        self._call("status")
        return self.dirty

    def add_remote(self, name: str, url: str) -> None:
        self._call("remote", name, url)
        self.link(url, name)

    def push_current(self, remote: str = "origin") -> None:
        self._call("push", remote)

    def pull_rebase(self) -> None:
        self._call("pull")

    def ops(self) -> list[str]:
        return [c[0] for c in self.calls]


class FakeGit:
    """Factory handing out one FakeGitRepo per path."""

    def __init__(self) -> None:
        self.repos: dict[Path, FakeGitRepo] = {}

    def __call__(self, path: Path) -> FakeGitRepo:
        key = Path(path)
        if key not in self.repos:
            self.repos[key] = FakeGitRepo(key)
        return self.repos[key]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    (tmp_path / "work").mkdir()
    (tmp_path / "logs").mkdir()
    (tmp_path / "scan").mkdir()
    return Settings(
        active_account="alice",
        accounts_file=tmp_path / "accounts.txt",
        projects_file=tmp_path / "projects.txt",
        projects_root=tmp_path / "work",
        scan_root=tmp_path / "scan",
        log_dir=tmp_path / "logs",
        settle_timeout=0,
    )


@pytest.fixture
def runlog(settings: Settings):
    log = RunLog(settings.create_log, clock=lambda: "2026-01-01 00:00:00")
    yield log
    log.close()


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


def log_text(log: RunLog) -> str:
    log.close()
    if not log.path.exists():
        return ""
    return log.path.read_text(encoding="utf-8")
