from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any

import pytest

from repobatch import git
from repobatch.errors import GitError
from repobatch.git import GitRepo, RemoteEntry, parse_remote_lines


def test_parse_remote_lines() -> None:
    out = (
        "origin\thttps://github.com/alice/demo.git (fetch)\n"
        "origin\thttps://github.com/alice/demo.git (push)\n"
        "\n"
        "upstream\tgit@github.com:acme/demo.git (fetch)\n"
    )
    assert parse_remote_lines(out) == [
        RemoteEntry("origin", "https://github.com/alice/demo.git", "fetch"),
        RemoteEntry("origin", "https://github.com/alice/demo.git", "push"),
        RemoteEntry("upstream", "git@github.com:acme/demo.git", "fetch"),
    ]


class FakeRun:
    def __init__(self, outputs: dict[tuple[str, ...], str] | None = None, fail: set[str] | None = None) -> None:
        self.outputs = outputs or {}
        self.fail = fail or set()
        self.calls: list[list[str]] = []

    def __call__(self, cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        self.calls.append(cmd)
        if cmd[1] in self.fail:
            raise subprocess.CalledProcessError(1, cmd, output="fatal: nope\n")
        return subprocess.CompletedProcess(cmd, 0, stdout=self.outputs.get(tuple(cmd[1:]), ""))


def _git_dir(tmp_path: Path) -> Path:
    (tmp_path / ".git").mkdir()
    return tmp_path


def test_remotes_without_metadata_skip_git(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    run = FakeRun()
    monkeypatch.setattr(git.subprocess, "run", run)
    assert GitRepo(tmp_path).remotes() == []
    assert run.calls == []


def test_has_remote(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    run = FakeRun({("remote", "-v"): "origin\tu (fetch)\norigin\tu (push)\n"})
    monkeypatch.setattr(git.subprocess, "run", run)
    repo = GitRepo(_git_dir(tmp_path))
    assert repo.has_git_metadata()
    assert repo.has_remote("origin")
    assert not repo.has_remote("upstream")


def test_has_changes_reads_porcelain(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    run = FakeRun({("status", "--porcelain"): " M README.md\n"})
    monkeypatch.setattr(git.subprocess, "run", run)
    assert GitRepo(tmp_path).has_changes()


def test_commands_issued(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    run = FakeRun()
    monkeypatch.setattr(git.subprocess, "run", run)
    repo = GitRepo(tmp_path)
    repo.init()
    repo.add_all()
    repo.commit("initial commit")
    repo.add_remote("origin", "https://github.com/alice/x.git")
    repo.push_current()
    repo.pull_rebase()
    assert [c[1:] for c in run.calls] == [
        ["init", "-b", "main"],
        ["add", "-A"],
        ["commit", "-m", "initial commit"],
        ["remote", "add", "origin", "https://github.com/alice/x.git"],
        ["push", "-u", "origin", "HEAD"],
        ["pull", "--rebase"],
    ]


def test_failure_carries_output(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(git.subprocess, "run", FakeRun(fail={"pull"}))
    with pytest.raises(GitError) as info:
        GitRepo(tmp_path).pull_rebase()
    assert info.value.output == "fatal: nope\n"
    assert info.value.command == "git pull --rebase"


def test_missing_executable(tmp_path: Path) -> None:
    with pytest.raises(GitError):
        GitRepo(tmp_path, git="definitely-not-a-git-binary").add_all()
