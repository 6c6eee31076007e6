from __future__ import annotations

from pathlib import Path
from typing import Sequence

from conftest import FakeGit, log_text

from repobatch.errors import ExternalCommandFailure
from repobatch.git import SYNC_COMMIT_MESSAGE
from repobatch.orchestrator import SyncOutcome, run_script, sync_and_commit


class Runner:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[list[str], Path]] = []

    def __call__(self, cmd: Sequence[str], cwd: Path) -> None:
        self.calls.append((list(cmd), cwd))
        if self.fail:
            raise ExternalCommandFailure("Command failed: bash sync.sh", command="bash sync.sh")


def _with_script(tmp_path: Path) -> Path:
    (tmp_path / "sync.sh").write_text("echo hi\n", encoding="utf-8")
    return tmp_path


def test_no_script_means_no_sync(tmp_path: Path, fake_git: FakeGit, runlog) -> None:
    runner = Runner()
    outcome = sync_and_commit(tmp_path, log=runlog, runner=runner, repo_factory=fake_git)
    assert outcome == SyncOutcome(reason="no-script")
    assert runner.calls == []
    assert fake_git(tmp_path).calls == []


def test_clean_tree_is_not_committed(tmp_path: Path, fake_git: FakeGit, runlog) -> None:
    runner = Runner()
    outcome = sync_and_commit(_with_script(tmp_path), log=runlog, runner=runner, repo_factory=fake_git)
    assert runner.calls == [(["bash", str(tmp_path / "sync.sh")], tmp_path)]
    assert outcome.reason == "no-changes"
    assert fake_git(tmp_path).ops() == ["status"]
    assert f"[INFO] No changes in {tmp_path}" in log_text(runlog)


def test_dirty_tree_is_committed_and_rebased(tmp_path: Path, fake_git: FakeGit, runlog) -> None:
    fake_git(tmp_path).dirty = True
    outcome = sync_and_commit(
        _with_script(tmp_path), log=runlog, command=("sh", "-e"), runner=Runner(), repo_factory=fake_git
    )
    assert outcome == SyncOutcome(ran_script=True, script_ok=True, committed=True, pulled=True)
    assert fake_git(tmp_path).calls == [("status",), ("add",), ("commit", SYNC_COMMIT_MESSAGE), ("pull",)]
    text = log_text(runlog)
    assert "[SYNC] Ran" in text
    assert "[COMMIT]" in text


def test_commit_failure_stops_before_pull(tmp_path: Path, fake_git: FakeGit, runlog) -> None:
    repo = fake_git(tmp_path)
    repo.dirty = True
    repo.fail.add("commit")
    outcome = sync_and_commit(_with_script(tmp_path), log=runlog, runner=Runner(), repo_factory=fake_git)
    assert outcome.reason == "commit-failed"
    assert "pull" not in repo.ops()
    assert "[WARN] Commit failed" in log_text(runlog)


def test_pull_failure_is_a_warning(tmp_path: Path, fake_git: FakeGit, runlog) -> None:
    repo = fake_git(tmp_path)
    repo.dirty = True
    repo.fail.add("pull")
    outcome = sync_and_commit(_with_script(tmp_path), log=runlog, runner=Runner(), repo_factory=fake_git)
    assert outcome.committed and not outcome.pulled
    assert "possible conflict" in log_text(runlog)


def test_script_failure_still_checks_status(tmp_path: Path, fake_git: FakeGit, runlog) -> None:
    fake_git(tmp_path).dirty = True
    outcome = sync_and_commit(_with_script(tmp_path), log=runlog, runner=Runner(fail=True), repo_factory=fake_git)
    assert not outcome.script_ok
    assert outcome.committed


def test_run_script_reports_failure(tmp_path: Path) -> None:
    try:
        run_script(["definitely-not-a-real-interpreter", "x"], tmp_path)
    except ExternalCommandFailure as e:
        assert "could not start" in str(e)
    else:
        raise AssertionError("expected ExternalCommandFailure")


def test_undecodable_script_output_is_tolerated(tmp_path: Path, fake_git: FakeGit, runlog) -> None:
    (tmp_path / "sync.sh").write_text("printf '\\377\\376 bad bytes\\n'\n", encoding="utf-8")
    outcome = sync_and_commit(tmp_path, log=runlog, repo_factory=fake_git)
    assert outcome.script_ok
    assert outcome.reason == "no-changes"


def test_undecodable_output_of_failing_script_is_replaced(tmp_path: Path) -> None:
    (tmp_path / "sync.sh").write_text("printf '\\377 broken\\n'\nexit 3\n", encoding="utf-8")
    try:
        run_script(["bash", str(tmp_path / "sync.sh")], tmp_path)
    except ExternalCommandFailure as e:
        assert "\ufffd broken" in e.output
    else:
        raise AssertionError("expected ExternalCommandFailure")
