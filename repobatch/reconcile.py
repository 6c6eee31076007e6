"""
reconcile.py

Responsibility: The primary flow.

1) For every account (in list order), switch identity and reconcile every project:
   classify -> skip, or plan + create.
2) Switch to the primary account and run the marker pass: every unmarked
   repository gets the attention marker, then its working tree is synced.

One project's failure is logged and never stops the remaining projects or accounts.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol, Sequence

from repobatch.accounts import AccountSwitcher
from repobatch.classifier import Disposition, RepoReader, classify, log_classification
from repobatch.config import Settings
from repobatch.errors import AccountSwitchError, ExternalCommandFailure
from repobatch.git import GitRepo
from repobatch.github_client import RemoteRepo
from repobatch.lists import ProjectSpec
from repobatch.markers import MarkedDescription, advance_marker, sanitize_description
from repobatch.orchestrator import SyncOutcome, sync_and_commit
from repobatch.planner import RepoCreator, Strategy, execute_plan, plan_creation
from repobatch.runlog import RunLog

logger = logging.getLogger(__name__)


class RepoClient(RepoReader, RepoCreator, Protocol):
    def edit_description(self, owner: str, name: str, description: str) -> RemoteRepo: ...


class Outcome(str, Enum):
    SKIPPED_PRIVATE = "skipped-private"
    SKIPPED_FORK = "skipped-fork"
    SKIPPED_EXISTING = "skipped-existing"
    CREATED_REMOTE_ONLY = "created-remote-only"
    CREATED_SOURCE_LINKED = "created-source-linked"
    FAILED = "failed"


_SKIPS = {
    Disposition.EXISTS_PRIVATE: Outcome.SKIPPED_PRIVATE,
    Disposition.EXISTS_FORK: Outcome.SKIPPED_FORK,
    Disposition.EXISTS_PUBLIC_NON_FORK: Outcome.SKIPPED_EXISTING,
}


@dataclass
class ReconcileReport:
    outcomes: Counter = field(default_factory=Counter)
    marked: list[str] = field(default_factory=list)
    failed_accounts: list[str] = field(default_factory=list)

    def count(self, outcome: Outcome) -> int:
        return self.outcomes[outcome]


def prepare_project(spec: ProjectSpec) -> ProjectSpec:
    """
    Sanitize the description embedded in a project's flags.
    """
    if spec.description is None:
        return spec
    return spec.with_description(sanitize_description(spec.description).render())


class Reconciler:
    def __init__(
        self,
        settings: Settings,
        log: RunLog,
        switcher: AccountSwitcher,
        *,
        sync: Callable[..., SyncOutcome] = sync_and_commit,
        repo_factory: Callable[[Path], GitRepo] = GitRepo,
    ) -> None:
        self.settings = settings
        self.log = log
        self.switcher = switcher
        self._sync = sync
        self._repo_factory = repo_factory

    def run(self, accounts: Sequence[str], projects: Sequence[ProjectSpec]) -> ReconcileReport:
        primary = self.settings.require_account()
        report = ReconcileReport()
        prepared = [prepare_project(spec) for spec in projects]

        client: RepoClient | None = None
        for account in accounts:
            try:
                client = self.switcher.switch(account)
            except AccountSwitchError as e:
                self.log.error(f"Cannot switch to account {account}: {e}")
                report.failed_accounts.append(account)
                client = None
                continue
            for spec in prepared:
                try:
                    outcome = self.reconcile_project(client, account, spec)
                except (OSError, ValueError) as e:
                    self.log.error(f"Unexpected failure on {account}/{spec.name}: {e}")
                    outcome = Outcome.FAILED
                report.outcomes[outcome] += 1

        if client is None or self.switcher.current != primary:
            try:
                client = self.switcher.switch(primary)
            except AccountSwitchError as e:
                self.log.error(f"Cannot switch to primary account {primary}, marker pass skipped: {e}")
                report.failed_accounts.append(primary)
                return report
        report.marked.extend(self.mark_pass(client, primary, prepared))
        return report

    def reconcile_project(self, client: RepoClient, owner: str, spec: ProjectSpec) -> Outcome:
        local_dir = self.settings.project_dir(spec.name)
        try:
            result = classify(client, owner, spec.name, local_dir, repo_factory=self._repo_factory)
        except ExternalCommandFailure as e:
            self.log.error(f"Cannot query {owner}/{spec.name}: {e}")
            return Outcome.FAILED

        if result.disposition is not Disposition.NOT_FOUND:
            log_classification(self.log, result)
            return _SKIPS[result.disposition]

        try:
            plan = plan_creation(local_dir, repo_factory=self._repo_factory)
        except ExternalCommandFailure as e:
            self.log.error(f"Cannot inspect {local_dir} for {owner}/{spec.name}: {e}")
            return Outcome.FAILED

        created = execute_plan(
            plan,
            client=client,
            owner=owner,
            spec=spec,
            log=self.log,
            remote_protocol=self.settings.remote_protocol,
            repo_factory=self._repo_factory,
        )
        if not created.ok:
            return Outcome.FAILED
        if plan.strategy is Strategy.SOURCE_LINKED:
            return Outcome.CREATED_SOURCE_LINKED
        return Outcome.CREATED_REMOTE_ONLY

    def mark_pass(self, client: RepoClient, owner: str, projects: Sequence[ProjectSpec]) -> list[str]:
        """
        Move every UNMARKED repository of `owner` to NEEDS_ATTENTION and sync it.

        Returns the names of the repositories that transitioned.
        """
        marked: list[str] = []
        for spec in projects:
            full_name = f"{owner}/{spec.name}"
            try:
                repo = client.get_repo(owner, spec.name)
                if repo is None:
                    self.log.warn(f"{full_name} not found, marker not applied")
                    continue
                transition = advance_marker(MarkedDescription.parse(repo.description))
                if not transition.changed:
                    self.log.write("SKIP", f"{full_name} already {transition.before.marker.value}")
                    continue
                client.edit_description(owner, spec.name, transition.after.render())
            except (ExternalCommandFailure, OSError, ValueError) as e:
                self.log.error(f"Cannot update marker on {full_name}: {e}")
                continue

            self.log.write("UPDATE", f"{full_name} marked {transition.after.marker.value}")
            marked.append(spec.name)

            local_dir = self.settings.project_dir(spec.name)
            if not local_dir.is_dir():
                logger.debug("No local directory for %s, sync skipped", spec.name)
                continue
            try:
                self._sync(
                    local_dir,
                    log=self.log,
                    script_name=self.settings.sync_script,
                    command=self.settings.sync_command,
                    repo_factory=self._repo_factory,
                )
            except (ExternalCommandFailure, OSError, ValueError) as e:
                self.log.warn(f"Sync failed for {full_name} in {local_dir}: {e}")
        return marked
