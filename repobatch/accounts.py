"""
accounts.py

Responsibility: Switch the active GitHub identity and wait until it has settled.

Credentials come from the `gh` credential store: `gh auth switch --user <id>`
selects the account, `gh auth token` yields its token. The authentication
subsystem takes a moment to reflect a switch, so `switch` polls `GET /user`
with exponential backoff until the login matches or the timeout elapses.
"""

from __future__ import annotations

import logging
import subprocess
import time
from typing import Callable, Sequence

from repobatch.config import Settings
from repobatch.errors import AccountSwitchError, GitHubError
from repobatch.github_client import GitHubClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], GitHubClient]


def _gh(args: Sequence[str]) -> str:
    cmd = ["gh", *args]
    try:
        proc = subprocess.run(
            cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, errors="replace"
        )
    except subprocess.CalledProcessError as e:
        raise AccountSwitchError(
            f"Command failed: {' '.join(cmd)}\n\n{e.stderr}",
            command=" ".join(cmd),
            output=e.stderr or "",
        ) from e
    except OSError as e:
        raise AccountSwitchError(f"GitHub CLI is not available: {e}", command=" ".join(cmd)) from e
    return proc.stdout.strip()


def wait_until(
    check: Callable[[], bool],
    *,
    timeout: float,
    initial_delay: float,
    sleep: Callable[[float], None] = time.sleep,
    monotonic: Callable[[], float] = time.monotonic,
) -> bool:
    """
    Poll `check` with exponential backoff until it returns True or `timeout` elapses.
    """
    deadline = monotonic() + timeout
    delay = initial_delay
    attempt = 1
    while True:
        if check():
            return True
        remaining = deadline - monotonic()
        if remaining <= 0:
            return False
        logger.debug("Not settled yet (attempt %d), retrying in %.1fs", attempt, min(delay, remaining))
        sleep(min(delay, remaining))
        delay *= 2
        attempt += 1


class AccountSwitcher:
    def __init__(
        self,
        settings: Settings,
        *,
        client_factory: ClientFactory | None = None,
        gh: Callable[[Sequence[str]], str] = _gh,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._client_factory = client_factory or (lambda token: GitHubClient(token, api_base=settings.api_base))
        self._gh = gh
        self._sleep = sleep
        self.current: str | None = None

    def switch(self, account: str) -> GitHubClient:
        """
        Make `account` the active identity and return a client authenticated as it.
        """
        self._gh(["auth", "switch", "--hostname", "github.com", "--user", account])
        token = self._gh(["auth", "token", "--hostname", "github.com"])
        if not token:
            raise AccountSwitchError(f"No token stored for account {account}")
        client = self._client_factory(token)

        def settled() -> bool:
            try:
                return client.viewer_login(refresh=True).lower() == account.lower()
            except GitHubError as e:
                logger.debug("Viewer lookup failed while settling %s: %s", account, e)
                return False

        ok = wait_until(
            settled,
            timeout=self._settings.settle_timeout,
            initial_delay=self._settings.settle_initial_delay,
            sleep=self._sleep,
        )
        if not ok:
            raise AccountSwitchError(f"Account {account} did not become active within {self._settings.settle_timeout}s")
        self.current = account
        logger.info("Active account: %s", account)
        return client

    def active(self) -> GitHubClient:
        """
        Return a client for whichever account `gh` currently has active.
        """
        client = self._client_factory(self._gh(["auth", "token", "--hostname", "github.com"]))
        try:
            self.current = client.viewer_login()
        except GitHubError as e:
            raise AccountSwitchError(f"Cannot resolve the active account: {e}") from e
        return client
