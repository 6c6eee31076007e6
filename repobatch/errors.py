"""
errors.py

Responsibility: The error taxonomy shared by every repobatch module.

- Fatal errors (`MissingFileError`, `ConfigError`) abort the run before any processing.
- `ExternalCommandFailure` and its subclasses are caught at the project-iteration boundary,
  together with `OSError` and `ValueError` (undecodable output, unreadable trees).
- `ParseFailure` marks a malformed optional line; callers skip it without logging an error.
"""

from __future__ import annotations

from pathlib import Path


class RepobatchError(RuntimeError):
    pass


class MissingFileError(RepobatchError):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"Required file does not exist: {self.path}")


class ConfigError(RepobatchError):
    pass


class ExternalCommandFailure(RepobatchError):
    """A git, gh, HTTP or script invocation that did not succeed."""

    def __init__(self, message: str, *, command: str = "", output: str = "") -> None:
        super().__init__(message)
        self.command = command
        self.output = output


class GitError(ExternalCommandFailure):
    pass


class GitHubError(ExternalCommandFailure):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AccountSwitchError(ExternalCommandFailure):
    pass


class ParseFailure(ValueError):
    pass
