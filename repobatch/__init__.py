"""
repobatch package

Batch-creates and reconciles GitHub repositories across several accounts.

Key responsibilities are split across modules:
- `lists.py`: parse the accounts / projects text lists
- `markers.py`: description sanitizing and the status-marker state machine
- `github_client.py`: isolated GitHub REST API interactions (view / create / edit)
- `accounts.py`: switch the active `gh` identity and wait for it to settle
- `git.py`: local working-tree commands
- `classifier.py` / `planner.py`: decide what happens to each (account, project) pair
- `orchestrator.py`: sync script, auto-commit and rebase-pull for newly marked projects
- `reconcile.py` / `scan.py`: the two flows
- `cli.py`: CLI entrypoint
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
