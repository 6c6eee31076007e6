"""
cli.py

Responsibility: CLI entrypoint for repobatch.

Commands (no required flags; behavior comes from the environment and list files):
- `reconcile` (default): accounts x projects -> classify -> create, then the marker pass
- `scan`: walk local working trees and export publishable projects

This module wires collaborators together; decisions live in `reconcile.py` and `scan.py`.
"""

from __future__ import annotations

import argparse
import logging
import os

from repobatch.accounts import AccountSwitcher
from repobatch.config import Settings, load_settings
from repobatch.errors import AccountSwitchError, ConfigError, MissingFileError
from repobatch.lists import load_accounts, load_projects
from repobatch.reconcile import Outcome, Reconciler
from repobatch.runlog import RunLog, configure_logging
from repobatch.scan import Scanner

logger = logging.getLogger("repobatch.cli")

EXIT_FATAL = 2


def reconcile_cmd(settings: Settings) -> int:
    settings.require_account()
    accounts = load_accounts(settings.accounts_file)
    projects = load_projects(settings.projects_file)
    logger.info("Reconciling %d projects across %d accounts", len(projects), len(accounts))

    with RunLog(settings.create_log) as log:
        report = Reconciler(settings, log, AccountSwitcher(settings)).run(accounts, projects)

    summary = ", ".join(f"{o.value}={report.count(o)}" for o in Outcome if report.count(o))
    logger.info("Done: %s; marked %d", summary or "nothing to do", len(report.marked))
    return 0


def scan_cmd(settings: Settings) -> int:
    with RunLog(settings.create_log) as log:
        account = settings.active_account
        switcher = AccountSwitcher(settings)
        try:
            # Without ACTIVE_ACCOUNT the scan runs as whoever `gh` is logged in as.
            client = switcher.switch(account) if account else switcher.active()
        except AccountSwitchError as e:
            log.error(f"Cannot authenticate for scan: {e}")
            return 1
        report = Scanner(settings, log).run(client)
    logger.info("Scan: %d scanned, %d exported, %d ambiguous", report.scanned, len(report.exported), len(report.ambiguous))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="repobatch", description="Batch-create and reconcile GitHub repositories")
    p.add_argument("--config", default=None, help="YAML config file (or set env REPOBATCH_CONFIG)")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug output")
    sub = p.add_subparsers(dest="command")

    r = sub.add_parser("reconcile", help="Create missing repositories for every account, then mark and sync")
    r.set_defaults(func=reconcile_cmd)

    s = sub.add_parser("scan", help="Export public local projects into a projects list")
    s.set_defaults(func=scan_cmd)

    p.set_defaults(func=reconcile_cmd)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings(os.environ, args.config)
    except (ConfigError, MissingFileError) as e:
        configure_logging()
        logger.error("%s", e)
        return EXIT_FATAL

    configure_logging("DEBUG" if args.verbose else settings.log_level)
    try:
        return int(args.func(settings))
    except (ConfigError, MissingFileError) as e:
        logger.error("%s", e)
        return EXIT_FATAL


if __name__ == "__main__":
    raise SystemExit(main())
