"""
scan.py

Responsibility: Walk local working trees and export publishable projects.

For every immediate subdirectory of the scan root that holds `.git`:
- dump its remotes to the remote-list log
- more than two entries: record it in the ambiguity log and move on
- exactly two entries: parse owner/name from the fetch URL, classify, and export
  it when it is public, not a fork and not yet marked done

The exported file uses the projects-list format and is regenerated on every scan.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator

from jinja2 import Environment, StrictUndefined

from repobatch.classifier import Classification, Disposition, RepoReader, classify
from repobatch.config import Settings
from repobatch.errors import ExternalCommandFailure, ParseFailure
from repobatch.git import GitRepo, RemoteEntry
from repobatch.lists import ProjectSpec, format_project_line
from repobatch.markers import Marker, MarkedDescription
from repobatch.runlog import LineFile, RunLog

logger = logging.getLogger(__name__)

EXPORT_TEMPLATE = """\
# Exported by repobatch scan on {{ generated_at }}
# Source: {{ scan_root }}
{% for line in lines -%}
{{ line }}
{% endfor -%}
"""

_URL_PATTERNS = (
    re.compile(r"^(?:https?|git|ssh)://(?:[^@/]+@)?[^/]+/(?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$"),
    re.compile(r"^[^@/\s]+@[^:/\s]+:(?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$"),
)


def parse_remote_url(url: str) -> tuple[str, str]:
    for pattern in _URL_PATTERNS:
        m = pattern.match(url.strip())
        if m:
            return m.group("owner"), m.group("name")
    raise ParseFailure(f"Unrecognized remote URL: {url}")


def should_export(remotes: list[RemoteEntry] | tuple[RemoteEntry, ...], result: Classification) -> bool:
    if len(remotes) != 2:
        return False
    if result.disposition is not Disposition.EXISTS_PUBLIC_NON_FORK or result.repo is None:
        return False
    return MarkedDescription.parse(result.repo.description).marker is not Marker.DONE


def export_spec(result: Classification) -> ProjectSpec:
    text = MarkedDescription.parse(result.repo.description if result.repo else None).text
    flags: tuple[tuple[str, str | None], ...] = (("--public", None),)
    if text:
        flags += (("--description", text),)
    return ProjectSpec(name=result.name, flags=flags)


def render_export(lines: list[str], *, scan_root: Path, generated_at: str) -> str:
    env = Environment(autoescape=False, undefined=StrictUndefined, keep_trailing_newline=True)
    return env.from_string(EXPORT_TEMPLATE).render(lines=lines, scan_root=str(scan_root), generated_at=generated_at)


def iter_git_dirs(root: Path) -> Iterator[Path]:
    if not root.is_dir():
        return
    for child in sorted(root.iterdir(), key=lambda p: p.name):
        if child.is_dir() and (child / ".git").exists():
            yield child


@dataclass
class ScanReport:
    scanned: int = 0
    ambiguous: list[str] = field(default_factory=list)
    exported: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class Scanner:
    def __init__(
        self,
        settings: Settings,
        log: RunLog,
        *,
        repo_factory: Callable[[Path], GitRepo] = GitRepo,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.settings = settings
        self.log = log
        self._repo_factory = repo_factory
        self._clock = clock
        self.remotes_log = LineFile(settings.remotes_log)
        self.debug_log = LineFile(settings.remotes_debug_log)

    def run(self, client: RepoReader) -> ScanReport:
        report = ScanReport()
        exported: list[str] = []
        try:
            for directory in iter_git_dirs(self.settings.scan_root):
                report.scanned += 1
                try:
                    line = self.scan_directory(client, directory, report)
                except (ExternalCommandFailure, OSError, ValueError) as e:
                    self.log.error(f"Scan failed for {directory}: {e}")
                    report.failed.append(directory.name)
                    continue
                if line is not None:
                    exported.append(line)
        finally:
            self.remotes_log.close()
            self.debug_log.close()

        out = self.settings.export_file
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(
            render_export(
                exported,
                scan_root=self.settings.scan_root,
                generated_at=self._clock().strftime("%Y-%m-%d %H:%M:%S"),
            ),
            encoding="utf-8",
        )
        self.log.info(f"Scanned {report.scanned} directories, exported {len(exported)} projects to {out}")
        return report

    def scan_directory(self, client: RepoReader, directory: Path, report: ScanReport) -> str | None:
        remotes = self._repo_factory(directory).remotes()
        self.remotes_log.append(f"== {directory}", *(f"{r.name}\t{r.url} ({r.direction})" for r in remotes))

        if len(remotes) > 2:
            self.debug_log.append(f"{directory}: {len(remotes)} remote entries")
            report.ambiguous.append(directory.name)
            logger.debug("Ambiguous remotes in %s", directory)
            return None
        if len(remotes) != 2:
            return None

        fetch = next((r for r in remotes if r.direction == "fetch"), remotes[0])
        try:
            owner, name = parse_remote_url(fetch.url)
        except ParseFailure as e:
            logger.debug("Skipping %s: %s", directory, e)
            return None

        result = classify(client, owner, name)
        if not should_export(remotes, result):
            logger.debug("Not exporting %s (%s)", result.full_name, result.disposition.value)
            return None
        report.exported.append(name)
        return format_project_line(export_spec(result))
