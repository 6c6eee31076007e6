"""
lists.py

Responsibility: Load the flat text lists (accounts, projects) into typed values.

Grammar of a project line:

    <name> [<flag> [<value>]]...

The line is tokenized with a shell-style lexer so quoted values may contain
spaces. Flags listed in `VALUE_FLAGS` consume the next token; every other
`--flag` is a switch. A line without flags defaults to `--private`.
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from repobatch.errors import MissingFileError, ParseFailure

logger = logging.getLogger(__name__)

VALUE_FLAGS = frozenset({"--description", "--homepage", "--license", "--gitignore"})
VISIBILITY_FLAGS = ("--private", "--public", "--internal")
DEFAULT_FLAGS: tuple[tuple[str, str | None], ...] = (("--private", None),)

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\"}
_ESCAPE_SEQ = re.compile(r"\\([nrt\\])")

Flag = tuple[str, "str | None"]


@dataclass(frozen=True)
class ProjectSpec:
    """One entry of the projects list."""

    name: str
    flags: tuple[Flag, ...] = field(default=DEFAULT_FLAGS)

    @property
    def description(self) -> str | None:
        return self.get("--description")

    @property
    def visibility(self) -> str:
        for key, _value in self.flags:
            if key in VISIBILITY_FLAGS:
                return key[2:]
        return "private"

    def get(self, key: str) -> str | None:
        for k, v in self.flags:
            if k == key:
                return v
        return None

    def has(self, key: str) -> bool:
        return any(k == key for k, _v in self.flags)

    def with_description(self, description: str) -> ProjectSpec:
        """Return a copy with the description flag replaced (or appended)."""
        flags: list[Flag] = []
        replaced = False
        for k, v in self.flags:
            if k == "--description":
                if not replaced:
                    flags.append((k, description))
                    replaced = True
                continue
            flags.append((k, v))
        if not replaced:
            flags.append(("--description", description))
        return ProjectSpec(name=self.name, flags=tuple(flags))


def read_list(path: str | Path) -> list[str]:
    """
    Return the non-empty, non-comment lines of a list file, stripped, in file order.
    """
    p = Path(path)
    if not p.is_file():
        raise MissingFileError(p)
    out: list[str] = []
    for raw in p.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        out.append(line)
    return out


def load_accounts(path: str | Path) -> list[str]:
    # Only the first token counts; trailing notes after whitespace are ignored.
    return [line.split()[0] for line in read_list(path)]


def _decode_escapes(value: str) -> str:
    return _ESCAPE_SEQ.sub(lambda m: _ESCAPES[m.group(1)], value)


def _encode_escapes(value: str) -> str:
    value = value.replace("\\", "\\\\")
    return value.replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")


def parse_project_line(line: str) -> ProjectSpec:
    try:
        tokens = shlex.split(line, comments=False, posix=True)
    except ValueError as e:
        raise ParseFailure(f"Cannot tokenize project line: {line!r}") from e
    if not tokens:
        raise ParseFailure("Empty project line")

    name, rest = tokens[0], tokens[1:]
    if name.startswith("-") or any(ch.isspace() for ch in name):
        raise ParseFailure(f"Invalid project name: {name!r}")

    flags: list[Flag] = []
    i = 0
    while i < len(rest):
        token = rest[i]
        if not token.startswith("--"):
            raise ParseFailure(f"Unexpected token {token!r} in project line for {name}")
        key, sep, inline = token.partition("=")
        if key in VALUE_FLAGS:
            if sep:
                value = inline
            else:
                if i + 1 >= len(rest):
                    raise ParseFailure(f"Flag {key} requires a value ({name})")
                i += 1
                value = rest[i]
            if key == "--description":
                value = _decode_escapes(value)
            flags.append((key, value))
        elif sep:
            raise ParseFailure(f"Flag {key} does not take a value ({name})")
        else:
            flags.append((key, None))
        i += 1

    if not flags:
        return ProjectSpec(name=name)
    return ProjectSpec(name=name, flags=tuple(flags))


def load_projects(path: str | Path) -> list[ProjectSpec]:
    """
    Parse every line of the projects list. Malformed lines are skipped.
    """
    projects: list[ProjectSpec] = []
    for line in read_list(path):
        try:
            projects.append(parse_project_line(line))
        except ParseFailure as e:
            logger.debug("Skipping project line: %s", e)
    return projects


def format_project_line(spec: ProjectSpec) -> str:
    parts = [spec.name]
    for key, value in spec.flags:
        parts.append(key)
        if value is not None:
            if key == "--description":
                value = _encode_escapes(value)
            parts.append(shlex.quote(value))
    return " ".join(parts)
