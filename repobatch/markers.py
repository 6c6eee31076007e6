"""
markers.py

Responsibility: Description sanitizing and the description-marker state machine.

A repository description may start with a status glyph:

- "✅"  -> Marker.DONE
- "⁉️"  -> Marker.NEEDS_ATTENTION

The marker is carried as an explicit field of `MarkedDescription`; glyphs only
exist at the serialization boundary (`parse` / `render`). Legacy descriptions
written without the U+FE0F variation selector are still recognized.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class Marker(str, Enum):
    UNMARKED = "unmarked"
    NEEDS_ATTENTION = "needs-attention"
    DONE = "done"


DONE_GLYPH = "✅"
ATTENTION_GLYPH = "⁉️"

_GLYPHS: tuple[tuple[str, Marker], ...] = (
    (DONE_GLYPH, Marker.DONE),
    (ATTENTION_GLYPH, Marker.NEEDS_ATTENTION),
    ("⁉", Marker.NEEDS_ATTENTION),
)

_RENDERED = {Marker.DONE: DONE_GLYPH, Marker.NEEDS_ATTENTION: ATTENTION_GLYPH}

_CONTROL_RUNS = re.compile(r"[\r\n\t]+")


@dataclass(frozen=True)
class MarkedDescription:
    marker: Marker = Marker.UNMARKED
    text: str = ""

    @classmethod
    def parse(cls, raw: str | None) -> MarkedDescription:
        value = (raw or "").strip()
        for glyph, marker in _GLYPHS:
            if value.startswith(glyph):
                return cls(marker=marker, text=value[len(glyph) :].lstrip())
        return cls(marker=Marker.UNMARKED, text=value)

    def render(self) -> str:
        glyph = _RENDERED.get(self.marker)
        if glyph is None:
            return self.text
        return f"{glyph} {self.text}" if self.text else glyph

    def with_marker(self, marker: Marker) -> MarkedDescription:
        return MarkedDescription(marker=marker, text=self.text)


def marker_of(raw: str | None) -> Marker:
    return MarkedDescription.parse(raw).marker


def sanitize_description(raw: str | None) -> MarkedDescription:
    """
    Collapse CR/LF/TAB runs to a single space and trim.

    When cleanup changed the text, the result is flagged NEEDS_ATTENTION so a
    human reviews it; an existing marker is kept otherwise. A DONE glyph that
    gets displaced by the flag stays in the text, e.g. "✅ a\\nb" -> "⁉️ ✅ a b".
    """
    parsed = MarkedDescription.parse(raw)
    cleaned = _CONTROL_RUNS.sub(" ", parsed.text).strip()
    if cleaned != parsed.text:
        if parsed.marker is Marker.DONE:
            cleaned = f"{DONE_GLYPH} {cleaned}"
        return MarkedDescription(marker=Marker.NEEDS_ATTENTION, text=cleaned)
    return MarkedDescription(marker=parsed.marker, text=cleaned)


@dataclass(frozen=True)
class MarkerTransition:
    before: MarkedDescription
    after: MarkedDescription

    @property
    def changed(self) -> bool:
        return self.before != self.after


def advance_marker(current: MarkedDescription) -> MarkerTransition:
    """
    UNMARKED moves to NEEDS_ATTENTION; NEEDS_ATTENTION and DONE are sticky.
    """
    if current.marker is Marker.UNMARKED:
        return MarkerTransition(before=current, after=current.with_marker(Marker.NEEDS_ATTENTION))
    return MarkerTransition(before=current, after=current)
