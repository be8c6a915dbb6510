"""Changeset lookup in a Markdown changelog.

Recognised headings for version ``1.2.0``::

    ## 1.2.0
    ## 1.2.0 (2024-05-01)
    1.2.0
    -----

The body runs until the next heading of the same or a higher level.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_ATX_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
_SETEXT_RE = re.compile(r"^(=+|-+)\s*$")


@dataclass(frozen=True, slots=True)
class Changeset:
    """Release title and description."""

    title: str
    body: str = ""


def default_changeset(version: str) -> Changeset:
    return Changeset(title=version, body="")


@dataclass(frozen=True, slots=True)
class _Heading:
    line: int  # index of the first line after the heading
    start: int  # index of the heading's first line
    level: int
    text: str


def _headings(lines: list[str]) -> list[_Heading]:
    out: list[_Heading] = []
    for i, line in enumerate(lines):
        m = _ATX_RE.match(line)
        if m:
            out.append(_Heading(line=i + 1, start=i, level=len(m.group(1)), text=m.group(2)))
            continue
        if i > 0 and lines[i - 1].strip() and _SETEXT_RE.match(line):
            level = 1 if line.lstrip().startswith("=") else 2
            out.append(_Heading(line=i + 1, start=i - 1, level=level, text=lines[i - 1].strip()))
    return out


def _matches(heading_text: str, version: str) -> bool:
    words = heading_text.split(None, 1)
    if not words:
        return False
    return words[0].strip("[]").lstrip("vV") == version


def find_changeset(markdown: str, version: str) -> Changeset | None:
    """Return the section for ``version``, or None if there is none."""
    lines = markdown.splitlines()
    headings = _headings(lines)
    for idx, h in enumerate(headings):
        if not _matches(h.text, version):
            continue
        end = len(lines)
        for nxt in headings[idx + 1 :]:
            if nxt.level <= h.level:
                end = nxt.start
                break
        body = "\n".join(lines[h.line : end]).strip()
        return Changeset(title=h.text, body=body)
    return None
