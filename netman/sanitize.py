"""Best-effort cleanup of collaborator output before it reaches the UI.

Nothing here parses a tool's output structurally. Lines are stripped of
terminal control sequences and obvious noise (table headers, separators,
prompt banners) is dropped; everything else is passed through untouched.
"""

from __future__ import annotations

import re
from typing import Iterable, Iterator

# ESC [ params final-letter; an unterminated sequence runs to end of string.
_CSI_RE = re.compile(r"\x1b\[[^A-Za-z]*[A-Za-z]?")
_ESC_RE = re.compile(r"\x1b")
_COLUMN_GAP_RE = re.compile(r"\s{2,}")
_SEPARATOR_CHARS = frozenset("-=─━ ")

NOISE_MARKERS = (
    "Available networks",
    "Known Networks",
    "Network name",
    "Last connected",
    "Agent registered",
    "Waiting to connect to bluetoothd",
    "[bluetooth]#",
)


def clean(line: str) -> str:
    return _ESC_RE.sub("", _CSI_RE.sub("", line)).rstrip("\r\n")


def keep(line: str) -> bool:
    text = line.strip()
    if len(text) <= 1:
        return False
    if set(text) <= _SEPARATOR_CHARS:
        return False
    return not any(marker in text for marker in NOISE_MARKERS)


def filter_lines(lines: Iterable[str]) -> Iterator[str]:
    """Yield the cleaned lines worth showing, lazily and in order."""
    for raw in lines:
        line = clean(raw)
        if keep(line):
            yield line


def first_field(line: str) -> str:
    """Return the first column of a table row.

    Columns are separated by runs of two or more spaces so that names
    containing a single space survive; iwctl's ``>`` marker for the
    connected network is dropped.
    """
    text = line.strip()
    if text.startswith(">"):
        text = text[1:].strip()
    if not text:
        return ""
    return _COLUMN_GAP_RE.split(text, maxsplit=1)[0]
