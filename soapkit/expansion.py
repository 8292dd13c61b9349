"""Abbreviation expansion.

``find_expansion`` is the decision function used by buffer adapters: it looks at
the token typed immediately before the cursor and, when that token is a marked
abbreviation present in the table, returns the span to replace. It never touches
the buffer itself.

``expand_text`` rewrites every marked word of a whole text at once (preview and
apply flows of the note editors).
"""

from __future__ import annotations

import re
from collections import ChainMap
from datetime import date
from typing import Callable, Dict, Mapping, Optional

from .models import Replacement

DEFAULT_MARKER = ":"

# Split keeping every single space as its own piece
_SPACE_SPLIT = re.compile(r"(?<= )|(?= )")


def builtin_tokens(today: date) -> Dict[str, str]:
    """Tokens whole-text expansion resolves ahead of the table (`:cd` -> current date)."""
    return {"cd": today.isoformat()}


def token_start(text: str, cursor: int) -> int:
    """Offset where the whitespace-delimited token ending at cursor begins.

    The scan stays within the cursor's line.
    """
    line_start = text.rfind("\n", 0, cursor) + 1
    line = text[line_start:cursor]
    return line_start + max(line.rfind(" "), line.rfind("\n")) + 1


def find_expansion(
    text: str,
    cursor: int,
    table: Mapping[str, str],
    marker: str = DEFAULT_MARKER,
) -> Optional[Replacement]:
    """Return the replacement for the marked abbreviation before cursor, or None."""
    if cursor < 0 or cursor > len(text):
        raise ValueError(f"cursor {cursor} outside text of length {len(text)}")
    start = token_start(text, cursor)
    word = text[start:cursor].strip()
    if not word.startswith(marker):
        return None
    key = word[len(marker):]
    expansion = table.get(key)
    if expansion is None:
        return None
    return Replacement(start=start, end=cursor, text=expansion + " ", key=key)


def apply_replacement(text: str, replacement: Replacement) -> str:
    return text[:replacement.start] + replacement.text + text[replacement.end:]


def expand_text(
    text: str,
    table: Mapping[str, str],
    marker: str = DEFAULT_MARKER,
    today: Optional[date] = None,
    builtins: bool = True,
) -> str:
    """Replace every space-delimited marked word found in table; others stay as typed.

    With builtins on, `:cd` becomes today's ISO date even when the table has a
    `cd` entry. Live expansion (``find_expansion``) never sees builtins.
    """
    if not text:
        return text
    lookup: Mapping[str, str] = table
    if builtins:
        lookup = ChainMap(builtin_tokens(today or date.today()), table)
    out = []
    for word in _SPACE_SPLIT.split(text):
        clean = word.strip()
        if clean.startswith(marker) and len(clean) > len(marker):
            out.append(lookup.get(clean[len(marker):], word))
        else:
            out.append(word)
    return "".join(out)


class ExpansionEngine:
    """Binds an abbreviation table and marker; stateless between calls.

    ``decide`` consults the table only. ``expand_text`` also resolves built-in
    tokens such as `:cd` unless builtins is off.
    """

    def __init__(
        self,
        table: Mapping[str, str],
        marker: str = DEFAULT_MARKER,
        builtins: bool = True,
        today: Optional[Callable[[], date]] = None,
    ):
        self.table = table
        self.marker = marker
        self.builtins = builtins
        self._today = today or date.today

    def decide(self, text: str, cursor: Optional[int] = None) -> Optional[Replacement]:
        if cursor is None:
            cursor = len(text)
        return find_expansion(text, cursor, self.table, self.marker)

    def expand_text(self, text: str) -> str:
        return expand_text(text, self.table, self.marker, today=self._today(), builtins=self.builtins)
