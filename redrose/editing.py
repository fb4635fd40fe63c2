"""Text helpers for editing ABC scores: headers, words and notes around a cursor.

Positions are character offsets into the text, as a cursor sits between
characters: position ``p`` follows ``text[p - 1]`` and precedes ``text[p]``.
"""

from __future__ import annotations

import re
from typing import Optional

__all__ = [
    "DELIMITER",
    "is_rest",
    "is_pitch",
    "is_accid",
    "construct_headers",
    "word_before",
    "is_fragment_line",
    "note_under_cursor",
]

#: Characters that end a word for completion purposes.
DELIMITER = " !%~@#$^&*()_+{}|:\"<>?,./;'[]\\-="

_LINE_BREAKS = ("\n", "\u2029")
_HEADER_OR_COMMENT = re.compile(r"(%[^\n]*)|([A-UW-Z]:[^\n]+)")


def is_rest(char: str) -> bool:
    """True for a rest letter: ``z``, ``Z``, ``x`` or ``X``."""
    return char in ("z", "Z", "x", "X")


def is_pitch(char: str) -> bool:
    """True for a note letter ``A``-``G`` or ``a``-``g``."""
    return len(char) == 1 and ("A" <= char <= "G" or "a" <= char <= "g")


def is_accid(char: str) -> bool:
    """True for an accidental sign: ``^``, ``=`` or ``_``."""
    return char in ("^", "=", "_")


def _parse_x(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def construct_headers(text: str, selection_index: int) -> tuple[str, Optional[int]]:
    """Headers of the tune holding ``selection_index``, and that tune's X number.

    The tune is the one whose ``X:`` line comes last before the selection.
    Its header and comment lines are gathered up to the first ``V:`` line or
    line of music. The X number is None when no ``X:`` line precedes the
    selection.
    """
    lines = text.split("\n")
    x: Optional[int] = None
    x_line = 0
    offset = 0
    for number, line in enumerate(lines):
        if offset >= selection_index:
            break
        offset += len(line) + 1
        if line.startswith("X:"):
            x = _parse_x(line[2:])
            x_line = number

    headers = []
    for line in lines[x_line:]:
        if not _HEADER_OR_COMMENT.fullmatch(line):
            break
        headers.append(line + "\n")
    return "".join(headers), x


def word_before(text: str, position: int) -> str:
    """The word that ends at ``position``, back to the nearest delimiter."""
    start = position
    while start > 0 and text[start - 1] not in DELIMITER:
        start -= 1
    return text[start:position]


def is_fragment_line(line: str) -> bool:
    """True when ``line`` holds music rather than a comment or a header."""
    if line.startswith("%"):
        return False
    if len(line) > 1 and line[0].isalpha() and line[1] == ":":
        return False
    if line and line[0].isalpha() and not is_pitch(line[0]) and not is_rest(line[0]):
        return False
    return True


def note_under_cursor(text: str, position: int) -> str:
    """The note just before ``position`` with its accidentals and octave marks.

    Accidentals written on the note itself, or else on the closest earlier
    note of the same letter within the measure, are prepended; octave marks
    following the note are appended. Returns an empty string when the
    character before ``position`` is not a note letter.
    """
    if position <= 0 or position > len(text):
        return ""
    sym = text[position - 1]
    if not is_pitch(sym):
        return ""
    letter = sym.upper()

    pos = position
    while pos > 0:
        pos -= 1
        char = text[pos]
        if char == "|" or char in _LINE_BREAKS:
            break
        if char.upper() != letter:
            continue
        if pos == 0:
            break
        cursor = pos - 1
        found = False
        while is_accid(text[cursor]):
            found = True
            sym = text[cursor] + sym
            if cursor == 0:
                break
            cursor -= 1
        if found:
            break

    for char in text[position:]:
        if char not in (",", "'"):
            break
        sym += char
    return sym