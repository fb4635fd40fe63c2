"""Syntax highlighting of ABC text lines.

Each rule is a regular expression paired with a style. A line is scanned
with every rule in turn, and each match becomes a span. Spans come back in
the order the rules are applied, so a later span overrides an earlier one
where they overlap.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

__all__ = ["HighlightStyle", "HighlightSpan", "highlight"]


class HighlightStyle(enum.Enum):
    """What a highlighted stretch of text is, and whether it is shown bold."""

    BAR = ("bar", True)
    NOTE = ("note", True)
    DECORATION = ("decoration", False)
    GCHORD = ("gchord", False)
    COMMENT = ("comment", False)
    EXTRA_INSTRUCTION = ("extra_instruction", True)
    LYRIC = ("lyric", False)
    HEADER = ("header", True)

    @property
    def bold(self) -> bool:
        """True when the style uses a bold font weight."""
        return self.value[1]


@dataclass(frozen=True)
class HighlightSpan:
    """A stretch of ``length`` characters from ``start`` shown in ``style``."""

    start: int
    length: int
    style: HighlightStyle

    @property
    def end(self) -> int:
        """Offset just past the span."""
        return self.start + self.length


_HEADER_LETTERS = "ABCDEFGHIKLMNOPQRSTVXZ"

_RULES: tuple[tuple[re.Pattern[str], HighlightStyle], ...] = (
    (re.compile(r"(:\|*:|[:\|\[]?\|[:\|\]]?)"), HighlightStyle.BAR),
    (re.compile(r"[_=^]*[A-HZa-hz][,']*[0-9]*/*[1-9]*"), HighlightStyle.NOTE),
    (re.compile(r"![^!]*!"), HighlightStyle.DECORATION),
    (re.compile(r"\"[^\"]*\""), HighlightStyle.GCHORD),
    (re.compile(r"%[^\n]*"), HighlightStyle.COMMENT),
    (re.compile(r"^%%[^%\n]+"), HighlightStyle.EXTRA_INSTRUCTION),
    (re.compile(r"^[Ww]:[^\n]*"), HighlightStyle.LYRIC),
    *(
        (re.compile(rf"^{letter}:[^\n]+"), HighlightStyle.HEADER)
        for letter in _HEADER_LETTERS
    ),
    (re.compile(r"\[[KLMPQ]:[^\]]+\]"), HighlightStyle.HEADER),
)


def highlight(line: str) -> list[HighlightSpan]:
    """Highlighted spans of one line, later spans taking precedence."""
    return [
        HighlightSpan(match.start(), match.end() - match.start(), style)
        for pattern, style in _RULES
        for match in pattern.finditer(line)
        if match.end() > match.start()
    ]