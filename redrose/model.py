"""Data model of parsed ABC tunes: symbols, voices, tunes and navigation helpers."""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Optional

__all__ = [
    "SymbolKind",
    "EventType",
    "Event",
    "Symbol",
    "Voice",
    "Header",
    "Tune",
    "AbcDocument",
    "is_endbar",
    "is_start",
    "is_repeat",
    "alt_is_of",
    "chord_rewind",
    "chord_forward",
    "chord_first_note",
    "find_previous_change",
    "prev_is_tie",
    "prev_note_or_chord",
    "next_note_or_chord",
    "find_start_repeat",
    "find_next_repeat",
    "find_next_alt",
    "find_next_segno",
    "has_pair",
    "has_tie",
    "grace_duration",
]


class SymbolKind(enum.IntEnum):
    """Kind of a symbol in a voice."""

    EOL = 0
    SPACE = 1
    NOTE = 2
    NUP = 3
    GRACE = 4
    CHORD = 5
    DECO = 6
    GCHORD = 7
    TIE = 8
    SLUR = 9
    BAR = 10
    ALT = 11
    INST = 12
    CHANGE = 13


class EventType(enum.IntEnum):
    """Kind of MIDI-like event a symbol carries."""

    NOTE = 0
    KEYSIG = 1
    TEMPO = 2
    METRIC = 3
    UNIT = 4


@dataclass
class Event:
    """Start time and payload of a MIDI-like event.

    ``key`` is a note key or a key signature's sharps/flats count; ``value``
    is a velocity flag, a key signature mode, or a tempo.
    """

    start_num: int = 0
    start_den: int = 1
    key: int = 0
    value: int = 0
    type: EventType = EventType.NOTE


@dataclass(eq=False)
class Symbol:
    """One symbol of a voice, linked to its neighbours."""

    kind: SymbolKind
    text: str = ""
    lyr: Optional[str] = None
    dur_num: int = 0
    dur_den: int = 1
    index: int = 0
    ev: Event = field(default_factory=Event)
    in_alt: bool = False
    will_tie: bool = False
    in_chord: bool = False
    next: Optional[Symbol] = field(default=None, repr=False)
    prev: Optional[Symbol] = field(default=None, repr=False)

    def copy(self) -> Symbol:
        """An unlinked copy of this symbol."""
        return replace(self, ev=replace(self.ev), prev=None, next=None)

    def add_duration(self, other: Symbol) -> None:
        """Add the duration of ``other`` to this symbol's duration."""
        num = self.dur_num * other.dur_den + other.dur_num * self.dur_den
        self.dur_den = self.dur_den * other.dur_den
        self.dur_num = num


@dataclass(eq=False)
class Voice:
    """A voice: a linked list of symbols plus its running header state."""

    name: str
    first: Optional[Symbol] = field(default=None, repr=False)
    last: Optional[Symbol] = field(default=None, repr=False)
    in_alt: bool = False
    measure_accid: dict[str, int] = field(default_factory=dict, repr=False)
    initial_key: Optional[str] = None
    initial_unit: Optional[str] = None
    initial_metre: Optional[str] = None
    initial_tempo: Optional[str] = None
    key: Optional[str] = None
    unit: Optional[str] = None
    metre: Optional[str] = None
    tempo: Optional[str] = None

    def append_symbol(self, symbol: Symbol) -> Symbol:
        """Link ``symbol`` at the end of the voice and return it."""
        if self.last is None:
            self.first = self.last = symbol
        else:
            previous = self.last
            previous.next = symbol
            symbol.prev = previous
            symbol.index = previous.index + 1
            self.last = symbol
        return symbol

    def symbols(self) -> Iterator[Symbol]:
        """Iterate the symbols from first to last."""
        s = self.first
        while s is not None:
            yield s
            s = s.next

    def __iter__(self) -> Iterator[Symbol]:
        return self.symbols()


@dataclass
class Header:
    """A tune header field such as ``T:`` or ``K:``."""

    h: str
    text: str


@dataclass(eq=False)
class Tune:
    """One tune (``X:``) with its headers and voices."""

    x: int
    headers: list[Header] = field(default_factory=list)
    voices: list[Voice] = field(default_factory=list)
    lbc: str = "\n"

    def find_header(self, h: str) -> Optional[Header]:
        """The first header of letter ``h``, or None."""
        return next((header for header in self.headers if header.h == h), None)


@dataclass(eq=False)
class AbcDocument:
    """All tunes parsed from one ABC text."""

    tunes: list[Tune] = field(default_factory=list)
    error: bool = False
    error_line: int = 0
    error_char: int = 0
    key: Optional[str] = None
    unit: Optional[str] = None
    metre: Optional[str] = None
    tempo: Optional[str] = None

    def find_tune(self, x: int) -> Optional[Tune]:
        """The first tune numbered ``x``, or None."""
        return next((tune for tune in self.tunes if tune.x == x), None)


def _backward(symbol: Symbol) -> Iterator[Symbol]:
    s = symbol.prev
    while s is not None:
        yield s
        s = s.prev


def _forward(symbol: Symbol) -> Iterator[Symbol]:
    s = symbol.next
    while s is not None:
        yield s
        s = s.next


def _last(symbol: Symbol) -> Symbol:
    while symbol.next is not None:
        symbol = symbol.next
    return symbol


def _first(symbol: Symbol) -> Symbol:
    while symbol.prev is not None:
        symbol = symbol.prev
    return symbol


def is_endbar(symbol: Symbol) -> bool:
    """True for a final bar ``||`` or ``|]``."""
    return "||" in symbol.text or "|]" in symbol.text


def is_start(symbol: Symbol) -> bool:
    """True for a start-of-repeat bar."""
    return "|:" in symbol.text


def is_repeat(symbol: Symbol) -> bool:
    """True for an end-of-repeat bar."""
    return ":|" in symbol.text


def alt_is_of(symbol: Symbol, alt: int) -> bool:
    """True when an alternative ending symbol names pass ``alt``."""
    return chr(alt + ord("0")) in symbol.text


def chord_rewind(symbol: Optional[Symbol]) -> Optional[Symbol]:
    """The opening ``[`` of the chord holding ``symbol``, or None."""
    s = symbol
    while s is not None:
        if s.kind == SymbolKind.CHORD:
            if s.text.startswith("]"):
                return None
            if s.text.startswith("["):
                return s
        s = s.prev
    return None


def chord_forward(symbol: Optional[Symbol]) -> Optional[Symbol]:
    """The closing ``]`` at or after ``symbol``, or None."""
    s = symbol
    while s is not None:
        if s.kind == SymbolKind.CHORD and s.text.startswith("]"):
            return s
        s = s.next
    return None


def chord_first_note(symbol: Symbol) -> Optional[Symbol]:
    """The first note after a chord symbol, or None if ``symbol`` is no chord."""
    if symbol.kind != SymbolKind.CHORD:
        return None
    return next((s for s in _forward(symbol) if s.kind == SymbolKind.NOTE), None)


def find_previous_change(symbol: Symbol, c: str) -> Optional[Symbol]:
    """The closest earlier inline change of field ``c``, or None."""
    return next(
        (s for s in _backward(symbol) if s.kind == SymbolKind.CHANGE and s.text[:1] == c),
        None,
    )


def prev_is_tie(symbol: Symbol) -> bool:
    """True when a tie comes before ``symbol`` with no note or chord between."""
    for s in _backward(symbol):
        if s.kind == SymbolKind.TIE:
            return True
        if s.kind in (SymbolKind.NOTE, SymbolKind.CHORD):
            return False
    return False


def prev_note_or_chord(symbol: Optional[Symbol]) -> Optional[Symbol]:
    """``symbol`` or the closest earlier note or chord symbol, or None."""
    s = symbol
    while s is not None:
        if s.kind in (SymbolKind.CHORD, SymbolKind.NOTE):
            return s
        s = s.prev
    return None


def next_note_or_chord(symbol: Symbol) -> Symbol:
    """The next note or chord symbol; the last symbol when there is none."""
    for s in _forward(symbol):
        if s.kind in (SymbolKind.CHORD, SymbolKind.NOTE):
            return s
    return _last(symbol)


def find_start_repeat(symbol: Symbol) -> Symbol:
    """The symbol just after the previous start-repeat bar, else the first symbol."""
    for s in _backward(symbol):
        if s.kind == SymbolKind.BAR and "|:" in s.text:
            return s.next  # type: ignore[return-value]
    return _first(symbol)


def find_next_repeat(symbol: Symbol) -> Symbol:
    """The next end-repeat bar; the last symbol when there is none."""
    for s in _forward(symbol):
        if s.kind == SymbolKind.BAR and is_repeat(s):
            return s
    return _last(symbol)


def find_next_alt(symbol: Symbol, alt: int) -> Optional[Symbol]:
    """Where playing resumes when skipping alternatives not of pass ``alt``.

    That is the next final bar, the symbol before the next alternative of
    ``alt``, or the next bar outside alternatives; the last symbol otherwise.
    """
    for s in _forward(symbol):
        if s.kind == SymbolKind.BAR and is_endbar(s):
            return s
        if s.kind == SymbolKind.ALT and alt_is_of(s, alt):
            return s.prev
        if s.kind == SymbolKind.BAR and not s.in_alt:
            return s
    return _last(symbol)


def find_next_segno(symbol: Symbol) -> Symbol:
    """The next ``segno`` decoration; the last symbol when there is none."""
    for s in _forward(symbol):
        if s.kind == SymbolKind.DECO and s.text == "segno":
            return s
    return _last(symbol)


def has_pair(symbol: Symbol, chord: bool) -> bool:
    """True when the note tied from ``symbol`` is matched by the same note after it."""
    note = symbol.text
    if chord:
        s = chord_forward(symbol)
        if s is None or s.next is None:
            return False
        s = s.next
        inside = False
        while s.next is not None and not s.next.text.startswith("]"):
            s = s.next
            if s.kind == SymbolKind.NOTE:
                if not inside:
                    return False
                if s.text == note:
                    return True
            if s.text.startswith("["):
                inside = True
        return False
    for s in _forward(symbol):
        if s.kind == SymbolKind.NOTE:
            return s.text == note
    return False


def has_tie(symbol: Symbol, chord: bool) -> bool:
    """True when ``symbol`` (or its chord, when ``chord``) is followed by a tie."""
    if symbol.will_tie:
        return True
    for s in _forward(symbol):
        if not chord:
            return s.kind == SymbolKind.TIE
        if s.kind == SymbolKind.CHORD and s.text.startswith("]"):
            return s.next is not None and s.next.kind == SymbolKind.TIE
    return False


def grace_duration(symbol: Symbol) -> float:
    """Total duration of the notes in the grace group opened by ``symbol``."""
    if symbol.kind != SymbolKind.GRACE:
        return 0.0
    total = 0.0
    for s in _forward(symbol):
        if s.kind == SymbolKind.NOTE:
            total += s.dur_num / s.dur_den
        if s.kind == SymbolKind.GRACE:
            break
    return total