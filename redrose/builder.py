"""Build the data model of ABC tunes from the pieces a parser recognises."""

from __future__ import annotations

import re
from typing import Optional

from .model import (
    AbcDocument,
    EventType,
    Header,
    Symbol,
    SymbolKind,
    Tune,
    Voice,
    chord_rewind,
    is_endbar,
    is_repeat,
)
from .theory import frac_add, key_signature_info, note_to_key, tempo, unit_per_measure

__all__ = ["AbcBuilder"]

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")
_FRACTION = re.compile(r"\s*([+-]?[0-9]+)\s*/\s*([+-]?[0-9]+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _fraction(text: str, default: tuple[int, int]) -> tuple[int, int]:
    match = _FRACTION.match(text)
    if not match:
        return default
    return int(match.group(1)), int(match.group(2))


def _back(symbol: Symbol) -> Symbol:
    if symbol.prev is None:
        raise ValueError(f"no symbol before {symbol.text!r}")
    return symbol.prev


def _lengthen(symbol: Symbol, count: int) -> None:
    """Add half, quarter, ... of the symbol's duration, ``count`` times."""
    num, den = symbol.dur_num, symbol.dur_den
    for c in range(count, 0, -1):
        symbol.dur_num, symbol.dur_den = frac_add(
            symbol.dur_num, symbol.dur_den, num, den * 2**c
        )


class AbcBuilder:
    """Accumulates tunes, headers, voices and symbols into an :class:`AbcDocument`."""

    def __init__(self, document: Optional[AbcDocument] = None) -> None:
        self.document = document if document is not None else AbcDocument()

    # -- current context -------------------------------------------------

    def _tune(self) -> Tune:
        if not self.document.tunes:
            raise ValueError("no tune has been started")
        return self.document.tunes[-1]

    def _voice(self) -> Voice:
        tune = self._tune()
        if not tune.voices:  # voice 1 can be implicit
            self.add_voice("1")
        return tune.voices[-1]

    def _last(self) -> Symbol:
        last = self._voice().last
        if last is None:
            raise ValueError("the current voice has no symbol")
        return last

    def _append(self, kind: SymbolKind, text: str) -> Symbol:
        symbol = self.new_symbol()
        symbol.kind = kind
        symbol.text = text
        return symbol

    # -- tunes, headers, voices -----------------------------------------

    def begin_tune(self, text: str) -> Tune:
        """Start a new tune numbered by the ``X:`` value in ``text``."""
        tune = Tune(x=_atoi(text))
        self.document.tunes.append(tune)
        return tune

    def add_header(self, text: str, which: str) -> Header:
        """Add header ``which`` to the current tune, tracking K, L, M and Q."""
        header = Header(which, text)
        self._tune().headers.append(header)
        if which == "K":
            self.document.key = text
        elif which == "L":
            self.document.unit = text
        elif which == "M":
            self.document.metre = text
        elif which == "Q":
            self.document.tempo = text
        return header

    def add_voice(self, text: str) -> Voice:
        """Add a voice to the current tune, starting from the headers seen so far."""
        doc = self.document
        key = doc.key if doc.key is not None else "C"
        unit = doc.unit if doc.unit is not None else "1/8"
        metre = doc.metre if doc.metre is not None else "4/4"
        bpm = doc.tempo if doc.tempo is not None else "120"
        voice = Voice(
            name=text,
            initial_key=key,
            initial_unit=unit,
            initial_metre=metre,
            initial_tempo=bpm,
            key=key,
            unit=unit,
            metre=metre,
            tempo=bpm,
        )
        self._tune().voices.append(voice)
        return voice

    def last_symbol(self) -> Optional[Symbol]:
        """The last symbol of the current voice, or None."""
        return self._voice().last

    def new_symbol(self) -> Symbol:
        """Append a blank symbol to the current voice and return it."""
        return self._voice().append_symbol(Symbol(SymbolKind.EOL))

    # -- simple symbols --------------------------------------------------

    def add_instruction(self, text: str) -> Symbol:
        return self._append(SymbolKind.INST, text)

    def add_eol(self, text: str) -> Symbol:
        return self._append(SymbolKind.EOL, text)

    def add_space(self, text: str) -> Symbol:
        return self._append(SymbolKind.SPACE, text)

    def add_grace(self, text: str) -> Symbol:
        return self._append(SymbolKind.GRACE, text)

    def add_deco(self, text: str) -> Symbol:
        return self._append(SymbolKind.DECO, text)

    def add_gchord(self, text: str) -> Symbol:
        return self._append(SymbolKind.GCHORD, text)

    def add_slur(self, text: str) -> Symbol:
        return self._append(SymbolKind.SLUR, text)

    def add_nuplet(self, p: int, q: int, r: int) -> Symbol:
        """Append an n-uplet marker ``p:q:r``."""
        return self._append(SymbolKind.NUP, f"{p}:{q}:{r}")

    def add_tie(self, text: str) -> Symbol:
        """Append a tie and flag the previous symbol as tied."""
        symbol = self._append(SymbolKind.TIE, text)
        if symbol.prev is not None:
            symbol.prev.will_tie = True
        return symbol

    def add_alt(self, text: str) -> Symbol:
        """Append an alternative ending marker."""
        symbol = self._append(SymbolKind.ALT, text)
        self._voice().in_alt = True
        return symbol

    def add_bar(self, text: str) -> Symbol:
        """Append a bar line, resetting the measure's accidentals."""
        symbol = self._append(SymbolKind.BAR, text)
        voice = self._voice()
        voice.measure_accid.clear()
        if is_endbar(symbol) or is_repeat(symbol):
            voice.in_alt = False
        symbol.in_alt = voice.in_alt
        return symbol

    # -- lyrics ----------------------------------------------------------

    def add_lyrics(self, text: str) -> None:
        """Attach the syllables of a lyrics line to the notes of the last music line."""
        syllables = text.split()
        s = self.last_symbol()
        if s is None:
            return

        while s.kind != SymbolKind.NOTE and s.prev is not None:
            s = s.prev

        note_count = 1
        while s.kind != SymbolKind.EOL and s.prev is not None:
            s = s.prev
            if s.kind == SymbolKind.NOTE:
                note_count += 1

        for syllable in syllables[:note_count]:
            while s.kind != SymbolKind.NOTE and s.next is not None:
                s = s.next
            s.lyr = syllable
            if s.next is not None:
                s = s.next

    # -- notes and durations ---------------------------------------------

    def add_note(self, text: str) -> Symbol:
        """Append a note or rest with a unit duration and its MIDI key."""
        symbol = self._append(SymbolKind.NOTE, text)
        voice = self._voice()
        symbol.dur_num = 1
        symbol.dur_den = 1
        symbol.ev.key = note_to_key(voice.key, text, voice.measure_accid)
        if text[:1] in ("Z", "X"):
            symbol.dur_num = unit_per_measure(voice.unit, voice.metre)
        return symbol

    def set_duration_num(self, text: str) -> None:
        """Multiply the last note's duration by a written numerator."""
        if not text.startswith("/"):
            self._last().dur_num *= _atoi(text)

    def set_duration_den(self, text: str) -> None:
        """Divide the last note's duration by a written denominator or slashes."""
        last = self._last()
        if text.startswith("/"):
            last.dur_den *= 2 ** len(text)
        else:
            last.dur_den *= _atoi(text)

    def set_note_punct(self, text: str) -> None:
        """Apply broken rhythm ``>`` or ``<`` between the last two symbols."""
        count = len(text)
        last = self._last()
        previous = _back(last)
        if text.startswith(">"):
            last.dur_den *= 2**count
            _lengthen(previous, count)
        elif text.startswith("<"):
            previous.dur_den *= 2**count
            _lengthen(last, count)

    # -- chords ------------------------------------------------------------

    def add_chord(self, text: str) -> Symbol:
        """Append a chord bracket; a closing one flags the chord's notes."""
        symbol = self._append(SymbolKind.CHORD, text)
        if text.startswith("]"):
            s = chord_rewind(symbol.prev)
            if s is None:
                raise ValueError("closing chord bracket without opening one")
            while s.next is not None and not s.next.text.startswith("]"):
                s = s.next
                if s.kind == SymbolKind.NOTE:
                    s.in_chord = True
        return symbol

    def _chord_notes(self) -> list[Symbol]:
        """Notes of the chord that ends with the last symbol."""
        notes = []
        c = self._last()
        while True:
            if c.kind == SymbolKind.NOTE:
                notes.append(c)
            c = _back(c)
            if c.kind == SymbolKind.CHORD:
                return notes

    def set_chord_duration_num(self, text: str) -> None:
        """Multiply every note of the last chord by a written numerator."""
        if text.startswith("/"):
            return
        factor = _atoi(text)
        for note in self._chord_notes():
            note.dur_num *= factor

    def set_chord_duration_den(self, text: str) -> None:
        """Divide every note of the last chord by a written denominator or slashes."""
        factor = 2 ** len(text) if text.startswith("/") else _atoi(text)
        for note in self._chord_notes():
            note.dur_den *= factor

    def set_chord_punct(self, text: str) -> None:
        """Apply broken rhythm ``>`` or ``<`` between the last two chords."""
        if not text.startswith((">", "<")):
            return
        count = len(text)
        shorten_right = text.startswith(">")

        s = self._last()
        while s.kind != SymbolKind.NOTE:
            s = _back(s)
        while s.kind != SymbolKind.CHORD:
            if s.kind == SymbolKind.NOTE:
                if shorten_right:
                    s.dur_den *= 2**count
                else:
                    _lengthen(s, count)
            s = _back(s)

        while s.kind != SymbolKind.NOTE:
            s = _back(s)
        while s.kind != SymbolKind.CHORD:
            if s.kind == SymbolKind.NOTE:
                if shorten_right:
                    _lengthen(s, count)
                else:
                    s.dur_den *= 2**count
            s = _back(s)

    # -- inline changes ----------------------------------------------------

    def add_change(self, text: str) -> Symbol:
        """Append an inline field change (``K:``, ``Q:``, ``M:`` or ``L:``)."""
        symbol = self._append(SymbolKind.CHANGE, text)
        voice = self._voice()
        symbol.ev.start_den = 1
        field_value = text[2:]
        field_name = text[:1]
        if field_name == "K":
            voice.key = field_value
            symbol.ev.type = EventType.KEYSIG
            info = key_signature_info(voice.key)
            symbol.ev.key = info.fifths
            symbol.ev.value = info.mode
        elif field_name == "Q":
            symbol.ev.type = EventType.TEMPO
            symbol.ev.value = tempo(field_value)
        elif field_name == "M":
            symbol.ev.type = EventType.METRIC
            voice.metre = field_value
            symbol.ev.key, symbol.ev.value = _fraction(field_value, (4, 4))
        elif field_name == "L":
            symbol.ev.type = EventType.UNIT
            voice.unit = field_value
            symbol.ev.key, symbol.ev.value = _fraction(field_value, (1, 8))
        return symbol