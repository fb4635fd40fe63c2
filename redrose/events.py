"""Turn a parsed ABC voice into a flat, time-ordered list of note on/off events.

The work is done in passes, each producing a new voice:

1. :func:`unfold_voice` plays repeats and alternative endings out in full;
2. :func:`fix_chord_ties` moves chord ties onto the chord's notes;
3. :func:`apply_ties` gives every note its absolute start and merges tied notes;
4. :func:`ungroup_voice` splits notes and chords into note-on/note-off events.
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field
from typing import Optional

from .model import (
    EventType,
    Symbol,
    SymbolKind,
    Tune,
    Voice,
    alt_is_of,
    find_next_alt,
    find_previous_change,
    find_start_repeat,
    is_repeat,
    is_start,
    prev_note_or_chord,
)
from .theory import compute_pqr, frac_add, tempo

__all__ = [
    "GRACE_DEN",
    "unfold_voice",
    "fix_chord_ties",
    "apply_ties",
    "ungroup_voice",
    "make_events_for_voice",
]

#: Grace notes last this many times less than their written length.
GRACE_DEN = 4

_DEFAULT_UNIT = "1/8"
_DEFAULT_TEMPO = "120"

_FRACTION = re.compile(r"\s*([+-]?[0-9]+)\s*/\s*([+-]?[0-9]+)")
_NUPLET = re.compile(r"\s*([+-]?[0-9]+)\s*:\s*([+-]?[0-9]+)\s*:\s*([+-]?[0-9]+)")


def _fraction(text: Optional[str]) -> Optional[tuple[int, int]]:
    if text is None:
        return None
    match = _FRACTION.match(text)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


# -- pass 1: unfold repeats -------------------------------------------------


def _inline_change(source: Symbol, field_name: str, voice: Voice) -> Symbol:
    """The change of ``field_name`` in force at ``source``, as a fresh symbol."""
    previous = find_previous_change(source, field_name)
    if previous is not None:
        return previous.copy()

    change = Symbol(SymbolKind.CHANGE)
    if field_name == "L":
        unit = voice.initial_unit if voice.initial_unit is not None else _DEFAULT_UNIT
        num, den = _fraction(unit) or (1, 8)
        change.text = f"L:{unit}"
        change.ev.type = EventType.UNIT
        change.ev.key = num
        change.ev.value = den
    else:
        bpm = voice.initial_tempo if voice.initial_tempo is not None else _DEFAULT_TEMPO
        change.text = f"Q:{bpm}"
        change.ev.type = EventType.TEMPO
        change.ev.value = tempo(bpm)
    return change


def unfold_voice(voice: Voice) -> Voice:
    """A copy of ``voice`` with repeats and alternative endings played out.

    Bars become plain ``|`` bars and alternative markers are dropped. Each
    jump back to a repeat start is followed by the unit length and tempo
    in force there.
    """
    out = Voice(
        name=voice.name,
        initial_key=voice.initial_key,
        initial_unit=voice.initial_unit,
        initial_metre=voice.initial_metre,
        initial_tempo=voice.initial_tempo,
        key=voice.key,
        unit=voice.unit,
        metre=voice.metre,
        tempo=voice.tempo,
    )

    pass_no = 1
    current_repeat: Optional[Symbol] = None
    s = voice.first
    while s is not None:
        if s.kind == SymbolKind.BAR:
            bar = Symbol(SymbolKind.BAR, text="|")
            if is_repeat(s):
                if current_repeat is s:
                    if is_start(s):
                        pass_no = 1
                elif current_repeat is None or current_repeat.index < s.index:
                    current_repeat = s
                    s = find_start_repeat(s)
                    out.append_symbol(bar)
                    out.append_symbol(_inline_change(s, "L", voice))
                    out.append_symbol(_inline_change(s, "Q", voice))
                    pass_no += 1
                    continue
            elif is_start(s):
                pass_no = 1
            out.append_symbol(bar)
        elif s.kind == SymbolKind.ALT:
            if not alt_is_of(s, pass_no):
                target = find_next_alt(s, pass_no)
                if target is not None and target is not s:
                    s = target
                    continue
        else:
            out.append_symbol(s.copy())
        s = s.next
    return out


# -- pass 2.0: chord ties -----------------------------------------------------


def fix_chord_ties(voice: Voice) -> Voice:
    """A copy of ``voice`` where a tied chord ``[ace]-`` becomes ``[a-c-e-]``.

    Tie symbols are dropped; ties live on in the ``will_tie`` flags.
    """
    out = Voice(name=voice.name)
    for s in voice:
        if s.kind == SymbolKind.TIE:
            continue
        copy = s.copy()
        if s.kind == SymbolKind.CHORD and s.will_tie:
            p = out.last
            while p is not None and p.kind != SymbolKind.CHORD:
                if p.kind == SymbolKind.NOTE:
                    p.will_tie = True
                p = p.prev
            copy.will_tie = False
        out.append_symbol(copy)
    return out


# -- pass 2.1: timing and ties --------------------------------------------------


@dataclass
class _TieResolver:
    """State of the timing-and-ties pass over one voice."""

    unit: tuple[int, int]
    metre: str
    out: Voice
    tick: tuple[int, int] = (0, 1)
    nup_p: int = 0
    nup_q: int = 0
    nup_r: int = 0
    in_chord: bool = False
    in_grace: bool = False
    grace: tuple[int, int] = (0, 1)
    chord: tuple[int, int] = (0, 1)
    ties: list[Symbol] = field(default_factory=list)
    ties_ready: bool = False
    next_chord: list[Symbol] = field(default_factory=list)
    prev_chord: bool = False

    # helpers

    def _scaled(self, s: Symbol) -> tuple[int, int]:
        num = s.dur_num * self.unit[0]
        den = s.dur_den * self.unit[1]
        if self.nup_r:
            num *= self.nup_q
            den *= self.nup_p
        return num, den

    def _tie_for(self, key: int) -> Optional[Symbol]:
        return next((t for t in self.ties if t.ev.key == key), None)

    def _update_ties(self, note: Symbol, enable: bool) -> None:
        tied = self._tie_for(note.ev.key)
        if tied is not None:
            if not enable:
                self.ties.remove(tied)
        elif note.will_tie:
            self.ties.append(note)

    def _fix_dangling(self) -> None:
        keys = {n.ev.key for n in self.next_chord}
        self.ties = [t for t in self.ties if t.ev.key in keys]

    def _close_chord_time(self) -> None:
        self.tick = frac_add(*self.tick, *self.chord)
        self.chord = (0, 1)
        if self.nup_r:
            self.nup_r -= 1

    # producers

    def _single_note(self, s: Symbol) -> Symbol:
        new = s.copy()
        new.dur_num *= self.unit[0]
        new.dur_den *= self.unit[1]
        if self.in_grace:
            new.dur_den *= GRACE_DEN
            self.grace = frac_add(*self.grace, new.dur_num, new.dur_den)
        else:
            new.dur_num, new.dur_den = frac_add(
                new.dur_num, new.dur_den, -self.grace[0], self.grace[1]
            )
            self.grace = (0, 1)
        if self.nup_r:
            new.dur_num *= self.nup_q
            new.dur_den *= self.nup_p
            self.nup_r -= 1
        new.ev.start_num, new.ev.start_den = frac_add(
            new.ev.start_num, new.ev.start_den, *self.tick
        )
        self.tick = frac_add(*self.tick, new.dur_num, new.dur_den)
        return new

    def _single_chord_note(self, s: Symbol) -> Symbol:
        new = s.copy()
        new.dur_num, new.dur_den = self._scaled(s)
        new.ev.start_num, new.ev.start_den = frac_add(
            new.ev.start_num, new.ev.start_den, *self.tick
        )
        if self.chord[0] == 0:  # the first note sets the chord's duration
            self.chord = (new.dur_num, new.dur_den)
        return new

    def _lengthen_tied_note(self, s: Symbol) -> bool:
        tied = self._tie_for(s.ev.key)
        length = self._scaled(s)
        if self.nup_r:
            self.nup_r -= 1
        if tied is not None and tied.kind == SymbolKind.NOTE:
            tied.dur_num, tied.dur_den = frac_add(tied.dur_num, tied.dur_den, *length)
            self.tick = frac_add(*self.tick, *length)
            return True
        return False

    def _lengthen_tied_chord(self, s: Symbol) -> bool:
        if s.kind != SymbolKind.NOTE:
            return False
        tied = self._tie_for(s.ev.key)
        if tied is None:
            return False
        length = self._scaled(s)
        tied.dur_num, tied.dur_den = frac_add(tied.dur_num, tied.dur_den, *length)
        if self.chord[0] == 0:
            self.chord = frac_add(*self.chord, *length)
        return True

    def _add_note_to_tied_chord(self, s: Symbol) -> Symbol:
        n = s.copy()
        n.dur_num, n.dur_den = self._scaled(s)
        n.ev.start_num, n.ev.start_den = frac_add(n.ev.start_num, n.ev.start_den, *self.tick)

        p = prev_note_or_chord(self.out.last)
        if p is not None and p.kind == SymbolKind.CHORD:
            p = p.prev
        if p is None:
            raise ValueError("tied chord has nothing to attach a note to")
        n.next = p.next
        if n.next is not None:
            n.next.prev = n
        else:
            self.out.last = n
        p.next = n
        n.prev = p

        if self.chord[0] == 0:
            self.chord = frac_add(*self.chord, n.dur_num, n.dur_den)
        return n

    def _wrap_last_note(self, s: Symbol) -> Symbol:
        """Open a chord before the last note and return its closing bracket."""
        p = self.out.last
        while p is not None and p.kind != SymbolKind.NOTE:
            p = p.prev
        opening = s.copy()
        if p is not None and p.prev is not None:
            p.prev.next = opening
        else:
            self.out.first = opening
        if p is not None:
            opening.prev = p.prev
            p.prev = opening
        opening.next = p
        closing = s.copy()
        closing.text = "]" + closing.text[1:]
        return closing

    # symbol handlers

    def _on_change(self, s: Symbol) -> Symbol:
        if s.text.startswith("M"):
            self.metre = s.text[2:]
        elif s.text.startswith("L"):
            unit = _fraction(s.text[2:])
            if unit is not None:
                self.unit = unit
        return s.copy()

    def _on_nuplet(self, s: Symbol) -> None:
        match = _NUPLET.match(s.text)
        if match:
            p, q, r = (int(g) for g in match.groups())
            self.nup_p, self.nup_q, self.nup_r = compute_pqr(p, q, r, self.metre)

    def _on_chord(self, s: Symbol) -> Optional[Symbol]:
        if s.text.startswith("["):
            self.in_chord = True
            self.next_chord = []
            if self.ties_ready and self.prev_chord:
                return None  # the previous chord gets lengthened
            if self.ties_ready:
                return self._wrap_last_note(s)
            return s.copy()

        self.in_chord = False
        self._close_chord_time()
        new: Optional[Symbol]
        if self.ties_ready:
            self._fix_dangling()
            new = None
        else:
            new = s.copy()
        self.prev_chord = True
        self.ties_ready = bool(self.ties)
        return new

    def _restart_with_note(self, s: Symbol) -> Symbol:
        """Drop a broken tie and produce ``s`` as a plain note."""
        self._fix_dangling()
        self.ties = []
        self.ties_ready = False
        new = self._single_note(s)
        self._update_ties(new, new.will_tie)
        return new

    def _on_note(self, s: Symbol) -> Optional[Symbol]:
        new: Optional[Symbol] = None
        if self.ties_ready:
            if self.in_chord:
                self.next_chord.append(s)
                if not self._lengthen_tied_chord(s):
                    n = self._add_note_to_tied_chord(s)
                    self._update_ties(n, n.will_tie)
                elif not s.will_tie:
                    self._update_ties(s, False)
            elif self.prev_chord:
                self.next_chord = [s]
                if self._lengthen_tied_chord(s):
                    self._close_chord_time()
                    self._fix_dangling()
                    if not s.will_tie:
                        self._update_ties(s, False)
                else:
                    new = self._restart_with_note(s)
                    self.prev_chord = False
                self.ties_ready = bool(self.ties)
            else:
                self.next_chord = [s]
                if self._lengthen_tied_note(s):
                    self._update_ties(s, s.will_tie)
                else:
                    new = self._restart_with_note(s)
                self.ties_ready = bool(self.ties)
        elif self.in_chord:
            new = self._single_chord_note(s)
            self._update_ties(new, new.will_tie)
        else:
            new = self._single_note(s)
            self.prev_chord = False
            self._update_ties(new, new.will_tie)
            self.ties_ready = bool(self.ties)
        return new

    def run(self, voice: Voice) -> Voice:
        for s in voice:
            new: Optional[Symbol]
            if s.kind == SymbolKind.CHANGE:
                new = self._on_change(s)
            elif s.kind == SymbolKind.NUP:
                self._on_nuplet(s)
                new = None
            elif s.kind == SymbolKind.GRACE:
                self.in_grace = s.text.startswith("{")
                new = None
            elif s.kind == SymbolKind.CHORD:
                new = self._on_chord(s)
            elif s.kind == SymbolKind.NOTE:
                new = self._on_note(s)
            else:
                new = s.copy()
            if new is not None:
                self.out.append_symbol(new)
        return self.out


def apply_ties(voice: Voice, tune: Tune) -> Voice:
    """A copy of ``voice`` with absolute starts and durations, ties merged.

    Durations are scaled by the unit length, n-uplets and grace notes; a
    note tied to the same pitch absorbs the following note. N-uplet and
    grace markers are dropped.
    """
    metre_header = tune.find_header("M")
    if metre_header is None or metre_header.text == "C":
        metre = "4/4"
    elif metre_header.text == "C|":
        metre = "2/4"
    else:
        metre = metre_header.text

    unit_header = tune.find_header("L")
    unit = _fraction(unit_header.text if unit_header is not None else None) or (1, 8)

    resolver = _TieResolver(unit=unit, metre=metre, out=Voice(name=voice.name))
    return resolver.run(voice)


# -- pass 3: note on/off events -------------------------------------------------


def _event_order(a: Symbol, b: Symbol) -> int:
    """Order events by start; at the same tick, note-offs come first."""
    if a.ev.start_num == b.ev.start_num and a.ev.start_den == b.ev.start_den:
        return a.ev.value - b.ev.value
    av = a.ev.start_num / a.ev.start_den
    bv = b.ev.start_num / b.ev.start_den
    return (av > bv) - (av < bv)


def ungroup_voice(voice: Voice) -> Voice:
    """Split every note into a note-on (value 1) and a note-off (value 0).

    Notes of a chord are sorted in time; chord brackets are dropped and
    other symbols inside a chord move in front of its events.
    """
    out = Voice(name=voice.name)
    in_chord = False
    tick = (0, 1)

    s = voice.first
    while s is not None:
        if s.kind == SymbolKind.CHORD:
            in_chord = s.text.startswith("[")
        elif s.kind == SymbolKind.NOTE and not in_chord:
            on = s.copy()
            on.ev.value = 1
            tick = frac_add(*tick, on.dur_num, on.dur_den)
            off = on.copy()
            off.ev.start_num, off.ev.start_den = tick
            off.dur_num, off.dur_den = 0, 1
            off.ev.value = 0
            out.append_symbol(on)
            out.append_symbol(off)
        elif s.kind == SymbolKind.NOTE:
            starts: list[Symbol] = []
            while s.kind != SymbolKind.CHORD:
                if s.kind == SymbolKind.NOTE:
                    start = s.copy()
                    start.ev.value = 1
                    starts.append(start)
                else:
                    out.append_symbol(s.copy())
                if s.next is None:
                    raise ValueError("chord is not closed")
                s = s.next

            stops = []
            for start in starts:
                stop = start.copy()
                stop.ev.value = 0
                stop.ev.start_num, stop.ev.start_den = frac_add(
                    stop.ev.start_num, stop.ev.start_den, stop.dur_num, stop.dur_den
                )
                stop.dur_num, stop.dur_den = 0, 1
                stops.append(stop)

            events = sorted(starts + stops, key=functools.cmp_to_key(_event_order))
            for event in events:
                out.append_symbol(event)

            # the whole chord's span advances the running tick
            first, last = events[0], events[-1]
            tick = frac_add(*tick, last.ev.start_num, last.ev.start_den)
            tick = frac_add(*tick, -first.ev.start_num, first.ev.start_den)

            in_chord = s.text.startswith("[")
        else:
            out.append_symbol(s.copy())
        s = s.next
    return out


def make_events_for_voice(tune: Tune, index: int) -> Voice:
    """MIDI-like events for voice number ``index`` of ``tune``."""
    source = tune.voices[index]
    unfolded = unfold_voice(source)
    tie_fixed = fix_chord_ties(unfolded)
    timed = apply_ties(tie_fixed, tune)
    return ungroup_voice(timed)