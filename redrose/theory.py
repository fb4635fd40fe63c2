"""Pitch, key, metre and duration arithmetic for ABC notation."""

from __future__ import annotations

import math
import re
import string
from collections.abc import MutableMapping
from typing import NamedTuple, Optional

__all__ = [
    "NATURAL",
    "KeySignatureInfo",
    "pitch_diff",
    "note_to_key",
    "key_signature_info",
    "tempo",
    "unit_per_measure",
    "compute_pqr",
    "apply_divide",
    "chord_parse_num",
    "chord_parse_den",
    "frac_add",
]

#: Marker stored in a measure accidental table for an explicit natural.
NATURAL = 0xFF

#: MIDI key of middle C.
MIDDLE_C = 0x3C

#: Key returned for symbols that are not pitched notes (rests and the like).
NO_PITCH = 128

_NOTE_LETTERS = "ABCDEFG"


def _scale(a: int, b: int, c: int, d: int, e: int, f: int, g: int) -> dict[str, int]:
    upper = dict(zip(_NOTE_LETTERS, (a, b, c, d, e, f, g)))
    lower = {letter.lower(): offset + 12 for letter, offset in upper.items()}
    return {**upper, **lower}


class _KeyTable(NamedTuple):
    offsets: dict[str, int]
    caseless: tuple[str, ...]
    exact: tuple[str, ...]


# Each entry: semitone offsets of every note letter over C, then the names
# matched without regard to case, then those matched exactly.
_KEY_TABLES: tuple[_KeyTable, ...] = (
    _KeyTable(_scale(9, 11, 0, 2, 4, 5, 7), ("", "C", "Cmaj", "Amin"), ("Am",)),
    _KeyTable(_scale(9, 11, 0, 2, 4, 6, 7), ("G", "Gmaj", "Emin"), ("Em",)),
    _KeyTable(_scale(9, 11, 1, 2, 4, 6, 7), ("D", "Dmaj", "Bmin"), ("Bm",)),
    _KeyTable(_scale(9, 11, 1, 2, 4, 6, 8), ("A", "Amaj", "F#min"), ("F#m",)),
    _KeyTable(_scale(9, 11, 1, 3, 4, 6, 8), ("E", "Emaj", "C#min"), ("C#m",)),
    _KeyTable(_scale(10, 11, 1, 3, 4, 6, 8), ("B", "Bmaj", "G#min"), ("G#m",)),
    _KeyTable(_scale(8, 10, -1, 1, 3, 4, 6), ("Cb", "Cbmaj", "Abmin"), ("Abm",)),
    _KeyTable(_scale(10, 11, 1, 3, 5, 6, 8), ("F#", "F#maj", "D#min"), ("D#m",)),
    _KeyTable(_scale(8, 10, -1, 1, 3, 5, 6), ("Gb", "Gbmaj", "Ebmin"), ("Ebm",)),
    _KeyTable(_scale(10, 12, 1, 3, 5, 6, 8), ("C#", "C#maj", "A#min"), ("A#m",)),
    _KeyTable(_scale(8, 10, 0, 1, 3, 5, 6), ("Db", "Dbmaj", "Bbmin"), ("Bbm",)),
    _KeyTable(_scale(8, 10, 0, 1, 3, 5, 7), ("Ab", "Abmaj", "Fmin"), ("Fm",)),
    _KeyTable(_scale(8, 10, 0, 2, 3, 5, 7), ("Eb", "Ebmaj", "Cmin"), ("Cm",)),
    _KeyTable(_scale(9, 10, 0, 2, 3, 5, 7), ("Bb", "Bbmaj", "Gmin"), ("Gm",)),
    _KeyTable(_scale(9, 10, 0, 2, 4, 5, 7), ("F", "Fmaj", "Dmin"), ("Dm",)),
)

_C_MAJOR = _KEY_TABLES[0].offsets


def _key_table(key_signature: Optional[str]) -> dict[str, int]:
    if key_signature is None:
        return _C_MAJOR
    folded = key_signature.lower()
    for table in _KEY_TABLES:
        if key_signature in table.exact or folded in (n.lower() for n in table.caseless):
            return table.offsets
    return _C_MAJOR


def pitch_diff(key_signature: Optional[str], note: str) -> int:
    """Semitones between ``note`` (a note letter) and C in the given key.

    Lower-case letters lie an octave above upper-case ones. Unknown keys
    fall back to C major, unknown letters give 0.
    """
    return _key_table(key_signature).get(note, 0)


def note_to_key(
    key_signature: Optional[str], note: str, measure_accid: MutableMapping[str, int]
) -> int:
    """Convert ABC note text to a MIDI key number.

    ``measure_accid`` holds the accidentals met so far in the current
    measure, keyed by note letter; explicit accidentals in ``note`` are
    recorded into it. Text that is not a pitched note gives 128.
    """
    octava = sum(-1 if ch == "," else 1 for ch in note if ch in ",'")

    accid = 0
    letter = ""
    for ch in note:
        if ch.isalpha():
            letter = ch
            break
        if ch == "_":
            accid -= 1
        elif ch == "^":
            accid += 1
        elif ch == "=":
            accid = NATURAL

    if not letter or letter.upper() not in _NOTE_LETTERS or not letter.isascii():
        return NO_PITCH

    if accid:
        measure_accid[letter.lower()] = accid
        measure_accid[letter.upper()] = accid

    shift = octava * 12
    if accid == NATURAL:
        pitch = _C_MAJOR[letter] + shift
    elif not accid:
        current = measure_accid.get(letter, 0)
        if current == NATURAL:
            pitch = _C_MAJOR[letter] + shift
        elif current:
            pitch = _C_MAJOR[letter] + current + shift
        else:
            pitch = pitch_diff(key_signature, letter) + shift
    else:
        pitch = _C_MAJOR[letter] + accid + shift

    return (pitch + MIDDLE_C) % 256


class KeySignatureInfo(NamedTuple):
    """A key signature as a count of sharps (negative: flats) and a mode."""

    fifths: int
    mode: int  # 0 major, 1 minor


_SIGNATURES: tuple[tuple[int, tuple[str, ...], str], ...] = (
    (0, ("C", "Am", "Amin"), "Cmaj"),
    (1, ("G", "Em", "Emin"), "Gmaj"),
    (2, ("D", "Bm", "Bmin"), "Dmaj"),
    (3, ("A", "F#m", "F#min"), "Amaj"),
    (4, ("E", "C#m", "C#min"), "Emaj"),
    (5, ("B", "G#m", "G#min"), "Bmaj"),
    (6, ("F#", "D#m", "D#min"), "F#maj"),
    (7, ("C#", "A#m", "A#min"), "C#maj"),
    (-1, ("F", "Dm", "Dmin"), "Fmaj"),
    (-2, ("Bb", "Gm", "Gmin"), "Bbmaj"),
    (-3, ("Eb", "Cm", "Cmin"), "Ebmaj"),
    (-4, ("Ab", "Fm", "Fmin"), "Abmaj"),
    (-5, ("Db", "Bbm", "Bbmin"), "Dbmaj"),
    (-6, ("Gb", "Ebm", "Ebmin"), "Gbmaj"),
    (-7, ("Cb", "Abm", "Abmin"), "Cbmaj"),
)


def key_signature_info(text: Optional[str]) -> KeySignatureInfo:
    """Sharps/flats count and mode of a key signature, as a MIDI meta event needs."""
    if text is None:
        return KeySignatureInfo(0, 0)
    mode = 1 if "min" in text or ("m" in text and "aj" not in text) else 0
    folded = text.lower()
    for fifths, exact, major in _SIGNATURES:
        if text in exact or folded == major.lower():
            return KeySignatureInfo(fifths, mode)
    return KeySignatureInfo(0, mode)


_INT = re.compile(r"\s*([+-]?[0-9]+)")


def _scan_ints(text: str, *separators: str) -> list[int]:
    """Read integers split by literal separators, as far as the text matches."""
    values: list[int] = []
    pos = 0
    for separator in (None, *separators):
        if separator is not None:
            match = re.compile(r"\s*" + re.escape(separator)).match(text, pos)
            if not match:
                break
            pos = match.end()
        match = _INT.match(text, pos)
        if not match:
            break
        values.append(int(match.group(1)))
        pos = match.end()
    return values


def _cdiv(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b >= 0) else -quotient


_TEMPO_NAMES: tuple[tuple[str, int], ...] = (
    ('"larg', 40),
    ('"larghett', 60),
    ('"lent', 50),
    ('"adagi', 60),
    ('"andant', 80),
    ('"moderat', 90),
    ('"allegr', 120),
    ('"prest', 140),
    ('"vivac', 160),
)


def tempo(text: Optional[str]) -> int:
    """Tempo in quarter notes per minute from a Q: field."""
    if text is None:
        return 120
    values = _scan_ints(text, "/", "=")
    if len(values) == 3:
        num, den, q = values
        return _cdiv(q * 4 * num, den)
    if values:
        return values[0]
    folded = text.lower()
    for prefix, bpm in _TEMPO_NAMES:
        if folded.startswith(prefix):
            return bpm
    return 120


def _metre_fraction(metre: str) -> tuple[int, int]:
    if metre == "C":
        return 4, 4
    if metre == "C|":
        return 2, 4
    values = _scan_ints(metre, "/")
    if len(values) == 2:
        return values[0], values[1]
    return 4, 4


def unit_per_measure(unit: Optional[str], metre: Optional[str]) -> int:
    """Number of unit lengths (L:) in one measure (M:)."""
    unit = "1/8" if unit is None else unit
    metre = "4/4" if metre is None else metre
    values = _scan_ints(unit, "/")
    ln, ld = (values[0], values[1]) if len(values) == 2 else (1, 8)
    mn, md = _metre_fraction(metre)
    return _cdiv(ld * mn, md * ln)


def compute_pqr(p: int, q: int, r: int, metre: Optional[str]) -> tuple[int, int, int]:
    """Complete an n-uplet ``(p:q:r)`` with the defaults for the given metre."""
    if metre is None or metre == "C":
        metre = "4/4"
    elif metre == "C|":
        metre = "2/4"
    values = _scan_ints(metre, "/")
    num, den = (values[0], values[1]) if len(values) == 2 else (4, 4)

    if not r:
        r = p

    if not q:
        compound = num % 3 == 0 and den == 8
        if p in (2, 4, 8):
            q = 3
        elif p in (3, 6):
            q = 2
        elif p in (5, 7, 9):
            q = 3 if compound else 2
    return p, q, r


def apply_divide(text: str) -> float:
    """Value of a ``num/den`` fraction text, or 0.0 when it is not one."""
    if "/" not in text:
        return 0.0
    values = _scan_ints(text, "/")
    if len(values) != 2:
        return 0.0
    num, den = values
    if den == 0:
        if num == 0:
            return math.nan
        return math.inf if num > 0 else -math.inf
    return num / den


def chord_parse_num(chord: str) -> int:
    """Duration numerator written after a chord, 1 when absent."""
    ret = 0
    for ch in chord:
        if ch == "/":
            return ret or 1
        is_digit = ch in string.digits
        if is_digit:
            ret = ret * 10 + int(ch)
        if ret and not is_digit:
            return ret
    return ret or 1


def chord_parse_den(chord: str) -> int:
    """Duration denominator written after a chord, 1 when absent."""
    in_den = False
    ret = 0
    for ch in chord:
        if ch in string.ascii_letters and ret and in_den:
            return ret
        if ch == "/":
            if ret and in_den:
                return ret
            in_den = not in_den
        if in_den and ch in string.digits:
            ret = ret * 10 + int(ch)
    return ret or 1


def frac_add(num: int, den: int, from_num: int, from_den: int) -> tuple[int, int]:
    """Add two fractions over their least common denominator, unreduced."""
    if den <= 0 or from_den <= 0:
        raise ValueError("denominators must be positive")
    common = den * from_den // math.gcd(den, from_den)
    return num * (common // den) + from_num * (common // from_den), common