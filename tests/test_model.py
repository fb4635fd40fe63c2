from fractions import Fraction

import pytest

from redrose.model import (
    AbcDocument,
    EventType,
    Header,
    Symbol,
    SymbolKind,
    Tune,
    Voice,
    alt_is_of,
    chord_first_note,
    chord_forward,
    chord_rewind,
    find_next_alt,
    find_next_repeat,
    find_next_segno,
    find_previous_change,
    find_start_repeat,
    grace_duration,
    has_pair,
    has_tie,
    is_endbar,
    is_repeat,
    is_start,
    next_note_or_chord,
    prev_is_tie,
    prev_note_or_chord,
)

K = SymbolKind


def make_voice(*specs):
    voice = Voice("1")
    for spec in specs:
        kind, text = spec[0], spec[1]
        extra = spec[2] if len(spec) > 2 else {}
        voice.append_symbol(Symbol(kind, text, **extra))
    return voice, list(voice.symbols())


def test_append_links_and_indexes():
    voice, syms = make_voice((K.NOTE, "A"), (K.BAR, "|"), (K.NOTE, "B"))
    assert voice.first is syms[0]
    assert voice.last is syms[2]
    assert [s.index for s in syms] == [0, 1, 2]
    assert syms[1].prev is syms[0] and syms[1].next is syms[2]
    assert list(voice) == syms


def test_empty_voice_iterates_nothing():
    assert list(Voice("2").symbols()) == []


def test_copy_is_unlinked_and_independent():
    _, syms = make_voice((K.NOTE, "A"), (K.NOTE, "B"))
    syms[0].ev.key = 69
    dup = syms[0].copy()
    assert dup.prev is None and dup.next is None
    assert dup.text == "A" and dup.ev.key == 69
    dup.ev.key = 70
    assert syms[0].ev.key == 69


def test_add_duration():
    a = Symbol(K.NOTE, "A", dur_num=1, dur_den=4)
    b = Symbol(K.NOTE, "B", dur_num=1, dur_den=8)
    a.add_duration(b)
    assert Fraction(a.dur_num, a.dur_den) == Fraction(1, 4) + Fraction(1, 8)
    assert a.dur_den == 4 * 8


def test_symbol_defaults():
    s = Symbol(K.NOTE)
    assert s.dur_den == 1
    assert s.ev.start_den == 1
    assert s.ev.type == EventType.NOTE


def test_find_header_and_tune():
    t1 = Tune(1, headers=[Header("T", "First"), Header("K", "G"), Header("T", "Other")])
    t2 = Tune(2)
    doc = AbcDocument(tunes=[t1, t2])
    assert doc.find_tune(2) is t2
    assert doc.find_tune(3) is None
    assert t1.find_header("T").text == "First"
    assert t1.find_header("Q") is None


def test_bar_predicates():
    assert is_endbar(Symbol(K.BAR, "||"))
    assert is_endbar(Symbol(K.BAR, "|]"))
    assert not is_endbar(Symbol(K.BAR, "|"))
    assert is_start(Symbol(K.BAR, "|:"))
    assert is_repeat(Symbol(K.BAR, ":|"))
    assert is_repeat(Symbol(K.BAR, "::")) is False
    assert alt_is_of(Symbol(K.ALT, "1,2"), 2)
    assert not alt_is_of(Symbol(K.ALT, "1"), 2)


def test_chord_navigation():
    _, syms = make_voice(
        (K.NOTE, "G"), (K.CHORD, "["), (K.NOTE, "A"), (K.NOTE, "c"), (K.CHORD, "]"), (K.NOTE, "d")
    )
    assert chord_rewind(syms[3]) is syms[1]
    assert chord_rewind(syms[5]) is None
    assert chord_rewind(syms[0]) is None
    assert chord_forward(syms[2]) is syms[4]
    assert chord_forward(syms[5]) is None
    assert chord_first_note(syms[1]) is syms[2]
    assert chord_first_note(syms[0]) is None


def test_find_previous_change():
    _, syms = make_voice(
        (K.CHANGE, "L:1/4"), (K.NOTE, "A"), (K.CHANGE, "K:G"), (K.NOTE, "B")
    )
    assert find_previous_change(syms[3], "L") is syms[0]
    assert find_previous_change(syms[3], "K") is syms[2]
    assert find_previous_change(syms[3], "Q") is None


def test_prev_is_tie():
    _, syms = make_voice((K.NOTE, "A"), (K.TIE, "-"), (K.SPACE, " "), (K.NOTE, "A"), (K.NOTE, "B"))
    assert prev_is_tie(syms[3])
    assert not prev_is_tie(syms[4])
    assert not prev_is_tie(syms[0])


def test_prev_and_next_note_or_chord():
    _, syms = make_voice((K.BAR, "|"), (K.NOTE, "A"), (K.SPACE, " "), (K.CHORD, "["), (K.BAR, "|"))
    assert prev_note_or_chord(syms[2]) is syms[1]
    assert prev_note_or_chord(syms[1]) is syms[1]
    assert prev_note_or_chord(syms[0]) is None
    assert next_note_or_chord(syms[1]) is syms[3]
    # no further note: falls back to the last symbol
    assert next_note_or_chord(syms[3]) is syms[4]


def test_repeat_navigation():
    _, syms = make_voice(
        (K.NOTE, "A"), (K.BAR, "|:"), (K.NOTE, "B"), (K.NOTE, "c"), (K.BAR, ":|"), (K.NOTE, "d")
    )
    assert find_start_repeat(syms[4]) is syms[2]
    assert find_start_repeat(syms[1]) is syms[0]
    assert find_next_repeat(syms[0]) is syms[4]
    assert find_next_repeat(syms[4]) is syms[5]


def test_find_next_alt():
    _, syms = make_voice(
        (K.ALT, "1"),
        (K.NOTE, "A"),
        (K.BAR, ":|", {"in_alt": True}),
        (K.ALT, "2"),
        (K.NOTE, "B"),
        (K.BAR, "|]"),
    )
    assert find_next_alt(syms[0], 2) is syms[2]
    assert find_next_alt(syms[3], 3) is syms[5]


def test_find_next_alt_stops_at_plain_bar():
    _, syms = make_voice((K.ALT, "1"), (K.NOTE, "A"), (K.BAR, "|"), (K.NOTE, "B"))
    assert find_next_alt(syms[0], 2) is syms[2]


def test_find_next_segno():
    _, syms = make_voice((K.NOTE, "A"), (K.DECO, "segno"), (K.NOTE, "B"))
    assert find_next_segno(syms[0]) is syms[1]
    assert find_next_segno(syms[1]) is syms[2]


def test_has_pair_single():
    _, syms = make_voice((K.NOTE, "A"), (K.TIE, "-"), (K.NOTE, "A"))
    assert has_pair(syms[0], False)
    _, other = make_voice((K.NOTE, "A"), (K.TIE, "-"), (K.NOTE, "B"))
    assert not has_pair(other[0], False)


def test_has_pair_chord():
    _, syms = make_voice(
        (K.CHORD, "["), (K.NOTE, "A"), (K.CHORD, "]"), (K.TIE, "-"),
        (K.CHORD, "["), (K.NOTE, "A"), (K.CHORD, "]"),
    )
    assert has_pair(syms[1], True)
    _, other = make_voice(
        (K.CHORD, "["), (K.NOTE, "A"), (K.CHORD, "]"), (K.TIE, "-"),
        (K.CHORD, "["), (K.NOTE, "c"), (K.CHORD, "]"),
    )
    assert not has_pair(other[1], True)


def test_has_tie():
    _, syms = make_voice((K.NOTE, "A"), (K.TIE, "-"), (K.NOTE, "A"), (K.NOTE, "B"))
    assert has_tie(syms[0], False)
    assert not has_tie(syms[2], False)
    assert has_tie(Symbol(K.NOTE, "C", will_tie=True), False)
    _, chord = make_voice((K.NOTE, "A"), (K.CHORD, "]"), (K.TIE, "-"))
    assert has_tie(chord[0], True)
    _, untied = make_voice((K.NOTE, "A"), (K.CHORD, "]"), (K.NOTE, "B"))
    assert not has_tie(untied[0], True)


def test_grace_duration():
    _, syms = make_voice(
        (K.GRACE, "{"),
        (K.NOTE, "A", {"dur_num": 1, "dur_den": 2}),
        (K.NOTE, "B", {"dur_num": 1, "dur_den": 4}),
        (K.GRACE, "}"),
        (K.NOTE, "c", {"dur_num": 1, "dur_den": 1}),
    )
    assert grace_duration(syms[0]) == pytest.approx(0.75)
    assert grace_duration(syms[1]) == 0.0