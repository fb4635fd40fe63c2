from fractions import Fraction

import pytest

from redrose.builder import AbcBuilder
from redrose.model import EventType, SymbolKind
from redrose.theory import key_signature_info, note_to_key, tempo, unit_per_measure


def started():
    builder = AbcBuilder()
    builder.begin_tune("1")
    return builder


def dur(symbol):
    return Fraction(symbol.dur_num, symbol.dur_den)


def test_begin_tune_reads_number():
    builder = AbcBuilder()
    tune = builder.begin_tune("7")
    assert builder.document.tunes == [tune]
    assert tune.x == 7
    assert builder.document.find_tune(7) is tune


def test_header_without_tune_raises():
    with pytest.raises(ValueError):
        AbcBuilder().add_header("Title", "T")


def test_headers_feed_voice_defaults():
    builder = started()
    builder.add_header("Title", "T")
    builder.add_header("G", "K")
    voice = builder.add_voice("1")
    assert builder.document.tunes[0].find_header("T").text == "Title"
    assert voice.key == "G"
    assert voice.initial_key == "G"
    assert voice.unit == "1/8"
    assert voice.metre == "4/4"
    assert voice.tempo == "120"


def test_implicit_voice_created_by_note():
    builder = started()
    builder.add_note("C")
    voices = builder.document.tunes[0].voices
    assert [v.name for v in voices] == ["1"]
    assert builder.last_symbol().text == "C"


def test_note_key_and_unit_duration():
    builder = started()
    note = builder.add_note("C")
    assert note.kind == SymbolKind.NOTE
    assert note.ev.key == 0x3C
    assert dur(note) == 1


def test_measure_accidental_persists_until_bar():
    builder = started()
    sharp = builder.add_note("^F")
    plain = builder.add_note("F")
    assert plain.ev.key == sharp.ev.key
    builder.add_bar("|")
    after = builder.add_note("F")
    assert after.ev.key == note_to_key("C", "F", {})
    assert after.ev.key != sharp.ev.key


def test_whole_measure_rest():
    builder = started()
    rest = builder.add_note("Z")
    assert rest.dur_num == unit_per_measure("1/8", "4/4")


def test_duration_num_and_den():
    builder = started()
    note = builder.add_note("C")
    builder.set_duration_num("3")
    builder.set_duration_den("4")
    assert (note.dur_num, note.dur_den) == (3, 4)


def test_duration_slashes_halve():
    builder = started()
    single = builder.add_note("C")
    builder.set_duration_den("/")
    double = builder.add_note("D")
    builder.set_duration_den("//")
    assert dur(single) == 2 * dur(double)
    assert dur(single) < 1


def test_note_punct_preserves_total():
    builder = started()
    first = builder.add_note("C")
    second = builder.add_note("D")
    builder.set_note_punct(">")
    assert dur(first) + dur(second) == 2
    assert dur(first) > dur(second)


def test_note_punct_reverse():
    builder = started()
    first = builder.add_note("C")
    second = builder.add_note("D")
    builder.set_note_punct("<<")
    assert dur(first) + dur(second) == 2
    assert dur(first) < dur(second)


def test_note_punct_without_previous_raises():
    builder = started()
    builder.add_note("C")
    with pytest.raises(ValueError):
        builder.set_note_punct(">")


def test_chord_close_flags_notes():
    builder = started()
    builder.add_chord("[")
    c = builder.add_note("C")
    e = builder.add_note("E")
    builder.add_chord("]")
    assert c.in_chord and e.in_chord


def test_unmatched_chord_close_raises():
    builder = started()
    builder.add_note("C")
    with pytest.raises(ValueError):
        builder.add_chord("]")


def test_chord_duration_applies_to_all_notes():
    builder = started()
    builder.add_chord("[")
    c = builder.add_note("C")
    e = builder.add_note("E")
    builder.add_chord("]")
    builder.set_chord_duration_num("2")
    builder.set_chord_duration_den("3")
    assert dur(c) == dur(e) == Fraction(2, 3)


def test_chord_punct_preserves_total():
    builder = started()
    left = []
    right = []
    for target, notes in ((left, "CE"), (right, "DF")):
        builder.add_chord("[")
        target.extend(builder.add_note(n) for n in notes)
        builder.add_chord("]")
    builder.set_chord_punct(">")
    assert len({dur(n) for n in left}) == 1
    assert len({dur(n) for n in right}) == 1
    assert dur(left[0]) + dur(right[0]) == 2
    assert dur(left[0]) > dur(right[0])


def test_tie_flags_previous():
    builder = started()
    note = builder.add_note("C")
    tie = builder.add_tie("-")
    assert note.will_tie
    assert tie.kind == SymbolKind.TIE


def test_bar_in_alt_tracking():
    builder = started()
    builder.add_alt("[1")
    inside = builder.add_bar("|")
    closing = builder.add_bar(":|")
    assert inside.in_alt
    assert not closing.in_alt


def test_nuplet_text():
    builder = started()
    symbol = builder.add_nuplet(3, 2, 3)
    assert symbol.kind == SymbolKind.NUP
    assert symbol.text == "3:2:3"


def test_key_change():
    builder = started()
    change = builder.add_change("K:G")
    assert builder.document.tunes[0].voices[0].key == "G"
    assert change.ev.type == EventType.KEYSIG
    assert change.ev.key == key_signature_info("G").fifths


def test_metre_and_unit_changes():
    builder = started()
    metre = builder.add_change("M:6/8")
    common = builder.add_change("M:C")
    unit = builder.add_change("L:1/4")
    assert (metre.ev.key, metre.ev.value) == (6, 8)
    assert (common.ev.key, common.ev.value) == (4, 4)
    assert (unit.ev.key, unit.ev.value) == (1, 4)
    voice = builder.document.tunes[0].voices[0]
    assert voice.unit == "1/4"
    assert voice.metre == "C"


def test_tempo_change():
    builder = started()
    change = builder.add_change("Q:1/4=100")
    assert change.ev.type == EventType.TEMPO
    assert change.ev.value == tempo("1/4=100")


def test_lyrics_attach_to_notes_in_order():
    builder = started()
    c = builder.add_note("C")
    builder.add_space(" ")
    d = builder.add_note("D")
    e = builder.add_note("E")
    builder.add_lyrics("la di")
    assert (c.lyr, d.lyr, e.lyr) == ("la", "di", None)


def test_symbols_are_indexed_in_order():
    builder = started()
    builder.add_note("C")
    builder.add_bar("|")
    builder.add_deco("segno")
    voice = builder.document.tunes[0].voices[0]
    assert [s.index for s in voice] == [0, 1, 2]
    assert [s.kind for s in voice] == [SymbolKind.NOTE, SymbolKind.BAR, SymbolKind.DECO]