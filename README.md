# redrose

A library for working with ABC music notation. It has a symbol model for
tunes and voices, a builder that puts that model together piece by piece,
a pipeline that turns a voice into timed MIDI-like note events, and text
helpers for editors. It has no dependencies outside the standard library.

## Install

    pip install redrose

## Modules

### `redrose.theory`

This module does the music arithmetic.

- `pitch_diff(key_signature, note)` gives the number of semitones between
  a note letter and C in a key. Lower-case letters are one octave higher.
- `note_to_key(key_signature, note, measure_accid)` turns note text such as
  `"^c'"` into a MIDI key. It records explicit accidentals in the
  `measure_accid` mapping. Text that is not a pitched note gives 128.
- `key_signature_info(text)` returns a `KeySignatureInfo(fifths, mode)`.
- `tempo(text)` reads a `Q:` field, for example `"1/4=100"`, `"90"` or
  `"Allegro"` in quotes, and returns quarter notes per minute. The default
  is 120.
- `unit_per_measure(unit, metre)` gives the number of `L:` units in one
  `M:` measure.
- `compute_pqr(p, q, r, metre)` fills in the missing values of an n-uplet.
- `apply_divide(text)` returns the value of a fraction given as text.
- `chord_parse_num(chord)` and `chord_parse_den(chord)` read the duration
  written after a chord.
- `frac_add(num, den, from_num, from_den)` adds two fractions over their
  least common denominator. It raises `ValueError` if a denominator is not
  positive.

### `redrose.model`

This module holds the data model:

- `AbcDocument` has the tunes and a `find_tune(x)` method.
- `Tune` has its headers and voices and a `find_header(h)` method.
- `Header` is one header field.
- `Voice` is a linked list of symbols. It has `append_symbol`, `symbols()`
  and supports iteration.
- `Symbol` has `copy()` and `add_duration(other)`.
- `Event`, `SymbolKind` and `EventType` describe events and kinds.

It also has navigation helpers over linked symbols: `is_endbar`,
`is_start`, `is_repeat`, `alt_is_of`, `chord_rewind`, `chord_forward`,
`chord_first_note`, `find_previous_change`, `prev_is_tie`,
`prev_note_or_chord`, `next_note_or_chord`, `find_start_repeat`,
`find_next_repeat`, `find_next_alt`, `find_next_segno`, `has_pair`,
`has_tie` and `grace_duration`.

### `redrose.builder`

`AbcBuilder` builds an `AbcDocument`, available as `builder.document`. You
call it with the pieces of ABC text that a parser recognises:

- `begin_tune`, `add_header`, `add_voice`
- `add_note`, `set_duration_num`, `set_duration_den`, `set_note_punct`
- `add_chord`, `set_chord_duration_num`, `set_chord_duration_den`,
  `set_chord_punct`
- `add_bar`, `add_alt`, `add_tie`, `add_slur`, `add_grace`, `add_deco`,
  `add_gchord`, `add_nuplet`
- `add_change`, `add_lyrics`, `add_eol`, `add_space`, `add_instruction`

If no voice has been declared, voice `"1"` is created when the first symbol
arrives.

### `redrose.events`

This module turns a voice into events, in passes:

1. `unfold_voice` plays repeats and alternative endings out in full.
2. `fix_chord_ties` moves chord ties onto the chord's notes.
3. `apply_ties` sets absolute starts and durations and merges tied notes.
4. `ungroup_voice` splits each note into a note-on event (`ev.value == 1`)
   and a note-off event (`ev.value == 0`), sorted in time within chords.

`make_events_for_voice(tune, index)` runs all four passes.

### `redrose.editing`

Text helpers for editors. Positions are character offsets.

- `construct_headers(text, selection_index)` returns the header lines and
  the X number of the tune that holds the selection.
- `note_under_cursor(text, position)` returns the note before the cursor,
  with its accidentals and octave marks.
- `word_before(text, position)` returns the word that ends at the cursor.
- `is_fragment_line(line)` tells whether a line holds music.
- `is_pitch`, `is_rest` and `is_accid` classify single characters.
- `DELIMITER` holds the characters that end a word.

### `redrose.highlighting`

`highlight(line)` returns a list of `HighlightSpan(start, length, style)`
for one line. Each span is tagged with a `HighlightStyle` (bar, note,
decoration, gchord, comment, extra instruction, lyric, header), and
`style.bold` says whether it is bold. Where spans overlap, later ones take
precedence.

## Example

```python
from redrose.builder import AbcBuilder
from redrose.events import make_events_for_voice

b = AbcBuilder()
b.begin_tune("1")
b.add_header("Example", "T")
b.add_header("1/8", "L")
b.add_header("C", "K")
for note in ("C", "D", "E"):
    b.add_note(note)
b.add_bar("|]")

tune = b.document.find_tune(1)
voice = make_events_for_voice(tune, 0)
for symbol in voice.symbols():
    print(symbol.kind, symbol.ev.key, symbol.ev.value,
          symbol.ev.start_num, symbol.ev.start_den)
```

## What it does not do

- It does not read ABC text into tokens. `AbcBuilder` expects to be driven
  by a parser, and the package has none.
- It does not write MIDI files and does not play sound.
- It does not render scores.
- It has no editor window and no command-line program. The editing and
  highlighting helpers work on plain strings.

## Tests

    pip install redrose[test]
    pytest