"""
Tests for score commands.
"""

import pytest

from score_editor.core.commands import (
    AddEventCommand,
    AddMeasureCommand,
    AddNoteToEventCommand,
    ApplyTupletCommand,
    ChangePitchCommand,
    DeleteEventCommand,
    DeleteMeasureCommand,
    DeleteNoteCommand,
    InsertEventCommand,
    RemoveTupletCommand,
    SetBpmCommand,
    SetClefCommand,
    SetKeySignatureCommand,
    SetTimeSignatureCommand,
    SetTitleCommand,
    TransposeSelectionCommand,
    UpdateEventCommand,
    UpdateNoteCommand,
)
from score_editor.core.rhythm import total_quants
from score_editor.core.score import Note, Tuplet
from score_editor.selection.model import SelectedNote, Selection

from conftest import build_score, note_event, quarters, rest_event


def events_of(score, measure_index=0, staff_index=0):
    return score.staves[staff_index].measures[measure_index].events


class TestAddEventCommand:
    """Tests for AddEventCommand."""

    def test_append(self):
        """Test appending a note."""
        score = build_score([quarters("C4")])
        cmd = AddEventCommand(0, "quarter", pitch="D4")
        new = cmd.execute(score)
        assert [e.notes[0].pitch for e in events_of(new)] == ["C4", "D4"]
        assert events_of(new)[1].id == cmd.event_id

    def test_insert_at_index(self):
        """Test inserting before an existing event."""
        score = build_score([quarters("C4")])
        new = AddEventCommand(0, "quarter", pitch="D4", index=0).execute(score)
        assert events_of(new)[0].notes[0].pitch == "D4"

    def test_rest(self):
        """Test adding a rest."""
        score = build_score([[]])
        new = AddEventCommand(0, "half", is_rest=True).execute(score)
        event = events_of(new)[0]
        assert event.is_rest
        assert event.notes[0].pitch is None

    def test_pitch_required(self):
        """Test that a note event needs a pitch."""
        with pytest.raises(ValueError):
            AddEventCommand(0, "quarter")

    def test_overflow_rejected(self):
        """Test that a full measure returns the same score."""
        score = build_score([quarters("C4", "D4", "E4", "F4")])
        assert AddEventCommand(0, "quarter", pitch="G4").execute(score) is score

    def test_missing_measure(self):
        """Test that an invalid measure is a no-op."""
        score = build_score([[]])
        assert AddEventCommand(4, "quarter", pitch="G4").execute(score) is score

    def test_undo(self):
        """Test that undo removes the added event."""
        score = build_score([quarters("C4")])
        cmd = AddEventCommand(0, "quarter", pitch="D4")
        assert cmd.undo(cmd.execute(score)) == score

    def test_ids_stable_on_redo(self):
        """Test that executing again reuses the same event id."""
        score = build_score([[]])
        cmd = AddEventCommand(0, "quarter", pitch="D4")
        first = cmd.execute(score)
        second = cmd.execute(cmd.undo(first))
        assert events_of(first)[0].id == events_of(second)[0].id


class TestEventCommands:
    """Tests for insert, delete and update."""

    def test_insert_preserves_fields(self):
        """Test that InsertEventCommand keeps the event as given."""
        score = build_score([quarters("C4")])
        event = note_event("E4", "G4", duration="eighth", dotted=True, tied=True)
        new = InsertEventCommand(0, event, 0).execute(score)
        assert events_of(new)[0] is event

    def test_insert_duplicate_id(self):
        """Test that an event id already present is rejected."""
        score = build_score([quarters("C4")])
        existing = events_of(score)[0]
        assert InsertEventCommand(0, existing).execute(score) is score

    def test_insert_overflow(self):
        """Test that InsertEventCommand refuses overflow."""
        score = build_score([quarters("C4", "D4", "E4")])
        assert InsertEventCommand(0, note_event("F4", duration="half")).execute(score) is score

    def test_delete_and_undo(self):
        """Test delete then undo restores the event at its index."""
        score = build_score([quarters("C4", "D4", "E4")])
        middle = events_of(score)[1]
        cmd = DeleteEventCommand(0, middle.id)
        new = cmd.execute(score)
        assert [e.notes[0].pitch for e in events_of(new)] == ["C4", "E4"]
        assert cmd.undo(new) == score

    def test_delete_missing(self):
        """Test deleting an unknown id."""
        score = build_score([quarters("C4")])
        assert DeleteEventCommand(0, "nope").execute(score) is score

    def test_update_duration(self):
        """Test changing duration and undo."""
        score = build_score([quarters("C4")])
        event = events_of(score)[0]
        cmd = UpdateEventCommand(0, event.id, duration="half", dotted=True)
        new = cmd.execute(score)
        assert total_quants(events_of(new)) == 48
        assert cmd.undo(new) == score

    def test_update_overflow(self):
        """Test that an update that overflows is refused."""
        score = build_score([quarters("C4", "D4", "E4", "F4")])
        event = events_of(score)[0]
        assert UpdateEventCommand(0, event.id, duration="half").execute(score) is score

    def test_update_unchanged(self):
        """Test that identical values are a no-op."""
        score = build_score([quarters("C4")])
        event = events_of(score)[0]
        assert UpdateEventCommand(0, event.id, duration="quarter").execute(score) is score

    def test_update_unknown_field(self):
        """Test that only rhythmic fields can be updated."""
        with pytest.raises(ValueError):
            UpdateEventCommand(0, "e", notes=())


class TestNoteCommands:
    """Tests for chord and pitch commands."""

    def test_add_note_to_chord(self):
        """Test building a chord."""
        score = build_score([quarters("C4")])
        event = events_of(score)[0]
        cmd = AddNoteToEventCommand(0, event.id, "E4")
        new = cmd.execute(score)
        assert [n.pitch for n in events_of(new)[0].notes] == ["C4", "E4"]
        assert cmd.undo(new) == score

    def test_add_duplicate_pitch(self):
        """Test that a pitch already in the chord is a no-op."""
        score = build_score([quarters("C4")])
        event = events_of(score)[0]
        assert AddNoteToEventCommand(0, event.id, "C4").execute(score) is score

    def test_add_pitchless_note(self):
        """Test that a note without a pitch is not added to a chord."""
        score = build_score([quarters("C4")])
        event = events_of(score)[0]
        assert AddNoteToEventCommand(0, event.id, Note(id="x")).execute(score) is score

    def test_add_note_to_rest(self):
        """Test that adding to a rest converts it, and undo restores the rest."""
        score = build_score([[rest_event("quarter", event_id="r")]])
        cmd = AddNoteToEventCommand(0, "r", "G4")
        new = cmd.execute(score)
        assert not events_of(new)[0].is_rest
        assert events_of(new)[0].notes[0].pitch == "G4"
        assert cmd.undo(new) == score

    def test_change_pitch(self):
        """Test changing a note's pitch."""
        score = build_score([[note_event("C4", "E4", event_id="c")]])
        cmd = ChangePitchCommand(0, "c", "c-n0", "D4")
        new = cmd.execute(score)
        assert [n.pitch for n in events_of(new)[0].notes] == ["D4", "E4"]
        assert cmd.undo(new) == score

    def test_change_pitch_collision(self):
        """Test that a pitch held by another chord note is refused."""
        score = build_score([[note_event("C4", "E4", event_id="c")]])
        assert ChangePitchCommand(0, "c", "c-n0", "E4").execute(score) is score

    def test_update_tie(self):
        """Test toggling a tie."""
        score = build_score([[note_event("C4", event_id="c")]])
        new = UpdateNoteCommand(0, "c", "c-n0", tied=True).execute(score)
        assert events_of(new)[0].notes[0].tied

    def test_delete_note_from_chord(self):
        """Test deleting one chord note and undoing."""
        score = build_score([[note_event("C4", "E4", "G4", event_id="c")]])
        cmd = DeleteNoteCommand(0, "c", "c-n1")
        new = cmd.execute(score)
        assert [n.pitch for n in events_of(new)[0].notes] == ["C4", "G4"]
        assert cmd.undo(new) == score

    def test_delete_last_note_removes_event(self):
        """Test that deleting the only note removes the event."""
        score = build_score([[note_event("C4", event_id="a"), note_event("D4", event_id="b")]])
        cmd = DeleteNoteCommand(0, "a", "a-n0")
        new = cmd.execute(score)
        assert [e.id for e in events_of(new)] == ["b"]
        assert cmd.undo(new) == score


class TestMeasureCommands:
    """Tests for measure commands."""

    def test_add_measure_all_staves(self):
        """Test that a measure is added to every staff."""
        score = build_score([quarters("C4")], [quarters("C3")])
        cmd = AddMeasureCommand()
        new = cmd.execute(score)
        assert [len(s.measures) for s in new.staves] == [2, 2]
        assert cmd.undo(new) == score

    def test_add_measure_at_index(self):
        """Test inserting a measure at the front."""
        score = build_score([quarters("C4")])
        new = AddMeasureCommand(0).execute(score)
        assert events_of(new, 0) == ()
        assert events_of(new, 1) == events_of(score, 0)

    def test_delete_measure(self):
        """Test deleting a measure and undoing."""
        score = build_score([quarters("C4"), quarters("D4")], [quarters("C3"), quarters("D3")])
        cmd = DeleteMeasureCommand(0)
        new = cmd.execute(score)
        assert [len(s.measures) for s in new.staves] == [1, 1]
        assert events_of(new)[0].notes[0].pitch == "D4"
        assert cmd.undo(new) == score

    def test_last_measure_kept(self):
        """Test that the only measure cannot be deleted."""
        score = build_score([quarters("C4")])
        assert DeleteMeasureCommand(0).execute(score) is score


class TestTupletCommands:
    """Tests for tuplet commands."""

    def test_apply_triplet(self):
        """Test grouping three eighths into a triplet."""
        score = build_score([[note_event(p, duration="eighth") for p in ("C4", "D4", "E4")]])
        cmd = ApplyTupletCommand(0, 0, 3)
        new = cmd.execute(score)
        tuplets = [e.tuplet for e in events_of(new)]
        assert len({t.id for t in tuplets}) == 1
        assert [t.position for t in tuplets] == [0, 1, 2]
        assert total_quants(events_of(new)) == 16
        assert cmd.undo(new) == score

    def test_apply_twice_rejected(self):
        """Test that events already in a tuplet cannot be grouped again."""
        score = build_score([[note_event(p, duration="eighth") for p in ("C4", "D4", "E4")]])
        new = ApplyTupletCommand(0, 0, 3).execute(score)
        assert ApplyTupletCommand(0, 0, 3).execute(new) is new

    def test_group_too_small(self):
        """Test that a one-event tuplet raises."""
        with pytest.raises(ValueError):
            ApplyTupletCommand(0, 0, 1)

    def test_remove_by_id(self):
        """Test that removal uses the tuplet id, not the cached hints."""
        score = build_score([[note_event(p, duration="eighth") for p in ("C4", "D4", "E4", "F4")]])
        applied = ApplyTupletCommand(0, 1, 3).execute(score)
        target = events_of(applied)[2]
        cmd = RemoveTupletCommand(0, target.id)
        removed = cmd.execute(applied)
        assert all(e.tuplet is None for e in events_of(removed))
        assert cmd.undo(removed) == applied

    def test_remove_overflow_rejected(self):
        """Test that removing a tuplet that would overflow is refused."""
        score = build_score([[note_event(p, duration="quarter") for p in ("C4", "D4", "E4")]
                             + [note_event("F4", duration="half")]], time_signature="4/4")
        applied = ApplyTupletCommand(0, 0, 3).execute(score)
        assert applied is not score
        target = events_of(applied)[0]
        assert RemoveTupletCommand(0, target.id).execute(applied) is applied


class TestTransposeCommand:
    """Tests for TransposeSelectionCommand."""

    def _score(self):
        return build_score([[note_event("C4", "E4", event_id="c"), note_event("G4", event_id="g")]])

    def test_single_note(self):
        """Test transposing one note of a chord."""
        score = self._score()
        selection = Selection(0, 0, "c", "c-n1")
        new = TransposeSelectionCommand(selection, 1).execute(score)
        assert [n.pitch for n in events_of(new)[0].notes] == ["C4", "F4"]

    def test_event(self):
        """Test transposing a whole chord."""
        score = self._score()
        new = TransposeSelectionCommand(Selection(0, 0, "c", None), 2).execute(score)
        assert [n.pitch for n in events_of(new)[0].notes] == ["D4", "F#4"]

    def test_measure(self):
        """Test transposing a whole measure."""
        score = self._score()
        new = TransposeSelectionCommand(Selection(0, 0), -12).execute(score)
        assert [n.pitch for e in events_of(new) for n in e.notes] == ["C3", "E3", "G3"]

    def test_multi_select(self):
        """Test transposing each selected note."""
        score = self._score()
        selection = Selection(0, 0, "g", "g-n0", selected_notes=(
            SelectedNote(0, 0, "c", "c-n0"), SelectedNote(0, 0, "g", "g-n0"),
        ))
        new = TransposeSelectionCommand(selection, 1).execute(score)
        assert [n.pitch for e in events_of(new) for n in e.notes] == ["C#4", "E4", "G#4"]

    def test_clamped_undo_restores(self):
        """Test that undo restores exact pitches even after clamping."""
        score = self._score()
        cmd = TransposeSelectionCommand(Selection(0, 0), 48)
        new = cmd.execute(score)
        assert cmd.undo(new) == score

    def test_zero_is_noop(self):
        """Test that a zero shift is a no-op."""
        score = self._score()
        assert TransposeSelectionCommand(Selection(0, 0), 0).execute(score) is score

    def test_flat_key_spelling(self):
        """Test that a flat key spells results with flats."""
        score = self._score()
        new = TransposeSelectionCommand(Selection(0, 0, "g", "g-n0"), 1, key_signature="F").execute(score)
        assert events_of(new)[1].notes[0].pitch == "Ab4"


class TestPropertyCommands:
    """Tests for score property commands."""

    def test_bpm_clamped(self):
        """Test that tempo is clamped."""
        score = build_score([[]])
        assert SetBpmCommand(1000).execute(score).bpm == 500
        assert SetBpmCommand(1).execute(score).bpm == 10

    def test_title(self):
        """Test renaming and undo."""
        score = build_score([[]])
        cmd = SetTitleCommand("Etude")
        new = cmd.execute(score)
        assert new.title == "Etude"
        assert cmd.undo(new) == score

    def test_key_signature(self):
        """Test that the key changes on every staff."""
        score = build_score([[]], [[]])
        cmd = SetKeySignatureCommand("D")
        new = cmd.execute(score)
        assert new.key_signature == "D"
        assert all(s.key_signature == "D" for s in new.staves)
        assert cmd.undo(new) == score

    def test_clef(self):
        """Test changing one staff's clef."""
        score = build_score([[]])
        new = SetClefCommand("alto").execute(score)
        assert new.staves[0].clef == "alto"

    def test_time_signature_reflows(self):
        """Test that a time signature change reflows and undoes."""
        score = build_score([quarters("C4", "D4", "E4", "F4")])
        cmd = SetTimeSignatureCommand("3/4")
        new = cmd.execute(score)
        assert new.time_signature == "3/4"
        assert [len(m.events) for m in new.staves[0].measures] == [3, 1]
        assert cmd.undo(new) == score

    def test_time_signature_too_short_for_tuplet(self):
        """Test that a signature shorter than a tuplet event is rejected."""
        measures = [
            [note_event("C4", duration="whole", tuplet=Tuplet((3, 2), 3, i, "t1"))]
            for i in range(3)
        ]
        score = build_score(measures)
        assert SetTimeSignatureCommand("2/4").execute(score) is score
        assert SetTimeSignatureCommand("3/4").execute(score) is not score


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
