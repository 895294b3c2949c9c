"""
Note-level commands: chord membership, pitch and note field edits.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Union

from score_editor.core.commands.base import Command, CommandType, locate_event
from score_editor.core.score import (
    Event,
    Note,
    Score,
    get_measure,
    insert_at,
    new_id,
    remove_at,
    replace_at,
    with_event,
    with_events,
)


class AddNoteToEventCommand(Command):
    """
    Add a note to an event's chord.

    Adding a pitch already present, or a note without a pitch, is a
    no-op. Adding a pitched note to a rest turns the rest into a note
    event.
    """

    type = CommandType.ADD_NOTE_TO_EVENT

    def __init__(self, measure_index: int, event_id, note: Union[Note, str], staff_index: int = 0):
        if isinstance(note, str):
            note = Note(id=new_id("note"), pitch=note)
        self.measure_index = measure_index
        self.event_id = event_id
        self.note = note
        self.staff_index = staff_index
        self._replaced_rest: Optional[Event] = None

    def execute(self, score: Score) -> Score:
        found = locate_event(score, self.staff_index, self.measure_index, self.event_id)
        if found is None:
            return score
        _, index, event = found
        if self.note.pitch is None:
            return score

        if event.is_rest:
            self._replaced_rest = event
            updated = replace(event, is_rest=False, notes=(self.note,))
        else:
            if event.has_pitch(self.note.pitch):
                return score
            self._replaced_rest = None
            updated = replace(event, notes=event.notes + (self.note,))

        return with_event(score, self.staff_index, self.measure_index, index, updated)

    def undo(self, score: Score) -> Score:
        found = locate_event(score, self.staff_index, self.measure_index, self.event_id)
        if found is None:
            return score
        _, index, event = found

        if self._replaced_rest is not None:
            restored = self._replaced_rest
        else:
            notes = tuple(n for n in event.notes if n.id != self.note.id)
            if len(notes) == len(event.notes):
                return score
            restored = replace(event, notes=notes)
        return with_event(score, self.staff_index, self.measure_index, index, restored)

    @property
    def description(self) -> str:
        return f"Add {self.note.pitch} to Chord"


class UpdateNoteCommand(Command):
    """Partial update of a note (pitch, accidental, tied)."""

    type = CommandType.UPDATE_NOTE
    FIELDS = ("pitch", "accidental", "tied")

    def __init__(self, measure_index: int, event_id, note_id, staff_index: int = 0, **changes):
        unknown = set(changes) - set(self.FIELDS)
        if unknown:
            raise ValueError(f"Cannot update note fields: {sorted(unknown)}")
        self.measure_index = measure_index
        self.event_id = event_id
        self.note_id = note_id
        self.staff_index = staff_index
        self.changes = changes
        self._previous: Optional[Note] = None

    def execute(self, score: Score) -> Score:
        found = locate_event(score, self.staff_index, self.measure_index, self.event_id)
        if found is None:
            return score
        _, index, event = found
        note_index, note = event.find_note(self.note_id)
        if note is None:
            return score

        updated = replace(note, **self.changes)
        if updated == note:
            return score
        # Refuse a pitch that another note of the chord already holds
        if updated.pitch != note.pitch and updated.pitch is not None and event.has_pitch(updated.pitch):
            return score

        self._previous = note
        notes = replace_at(event.notes, note_index, updated)
        return with_event(score, self.staff_index, self.measure_index, index, replace(event, notes=notes))

    def undo(self, score: Score) -> Score:
        if self._previous is None:
            return score
        found = locate_event(score, self.staff_index, self.measure_index, self.event_id)
        if found is None:
            return score
        _, index, event = found
        note_index, note = event.find_note(self.note_id)
        if note is None:
            return score
        notes = replace_at(event.notes, note_index, self._previous)
        return with_event(score, self.staff_index, self.measure_index, index, replace(event, notes=notes))


class ChangePitchCommand(UpdateNoteCommand):
    """Set the pitch of one note."""

    type = CommandType.CHANGE_PITCH

    def __init__(self, measure_index: int, event_id, note_id, pitch: str, staff_index: int = 0):
        super().__init__(measure_index, event_id, note_id, staff_index=staff_index, pitch=pitch)

    @property
    def description(self) -> str:
        return f"Change Pitch to {self.changes['pitch']}"


class DeleteNoteCommand(Command):
    """
    Delete a note from its event.

    Deleting the last note of an event removes the whole event.
    """

    type = CommandType.DELETE_NOTE

    def __init__(self, measure_index: int, event_id, note_id, staff_index: int = 0):
        self.measure_index = measure_index
        self.event_id = event_id
        self.note_id = note_id
        self.staff_index = staff_index
        self._deleted_note: Optional[Note] = None
        self._deleted_note_index = -1
        self._deleted_event: Optional[Event] = None
        self._deleted_event_index = -1

    def execute(self, score: Score) -> Score:
        found = locate_event(score, self.staff_index, self.measure_index, self.event_id)
        if found is None:
            return score
        measure, index, event = found
        note_index, note = event.find_note(self.note_id)
        if note is None:
            return score

        self._deleted_note = note
        self._deleted_note_index = note_index
        self._deleted_event_index = index

        if len(event.notes) == 1:
            self._deleted_event = event
            return with_events(score, self.staff_index, self.measure_index, remove_at(measure.events, index))

        self._deleted_event = None
        notes = remove_at(event.notes, note_index)
        return with_event(score, self.staff_index, self.measure_index, index, replace(event, notes=notes))

    def undo(self, score: Score) -> Score:
        if self._deleted_note is None:
            return score
        measure = get_measure(score, self.staff_index, self.measure_index)
        if measure is None:
            return score

        if self._deleted_event is not None:
            index = min(self._deleted_event_index, len(measure.events))
            return with_events(score, self.staff_index, self.measure_index,
                               insert_at(measure.events, index, self._deleted_event))

        index = self._deleted_event_index
        if not (0 <= index < len(measure.events)) or measure.events[index].id != self.event_id:
            # Index shifted; fall back to id lookup
            index, _ = measure.find_event(self.event_id)
            if index == -1:
                return score
        event = measure.events[index]
        note_index = min(self._deleted_note_index, len(event.notes))
        notes = insert_at(event.notes, note_index, self._deleted_note)
        return with_event(score, self.staff_index, self.measure_index, index, replace(event, notes=notes))
