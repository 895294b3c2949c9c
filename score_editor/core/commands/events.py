"""
Event-level commands: add, insert, delete and update events.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from fractions import Fraction
from typing import Optional

from score_editor.core.commands.base import Command, CommandType, locate_event
from score_editor.core.rhythm import capacity_for, duration_quants, total_quants
from score_editor.core.score import (
    Event,
    Note,
    Score,
    Tuplet,
    get_measure,
    insert_at,
    new_id,
    remove_at,
    with_event,
    with_events,
)

logger = logging.getLogger(__name__)


def _fits(measure, time_signature: str, extra, replacing=None) -> bool:
    """Check that measure content plus extra (minus replacing) fits."""
    used = Fraction(total_quants(measure.events))
    if replacing is not None:
        used -= Fraction(replacing)
    return used + Fraction(extra) <= capacity_for(time_signature)


class AddEventCommand(Command):
    """
    Append (or insert) a new note or rest event to a measure.

    The command is rejected (no-op) when the event would overflow the
    measure; callers check with rhythm.can_add_event beforehand.
    """

    type = CommandType.ADD_EVENT

    def __init__(
        self,
        measure_index: int,
        duration: str,
        dotted: bool = False,
        pitch: Optional[str] = None,
        is_rest: bool = False,
        index: Optional[int] = None,
        tuplet: Optional[Tuplet] = None,
        staff_index: int = 0,
        event_id: Optional[str] = None,
        note_id: Optional[str] = None,
    ):
        """
        Args:
            measure_index: Target measure
            duration: Duration name
            dotted: Dotted flag
            pitch: Pitch name; required unless is_rest
            is_rest: Create a rest event
            index: Insert position; None appends
            tuplet: Optional tuplet membership
            staff_index: Target staff
            event_id: Id for the new event (generated when omitted)
            note_id: Id for the new note (generated when omitted)
        """
        if not is_rest and pitch is None:
            raise ValueError("A pitch is required for a note event")
        self.measure_index = measure_index
        self.staff_index = staff_index
        self.index = index
        self.event = Event(
            id=event_id or new_id("evt"),
            duration=duration,
            dotted=dotted,
            is_rest=is_rest,
            notes=(Note(id=note_id or new_id("note"), pitch=None if is_rest else pitch),),
            tuplet=tuplet,
        )

    @property
    def event_id(self) -> str:
        return self.event.id

    @property
    def note_id(self) -> str:
        return self.event.notes[0].id

    def execute(self, score: Score) -> Score:
        measure = get_measure(score, self.staff_index, self.measure_index)
        if measure is None:
            return score
        if not _fits(measure, score.time_signature, self.event.quants):
            logger.debug(f"AddEvent rejected: measure {self.measure_index} is full")
            return score

        if self.index is not None and 0 <= self.index <= len(measure.events):
            events = insert_at(measure.events, self.index, self.event)
        else:
            events = measure.events + (self.event,)
        return with_events(score, self.staff_index, self.measure_index, events)

    def undo(self, score: Score) -> Score:
        found = locate_event(score, self.staff_index, self.measure_index, self.event.id)
        if found is None:
            return score
        measure, index, _ = found
        return with_events(score, self.staff_index, self.measure_index, remove_at(measure.events, index))

    @property
    def description(self) -> str:
        return "Add Rest" if self.event.is_rest else "Add Note"


class InsertEventCommand(Command):
    """Insert a complete event, preserving all of its fields."""

    type = CommandType.INSERT_EVENT

    def __init__(
        self,
        measure_index: int,
        event: Event,
        insert_index: Optional[int] = None,
        staff_index: int = 0,
    ):
        self.measure_index = measure_index
        self.event = event
        self.insert_index = insert_index
        self.staff_index = staff_index

    def execute(self, score: Score) -> Score:
        measure = get_measure(score, self.staff_index, self.measure_index)
        if measure is None:
            return score
        if measure.find_event(self.event.id)[1] is not None:
            return score
        if not _fits(measure, score.time_signature, self.event.quants):
            logger.debug(f"InsertEvent rejected: measure {self.measure_index} is full")
            return score

        if self.insert_index is not None and 0 <= self.insert_index <= len(measure.events):
            events = insert_at(measure.events, self.insert_index, self.event)
        else:
            events = measure.events + (self.event,)
        return with_events(score, self.staff_index, self.measure_index, events)

    def undo(self, score: Score) -> Score:
        measure = get_measure(score, self.staff_index, self.measure_index)
        if measure is None:
            return score
        events = tuple(e for e in measure.events if e.id != self.event.id)
        if len(events) == len(measure.events):
            return score
        return with_events(score, self.staff_index, self.measure_index, events)


class DeleteEventCommand(Command):
    """Remove an event; undo puts it back at its original index."""

    type = CommandType.DELETE_EVENT

    def __init__(self, measure_index: int, event_id, staff_index: int = 0):
        self.measure_index = measure_index
        self.event_id = event_id
        self.staff_index = staff_index
        self._deleted: Optional[Event] = None
        self._deleted_index = -1

    def execute(self, score: Score) -> Score:
        found = locate_event(score, self.staff_index, self.measure_index, self.event_id)
        if found is None:
            return score
        measure, index, event = found
        self._deleted = event
        self._deleted_index = index
        return with_events(score, self.staff_index, self.measure_index, remove_at(measure.events, index))

    def undo(self, score: Score) -> Score:
        if self._deleted is None:
            return score
        measure = get_measure(score, self.staff_index, self.measure_index)
        if measure is None:
            return score
        index = min(self._deleted_index, len(measure.events))
        return with_events(score, self.staff_index, self.measure_index,
                           insert_at(measure.events, index, self._deleted))


class UpdateEventCommand(Command):
    """
    Partial update of an event's rhythmic fields.

    Only duration, dotted and tuplet may change. The update is rejected
    when the new length would overflow the measure.
    """

    type = CommandType.UPDATE_EVENT
    FIELDS = ("duration", "dotted", "tuplet")

    def __init__(self, measure_index: int, event_id, staff_index: int = 0, **changes):
        unknown = set(changes) - set(self.FIELDS)
        if unknown:
            raise ValueError(f"Cannot update event fields: {sorted(unknown)}")
        if "duration" in changes:
            duration_quants(changes["duration"])
        self.measure_index = measure_index
        self.event_id = event_id
        self.staff_index = staff_index
        self.changes = changes
        self._previous = {}

    def execute(self, score: Score) -> Score:
        found = locate_event(score, self.staff_index, self.measure_index, self.event_id)
        if found is None:
            return score
        measure, index, event = found

        if all(getattr(event, k) == v for k, v in self.changes.items()):
            return score

        updated = replace(event, **self.changes)
        if not _fits(measure, score.time_signature, updated.quants, replacing=event.quants):
            logger.debug(f"UpdateEvent rejected: event {self.event_id} would overflow measure")
            return score

        self._previous = {k: getattr(event, k) for k in self.changes}
        return with_event(score, self.staff_index, self.measure_index, index, updated)

    def undo(self, score: Score) -> Score:
        if not self._previous:
            return score
        found = locate_event(score, self.staff_index, self.measure_index, self.event_id)
        if found is None:
            return score
        _, index, event = found
        return with_event(score, self.staff_index, self.measure_index, index,
                          replace(event, **self._previous))
