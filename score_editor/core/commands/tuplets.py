"""
Tuplet commands.

A tuplet group is the set of events of a measure sharing a tuplet id;
group_size and position are written for downstream consumers but are
never used to find the group again.
"""

from __future__ import annotations

from dataclasses import replace
from fractions import Fraction
from typing import Dict, Optional, Tuple

from score_editor.core.commands.base import Command, CommandType, locate_event
from score_editor.core.rhythm import capacity_for, total_quants
from score_editor.core.score import Score, Tuplet, get_measure, new_id, with_events


def _restore_tuplets(score: Score, staff_index: int, measure_index: int,
                     previous: Dict[str, Optional[Tuplet]]) -> Score:
    measure = get_measure(score, staff_index, measure_index)
    if measure is None or not previous:
        return score
    events = tuple(
        replace(e, tuplet=previous[e.id]) if e.id in previous else e
        for e in measure.events
    )
    if events == measure.events:
        return score
    return with_events(score, staff_index, measure_index, events)


def _within_capacity(score: Score, events) -> bool:
    return Fraction(total_quants(events)) <= capacity_for(score.time_signature)


class ApplyTupletCommand(Command):
    """Group a contiguous run of events into one tuplet."""

    type = CommandType.APPLY_TUPLET

    def __init__(
        self,
        measure_index: int,
        start_index: int,
        group_size: int,
        ratio: Tuple[int, int] = (3, 2),
        staff_index: int = 0,
    ):
        if group_size < 2:
            raise ValueError(f"A tuplet needs at least 2 events, got {group_size}")
        self.measure_index = measure_index
        self.start_index = start_index
        self.group_size = group_size
        self.ratio = tuple(ratio)
        self.staff_index = staff_index
        self.tuplet_id = new_id("tuplet")
        self._previous: Dict[str, Optional[Tuplet]] = {}

    def execute(self, score: Score) -> Score:
        measure = get_measure(score, self.staff_index, self.measure_index)
        if measure is None:
            return score
        end = self.start_index + self.group_size
        if self.start_index < 0 or end > len(measure.events):
            return score
        group = measure.events[self.start_index:end]
        if any(e.tuplet is not None for e in group):
            return score

        stamped = tuple(
            replace(e, tuplet=Tuplet(self.ratio, self.group_size, i, self.tuplet_id))
            for i, e in enumerate(group)
        )
        events = measure.events[:self.start_index] + stamped + measure.events[end:]
        if not _within_capacity(score, events):
            return score

        self._previous = {e.id: None for e in group}
        return with_events(score, self.staff_index, self.measure_index, events)

    def undo(self, score: Score) -> Score:
        return _restore_tuplets(score, self.staff_index, self.measure_index, self._previous)


class RemoveTupletCommand(Command):
    """
    Clear the tuplet that contains the given event.

    Rejected when the un-tupleted durations would overflow the measure.
    """

    type = CommandType.REMOVE_TUPLET

    def __init__(self, measure_index: int, event_id, staff_index: int = 0):
        self.measure_index = measure_index
        self.event_id = event_id
        self.staff_index = staff_index
        self._previous: Dict[str, Optional[Tuplet]] = {}

    def execute(self, score: Score) -> Score:
        found = locate_event(score, self.staff_index, self.measure_index, self.event_id)
        if found is None:
            return score
        measure, _, target = found
        if target.tuplet is None:
            return score

        group_id = target.tuplet.id
        previous = {e.id: e.tuplet for e in measure.events if e.tuplet is not None and e.tuplet.id == group_id}
        events = tuple(replace(e, tuplet=None) if e.id in previous else e for e in measure.events)
        if not _within_capacity(score, events):
            return score

        self._previous = previous
        return with_events(score, self.staff_index, self.measure_index, events)

    def undo(self, score: Score) -> Score:
        return _restore_tuplets(score, self.staff_index, self.measure_index, self._previous)
