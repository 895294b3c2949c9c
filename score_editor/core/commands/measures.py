"""
Measure commands. Measures are added and removed on every staff at once
so grand staves stay synchronised by measure index.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from score_editor.core.commands.base import Command, CommandType
from score_editor.core.score import Measure, Score, insert_at, new_id, remove_at


class AddMeasureCommand(Command):
    """Insert an empty measure on every staff (append when index is None)."""

    type = CommandType.ADD_MEASURE

    def __init__(self, index: Optional[int] = None):
        self.index = index
        self._measure_ids: List[str] = []
        self._inserted_at = -1

    def execute(self, score: Score) -> Score:
        count = len(score.staves[0].measures) if score.staves else 0
        index = count if self.index is None else self.index
        if not 0 <= index <= count:
            return score

        # Reuse ids on redo so selections keep resolving
        while len(self._measure_ids) < len(score.staves):
            self._measure_ids.append(new_id("m"))

        staves = tuple(
            replace(staff, measures=insert_at(staff.measures, min(index, len(staff.measures)),
                                              Measure(id=self._measure_ids[i])))
            for i, staff in enumerate(score.staves)
        )
        self._inserted_at = index
        return replace(score, staves=staves)

    def undo(self, score: Score) -> Score:
        ids = set(self._measure_ids)
        changed = False
        staves = []
        for staff in score.staves:
            measures = tuple(m for m in staff.measures if m.id not in ids)
            changed = changed or len(measures) != len(staff.measures)
            staves.append(replace(staff, measures=measures))
        if not changed:
            return score
        return replace(score, staves=tuple(staves))


class DeleteMeasureCommand(Command):
    """Remove the measure at index from every staff; the last one is kept."""

    type = CommandType.DELETE_MEASURE

    def __init__(self, index: int):
        self.index = index
        self._deleted: List[Optional[Measure]] = []

    def execute(self, score: Score) -> Score:
        if not score.staves:
            return score
        count = len(score.staves[0].measures)
        if count <= 1 or not 0 <= self.index < count:
            return score

        self._deleted = []
        staves = []
        for staff in score.staves:
            if self.index < len(staff.measures):
                self._deleted.append(staff.measures[self.index])
                staves.append(replace(staff, measures=remove_at(staff.measures, self.index)))
            else:
                self._deleted.append(None)
                staves.append(staff)
        return replace(score, staves=tuple(staves))

    def undo(self, score: Score) -> Score:
        if not self._deleted:
            return score
        staves = []
        for staff, measure in zip(score.staves, self._deleted):
            if measure is None:
                staves.append(staff)
                continue
            index = min(self.index, len(staff.measures))
            staves.append(replace(staff, measures=insert_at(staff.measures, index, measure)))
        staves.extend(score.staves[len(staves):])
        return replace(score, staves=tuple(staves))
