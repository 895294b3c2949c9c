"""
Linear note order used for range selection: staff, then measure, then
event, then the notes of the chord as stored.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from score_editor.core.score import Score
from score_editor.selection.model import SelectedNote


def linearize(score: Score) -> List[SelectedNote]:
    """Every note of the score in document order."""
    notes = []
    for staff_index, staff in enumerate(score.staves):
        for measure_index, measure in enumerate(staff.measures):
            for event in measure.events:
                if not event.notes:
                    notes.append(SelectedNote(staff_index, measure_index, event.id, None))
                for note in event.notes:
                    notes.append(SelectedNote(staff_index, measure_index, event.id, note.id))
    return notes


def _position(order: List[SelectedNote], target: SelectedNote) -> int:
    for i, entry in enumerate(order):
        if entry.staff_index != target.staff_index or entry.event_id != target.event_id:
            continue
        if target.note_id is None or entry.note_id == target.note_id:
            return i
    return -1


def range_between(score: Score, anchor: SelectedNote, focus: SelectedNote) -> Optional[Tuple[SelectedNote, ...]]:
    """
    Notes between anchor and focus inclusive, in document order.

    Order insensitive. Returns None when either end does not resolve.
    """
    order = linearize(score)
    start = _position(order, anchor)
    end = _position(order, focus)
    if start == -1 or end == -1:
        return None
    if start > end:
        start, end = end, start
    return tuple(order[start:end + 1])


def resolves(score: Score, note: SelectedNote) -> bool:
    """Whether a selected note still exists in the score."""
    if not 0 <= note.staff_index < len(score.staves):
        return False
    measures = score.staves[note.staff_index].measures
    if not 0 <= note.measure_index < len(measures):
        return False
    _, event = measures[note.measure_index].find_event(note.event_id)
    if event is None:
        return False
    return note.note_id is None or event.find_note(note.note_id)[1] is not None
