"""
Transpose command.

Pitches move along the staff clef's chromatic ladder and clamp at its
ends, so a large shift cannot simply be undone by shifting back; undo
restores the exact pitches captured on execute instead.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from score_editor.core.commands.base import Command, CommandType
from score_editor.core.pitch import transpose_pitch
from score_editor.core.score import Score, get_measure, with_events

logger = logging.getLogger(__name__)

# (staff_index, measure_index) -> event id -> note id -> pitch
PitchMap = Dict[Tuple[int, int], Dict[str, Dict[str, Optional[str]]]]


def _apply_pitches(score: Score, pitch_map: PitchMap) -> Tuple[Score, PitchMap]:
    """Write pitches into the score; returns the new score and the old pitches."""
    previous: PitchMap = defaultdict(dict)
    for (staff_index, measure_index), by_event in pitch_map.items():
        measure = get_measure(score, staff_index, measure_index)
        if measure is None:
            continue

        events = []
        for event in measure.events:
            new_pitches = by_event.get(event.id)
            if not new_pitches:
                events.append(event)
                continue
            notes = tuple(
                replace(n, pitch=new_pitches[n.id]) if n.id in new_pitches else n
                for n in event.notes
            )
            pitches = [n.pitch for n in notes if n.pitch is not None]
            if len(pitches) != len(set(pitches)):
                # Clamping collapsed two chord notes onto one pitch
                logger.debug(f"Skipping transpose of event {event.id}: pitch collision")
                events.append(event)
                continue
            previous[(staff_index, measure_index)][event.id] = {
                n.id: n.pitch for n in event.notes if n.id in new_pitches
            }
            events.append(replace(event, notes=notes))

        if (staff_index, measure_index) in previous:
            score = with_events(score, staff_index, measure_index, tuple(events))
    return score, dict(previous)


class TransposeSelectionCommand(Command):
    """
    Transpose a note, an event or a whole measure by semitones.

    The granularity follows the selection descriptor: with a note id one
    note moves, with only an event id the whole chord moves, and with
    neither the whole measure moves. A descriptor carrying several
    selected notes transposes each of them.
    """

    type = CommandType.TRANSPOSE_SELECTION

    def __init__(self, selection, semitones: int, key_signature: Optional[str] = None):
        """
        Args:
            selection: Selection or SelectedNote-like descriptor
            semitones: Shift amount (negative is down)
            key_signature: Key used to spell results; defaults to the staff's
        """
        self.selection = selection
        self.semitones = semitones
        self.key_signature = key_signature
        self._previous: PitchMap = {}

    def _targets(self) -> List[Tuple[int, Optional[int], Optional[str], Optional[str]]]:
        selected = getattr(self.selection, "selected_notes", ())
        if len(selected) > 1:
            return [(n.staff_index, n.measure_index, n.event_id, n.note_id) for n in selected]
        return [(
            getattr(self.selection, "staff_index", 0) or 0,
            self.selection.measure_index,
            self.selection.event_id,
            self.selection.note_id,
        )]

    def execute(self, score: Score) -> Score:
        if self.semitones == 0:
            return score

        pitch_map: PitchMap = defaultdict(lambda: defaultdict(dict))
        for staff_index, measure_index, event_id, note_id in self._targets():
            measure = get_measure(score, staff_index, measure_index)
            if measure is None:
                continue
            staff = score.staves[staff_index]
            key_signature = self.key_signature or staff.key_signature or score.key_signature

            if event_id is None:
                events = measure.events
            else:
                events = [e for e in measure.events if e.id == event_id]
            for event in events:
                for note in event.notes:
                    if note_id is not None and event_id is not None and note.id != note_id:
                        continue
                    if note.pitch is None:
                        continue
                    moved = transpose_pitch(note.pitch, self.semitones, staff.clef, key_signature)
                    if moved != note.pitch:
                        pitch_map[(staff_index, measure_index)][event.id][note.id] = moved

        if not pitch_map:
            return score
        new_score, previous = _apply_pitches(score, pitch_map)
        if not previous:
            return score
        self._previous = previous
        return new_score

    def undo(self, score: Score) -> Score:
        if not self._previous:
            return score
        restored, _ = _apply_pitches(score, self._previous)
        return restored

    @property
    def description(self) -> str:
        return f"Transpose {self.semitones:+d}"
