"""
Selection commands.

Selection commands map (Selection, Score) to a new Selection. They never
touch the Score and have no undo. A command that changes nothing returns
the very Selection object it was given.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple

from score_editor.core.pitch import pitch_to_midi, rest_midi
from score_editor.core.rhythm import event_quants, event_start_quant
from score_editor.core.score import Event, Score, get_measure
from score_editor.selection.linear import linearize, range_between, resolves
from score_editor.selection.model import SelectedNote, Selection
from score_editor.selection.navigation import (
    calculate_vertical_navigation,
    navigate_selection,
    sorted_notes,
)

HORIZONTAL = ("left", "right")
VERTICAL = ("up", "down")


class SelectionCommandType(Enum):
    SELECT_EVENT = "SELECT_EVENT"
    TOGGLE_NOTE = "TOGGLE_NOTE"
    RANGE_SELECT = "RANGE_SELECT"
    NAVIGATE = "NAVIGATE"
    EXTEND_SELECTION_VERTICALLY = "EXTEND_SELECTION_VERTICALLY"
    CYCLE_CHORD_NOTE = "CYCLE_CHORD_NOTE"
    SELECT_ALL = "SELECT_ALL"
    CLEAR_SELECTION = "CLEAR_SELECTION"


class SelectionCommand(ABC):
    """Base class for selection commands."""

    type: SelectionCommandType

    @abstractmethod
    def execute(self, state: Selection, score: Score) -> Selection:
        """
        Compute the next selection.

        Args:
            state: Current selection
            score: Score the selection refers to

        Returns:
            New selection, or state itself when nothing changes
        """
        raise NotImplementedError()

    @property
    def description(self) -> str:
        return self.type.value.replace("_", " ").title()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.description}>"


def _stable(state: Selection, new: Selection) -> Selection:
    """Keep the old object when the new selection is structurally equal."""
    return state if new == state else new


def _toggle(entries: Tuple[SelectedNote, ...], targets: List[SelectedNote]) -> Tuple[SelectedNote, ...]:
    result = list(entries)
    for target in targets:
        if target in result:
            result.remove(target)
        else:
            result.append(target)
    return tuple(result)


def _seed(state: Selection) -> Tuple[SelectedNote, ...]:
    """Current multi-select set, falling back to the focus alone."""
    if state.selected_notes:
        return state.selected_notes
    focus = state.focus
    return (focus,) if focus is not None else ()


class SelectEventCommand(SelectionCommand):
    """Select an event (click), optionally toggling it into the set."""

    type = SelectionCommandType.SELECT_EVENT

    def __init__(
        self,
        staff_index: int,
        measure_index: int,
        event_index: int = 0,
        note_index: Optional[int] = None,
        add_to_selection: bool = False,
        select_all_in_event: bool = False,
    ):
        self.staff_index = staff_index
        self.measure_index = measure_index
        self.event_index = event_index
        self.note_index = note_index
        self.add_to_selection = add_to_selection
        self.select_all_in_event = select_all_in_event

    def execute(self, state: Selection, score: Score) -> Selection:
        measure = get_measure(score, self.staff_index, self.measure_index)
        if measure is None:
            return state

        if not measure.events:
            if self.add_to_selection:
                return state
            return _stable(state, Selection(staff_index=self.staff_index, measure_index=self.measure_index))

        if not 0 <= self.event_index < len(measure.events):
            return state
        event = measure.events[self.event_index]

        note_id = None
        if event.notes:
            index = max(0, min(self.note_index or 0, len(event.notes) - 1))
            note_id = event.notes[index].id

        if self.select_all_in_event and event.notes:
            entries = [SelectedNote(self.staff_index, self.measure_index, event.id, n.id) for n in event.notes]
        else:
            entries = [SelectedNote(self.staff_index, self.measure_index, event.id, note_id)]

        if self.add_to_selection:
            new = Selection(
                staff_index=self.staff_index,
                measure_index=self.measure_index,
                event_id=event.id,
                note_id=note_id,
                selected_notes=_toggle(_seed(state), entries),
                anchor=state.anchor or state.focus,
            )
        else:
            new = Selection(
                staff_index=self.staff_index,
                measure_index=self.measure_index,
                event_id=event.id,
                note_id=note_id,
                selected_notes=tuple(entries),
                anchor=None,
            )
        return _stable(state, new)


class ToggleNoteCommand(SelectionCommand):
    """Add a note to the set, or remove it when already present."""

    type = SelectionCommandType.TOGGLE_NOTE

    def __init__(self, staff_index: int, measure_index: int, event_id: str, note_id: Optional[str]):
        self.target = SelectedNote(staff_index, measure_index, event_id, note_id)

    def execute(self, state: Selection, score: Score) -> Selection:
        if not resolves(score, self.target):
            return state
        return Selection(
            staff_index=self.target.staff_index,
            measure_index=self.target.measure_index,
            event_id=self.target.event_id,
            note_id=self.target.note_id,
            selected_notes=_toggle(_seed(state), [self.target]),
            anchor=state.anchor or state.focus,
        )


class RangeSelectCommand(SelectionCommand):
    """Select every note between anchor and focus in document order."""

    type = SelectionCommandType.RANGE_SELECT

    def __init__(self, anchor: SelectedNote, focus: SelectedNote):
        self.anchor = anchor
        self.focus = focus

    def execute(self, state: Selection, score: Score) -> Selection:
        notes = range_between(score, self.anchor, self.focus)
        if notes is None:
            return state
        new = Selection(
            staff_index=self.focus.staff_index,
            measure_index=self.focus.measure_index,
            event_id=self.focus.event_id,
            note_id=self.focus.note_id,
            selected_notes=notes,
            anchor=self.anchor,
        )
        return _stable(state, new)


class NavigateCommand(SelectionCommand):
    """
    Move the cursor by one step.

    Horizontal moves go event to event; vertical moves go through the chord
    and then across staves. With extend=True, a horizontal move grows the
    anchor range and a vertical move extends each time slice of the
    selection. Ghost cursor transitions are handled by EditorSession.
    """

    type = SelectionCommandType.NAVIGATE

    def __init__(self, direction: str, extend: bool = False):
        if direction not in HORIZONTAL + VERTICAL:
            raise ValueError(f"Unknown direction: {direction}")
        self.direction = direction
        self.extend = extend

    def execute(self, state: Selection, score: Score) -> Selection:
        if self.direction in VERTICAL:
            if self.extend:
                return ExtendSelectionVerticallyCommand(self.direction).execute(state, score)
            result = calculate_vertical_navigation(score, state, self.direction)
            if result is None or result.preview_note is not None or result.selection.event_id is None:
                return state
            return _stable(state, result.selection)

        if not 0 <= state.staff_index < len(score.staves):
            return state
        moved = navigate_selection(score.staves[state.staff_index].measures, state, self.direction)
        if moved is state:
            return state
        if not self.extend or moved.focus is None:
            return moved

        anchor = state.anchor or state.focus
        if anchor is None:
            return moved
        notes = range_between(score, anchor, moved.focus)
        if notes is None:
            return moved
        return replace(moved, selected_notes=notes, anchor=anchor)


@dataclass(frozen=True)
class _Point:
    staff_index: int
    measure_index: int
    event_id: str
    note_id: Optional[str]
    midi: int
    quant: object

    @property
    def metric(self) -> int:
        return (10 - self.staff_index) * 1000 + self.midi

    @property
    def slice_key(self):
        return (self.measure_index, self.quant)

    def same_note(self, other: "_Point") -> bool:
        return (self.staff_index, self.event_id, self.note_id) == (other.staff_index, other.event_id, other.note_id)

    def as_selected(self) -> SelectedNote:
        return SelectedNote(self.staff_index, self.measure_index, self.event_id, self.note_id)


def _note_midi(event: Event, note_id: Optional[str], clef: str) -> Tuple[Optional[str], int]:
    if event.is_rest:
        return (event.notes[0].id if note_id is None and event.notes else note_id), rest_midi(clef)
    if note_id is not None:
        _, note = event.find_note(note_id)
        if note is not None:
            return note_id, pitch_to_midi(note.pitch)
    if event.notes:
        return event.notes[0].id, pitch_to_midi(event.notes[0].pitch)
    return note_id, pitch_to_midi(None)


def _to_point(score: Score, note: SelectedNote) -> Optional[_Point]:
    measure = get_measure(score, note.staff_index, note.measure_index)
    if measure is None:
        return None
    _, event = measure.find_event(note.event_id)
    if event is None:
        return None
    clef = score.staves[note.staff_index].clef
    note_id, midi = _note_midi(event, note.note_id, clef)
    return _Point(note.staff_index, note.measure_index, event.id, note_id, midi,
                  event_start_quant(measure, event.id))


def _vertical_stack(score: Score, measure_index: int, quant) -> List[_Point]:
    """All notes of every staff starting at this instant, top to bottom."""
    stack = []
    for staff_index, staff in enumerate(score.staves):
        if not 0 <= measure_index < len(staff.measures):
            continue
        position = 0
        for event in staff.measures[measure_index].events:
            if position == quant:
                for note in event.notes:
                    midi = rest_midi(staff.clef) if event.is_rest else pitch_to_midi(note.pitch)
                    stack.append(_Point(staff_index, measure_index, event.id, note.id, midi, quant))
            position += event_quants(event)
    return sorted(stack, key=lambda p: p.metric, reverse=True)


class ExtendSelectionVerticallyCommand(SelectionCommand):
    """
    Shift+up/down over simultaneous chords.

    The selection is grouped into time slices. Each slice keeps a fixed
    edge and moves its other edge one step through every note sounding at
    that instant across all staves, so several chords extend at once.
    Direction "all" jumps each moving edge to the end of its stack.
    """

    type = SelectionCommandType.EXTEND_SELECTION_VERTICALLY

    def __init__(self, direction: str):
        if direction not in ("up", "down", "all"):
            raise ValueError(f"Unknown direction: {direction}")
        self.direction = direction

    def _orientation(self, state: Selection, score: Score, anchor: _Point) -> str:
        if state.note_id is not None and state.note_id != anchor.note_id:
            focus = next((n for n in state.selected_notes if n.note_id == state.note_id), None)
            focus_point = _to_point(score, focus) if focus is not None else None
            if focus_point is not None:
                if focus_point.metric > anchor.metric:
                    return "up"
                if focus_point.metric < anchor.metric:
                    return "down"
            return "down"
        return "up" if self.direction == "up" else "down"

    def _move(self, stack: List[_Point], cursor: _Point) -> _Point:
        index = next((i for i, p in enumerate(stack) if p.same_note(cursor)), -1)
        if index == -1:
            return cursor
        if self.direction == "up":
            index = max(0, index - 1)
        elif self.direction == "down":
            index = min(len(stack) - 1, index + 1)
        else:
            index = len(stack) - 1
        return stack[index]

    def execute(self, state: Selection, score: Score) -> Selection:
        anchor_note = state.anchor or state.focus
        selected = _seed(state)
        if anchor_note is None or not selected:
            return state
        anchor = _to_point(score, anchor_note)
        if anchor is None:
            return state

        orientation = self._orientation(state, score, anchor)

        slices: Dict[tuple, List[_Point]] = {}
        for note in selected:
            point = _to_point(score, note)
            if point is not None:
                slices.setdefault(point.slice_key, []).append(point)

        new_notes: List[SelectedNote] = []
        new_focus: Optional[_Point] = None
        changed = False

        for (measure_index, quant), points in slices.items():
            lowest = min(points, key=lambda p: p.metric)
            highest = max(points, key=lambda p: p.metric)
            fixed, cursor = (lowest, highest) if orientation == "up" else (highest, lowest)

            stack = _vertical_stack(score, measure_index, quant)
            moved = cursor if not stack else self._move(stack, cursor)
            if not moved.same_note(cursor):
                changed = True

            if any(p.event_id == state.event_id and p.note_id == state.note_id for p in points):
                new_focus = moved

            low, high = sorted((fixed.metric, moved.metric))
            for point in stack:
                if low <= point.metric <= high:
                    entry = point.as_selected()
                    if entry not in new_notes:
                        new_notes.append(entry)

        if not changed:
            return state

        focus = new_focus
        return replace(
            state,
            staff_index=focus.staff_index if focus else state.staff_index,
            measure_index=focus.measure_index if focus else state.measure_index,
            event_id=focus.event_id if focus else state.event_id,
            note_id=focus.note_id if focus else state.note_id,
            selected_notes=tuple(new_notes),
            anchor=anchor_note,
        )


class CycleChordNoteCommand(SelectionCommand):
    """Move the focus to the next higher or lower chord note, wrapping around."""

    type = SelectionCommandType.CYCLE_CHORD_NOTE

    def __init__(self, direction: str):
        if direction not in VERTICAL:
            raise ValueError(f"Unknown direction: {direction}")
        self.direction = direction

    def execute(self, state: Selection, score: Score) -> Selection:
        measure = get_measure(score, state.staff_index, state.measure_index)
        if measure is None or state.event_id is None:
            return state
        _, event = measure.find_event(state.event_id)
        if event is None or len(event.notes) < 2:
            return state

        ordered = [n.id for n in sorted_notes(event)]
        current = ordered.index(state.note_id) if state.note_id in ordered else 0
        step = 1 if self.direction == "up" else -1
        note_id = ordered[(current + step) % len(ordered)]
        return replace(
            state,
            note_id=note_id,
            selected_notes=(SelectedNote(state.staff_index, state.measure_index, event.id, note_id),),
            anchor=None,
        )


class SelectAllCommand(SelectionCommand):
    """
    Select every note in a scope around the focus.

    Scopes: "event", "measure", "staff", "score".
    """

    type = SelectionCommandType.SELECT_ALL
    SCOPES = ("event", "measure", "staff", "score")

    def __init__(self, scope: str = "score"):
        if scope not in self.SCOPES:
            raise ValueError(f"Unknown scope: {scope}")
        self.scope = scope

    def _matches(self, state: Selection, note: SelectedNote) -> bool:
        if self.scope == "score":
            return True
        if note.staff_index != state.staff_index:
            return False
        if self.scope == "staff":
            return True
        if note.measure_index != state.measure_index:
            return False
        return self.scope == "measure" or note.event_id == state.event_id

    def execute(self, state: Selection, score: Score) -> Selection:
        if self.scope in ("event", "measure") and state.measure_index is None:
            return state
        if self.scope == "event" and state.event_id is None:
            return state

        notes = tuple(n for n in linearize(score) if self._matches(state, n))
        if not notes:
            return state

        focus = state.focus or notes[0]
        new = Selection(
            staff_index=focus.staff_index,
            measure_index=focus.measure_index,
            event_id=focus.event_id,
            note_id=focus.note_id,
            selected_notes=notes,
            anchor=notes[0],
        )
        return _stable(state, new)


class ClearSelectionCommand(SelectionCommand):
    """Drop the multi-select set and anchor; keeps the staff."""

    type = SelectionCommandType.CLEAR_SELECTION

    def execute(self, state: Selection, score: Score) -> Selection:
        return _stable(state, Selection(staff_index=state.staff_index))


def resync_selection(selection: Selection, score: Score) -> Selection:
    """
    Drop references that no longer resolve after a score change.

    Returns the same object when everything still resolves.
    """
    kept = tuple(n for n in selection.selected_notes if resolves(score, n))
    anchor = selection.anchor if selection.anchor and resolves(score, selection.anchor) else None

    focus = selection.focus
    fields = {}
    if focus is not None and not resolves(score, focus):
        if focus.note_id is not None and resolves(score, replace(focus, note_id=None)):
            measure = get_measure(score, focus.staff_index, focus.measure_index)
            _, event = measure.find_event(focus.event_id)
            fields["note_id"] = event.notes[0].id if event.notes else None
        else:
            fields.update(event_id=None, note_id=None)
    if selection.measure_index is not None:
        measure = get_measure(score, selection.staff_index, selection.measure_index)
        if measure is None:
            fields.update(measure_index=None, event_id=None, note_id=None)

    if kept == selection.selected_notes and anchor == selection.anchor and not fields:
        return selection
    return replace(selection, selected_notes=kept, anchor=anchor, **fields)
