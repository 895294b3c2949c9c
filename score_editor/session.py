"""
Editor session - wires a ScoreEngine and a SelectionEngine together with
the ghost cursor and the note-entry settings.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from score_editor.config import Config, get_config
from score_editor.core.commands import (
    AddMeasureCommand,
    DeleteNoteCommand,
    TransposeSelectionCommand,
)
from score_editor.core.engine import ScoreEngine
from score_editor.core.entry import EntryResult, enter_event
from score_editor.core.pitch import default_pitch_for_clef
from score_editor.core.rhythm import NOTE_TYPES, capacity_for
from score_editor.core.score import Score, get_measure
from score_editor.selection.commands import (
    ClearSelectionCommand,
    NavigateCommand,
    SelectEventCommand,
    resync_selection,
)
from score_editor.selection.engine import SelectionEngine
from score_editor.selection.model import PreviewNote, SelectedNote, Selection
from score_editor.selection.navigation import (
    calculate_next_selection,
    calculate_vertical_navigation,
)

logger = logging.getLogger(__name__)

INPUT_MODES = ("NOTE", "REST")


class EditorSession:
    """
    One open score with its selection and entry state.

    The selection is re-synced whenever the score changes, so it never
    points at deleted notes.
    """

    def __init__(
        self,
        score: Optional[Score] = None,
        config: Optional[Config] = None,
        max_history: Optional[int] = None,
    ):
        self.config = config or get_config()
        self.engine = ScoreEngine(score, max_history=max_history, config=self.config)
        self.selection_engine = SelectionEngine(score_getter=self.engine.get_state)

        self.preview_note: Optional[PreviewNote] = None
        self.active_duration: str = self.config.entry.default_duration
        self.dotted: bool = self.config.entry.default_dotted
        self.input_mode: str = self.config.entry.input_mode

        # Global quant -> chord symbol id, set by a chord track
        self.chord_quants: Optional[Mapping[int, str]] = None
        self.handoff: Optional[str] = None

        self._unsubscribe = self.engine.subscribe(self._on_score_change)

    # --- State ---

    @property
    def score(self) -> Score:
        return self.engine.get_state()

    @property
    def selection(self) -> Selection:
        return self.selection_engine.get_state()

    def close(self) -> None:
        """Detach from the score engine."""
        self._unsubscribe()

    def _on_score_change(self, score: Score) -> None:
        selection = self.selection_engine.get_state()
        synced = resync_selection(selection, score)
        if synced is not selection:
            self.selection_engine.set_state(synced)

        preview = self.preview_note
        if preview is not None:
            if not 0 <= preview.staff_index < len(score.staves) or \
                    not 0 <= preview.measure_index < len(score.staves[preview.staff_index].measures):
                self.preview_note = None

    # --- Entry settings ---

    def set_duration(self, duration: str, dotted: Optional[bool] = None) -> None:
        if duration not in NOTE_TYPES:
            raise ValueError(f"Unknown duration type: {duration}")
        self.active_duration = duration
        if dotted is not None:
            self.dotted = dotted

    def toggle_dotted(self) -> bool:
        self.dotted = not self.dotted
        return self.dotted

    def set_input_mode(self, mode: str) -> None:
        if mode not in INPUT_MODES:
            raise ValueError(f"Unknown input mode: {mode}")
        self.input_mode = mode

    # --- Selection ---

    def select(self, staff_index: int, measure_index: int, event_index: int = 0,
               note_index: Optional[int] = None, add_to_selection: bool = False) -> bool:
        """Click-select an event; clears the ghost cursor."""
        self.preview_note = None
        return self.selection_engine.dispatch(
            SelectEventCommand(staff_index, measure_index, event_index, note_index, add_to_selection)
        )

    def clear_selection(self) -> bool:
        self.preview_note = None
        return self.selection_engine.dispatch(ClearSelectionCommand())

    def navigate(self, direction: str, extend: bool = False) -> bool:
        """
        Arrow-key navigation.

        Plain moves may land on a ghost cursor; moving right from the end
        of the last measure appends a measure first. Extended moves
        operate on the selection only.

        Returns:
            True if the selection or ghost cursor moved
        """
        if extend:
            self.preview_note = None
            return self.selection_engine.dispatch(NavigateCommand(direction, extend=True))

        self.handoff = None
        score = self.score
        selection = self.selection

        if direction in ("left", "right"):
            staff_index = self.preview_note.staff_index if self.preview_note else selection.staff_index
            if not 0 <= staff_index < len(score.staves):
                return False
            staff = score.staves[staff_index]
            result = calculate_next_selection(
                staff.measures,
                selection,
                direction,
                preview_note=self.preview_note,
                active_duration=self.active_duration,
                dotted=self.dotted,
                quants_per_measure=capacity_for(score.time_signature),
                clef=staff.clef,
                staff_index=staff_index,
                input_mode=self.input_mode,
            )
        else:
            result = calculate_vertical_navigation(
                score,
                selection,
                direction,
                active_duration=self.active_duration,
                dotted=self.dotted,
                preview_note=self.preview_note,
                chord_quants=self.chord_quants,
            )

        if result is None:
            return False

        if result.handoff is not None:
            self.handoff = result.handoff
            logger.debug(f"Focus handed off to chord symbol {result.handoff}")

        if result.should_create_measure:
            self.engine.dispatch(AddMeasureCommand())

        self.preview_note = result.preview_note
        if result.selection != selection:
            self.selection_engine.set_state(result.selection)
        return True

    # --- Editing ---

    def _entry_target(self):
        if self.preview_note is not None:
            return self.preview_note.staff_index, self.preview_note.measure_index
        selection = self.selection
        if selection.measure_index is not None:
            return selection.staff_index, selection.measure_index
        staff_index = selection.staff_index
        return staff_index, len(self.score.staves[staff_index].measures) - 1

    def enter_note(self, pitch: Optional[str] = None) -> EntryResult:
        """
        Append a note (or a rest in REST mode) with the active duration.

        The pitch defaults to the ghost cursor's pitch, then to the clef's
        default pitch. The new event becomes the selection.
        """
        staff_index, measure_index = self._entry_target()
        is_rest = self.input_mode == "REST"
        if pitch is None and not is_rest:
            if self.preview_note is not None and self.preview_note.pitch:
                pitch = self.preview_note.pitch
            else:
                pitch = default_pitch_for_clef(self.score.staves[staff_index].clef)

        result = enter_event(
            self.engine,
            measure_index,
            self.active_duration,
            dotted=self.dotted,
            pitch=pitch,
            is_rest=is_rest,
            staff_index=staff_index,
        )
        if not result.changed:
            return result

        self.preview_note = None
        measure = get_measure(self.score, staff_index, result.measure_index)
        index, _ = measure.find_event(result.event_ids[-1])
        self.selection_engine.dispatch(SelectEventCommand(staff_index, result.measure_index, index))
        return result

    def transpose(self, semitones: int) -> bool:
        """Transpose the current selection."""
        selection = self.selection
        if selection.measure_index is None:
            return False
        return self.engine.dispatch(
            TransposeSelectionCommand(selection, semitones, key_signature=self.score.key_signature)
        )

    def delete_selected(self) -> bool:
        """Delete every selected note as one undo step."""
        selection = self.selection
        targets = selection.selected_notes or ((selection.focus,) if selection.focus else ())
        if not targets:
            return False

        with self.engine.transaction("Delete Selection"):
            changed = False
            for note in targets:
                changed |= self._delete(note)
        return changed

    def _delete(self, note: SelectedNote) -> bool:
        if note.note_id is None:
            measure = get_measure(self.score, note.staff_index, note.measure_index)
            if measure is None:
                return False
            _, event = measure.find_event(note.event_id)
            if event is None or not event.notes:
                return False
            note = SelectedNote(note.staff_index, note.measure_index, note.event_id, event.notes[0].id)
        return self.engine.dispatch(
            DeleteNoteCommand(note.measure_index, note.event_id, note.note_id, staff_index=note.staff_index)
        )

    def undo(self) -> bool:
        return self.engine.undo()

    def redo(self) -> bool:
        return self.engine.redo()
