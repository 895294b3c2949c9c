"""
Cursor navigation.

Horizontal navigation walks events left/right and synthesises a ghost
cursor (PreviewNote) at the edge of content. Vertical navigation moves
through a chord, then across staves by quant alignment, cycling to the
opposite staff at the top/bottom of a multi-staff score.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Mapping, Optional, Sequence

from score_editor.core.pitch import default_pitch_for_clef, pitch_to_midi
from score_editor.core.rhythm import (
    DEFAULT_CAPACITY,
    adjusted_duration,
    capacity_for,
    event_at_quant,
    event_start_quant,
    total_quants,
)
from score_editor.core.score import Event, Measure, Score
from score_editor.selection.model import PreviewMode, PreviewNote, SelectedNote, Selection


@dataclass(frozen=True)
class NavigationResult:
    """
    Outcome of a navigation step.

    Attributes:
        selection: New selection
        preview_note: Ghost cursor to show, if any
        should_create_measure: The caller should append a measure
        handoff: Id of an external chord symbol that should take focus
    """
    selection: Selection
    preview_note: Optional[PreviewNote] = None
    should_create_measure: bool = False
    handoff: Optional[str] = None


def first_note_id(event: Optional[Event]) -> Optional[str]:
    if event is None or not event.notes:
        return None
    return event.notes[0].id


def sorted_notes(event: Event):
    """Chord notes ordered low to high."""
    return sorted(event.notes, key=lambda n: pitch_to_midi(n.pitch))


def note_by_direction(event: Event, direction: str) -> Optional[str]:
    """Top note of a chord when moving up, bottom note when moving down."""
    if not event.notes:
        return None
    ordered = sorted_notes(event)
    return ordered[-1].id if direction == "up" else ordered[0].id


def _focus_selection(selection: Selection, staff_index: int, measure_index: int,
                     event: Event, note_id: Optional[str] = None) -> Selection:
    note_id = note_id if note_id is not None else first_note_id(event)
    return replace(
        selection,
        staff_index=staff_index,
        measure_index=measure_index,
        event_id=event.id,
        note_id=note_id,
        selected_notes=(SelectedNote(staff_index, measure_index, event.id, note_id),),
        anchor=None,
    )


def _ghost_selection(staff_index: int) -> Selection:
    return Selection(staff_index=staff_index)


def append_preview(
    measure: Measure,
    measure_index: int,
    staff_index: int,
    duration: str,
    dotted: bool,
    pitch: Optional[str],
    is_rest: bool = False,
) -> PreviewNote:
    """Ghost cursor positioned after the last event of a measure."""
    return PreviewNote(
        measure_index=measure_index,
        staff_index=staff_index,
        quant=total_quants(measure.events),
        pitch=pitch,
        duration=duration,
        dotted=dotted,
        mode=PreviewMode.APPEND,
        index=len(measure.events),
        is_rest=is_rest,
    )


def _last_pitch(event: Optional[Event], clef: str) -> str:
    if event is None or event.is_rest or not event.notes or event.notes[0].pitch is None:
        return default_pitch_for_clef(clef)
    return event.notes[0].pitch


# --- Horizontal ---

def navigate_selection(measures: Sequence[Measure], selection: Selection, direction: str) -> Selection:
    """
    Step the cursor one event left or right.

    Returns the same Selection object when there is nowhere to go.
    """
    measure_index = selection.measure_index
    if measure_index is None or not 0 <= measure_index < len(measures):
        return selection
    measure = measures[measure_index]
    staff_index = selection.staff_index

    # Append position: snap into the measure
    if selection.event_id is None:
        if not measure.events:
            if direction == "left" and measure_index > 0:
                return replace(selection, measure_index=measure_index - 1, note_id=None)
            if direction == "right" and measure_index < len(measures) - 1:
                return replace(selection, measure_index=measure_index + 1, note_id=None)
            return selection
        event = measure.events[-1] if direction == "left" else measure.events[0]
        return _focus_selection(selection, staff_index, measure_index, event)

    index, _ = measure.find_event(selection.event_id)
    if index == -1:
        return selection

    if direction == "left":
        if index > 0:
            return _focus_selection(selection, staff_index, measure_index, measure.events[index - 1])
        if measure_index > 0 and measures[measure_index - 1].events:
            return _focus_selection(selection, staff_index, measure_index - 1,
                                    measures[measure_index - 1].events[-1])
    elif direction == "right":
        if index < len(measure.events) - 1:
            return _focus_selection(selection, staff_index, measure_index, measure.events[index + 1])
        if measure_index < len(measures) - 1 and measures[measure_index + 1].events:
            return _focus_selection(selection, staff_index, measure_index + 1,
                                    measures[measure_index + 1].events[0])
    return selection


def _ghost_if_fits(measures, measure_index, staff_index, available, duration, dotted,
                   pitch, input_mode) -> Optional[NavigationResult]:
    if not 0 <= measure_index < len(measures):
        return None
    adjusted = adjusted_duration(available, duration, dotted) if available > 0 else (duration, dotted)
    if adjusted is None:
        return None
    preview = append_preview(measures[measure_index], measure_index, staff_index,
                             adjusted[0], adjusted[1], pitch, input_mode == "REST")
    return NavigationResult(selection=_ghost_selection(staff_index), preview_note=preview)


def _ghost_navigation(measures, preview: PreviewNote, direction, staff_index, duration,
                      dotted, capacity, clef, input_mode) -> Optional[NavigationResult]:
    measure_index = preview.measure_index
    measure = measures[measure_index] if 0 <= measure_index < len(measures) else None

    if direction == "left":
        if measure is not None and measure.events:
            ghost_quant = preview.quant
            if ghost_quant is None:
                ghost_quant = total_quants(measure.events) if preview.mode == PreviewMode.APPEND else 0
            position = Fraction(0)
            target = None
            for event in measure.events:
                end = position + Fraction(event.quants)
                if end <= ghost_quant:
                    target = event
                elif position < ghost_quant < end:
                    target = event
                    break
                position = end
            if target is not None:
                return NavigationResult(_focus_selection(Selection(), staff_index, measure_index, target))

        if measure_index > 0:
            previous = measures[measure_index - 1]
            available = capacity - total_quants(previous.events)
            if available > 0:
                pitch = preview.pitch or default_pitch_for_clef(clef)
                ghost = _ghost_if_fits(measures, measure_index - 1, staff_index, available,
                                       duration, dotted, pitch, input_mode)
                if ghost is not None:
                    return ghost
            if previous.events:
                return NavigationResult(_focus_selection(Selection(), staff_index, measure_index - 1,
                                                         previous.events[-1]))

    if direction == "right":
        next_index = measure_index + 1
        if next_index < len(measures):
            following = measures[next_index]
            if following.events:
                return NavigationResult(_focus_selection(Selection(), staff_index, next_index,
                                                         following.events[0]))
            pitch = preview.pitch or default_pitch_for_clef(clef)
            return _ghost_if_fits(measures, next_index, staff_index,
                                  capacity - total_quants(following.events),
                                  duration, dotted, pitch, input_mode)
        if next_index == len(measures) and measure is not None and measure.events:
            return _new_measure_result(next_index, staff_index, preview.pitch or default_pitch_for_clef(clef),
                                       duration, dotted, input_mode)
    return None


def _new_measure_result(measure_index, staff_index, pitch, duration, dotted, input_mode) -> NavigationResult:
    preview = PreviewNote(
        measure_index=measure_index,
        staff_index=staff_index,
        quant=0,
        pitch=pitch,
        duration=duration,
        dotted=dotted,
        mode=PreviewMode.APPEND,
        index=0,
        is_rest=input_mode == "REST",
    )
    return NavigationResult(selection=_ghost_selection(staff_index), preview_note=preview,
                            should_create_measure=True)


def _event_navigation(measures, selection, direction, staff_index, duration, dotted,
                      capacity, clef, input_mode) -> Optional[NavigationResult]:
    measure_index = selection.measure_index
    if measure_index is None or selection.event_id is None or not 0 <= measure_index < len(measures):
        return None
    measure = measures[measure_index]
    index, current = measure.find_event(selection.event_id)
    if current is None:
        return None

    if direction == "left" and index == 0 and measure_index > 0:
        available = capacity - total_quants(measures[measure_index - 1].events)
        if available > 0:
            ghost = _ghost_if_fits(measures, measure_index - 1, staff_index, available,
                                   duration, dotted, _last_pitch(current, clef), input_mode)
            if ghost is not None:
                return ghost

    if direction == "right" and index == len(measure.events) - 1:
        available = capacity - total_quants(measure.events)
        is_last = measure_index == len(measures) - 1
        pitch = _last_pitch(current, clef)

        if available > 0:
            ghost = _ghost_if_fits(measures, measure_index, staff_index, available,
                                   duration, dotted, pitch, input_mode)
            if ghost is not None:
                return ghost

        next_index = measure_index + 1
        if next_index < len(measures):
            if not measures[next_index].events:
                return _ghost_if_fits(measures, next_index, staff_index, capacity,
                                      duration, dotted, pitch, input_mode)
        elif is_last:
            return _new_measure_result(next_index, staff_index, pitch, duration, dotted, input_mode)

    moved = navigate_selection(measures, selection, direction)
    if moved is selection or moved.event_id is None:
        return None
    return NavigationResult(replace(moved, staff_index=staff_index))


def calculate_next_selection(
    measures: Sequence[Measure],
    selection: Selection,
    direction: str,
    preview_note: Optional[PreviewNote] = None,
    active_duration: str = "quarter",
    dotted: bool = False,
    quants_per_measure: int = DEFAULT_CAPACITY,
    clef: str = "treble",
    staff_index: int = 0,
    input_mode: str = "NOTE",
) -> Optional[NavigationResult]:
    """
    Ghost-cursor aware left/right navigation.

    Args:
        measures: Measures of the active staff
        selection: Current selection
        direction: "left" or "right"
        preview_note: Current ghost cursor, if any
        active_duration: Duration of the note being entered
        dotted: Dotted flag of the note being entered
        quants_per_measure: Measure capacity
        clef: Clef of the active staff
        staff_index: Active staff
        input_mode: "NOTE" or "REST"

    Returns:
        NavigationResult, or None when nothing changes
    """
    if selection.event_id is None and preview_note is not None:
        return _ghost_navigation(measures, preview_note, direction, staff_index, active_duration,
                                 dotted, quants_per_measure, clef, input_mode)

    if selection.event_id is None and selection.measure_index is not None:
        moved = navigate_selection(measures, selection, direction)
        if moved is selection:
            return None
        return NavigationResult(replace(moved, staff_index=staff_index))

    return _event_navigation(measures, selection, direction, staff_index, active_duration,
                             dotted, quants_per_measure, clef, input_mode)


# --- Vertical ---

def _ghost_preview(measure: Measure, measure_index: int, staff_index: int, clef: str,
                   duration: str, dotted: bool, capacity) -> Optional[PreviewNote]:
    available = capacity - total_quants(measure.events)
    adjusted = adjusted_duration(available, duration, dotted)
    if adjusted is None:
        return None
    return append_preview(measure, measure_index, staff_index, adjusted[0], adjusted[1],
                          default_pitch_for_clef(clef))


def _cross_to(score: Score, target_staff: int, measure_index: int, quant, direction: str,
              duration: str, dotted: bool, capacity) -> Optional[NavigationResult]:
    staff = score.staves[target_staff]
    if not 0 <= measure_index < len(staff.measures):
        return None
    measure = staff.measures[measure_index]
    event = event_at_quant(measure, quant)
    if event is not None:
        return NavigationResult(_focus_selection(Selection(), target_staff, measure_index, event,
                                                 note_by_direction(event, direction)))
    preview = _ghost_preview(measure, measure_index, target_staff, staff.clef, duration, dotted, capacity)
    if preview is None:
        return None
    return NavigationResult(selection=_ghost_selection(target_staff), preview_note=preview)


def _ghost_vertical(score: Score, preview: PreviewNote, direction: str) -> Optional[NavigationResult]:
    staff_index = preview.staff_index
    measure_index = preview.measure_index
    target = staff_index - 1 if direction == "up" else staff_index + 1

    if 0 <= target < len(score.staves):
        staff = score.staves[target]
        if 0 <= measure_index < len(staff.measures):
            measure = staff.measures[measure_index]
            event = event_at_quant(measure, preview.quant or 0)
            if event is None and measure.events:
                event = measure.events[0]
            if event is not None:
                return NavigationResult(_focus_selection(Selection(), target, measure_index, event,
                                                         note_by_direction(event, direction)))
            moved = replace(preview, staff_index=target, pitch=default_pitch_for_clef(staff.clef))
            return NavigationResult(selection=_ghost_selection(target), preview_note=moved)

    if len(score.staves) <= 1:
        return None
    cycle = len(score.staves) - 1 if direction == "up" else 0
    if cycle == staff_index:
        return None
    staff = score.staves[cycle]
    if not 0 <= measure_index < len(staff.measures):
        return None
    moved = replace(preview, staff_index=cycle, pitch=default_pitch_for_clef(staff.clef))
    return NavigationResult(selection=_ghost_selection(cycle), preview_note=moved)


def calculate_vertical_navigation(
    score: Score,
    selection: Selection,
    direction: str,
    active_duration: str = "quarter",
    dotted: bool = False,
    preview_note: Optional[PreviewNote] = None,
    quants_per_measure: Optional[int] = None,
    chord_quants: Optional[Mapping[int, str]] = None,
) -> Optional[NavigationResult]:
    """
    Up/down navigation.

    Order of attempts: move inside the chord (no wrap), hand off to an
    external chord symbol at the same time position, move to the aligned
    event of the neighbouring staff (or a ghost cursor there), and finally
    cycle to the opposite staff.

    Args:
        score: Current score
        selection: Current selection
        direction: "up" or "down"
        active_duration: Duration used for a ghost cursor
        dotted: Dotted flag used for a ghost cursor
        preview_note: Current ghost cursor, if any
        quants_per_measure: Measure capacity (from the score when omitted)
        chord_quants: Global quant -> chord symbol id, supplied by a
            chord track; enables the boundary handoff

    Returns:
        NavigationResult, or None when nothing changes
    """
    capacity = quants_per_measure if quants_per_measure is not None else capacity_for(score.time_signature)

    if selection.event_id is None and preview_note is not None:
        return _ghost_vertical(score, preview_note, direction)

    staff_index = selection.staff_index
    measure_index = selection.measure_index
    if measure_index is None or selection.event_id is None:
        return None
    if not 0 <= staff_index < len(score.staves):
        return None
    measures = score.staves[staff_index].measures
    if not 0 <= measure_index < len(measures):
        return None
    measure = measures[measure_index]
    index, event = measure.find_event(selection.event_id)
    if event is None:
        return None
    quant = event_start_quant(measure, event.id)
    ordered = sorted_notes(event) if event.notes else []

    # 1. Inside the chord
    if len(ordered) > 1 and selection.note_id is not None:
        positions = [n.id for n in ordered]
        if selection.note_id in positions:
            current = positions.index(selection.note_id)
            target = current + 1 if direction == "up" else current - 1
            if 0 <= target < len(ordered):
                note_id = ordered[target].id
                return NavigationResult(replace(
                    selection,
                    note_id=note_id,
                    selected_notes=(SelectedNote(staff_index, measure_index, event.id, note_id),),
                    anchor=None,
                ))

    # 2. Chord-symbol handoff at the outer edge
    if chord_quants:
        at_top = direction == "up" and staff_index == 0 and (
            len(ordered) <= 1 or selection.note_id is None or ordered[-1].id == selection.note_id)
        at_bottom = direction == "down" and staff_index == len(score.staves) - 1 and (
            len(ordered) <= 1 or selection.note_id is None or ordered[0].id == selection.note_id)
        if at_top or at_bottom:
            chord_id = chord_quants.get(measure_index * capacity + quant)
            if chord_id is not None:
                return NavigationResult(replace(selection, selected_notes=(), anchor=None),
                                        handoff=chord_id)

    # 3. Neighbouring staff
    target_staff = staff_index - 1 if direction == "up" else staff_index + 1
    if 0 <= target_staff < len(score.staves):
        result = _cross_to(score, target_staff, measure_index, quant, direction,
                           active_duration, dotted, capacity)
        if result is not None:
            return result

    # 4. Cycle to the opposite staff
    if len(score.staves) <= 1:
        return None
    cycle = len(score.staves) - 1 if direction == "up" else 0
    if cycle == staff_index:
        return None
    return _cross_to(score, cycle, measure_index, quant, direction, active_duration, dotted, capacity)
