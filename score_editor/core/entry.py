"""
Note entry - planning helpers and the entry routine that writes a
note or rest into a measure, splitting it across the barline with ties
when it does not fit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import List, Optional

from score_editor.core.commands import AddMeasureCommand, DeleteEventCommand, InsertEventCommand
from score_editor.core.engine import ScoreEngine
from score_editor.core.rhythm import (
    Quants,
    capacity_for,
    decompose,
    duration_quants,
    event_quants,
    event_start_quant,
    total_quants,
)
from score_editor.core.score import Event, Measure, Note, get_measure, make_rest, new_id

logger = logging.getLogger(__name__)


@dataclass
class OverwritePlan:
    """Events that overlap a proposed insertion range."""
    to_remove: List[str] = field(default_factory=list)


@dataclass
class EntryResult:
    """Outcome of enter_event."""
    changed: bool = False
    event_ids: List[str] = field(default_factory=list)
    note_ids: List[Optional[str]] = field(default_factory=list)
    measure_index: Optional[int] = None
    created_measures: int = 0
    info: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def insertion_quant(measure: Measure, event_id: Optional[str]) -> Optional[Quants]:
    """Start quant of an event, or None when absent."""
    if event_id is None:
        return None
    return event_start_quant(measure, event_id)


def append_quant(measure: Measure) -> Quants:
    """Quant position right after the last event."""
    return total_quants(measure.events)


def overwrite_plan(measure: Measure, start: Quants, length: Quants) -> OverwritePlan:
    """
    Find events overlapping [start, start + length).

    Every overlapping event is removed; partial overlaps are not trimmed.
    """
    end = Fraction(start) + Fraction(length)
    plan = OverwritePlan()
    position = Fraction(0)
    for event in measure.events:
        event_end = position + Fraction(event_quants(event))
        if position < end and event_end > start:
            plan.to_remove.append(event.id)
        position = event_end
    return plan


def rests_for_range(quants: Quants) -> List[Event]:
    """Rest events covering exactly the given number of quants."""
    return [make_rest(part.duration, part.dotted) for part in decompose(quants)]


def insert_position(measure: Measure, start: Quants):
    """
    Event index for an insertion at start, plus any gap rests needed.

    Returns:
        (index, gap rest events)
    """
    index = 0
    scanned = Fraction(0)
    while index < len(measure.events) and scanned < start:
        scanned += Fraction(event_quants(measure.events[index]))
        index += 1
    gap = Fraction(start) - scanned
    rests = rests_for_range(gap) if gap > 0 else []
    return index, rests


def _entry_event(duration: str, dotted: bool, pitch: Optional[str], is_rest: bool, tied: bool) -> Event:
    return Event(
        id=new_id("evt"),
        duration=duration,
        dotted=dotted,
        is_rest=is_rest,
        notes=(Note(id=new_id("note"), pitch=None if is_rest else pitch,
                    tied=tied and not is_rest),),
    )


def _chain(quants: Fraction, capacity: int, head_room: Fraction) -> List[List]:
    """Split quants into per-measure lists of decomposition parts."""
    chunks = []
    room = head_room
    remaining = quants
    while remaining > 0:
        take = min(remaining, room)
        if take > 0:
            chunks.append(decompose(take))
        else:
            chunks.append([])
        remaining -= take
        room = Fraction(capacity)
    return chunks


def enter_event(
    engine: ScoreEngine,
    measure_index: int,
    duration: str,
    dotted: bool = False,
    pitch: Optional[str] = None,
    is_rest: bool = False,
    staff_index: int = 0,
    start_quant: Optional[Quants] = None,
    overwrite: bool = False,
) -> EntryResult:
    """
    Enter a note or rest as one undo step.

    The event is appended (or written at start_quant when overwriting).
    If it runs past the barline the head fills the measure, tied, and the
    remainder continues at the start of the following measure(s), which
    are created on demand. Nothing changes when a following measure has
    no room at its start.

    Args:
        engine: Score engine to dispatch into
        measure_index: Measure where entry starts
        duration: Duration name
        dotted: Dotted flag
        pitch: Pitch name (ignored for rests)
        is_rest: Enter a rest
        staff_index: Target staff
        start_quant: Position for overwrite entry; append when None
        overwrite: Replace overlapping events instead of appending

    Returns:
        EntryResult describing the inserted events
    """
    result = EntryResult()
    if not is_rest and pitch is None:
        raise ValueError("A pitch is required for a note event")

    score = engine.get_state()
    measure = get_measure(score, staff_index, measure_index)
    if measure is None:
        result.warnings.append(f"Measure {measure_index} does not exist")
        return result

    capacity = capacity_for(score.time_signature)
    length = Fraction(duration_quants(duration, dotted))
    start = Fraction(append_quant(measure) if start_quant is None or not overwrite else start_quant)
    head_room = Fraction(capacity) - start

    if length > head_room and (head_room.denominator != 1 or head_room < 0):
        result.warnings.append("No room to split the event at this position")
        return result

    engine.begin_transaction("Enter Rest" if is_rest else "Enter Note")
    try:
        if length <= head_room:
            chunks = [[None]]
        else:
            chunks = _chain(length, capacity, head_room)
            result.info.append("Note split across measures")

        target = measure_index
        for chunk_index, parts in enumerate(chunks):
            if chunk_index > 0:
                target = measure_index + chunk_index
                count = len(engine.get_state().staves[staff_index].measures)
                if target >= count:
                    engine.dispatch(AddMeasureCommand())
                    result.created_measures += 1
                    result.info.append(f"Created measure {target + 1}")

            current = engine.get_state().staves[staff_index].measures[target]
            chunk_start = start if chunk_index == 0 else Fraction(0)
            chunk_length = length if parts == [None] else Fraction(sum(p.quants for p in parts))

            if chunk_index > 0 and not overwrite:
                if Fraction(total_quants(current.events)) + chunk_length > capacity:
                    result.warnings.append(f"Measure {target + 1} has no room for the tied remainder")
                    engine.rollback()
                    return EntryResult(warnings=result.warnings)
            elif overwrite:
                plan = overwrite_plan(current, chunk_start, chunk_length)
                for event_id in plan.to_remove:
                    engine.dispatch(DeleteEventCommand(target, event_id, staff_index=staff_index))
                if plan.to_remove:
                    result.warnings.append(f"Overwrote {len(plan.to_remove)} event(s)")
                current = engine.get_state().staves[staff_index].measures[target]

            index, gap_rests = insert_position(current, chunk_start)
            for rest in gap_rests:
                engine.dispatch(InsertEventCommand(target, rest, index, staff_index=staff_index))
                index += 1

            is_last_chunk = chunk_index == len(chunks) - 1
            if parts == [None]:
                specs = [(duration, dotted, False)]
            else:
                specs = [
                    (p.duration, p.dotted, not (is_last_chunk and i == len(parts) - 1))
                    for i, p in enumerate(parts)
                ]
            for part_duration, part_dotted, tied in specs:
                event = _entry_event(part_duration, part_dotted, pitch, is_rest, tied)
                if not engine.dispatch(InsertEventCommand(target, event, index, staff_index=staff_index)):
                    result.warnings.append(f"Measure {target + 1} is full")
                    engine.rollback()
                    return EntryResult(warnings=result.warnings)
                result.event_ids.append(event.id)
                result.note_ids.append(event.notes[0].id)
                index += 1

        result.measure_index = target
        engine.commit()
        result.changed = bool(result.event_ids)
    except Exception:
        if engine.in_transaction:
            engine.rollback()
        raise

    logger.debug(f"Entered {len(result.event_ids)} event(s) starting in measure {measure_index}")
    return result
