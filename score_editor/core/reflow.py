"""
Reflow engine - redistributes events into measures after a time
signature change, splitting events at barlines and tying the pieces.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from fractions import Fraction
from typing import List, Sequence, Tuple

from score_editor.core.rhythm import capacity_for, decompose, total_quants
from score_editor.core.score import Event, Measure, Note, Score, new_id

logger = logging.getLogger(__name__)


def _flatten(measures: Sequence[Measure]) -> List[Event]:
    """
    Flatten measures into one event stream with every tie cleared.

    Ties are bar-relative; the split pieces made below are the only ties
    a reflowed staff carries.
    """
    stream = []
    for measure in measures:
        for event in measure.events:
            if any(n.tied for n in event.notes):
                event = replace(event, notes=tuple(replace(n, tied=False) for n in event.notes))
            stream.append(event)
    return stream


def oversized_tuplets(score: Score, time_signature: str) -> List[Event]:
    """Tuplet events too long for one measure of the given signature."""
    capacity = capacity_for(time_signature)
    return [
        event
        for staff in score.staves
        for measure in staff.measures
        for event in measure.events
        if event.tuplet is not None and event.quants > capacity
    ]


def _part(source: Event, duration: str, dotted: bool, tied: bool) -> Event:
    """Copy of source with a new duration; pitched notes get the tie flag."""
    notes = tuple(
        Note(id=new_id("note"), pitch=n.pitch, accidental=n.accidental,
             tied=tied and n.pitch is not None)
        for n in source.notes
    )
    return Event(id=new_id("evt"), duration=duration, dotted=dotted,
                 is_rest=source.is_rest, notes=notes, tuplet=source.tuplet)


def _closing_part(source: Event, duration: str, dotted: bool) -> Event:
    """Last piece of a split event; keeps the source's own tie flags."""
    notes = tuple(replace(n, id=new_id("note")) for n in source.notes)
    return Event(id=new_id("evt"), duration=duration, dotted=dotted,
                 is_rest=source.is_rest, notes=notes, tuplet=source.tuplet)


class _MeasureBuilder:
    """Accumulates events into measures, reusing the old measure ids."""

    def __init__(self, old_measures: Sequence[Measure], capacity: int, pickup_capacity):
        self.old_ids = [m.id for m in old_measures]
        self.capacity = capacity
        self.filling_pickup = pickup_capacity > 0
        self.pickup_capacity = Fraction(pickup_capacity)
        self.measures: List[Measure] = []
        self.events: List[Event] = []
        self.used = Fraction(0)

    @property
    def limit(self) -> Fraction:
        return self.pickup_capacity if self.filling_pickup else Fraction(self.capacity)

    @property
    def available(self) -> Fraction:
        return self.limit - self.used

    def add(self, event: Event) -> None:
        self.events.append(event)
        self.used += Fraction(event.quants)

    def commit(self) -> None:
        index = len(self.measures)
        measure_id = self.old_ids[index] if index < len(self.old_ids) else new_id("m")
        self.measures.append(Measure(id=measure_id, events=tuple(self.events),
                                     is_pickup=self.filling_pickup))
        self.filling_pickup = False
        self.events = []
        self.used = Fraction(0)


def _split_into(builder: _MeasureBuilder, event: Event, quants: Fraction) -> None:
    """Fill the current measure with the head of event and spill the rest."""
    available = builder.available
    if available > 0:
        for part in decompose(available):
            builder.add(_part(event, part.duration, part.dotted, tied=True))
    builder.commit()

    remaining = quants - max(available, Fraction(0))
    while remaining > 0:
        chunk = min(remaining, Fraction(builder.capacity))
        parts = decompose(chunk)
        remaining -= chunk
        for i, part in enumerate(parts):
            is_last = remaining == 0 and i == len(parts) - 1
            if is_last:
                builder.add(_closing_part(event, part.duration, part.dotted))
            else:
                builder.add(_part(event, part.duration, part.dotted, tied=True))
        if remaining > 0:
            builder.commit()


def reflow_measures(measures: Sequence[Measure], time_signature: str) -> Tuple[Measure, ...]:
    """
    Redistribute a staff's events into measures of a time signature.

    Args:
        measures: Current measures of one staff
        time_signature: New time signature (e.g. "3/4")

    Returns:
        New measures; total quant length is unchanged
    """
    capacity = capacity_for(time_signature)
    pickup_capacity = 0
    if measures and measures[0].is_pickup:
        pickup_capacity = min(Fraction(total_quants(measures[0].events)), Fraction(capacity))

    builder = _MeasureBuilder(measures, capacity, pickup_capacity)

    for event in _flatten(measures):
        quants = Fraction(event.quants)
        if builder.available <= 0 < quants:
            builder.commit()
        if quants <= builder.available:
            builder.add(event)
            continue

        if event.tuplet is not None:
            # Tuplet members are moved whole
            if builder.events or builder.filling_pickup:
                builder.commit()
            builder.add(event)
            continue

        if builder.available.denominator != 1:
            # A fractional gap left by a tuplet cannot hold a split head
            builder.commit()
            if quants <= builder.available:
                builder.add(event)
                continue
        _split_into(builder, event, quants)

    if builder.events:
        builder.commit()

    if not builder.measures:
        builder.commit()

    logger.debug(f"Reflowed {len(measures)} measures into {len(builder.measures)} ({time_signature})")
    return tuple(builder.measures)


def reflow_score(score: Score, time_signature: str) -> Score:
    """
    Reflow every staff of a score to a new time signature.

    Staves are padded with empty measures so grand staves keep the same
    measure count.
    """
    reflowed = [reflow_measures(staff.measures, time_signature) for staff in score.staves]
    count = max((len(m) for m in reflowed), default=1)
    staves = tuple(
        replace(staff, measures=measures + tuple(Measure(id=new_id("m")) for _ in range(count - len(measures))))
        for staff, measures in zip(score.staves, reflowed)
    )
    return replace(score, time_signature=time_signature, staves=staves)
