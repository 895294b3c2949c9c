"""
Rhythm model - quant arithmetic for the score editor.

A quant is the smallest rhythmic unit; one whole note is 64 quants.
Base values are derived from music21 duration types so that the
editor's duration names stay in step with music21's quarterLength
arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Iterable, List, Optional, Tuple, Union

from music21 import duration as m21_duration


QUANTS_PER_WHOLE = 64
QUANTS_PER_QUARTER = QUANTS_PER_WHOLE // 4

Quants = Union[int, Fraction]

# Editor duration name -> music21 duration type
MUSIC21_TYPES = {
    "whole": "whole",
    "half": "half",
    "quarter": "quarter",
    "eighth": "eighth",
    "sixteenth": "16th",
    "thirtysecond": "32nd",
    "sixtyfourth": "64th",
}


def _base_quants(m21_type: str) -> int:
    ql = Fraction(m21_duration.Duration(m21_type).quarterLength)
    return int(ql * QUANTS_PER_QUARTER)


NOTE_TYPES = {name: _base_quants(m21_type) for name, m21_type in MUSIC21_TYPES.items()}

# Measure capacity in quants for each supported time signature
TIME_SIGNATURES = {
    "4/4": 64,
    "3/4": 48,
    "2/4": 32,
    "2/2": 64,
    "5/4": 80,
    "6/8": 48,
    "3/8": 24,
    "7/8": 56,
    "9/8": 72,
    "12/8": 96,
}

DEFAULT_CAPACITY = 64


@dataclass(frozen=True)
class QuantPart:
    """One entry of a quant decomposition."""
    duration: str
    dotted: bool
    quants: int


# Greedy largest-fit table, descending
QUANT_BREAKDOWN: Tuple[QuantPart, ...] = (
    QuantPart("whole", False, 64),
    QuantPart("half", True, 48),
    QuantPart("half", False, 32),
    QuantPart("quarter", True, 24),
    QuantPart("quarter", False, 16),
    QuantPart("eighth", True, 12),
    QuantPart("eighth", False, 8),
    QuantPart("sixteenth", True, 6),
    QuantPart("sixteenth", False, 4),
    QuantPart("thirtysecond", True, 3),
    QuantPart("thirtysecond", False, 2),
    QuantPart("sixtyfourth", False, 1),
)


def _normalize(value: Fraction) -> Quants:
    return int(value) if value.denominator == 1 else value


def tuplet_ratio(tuplet) -> Optional[Tuple[int, int]]:
    """Return (actual, target) for a Tuplet object or a bare ratio pair."""
    if tuplet is None:
        return None
    ratio = getattr(tuplet, "ratio", tuplet)
    actual, target = ratio
    if actual <= 0 or target <= 0:
        raise ValueError(f"Invalid tuplet ratio: {ratio}")
    return int(actual), int(target)


def duration_quants(duration: str, dotted: bool = False, tuplet=None) -> Quants:
    """
    Convert a duration to quants.

    Args:
        duration: Duration name ("whole" ... "sixtyfourth")
        dotted: Whether the duration is dotted
        tuplet: Optional Tuplet (or (actual, target) pair)

    Returns:
        Quant count; an int unless a tuplet makes it fractional
    """
    if duration not in NOTE_TYPES:
        raise ValueError(f"Unknown duration type: {duration}")

    value = Fraction(NOTE_TYPES[duration])
    if dotted:
        value *= Fraction(3, 2)

    ratio = tuplet_ratio(tuplet)
    if ratio is not None:
        actual, target = ratio
        value = value * target / actual

    return _normalize(value)


def event_quants(event) -> Quants:
    """Quant length of a single event."""
    return duration_quants(event.duration, event.dotted, event.tuplet)


def total_quants(events: Iterable) -> Quants:
    """Sum of the quant lengths of the given events."""
    total = Fraction(0)
    for event in events:
        total += event_quants(event)
    return _normalize(total)


def decompose(quants: Quants) -> List[QuantPart]:
    """
    Greedily decompose a quant count into note durations.

    The parts always sum to the input exactly.

    Args:
        quants: Non-negative whole number of quants

    Returns:
        List of QuantPart, largest first
    """
    if isinstance(quants, Fraction):
        if quants.denominator != 1:
            raise ValueError(f"Cannot decompose fractional quants: {quants}")
        quants = int(quants)
    if quants < 0:
        raise ValueError(f"Cannot decompose negative quants: {quants}")

    remaining = quants
    parts: List[QuantPart] = []
    for option in QUANT_BREAKDOWN:
        while remaining >= option.quants:
            parts.append(option)
            remaining -= option.quants
        if remaining == 0:
            break
    return parts


def capacity_for(time_signature: str) -> int:
    """Measure capacity for a time signature; unknown signatures get 64."""
    return TIME_SIGNATURES.get(time_signature, DEFAULT_CAPACITY)


def measure_capacity(measure, time_signature: str) -> Quants:
    """Capacity of a measure; a pickup measure holds only its own content."""
    capacity = capacity_for(time_signature)
    if getattr(measure, "is_pickup", False):
        content = total_quants(measure.events)
        return min(content, capacity)
    return capacity


def remaining_quants(measure, time_signature: str) -> Quants:
    """Free space left in a (non-pickup) measure."""
    return _normalize(Fraction(capacity_for(time_signature)) - Fraction(total_quants(measure.events)))


def can_add_event(
    measure,
    time_signature: str,
    duration: str,
    dotted: bool = False,
    tuplet=None,
) -> bool:
    """Check whether an event of the given duration fits in a measure."""
    return duration_quants(duration, dotted, tuplet) <= remaining_quants(measure, time_signature)


def adjusted_duration(
    available: Quants,
    duration: str,
    dotted: bool = False,
) -> Optional[Tuple[str, bool]]:
    """
    Clamp a requested duration to the space available.

    Returns the requested duration when it fits, otherwise the largest
    decomposition entry that fits, or None when nothing fits.
    """
    if available <= 0:
        return None
    if duration_quants(duration, dotted) <= available:
        return duration, dotted

    whole_available = int(available)
    if whole_available <= 0:
        return None
    largest = decompose(whole_available)[0]
    return largest.duration, largest.dotted


def event_start_quant(measure, event_id) -> Optional[Quants]:
    """Quant offset of an event within its measure, or None if absent."""
    start = Fraction(0)
    for event in measure.events:
        if event.id == event_id:
            return _normalize(start)
        start += event_quants(event)
    return None


def event_at_quant(measure, quant: Quants):
    """Return the event whose [start, end) interval contains quant."""
    start = Fraction(0)
    for event in measure.events:
        end = start + event_quants(event)
        if start <= quant < end:
            return event
        start = end
    return None


def event_starting_at(measure, quant: Quants):
    """Return the event starting exactly at quant, if any."""
    start = Fraction(0)
    for event in measure.events:
        if start == quant:
            return event
        start += event_quants(event)
    return None
