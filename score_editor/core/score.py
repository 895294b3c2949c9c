"""
Score model - the immutable document tree edited by the command engine.

Score -> Staff[] -> Measure[] -> Event[] -> Note[]

Every model is a frozen dataclass holding tuples, so a mutation always
produces a new root that shares untouched subtrees with the old one.
Documents round-trip through a JSON-compatible dict with camelCase keys.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from score_editor.core.rhythm import NOTE_TYPES, event_quants, total_quants


def new_id(prefix: str) -> str:
    """Generate a unique id such as 'evt-1a2b3c4d'."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class Note:
    """A single pitch within an event; pitch is None for a rest."""

    id: str
    pitch: Optional[str] = None
    accidental: Optional[str] = None
    tied: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "pitch": self.pitch, "tied": self.tied}
        if self.accidental is not None:
            data["accidental"] = self.accidental
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Note":
        return cls(
            id=str(data.get("id") or new_id("note")),
            pitch=data.get("pitch"),
            accidental=data.get("accidental"),
            tied=bool(data.get("tied", False)),
        )


@dataclass(frozen=True)
class Tuplet:
    """
    Tuplet bracket membership.

    Attributes:
        ratio: (actual, target) - actual notes played in the time of target
        group_size: Number of events in the group (cached hint)
        position: Index of the event inside the group (cached hint)
        id: Shared by every event of one group; the grouping key
    """

    ratio: Tuple[int, int]
    group_size: int
    position: int
    id: str

    def __post_init__(self):
        """Validate tuplet."""
        if len(self.ratio) != 2 or self.ratio[0] <= 0 or self.ratio[1] <= 0:
            raise ValueError(f"Invalid tuplet ratio: {self.ratio}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ratio": list(self.ratio),
            "groupSize": self.group_size,
            "position": self.position,
            "id": self.id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], fallback_id: Optional[str] = None) -> "Tuplet":
        return cls(
            ratio=tuple(data["ratio"]),
            group_size=int(data.get("groupSize", 0)),
            position=int(data.get("position", 0)),
            id=str(data.get("id") or fallback_id or new_id("tuplet")),
        )


@dataclass(frozen=True)
class Event:
    """One rhythmic slot: a note, a chord or a rest."""

    id: str
    duration: str
    dotted: bool = False
    is_rest: bool = False
    notes: Tuple[Note, ...] = field(default_factory=tuple)
    tuplet: Optional[Tuplet] = None

    def __post_init__(self):
        """Validate event."""
        if self.duration not in NOTE_TYPES:
            raise ValueError(f"Unknown duration type: {self.duration}")
        pitches = [n.pitch for n in self.notes if n.pitch is not None]
        if len(pitches) != len(set(pitches)):
            raise ValueError(f"Duplicate pitches in event {self.id}: {pitches}")

    @property
    def quants(self):
        return event_quants(self)

    def find_note(self, note_id) -> Tuple[int, Optional[Note]]:
        for i, n in enumerate(self.notes):
            if n.id == note_id:
                return i, n
        return -1, None

    def has_pitch(self, pitch_name: str) -> bool:
        return any(n.pitch == pitch_name for n in self.notes)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "duration": self.duration,
            "dotted": self.dotted,
            "isRest": self.is_rest,
            "notes": [n.to_dict() for n in self.notes],
        }
        if self.tuplet is not None:
            data["tuplet"] = self.tuplet.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        is_rest = bool(data.get("isRest", False))
        notes = tuple(Note.from_dict(n) for n in data.get("notes", []))
        if is_rest and not notes:
            notes = (Note(id=new_id("note")),)
        tuplet = data.get("tuplet")
        return cls(
            id=str(data.get("id") or new_id("evt")),
            duration=data["duration"],
            dotted=bool(data.get("dotted", False)),
            is_rest=is_rest,
            notes=notes,
            tuplet=Tuplet.from_dict(tuplet) if tuplet else None,
        )


@dataclass(frozen=True)
class Measure:
    """A bar of events."""

    id: str
    events: Tuple[Event, ...] = field(default_factory=tuple)
    is_pickup: bool = False

    @property
    def quants(self):
        return total_quants(self.events)

    def find_event(self, event_id) -> Tuple[int, Optional[Event]]:
        for i, e in enumerate(self.events):
            if e.id == event_id:
                return i, e
        return -1, None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "events": [e.to_dict() for e in self.events],
            "isPickup": self.is_pickup,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Measure":
        events = _migrate_tuplet_ids(data.get("events", []))
        return cls(
            id=str(data.get("id") or new_id("m")),
            events=tuple(Event.from_dict(e) for e in events),
            is_pickup=bool(data.get("isPickup", False)),
        )


@dataclass(frozen=True)
class Staff:
    """A staff line; grand staves hold two, synchronised by measure index."""

    id: str
    clef: str = "treble"
    key_signature: str = "C"
    measures: Tuple[Measure, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "clef": self.clef,
            "keySignature": self.key_signature,
            "measures": [m.to_dict() for m in self.measures],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], key_signature: str = "C") -> "Staff":
        return cls(
            id=str(data.get("id") or new_id("staff")),
            clef=data.get("clef", "treble"),
            key_signature=data.get("keySignature", key_signature),
            measures=tuple(Measure.from_dict(m) for m in data.get("measures", [])),
        )


@dataclass(frozen=True)
class Score:
    """Root of the document."""

    title: str = "Untitled"
    key_signature: str = "C"
    time_signature: str = "4/4"
    bpm: int = 120
    staves: Tuple[Staff, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "title": self.title,
            "keySignature": self.key_signature,
            "timeSignature": self.time_signature,
            "bpm": self.bpm,
            "staves": [s.to_dict() for s in self.staves],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Score":
        """
        Create a Score from a dictionary, migrating legacy layouts.

        A document holding a root-level 'measures' list (single-staff
        legacy format) becomes one treble staff.
        """
        key_signature = data.get("keySignature", "C")
        if "staves" in data:
            staves = tuple(Staff.from_dict(s, key_signature) for s in data["staves"])
        elif "measures" in data:
            legacy = {"clef": data.get("clef", "treble"), "measures": data["measures"]}
            staves = (Staff.from_dict(legacy, key_signature),)
        else:
            staves = ()

        if not staves:
            staves = (Staff(id=new_id("staff"), key_signature=key_signature,
                            measures=(Measure(id=new_id("m")),)),)

        return cls(
            title=data.get("title", "Untitled"),
            key_signature=key_signature,
            time_signature=data.get("timeSignature", "4/4"),
            bpm=int(data.get("bpm", 120)),
            staves=staves,
        )

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "Score":
        return cls.from_dict(json.loads(text))


def _migrate_tuplet_ids(events: list) -> list:
    """
    Give legacy tuplets without an id a shared id per bracket.

    Runs are reconstructed from the position/groupSize hints, which is the
    only place those cached fields are trusted.
    """
    migrated = []
    run_id = None
    for data in events:
        tuplet = data.get("tuplet")
        if not tuplet or tuplet.get("id"):
            run_id = None
            migrated.append(data)
            continue

        position = int(tuplet.get("position", 0))
        group_size = int(tuplet.get("groupSize", 0))
        if run_id is None or position == 0:
            run_id = new_id("tuplet")
        migrated.append({**data, "tuplet": {**tuplet, "id": run_id}})
        if group_size and position >= group_size - 1:
            run_id = None
    return migrated


# --- Accessors and structural-sharing helpers ---

def get_active_staff(score: Score, index: int = 0) -> Staff:
    """Return the staff at index, falling back to staff 0."""
    if 0 <= index < len(score.staves):
        return score.staves[index]
    return score.staves[0]


def get_measure(score: Score, staff_index: int, measure_index: Optional[int]) -> Optional[Measure]:
    """Bounds-checked measure lookup; None when it does not resolve."""
    if measure_index is None or not 0 <= staff_index < len(score.staves):
        return None
    measures = score.staves[staff_index].measures
    if not 0 <= measure_index < len(measures):
        return None
    return measures[measure_index]


def replace_at(items: tuple, index: int, item) -> tuple:
    return items[:index] + (item,) + items[index + 1:]


def insert_at(items: tuple, index: int, item) -> tuple:
    return items[:index] + (item,) + items[index:]


def remove_at(items: tuple, index: int) -> tuple:
    return items[:index] + items[index + 1:]


def with_staff(score: Score, staff_index: int, staff: Staff) -> Score:
    return replace(score, staves=replace_at(score.staves, staff_index, staff))


def with_measure(score: Score, staff_index: int, measure_index: int, measure: Measure) -> Score:
    staff = score.staves[staff_index]
    staff = replace(staff, measures=replace_at(staff.measures, measure_index, measure))
    return with_staff(score, staff_index, staff)


def with_events(score: Score, staff_index: int, measure_index: int, events: tuple) -> Score:
    measure = score.staves[staff_index].measures[measure_index]
    return with_measure(score, staff_index, measure_index, replace(measure, events=events))


def with_event(score: Score, staff_index: int, measure_index: int, event_index: int, event: Event) -> Score:
    measure = score.staves[staff_index].measures[measure_index]
    return with_events(score, staff_index, measure_index, replace_at(measure.events, event_index, event))


def make_rest(duration: str, dotted: bool = False, tuplet: Optional[Tuplet] = None) -> Event:
    """Build a rest event carrying a single pitchless note."""
    return Event(
        id=new_id("evt"),
        duration=duration,
        dotted=dotted,
        is_rest=True,
        notes=(Note(id=new_id("note")),),
        tuplet=tuplet,
    )


def create_default_score(
    title: Optional[str] = None,
    time_signature: Optional[str] = None,
    key_signature: Optional[str] = None,
    bpm: Optional[int] = None,
    clef: Optional[str] = None,
    grand_staff: Optional[bool] = None,
    measure_count: int = 1,
) -> Score:
    """
    Create an empty score.

    Unspecified values come from the configured score defaults.

    Args:
        title: Score title
        time_signature: e.g. "4/4"
        key_signature: e.g. "C", "Bb", "Am"
        bpm: Tempo
        clef: Clef of a single staff (ignored for grand staff)
        grand_staff: Create treble + bass staves
        measure_count: Number of empty measures per staff

    Returns:
        New Score
    """
    from score_editor.config import get_config

    defaults = get_config().score
    key_signature = key_signature if key_signature is not None else defaults.key_signature
    grand_staff = defaults.grand_staff if grand_staff is None else grand_staff
    clefs = ("treble", "bass") if grand_staff else (clef or defaults.clef,)

    staves = tuple(
        Staff(
            id=new_id("staff"),
            clef=c,
            key_signature=key_signature,
            measures=tuple(Measure(id=new_id("m")) for _ in range(max(1, measure_count))),
        )
        for c in clefs
    )
    return Score(
        title=title if title is not None else defaults.title,
        key_signature=key_signature,
        time_signature=time_signature or defaults.time_signature,
        bpm=bpm if bpm is not None else defaults.bpm,
        staves=staves,
    )
