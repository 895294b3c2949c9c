"""
Selection model - cursor, multi-select set, range anchor and the ghost
cursor preview.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class SelectedNote:
    """One entry of the multi-select set."""
    staff_index: int
    measure_index: int
    event_id: str
    note_id: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "staffIndex": self.staff_index,
            "measureIndex": self.measure_index,
            "eventId": self.event_id,
            "noteId": self.note_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SelectedNote":
        return cls(
            staff_index=data.get("staffIndex", 0),
            measure_index=data["measureIndex"],
            event_id=data["eventId"],
            note_id=data.get("noteId"),
        )


@dataclass(frozen=True)
class Selection:
    """
    Editor selection.

    (event_id, note_id) is the focus. An event_id of None with a
    measure_index set is an append position.
    """
    staff_index: int = 0
    measure_index: Optional[int] = None
    event_id: Optional[str] = None
    note_id: Optional[str] = None
    selected_notes: Tuple[SelectedNote, ...] = field(default_factory=tuple)
    anchor: Optional[SelectedNote] = None

    @property
    def focus(self) -> Optional[SelectedNote]:
        if self.measure_index is None or self.event_id is None:
            return None
        return SelectedNote(self.staff_index, self.measure_index, self.event_id, self.note_id)

    @property
    def is_empty(self) -> bool:
        return self.event_id is None and not self.selected_notes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "staffIndex": self.staff_index,
            "measureIndex": self.measure_index,
            "eventId": self.event_id,
            "noteId": self.note_id,
            "selectedNotes": [n.to_dict() for n in self.selected_notes],
            "anchor": self.anchor.to_dict() if self.anchor else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Selection":
        anchor = data.get("anchor")
        return cls(
            staff_index=data.get("staffIndex", 0),
            measure_index=data.get("measureIndex"),
            event_id=data.get("eventId"),
            note_id=data.get("noteId"),
            selected_notes=tuple(SelectedNote.from_dict(n) for n in data.get("selectedNotes", [])),
            anchor=SelectedNote.from_dict(anchor) if anchor else None,
        )


class PreviewMode(Enum):
    APPEND = "APPEND"
    INSERT = "INSERT"


@dataclass(frozen=True)
class PreviewNote:
    """A not-yet-committed note drawn at the edge of content (ghost cursor)."""
    measure_index: int
    staff_index: int
    quant: Any
    pitch: Optional[str]
    duration: str
    dotted: bool = False
    mode: PreviewMode = PreviewMode.APPEND
    index: int = 0
    is_rest: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "measureIndex": self.measure_index,
            "staffIndex": self.staff_index,
            "quant": self.quant if isinstance(self.quant, int) else float(self.quant),
            "pitch": self.pitch,
            "duration": self.duration,
            "dotted": self.dotted,
            "mode": self.mode.value,
            "index": self.index,
            "isRest": self.is_rest,
        }


def create_default_selection() -> Selection:
    """Empty selection on staff 0."""
    return Selection()
