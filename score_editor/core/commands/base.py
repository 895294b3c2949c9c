"""
Command pattern for undo/redo support.

All score modifications go through commands. A command returns a new
Score from execute() and the prior Score from undo(); when its target
does not resolve it returns the very same Score object, which the
engine treats as a no-op.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Tuple

from score_editor.core.score import Event, Measure, Score, get_measure


class CommandType(Enum):
    """Every kind of score command."""
    ADD_EVENT = "ADD_EVENT"
    INSERT_EVENT = "INSERT_EVENT"
    DELETE_EVENT = "DELETE_EVENT"
    UPDATE_EVENT = "UPDATE_EVENT"
    ADD_NOTE_TO_EVENT = "ADD_NOTE_TO_EVENT"
    UPDATE_NOTE = "UPDATE_NOTE"
    CHANGE_PITCH = "CHANGE_PITCH"
    DELETE_NOTE = "DELETE_NOTE"
    ADD_MEASURE = "ADD_MEASURE"
    DELETE_MEASURE = "DELETE_MEASURE"
    TRANSPOSE_SELECTION = "TRANSPOSE_SELECTION"
    APPLY_TUPLET = "APPLY_TUPLET"
    REMOVE_TUPLET = "REMOVE_TUPLET"
    SET_BPM = "SET_BPM"
    SET_TITLE = "SET_TITLE"
    SET_KEY_SIGNATURE = "SET_KEY_SIGNATURE"
    SET_CLEF = "SET_CLEF"
    SET_TIME_SIGNATURE = "SET_TIME_SIGNATURE"
    BATCH = "BATCH"


class Command(ABC):
    """Base class for all score commands."""

    type: CommandType

    @abstractmethod
    def execute(self, score: Score) -> Score:
        """
        Execute command and return new score.

        Args:
            score: Current score

        Returns:
            New score, or the same object when nothing applies
        """
        raise NotImplementedError()

    @abstractmethod
    def undo(self, score: Score) -> Score:
        """
        Undo command and return previous score.

        Args:
            score: Score produced by execute()

        Returns:
            Score before command execution
        """
        raise NotImplementedError()

    @property
    def description(self) -> str:
        """Human-readable command description for UI."""
        return self.type.value.replace("_", " ").title()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.description}>"


class BatchCommand(Command):
    """
    Snapshot command synthesised by a committed transaction.

    Undo restores the score captured when the transaction began.
    """

    type = CommandType.BATCH

    def __init__(self, before: Score, after: Score, description: str = "Batch"):
        self.before = before
        self.after = after
        self._description = description

    def execute(self, score: Score) -> Score:
        return self.after

    def undo(self, score: Score) -> Score:
        return self.before

    @property
    def description(self) -> str:
        return self._description


def locate_event(
    score: Score,
    staff_index: int,
    measure_index: int,
    event_id,
) -> Optional[Tuple[Measure, int, Event]]:
    """Resolve (measure, event index, event), or None when stale."""
    measure = get_measure(score, staff_index, measure_index)
    if measure is None:
        return None
    index, event = measure.find_event(event_id)
    if event is None:
        return None
    return measure, index, event
