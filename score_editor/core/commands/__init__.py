"""
Score commands.

Each command is {execute(score) -> score, undo(score) -> score}; the
closed set of kinds is listed in CommandType.
"""

from score_editor.core.commands.base import BatchCommand, Command, CommandType
from score_editor.core.commands.events import (
    AddEventCommand,
    DeleteEventCommand,
    InsertEventCommand,
    UpdateEventCommand,
)
from score_editor.core.commands.measures import AddMeasureCommand, DeleteMeasureCommand
from score_editor.core.commands.notes import (
    AddNoteToEventCommand,
    ChangePitchCommand,
    DeleteNoteCommand,
    UpdateNoteCommand,
)
from score_editor.core.commands.properties import (
    SetBpmCommand,
    SetClefCommand,
    SetKeySignatureCommand,
    SetTimeSignatureCommand,
    SetTitleCommand,
)
from score_editor.core.commands.transpose import TransposeSelectionCommand
from score_editor.core.commands.tuplets import ApplyTupletCommand, RemoveTupletCommand

__all__ = [
    "Command",
    "CommandType",
    "BatchCommand",
    "AddEventCommand",
    "InsertEventCommand",
    "DeleteEventCommand",
    "UpdateEventCommand",
    "AddNoteToEventCommand",
    "UpdateNoteCommand",
    "ChangePitchCommand",
    "DeleteNoteCommand",
    "AddMeasureCommand",
    "DeleteMeasureCommand",
    "TransposeSelectionCommand",
    "ApplyTupletCommand",
    "RemoveTupletCommand",
    "SetBpmCommand",
    "SetTitleCommand",
    "SetKeySignatureCommand",
    "SetClefCommand",
    "SetTimeSignatureCommand",
]
