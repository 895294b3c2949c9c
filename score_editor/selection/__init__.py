"""
Selection state, selection commands and cursor navigation.
"""

from score_editor.selection.commands import (
    ClearSelectionCommand,
    CycleChordNoteCommand,
    ExtendSelectionVerticallyCommand,
    NavigateCommand,
    RangeSelectCommand,
    SelectAllCommand,
    SelectEventCommand,
    SelectionCommand,
    ToggleNoteCommand,
    resync_selection,
)
from score_editor.selection.engine import SelectionEngine
from score_editor.selection.model import PreviewMode, PreviewNote, SelectedNote, Selection
from score_editor.selection.navigation import (
    NavigationResult,
    calculate_next_selection,
    calculate_vertical_navigation,
    navigate_selection,
)

__all__ = [
    "Selection",
    "SelectedNote",
    "PreviewNote",
    "PreviewMode",
    "SelectionEngine",
    "SelectionCommand",
    "SelectEventCommand",
    "ToggleNoteCommand",
    "RangeSelectCommand",
    "NavigateCommand",
    "ExtendSelectionVerticallyCommand",
    "CycleChordNoteCommand",
    "SelectAllCommand",
    "ClearSelectionCommand",
    "resync_selection",
    "NavigationResult",
    "navigate_selection",
    "calculate_next_selection",
    "calculate_vertical_navigation",
]
