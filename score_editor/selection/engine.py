"""
Selection engine - holds the current Selection and notifies listeners.

Selection changes are not recorded in the undo history.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from score_editor.core.score import Score
from score_editor.selection.commands import SelectionCommand
from score_editor.selection.model import Selection, create_default_selection

logger = logging.getLogger(__name__)

SelectionListener = Callable[[Selection], None]
ScoreGetter = Callable[[], Score]


class SelectionEngine:
    """State holder for the editor selection."""

    def __init__(self, initial: Optional[Selection] = None, score_getter: Optional[ScoreGetter] = None):
        """
        Initialize the engine.

        Args:
            initial: Starting selection (empty when omitted)
            score_getter: Returns the score commands operate on
        """
        self._state = initial if initial is not None else create_default_selection()
        self._score_getter = score_getter
        self._listeners: List[SelectionListener] = []

    def get_state(self) -> Selection:
        return self._state

    def set_state(self, selection: Selection) -> None:
        """Replace the selection and notify listeners."""
        self._state = selection
        self._notify()

    def set_score_getter(self, score_getter: ScoreGetter) -> None:
        self._score_getter = score_getter

    def subscribe(self, listener: SelectionListener) -> Callable[[], None]:
        """
        Register a listener called with the new Selection.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, command: SelectionCommand) -> bool:
        """
        Run a selection command against the current score.

        Returns:
            True if the selection changed
        """
        if self._score_getter is None:
            logger.warning(f"No score available for {command.description}")
            return False

        new_state = command.execute(self._state, self._score_getter())
        if new_state is self._state:
            return False
        self._state = new_state
        self._notify()
        return True

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Selection listener failed")
