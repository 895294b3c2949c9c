"""
Score engine - owns the current Score, the undo/redo history and the
listeners notified after every change.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from score_editor.config import Config, get_config
from score_editor.core.commands.base import BatchCommand, Command
from score_editor.core.score import Score, create_default_score

logger = logging.getLogger(__name__)

ScoreListener = Callable[[Score], None]


class TransactionError(Exception):
    """Transaction API used out of order (commit/rollback without begin)."""


class ScoreEngine:
    """
    Single writer of the Score.

    Commands whose execute() returns the same Score object are treated
    as no-ops: they are not recorded and listeners are not called.
    """

    def __init__(
        self,
        score: Optional[Score] = None,
        max_history: Optional[int] = None,
        config: Optional[Config] = None,
    ):
        """
        Initialize the engine.

        Args:
            score: Initial score (an empty default score when omitted)
            max_history: Undo depth; defaults to config.history.max_history
            config: Configuration (application config when omitted)
        """
        self._config = config or get_config()
        self._score: Score = score if score is not None else create_default_score()
        self._max_history: int = max_history if max_history is not None else self._config.history.max_history

        self._undo_stack: List[Command] = []
        self._redo_stack: List[Command] = []
        self._listeners: List[ScoreListener] = []

        self._transaction_depth = 0
        self._transaction_snapshot: Optional[Score] = None
        self._transaction_description = ""

    # --- State ---

    def get_state(self) -> Score:
        return self._score

    def set_state(self, score: Score) -> None:
        """Replace the score without recording history (e.g. load)."""
        if score is self._score:
            return
        self._swap(score)

    @property
    def score(self) -> Score:
        return self._score

    def subscribe(self, listener: ScoreListener) -> Callable[[], None]:
        """
        Register a listener called with the new Score after each change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Dispatch ---

    def dispatch(self, command: Command) -> bool:
        """
        Execute a command and record it.

        Returns:
            True if the score changed
        """
        new_score = command.execute(self._score)
        if new_score is self._score:
            if self._config.debug.log_commands:
                logger.debug(f"No-op command: {command.description}")
            return False

        if self._config.debug.log_commands:
            logger.debug(f"Dispatch: {command.description}")

        if not self.in_transaction:
            self._push(command)
        self._swap(new_score)
        return True

    def undo(self) -> bool:
        """Undo last command. Returns True if successful."""
        self._ensure_idle("undo")
        if not self.can_undo():
            return False

        command = self._undo_stack.pop()
        self._swap(command.undo(self._score))
        self._redo_stack.append(command)
        logger.debug(f"Undo: {command.description}")
        return True

    def redo(self) -> bool:
        """Redo last undone command. Returns True if successful."""
        self._ensure_idle("redo")
        if not self.can_redo():
            return False

        command = self._redo_stack.pop()
        self._swap(command.execute(self._score))
        self._undo_stack.append(command)
        logger.debug(f"Redo: {command.description}")
        return True

    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    def get_undo_description(self) -> Optional[str]:
        """Get description of command that would be undone."""
        if self.can_undo():
            return self._undo_stack[-1].description
        return None

    def get_redo_description(self) -> Optional[str]:
        """Get description of command that would be redone."""
        if self.can_redo():
            return self._redo_stack[-1].description
        return None

    @property
    def history(self) -> List[Command]:
        return list(self._undo_stack)

    def clear_history(self) -> None:
        """Clear all command history."""
        self._undo_stack.clear()
        self._redo_stack.clear()

    # --- Transactions ---

    @property
    def in_transaction(self) -> bool:
        return self._transaction_depth > 0

    def begin_transaction(self, description: str = "Batch") -> None:
        """Start grouping dispatches into a single undo step. Nests."""
        if self._transaction_depth == 0:
            self._transaction_snapshot = self._score
            self._transaction_description = description
        self._transaction_depth += 1

    def commit(self) -> bool:
        """
        Close the current transaction.

        Returns:
            True if the outermost transaction recorded an undo step
        """
        if not self.in_transaction:
            raise TransactionError("commit() called without an open transaction")
        self._transaction_depth -= 1
        if self._transaction_depth > 0:
            return False

        before = self._transaction_snapshot
        self._transaction_snapshot = None
        if before is self._score:
            return False

        self._push(BatchCommand(before, self._score, self._transaction_description))
        logger.debug(f"Committed transaction: {self._transaction_description}")
        return True

    def rollback(self) -> None:
        """Abandon the current transaction and restore its starting score."""
        if not self.in_transaction:
            raise TransactionError("rollback() called without an open transaction")
        snapshot = self._transaction_snapshot
        self._transaction_depth = 0
        self._transaction_snapshot = None
        logger.debug(f"Rolled back transaction: {self._transaction_description}")
        if snapshot is not None and snapshot is not self._score:
            self._swap(snapshot)

    @contextmanager
    def transaction(self, description: str = "Batch") -> Iterator["ScoreEngine"]:
        """Group dispatches in a with-block; an exception rolls back."""
        self.begin_transaction(description)
        try:
            yield self
        except Exception:
            if self.in_transaction:
                self.rollback()
            raise
        else:
            if self.in_transaction:
                self.commit()

    # --- Internals ---

    def _push(self, command: Command) -> None:
        self._undo_stack.append(command)
        if len(self._undo_stack) > self._max_history:
            self._undo_stack.pop(0)
        self._redo_stack.clear()

    def _swap(self, score: Score) -> None:
        self._score = score
        if self._config.debug.log_state_changes:
            logger.debug(f"Score replaced ({len(score.staves)} staves, "
                         f"{len(score.staves[0].measures) if score.staves else 0} measures)")
        for listener in list(self._listeners):
            try:
                listener(score)
            except Exception:
                logger.exception("Score listener failed")

    def _ensure_idle(self, action: str) -> None:
        if self.in_transaction:
            raise TransactionError(f"Cannot {action} while a transaction is open")
