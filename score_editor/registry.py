"""
Registry of open editor sessions keyed by id.

The backing mapping is injected, so callers decide its lifetime; there is
no process-wide instance.
"""

from __future__ import annotations

import logging
from typing import Iterator, MutableMapping, Optional

from score_editor.config import Config
from score_editor.core.score import Score, new_id
from score_editor.session import EditorSession

logger = logging.getLogger(__name__)


class EditorRegistry:
    """Keeps EditorSession objects by id."""

    def __init__(self, instances: Optional[MutableMapping[str, EditorSession]] = None):
        self._instances = instances if instances is not None else {}

    def register(self, editor_id: str, session: EditorSession) -> EditorSession:
        """Add or replace a session."""
        if editor_id in self._instances:
            logger.debug(f"Replacing editor session {editor_id}")
        self._instances[editor_id] = session
        return session

    def create(self, editor_id: Optional[str] = None, score: Optional[Score] = None,
               config: Optional[Config] = None) -> EditorSession:
        """Create a session for a score and register it."""
        return self.register(editor_id or new_id("editor"), EditorSession(score, config=config))

    def get(self, editor_id: str) -> EditorSession:
        """
        Look up a session.

        Raises:
            KeyError: If no session has this id
        """
        if editor_id not in self._instances:
            raise KeyError(f"No editor registered with id {editor_id!r}")
        return self._instances[editor_id]

    def remove(self, editor_id: str) -> Optional[EditorSession]:
        """Unregister a session and detach it from its engine."""
        session = self._instances.pop(editor_id, None)
        if session is not None:
            session.close()
        return session

    def ids(self):
        return list(self._instances)

    def __contains__(self, editor_id) -> bool:
        return editor_id in self._instances

    def __len__(self) -> int:
        return len(self._instances)

    def __iter__(self) -> Iterator[str]:
        return iter(self._instances)
