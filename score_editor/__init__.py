"""
Score Editor Core

Document model, command engine, selection state machine and reflow
engine behind an interactive music notation editor.
"""

__version__ = "1.0.0"

from score_editor.config import Config
from score_editor.core.engine import ScoreEngine
from score_editor.core.score import Score
from score_editor.registry import EditorRegistry
from score_editor.selection.engine import SelectionEngine
from score_editor.session import EditorSession

__all__ = [
    "Score",
    "Config",
    "ScoreEngine",
    "SelectionEngine",
    "EditorSession",
    "EditorRegistry",
    "__version__",
]
