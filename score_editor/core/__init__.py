"""
Core module for the score editor.

Contains the Score model, rhythm and pitch helpers, the command engine
and the reflow engine.
"""

from score_editor.core.engine import ScoreEngine, TransactionError
from score_editor.core.entry import EntryResult, enter_event
from score_editor.core.reflow import reflow_measures, reflow_score
from score_editor.core.score import (
    Event,
    Measure,
    Note,
    Score,
    Staff,
    Tuplet,
    create_default_score,
)

__all__ = [
    "Score",
    "Staff",
    "Measure",
    "Event",
    "Note",
    "Tuplet",
    "create_default_score",
    "ScoreEngine",
    "TransactionError",
    "enter_event",
    "EntryResult",
    "reflow_measures",
    "reflow_score",
]
