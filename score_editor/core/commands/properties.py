"""
Score property commands: tempo, title, key, clef and time signature.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Tuple

from score_editor.core.commands.base import Command, CommandType
from score_editor.core.reflow import oversized_tuplets, reflow_score
from score_editor.core.score import Score, Staff, with_staff

logger = logging.getLogger(__name__)

MIN_BPM = 10
MAX_BPM = 500


class SetBpmCommand(Command):
    """Set the tempo, clamped to 10-500 BPM."""

    type = CommandType.SET_BPM

    def __init__(self, bpm: int):
        self.bpm = max(MIN_BPM, min(MAX_BPM, int(bpm)))
        self._previous: Optional[int] = None

    def execute(self, score: Score) -> Score:
        if score.bpm == self.bpm:
            return score
        self._previous = score.bpm
        return replace(score, bpm=self.bpm)

    def undo(self, score: Score) -> Score:
        if self._previous is None:
            return score
        return replace(score, bpm=self._previous)


class SetTitleCommand(Command):
    """Rename the score."""

    type = CommandType.SET_TITLE

    def __init__(self, title: str):
        self.title = title
        self._previous: Optional[str] = None

    def execute(self, score: Score) -> Score:
        if score.title == self.title:
            return score
        self._previous = score.title
        return replace(score, title=self.title)

    def undo(self, score: Score) -> Score:
        if self._previous is None:
            return score
        return replace(score, title=self._previous)


class SetKeySignatureCommand(Command):
    """Change the key signature of the score and all its staves."""

    type = CommandType.SET_KEY_SIGNATURE

    def __init__(self, key_signature: str):
        self.key_signature = key_signature
        self._previous: Optional[Tuple[str, Tuple[str, ...]]] = None

    def execute(self, score: Score) -> Score:
        if score.key_signature == self.key_signature and all(
            s.key_signature == self.key_signature for s in score.staves
        ):
            return score
        self._previous = (score.key_signature, tuple(s.key_signature for s in score.staves))
        staves = tuple(replace(s, key_signature=self.key_signature) for s in score.staves)
        return replace(score, key_signature=self.key_signature, staves=staves)

    def undo(self, score: Score) -> Score:
        if self._previous is None:
            return score
        score_key, staff_keys = self._previous
        staves = tuple(
            replace(s, key_signature=staff_keys[i]) if i < len(staff_keys) else s
            for i, s in enumerate(score.staves)
        )
        return replace(score, key_signature=score_key, staves=staves)


class SetClefCommand(Command):
    """Change one staff's clef."""

    type = CommandType.SET_CLEF

    def __init__(self, clef: str, staff_index: int = 0):
        self.clef = clef
        self.staff_index = staff_index
        self._previous: Optional[str] = None

    def execute(self, score: Score) -> Score:
        if not 0 <= self.staff_index < len(score.staves):
            return score
        staff = score.staves[self.staff_index]
        if staff.clef == self.clef:
            return score
        self._previous = staff.clef
        return with_staff(score, self.staff_index, replace(staff, clef=self.clef))

    def undo(self, score: Score) -> Score:
        if self._previous is None or not 0 <= self.staff_index < len(score.staves):
            return score
        staff = score.staves[self.staff_index]
        return with_staff(score, self.staff_index, replace(staff, clef=self._previous))


class SetTimeSignatureCommand(Command):
    """Change the time signature and reflow every staff."""

    type = CommandType.SET_TIME_SIGNATURE

    def __init__(self, time_signature: str):
        self.time_signature = time_signature
        self._previous: Optional[Tuple[str, Tuple[Staff, ...]]] = None

    def execute(self, score: Score) -> Score:
        if score.time_signature == self.time_signature:
            return score
        if oversized_tuplets(score, self.time_signature):
            logger.debug(f"Time signature {self.time_signature} rejected: a tuplet is longer than a measure")
            return score
        self._previous = (score.time_signature, score.staves)
        return reflow_score(score, self.time_signature)

    def undo(self, score: Score) -> Score:
        if self._previous is None:
            return score
        time_signature, staves = self._previous
        return replace(score, time_signature=time_signature, staves=staves)

    @property
    def description(self) -> str:
        return f"Time Signature {self.time_signature}"
