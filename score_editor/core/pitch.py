"""
Pitch helpers built on music21.

Pitches are stored in the score as scientific pitch names with 'b'
for flats ("C4", "F#5", "Bb3"); music21 spells flats with '-', so
names are translated at this boundary.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, Optional, Tuple

from music21 import pitch, key
from music21.exceptions21 import Music21Exception

logger = logging.getLogger(__name__)


# Chromatic ladder bounds (MIDI numbers) per clef
CLEF_RANGES: Dict[str, Tuple[int, int]] = {
    "treble": (48, 96),   # C3 - C7
    "bass": (24, 72),     # C1 - C5
    "alto": (36, 84),     # C2 - C6
    "tenor": (36, 84),
}

# Middle-line pitch used for ghost cursors on an empty staff
CLEF_DEFAULT_PITCHES: Dict[str, str] = {
    "treble": "B4",
    "bass": "D3",
    "alto": "C4",
    "tenor": "A3",
}

DEFAULT_MIDI = 60


def to_music21_name(name: str) -> str:
    """Convert an editor pitch name to music21 spelling ("Bb4" -> "B-4")."""
    if not name:
        return name
    return name[0] + name[1:].replace("b", "-")


def from_music21_name(name: str) -> str:
    """Convert a music21 pitch name to editor spelling ("B-4" -> "Bb4")."""
    return name.replace("-", "b")


def pitch_to_midi(pitch_name: Optional[str], default: int = DEFAULT_MIDI) -> int:
    """
    Convert pitch name to MIDI number.

    Args:
        pitch_name: Pitch name like "C4", "F#5", "Bb3"; None for rests
        default: Value returned for rests

    Returns:
        MIDI note number
    """
    if pitch_name is None:
        return default
    return pitch.Pitch(to_music21_name(pitch_name)).midi


def key_uses_flats(key_signature: str) -> bool:
    """Whether a key signature spells accidentals as flats."""
    return key_sharps(key_signature) < 0


@lru_cache(maxsize=64)
def key_sharps(key_signature: str) -> int:
    """
    Number of sharps (negative for flats) in a key signature.

    Accepts "C", "G", "Bb", "F#", and minor keys as "Am" or "a".
    Unknown keys are treated as C major.
    """
    name = key_signature or "C"
    if len(name) > 1 and name.endswith("m"):
        name = name[:-1].lower()
    name = to_music21_name(name)
    try:
        return key.Key(name).sharps
    except (Music21Exception, ValueError) as e:
        logger.warning(f"Invalid key signature '{key_signature}', using C: {e}")
        return 0


def midi_to_pitch(midi_number: int, key_signature: str = "C") -> str:
    """
    Convert MIDI number to a pitch name spelled for a key.

    Args:
        midi_number: MIDI note number (0-127)
        key_signature: Key used to choose sharps or flats

    Returns:
        Pitch name like "C#4" or "Db4"
    """
    p = pitch.Pitch(midi=midi_number)
    if p.accidental is not None:
        wanted = "flat" if key_uses_flats(key_signature) else "sharp"
        if p.accidental.name != wanted:
            p = p.getEnharmonic()
    return from_music21_name(p.nameWithOctave)


@lru_cache(maxsize=64)
def pitch_ladder(clef: str = "treble", key_signature: str = "C") -> Tuple[str, ...]:
    """Chromatic pitch ladder for a clef, lowest first."""
    low, high = CLEF_RANGES.get(clef, CLEF_RANGES["treble"])
    return tuple(midi_to_pitch(m, key_signature) for m in range(low, high + 1))


def transpose_pitch(
    pitch_name: Optional[str],
    semitones: int,
    clef: str = "treble",
    key_signature: str = "C",
) -> Optional[str]:
    """
    Shift a pitch along the clef's chromatic ladder, clamping at its ends.

    Rests (None) are returned unchanged.
    """
    if pitch_name is None or semitones == 0:
        return pitch_name

    ladder = pitch_ladder(clef, key_signature)
    low, _ = CLEF_RANGES.get(clef, CLEF_RANGES["treble"])
    index = pitch_to_midi(pitch_name) - low
    index = max(0, min(len(ladder) - 1, index))
    target = max(0, min(len(ladder) - 1, index + semitones))
    return ladder[target]


def default_pitch_for_clef(clef: str) -> str:
    """Pitch placed under a ghost cursor on a staff with this clef."""
    return CLEF_DEFAULT_PITCHES.get(clef, CLEF_DEFAULT_PITCHES["treble"])


def rest_midi(clef: str) -> int:
    """Vertical position used for rests when ordering notes by pitch."""
    return 48 if clef == "bass" else 71
