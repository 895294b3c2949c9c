"""
Shared builders for tests.
"""

import itertools

import pytest

from score_editor.config import Config, set_config
from score_editor.core.score import Event, Measure, Note, Score, Staff, make_rest

_ids = itertools.count(1)


def note_event(*pitches, duration="quarter", dotted=False, event_id=None, tied=False, tuplet=None):
    """Build a note or chord event with predictable ids."""
    n = next(_ids)
    event_id = event_id or f"e{n}"
    notes = tuple(
        Note(id=f"{event_id}-n{i}", pitch=p, tied=tied) for i, p in enumerate(pitches)
    )
    return Event(id=event_id, duration=duration, dotted=dotted, notes=notes, tuplet=tuplet)


def rest_event(duration="quarter", dotted=False, event_id=None):
    event = make_rest(duration, dotted)
    if event_id is None:
        return event
    return Event(id=event_id, duration=duration, dotted=dotted, is_rest=True,
                 notes=(Note(id=f"{event_id}-n0"),))


def build_score(*staves, clefs=None, time_signature="4/4", key_signature="C", pickup=False):
    """
    Build a score from lists of measures, each a list of events.

    build_score([[e1, e2], [e3]]) gives one staff with two measures.
    """
    clefs = clefs or ("treble", "bass", "treble", "bass")[:len(staves)]
    built = []
    for s, (measures, clef) in enumerate(zip(staves, clefs)):
        built.append(Staff(
            id=f"staff{s}",
            clef=clef,
            key_signature=key_signature,
            measures=tuple(
                Measure(id=f"s{s}m{i}", events=tuple(events), is_pickup=pickup and i == 0)
                for i, events in enumerate(measures)
            ),
        ))
    return Score(title="Test", key_signature=key_signature, time_signature=time_signature,
                 staves=tuple(built))


def quarters(*pitches):
    return [note_event(p) for p in pitches]


@pytest.fixture(autouse=True)
def fresh_config(tmp_path):
    """Every test starts from default configuration stored in a temp dir."""
    set_config(Config(_config_dir=tmp_path))
    yield
    set_config(None)
