"""
Tests for the Score document model.
"""

import pytest

from score_editor.config import get_config
from score_editor.core.score import (
    Event,
    Measure,
    Note,
    Score,
    Tuplet,
    create_default_score,
    get_active_staff,
    get_measure,
    with_event,
)

from conftest import build_score, note_event, quarters, rest_event


class TestModelValidation:
    """Tests for model validation."""

    def test_unknown_duration(self):
        """Test that an event with an unknown duration raises."""
        with pytest.raises(ValueError):
            Event(id="e", duration="double-whole")

    def test_duplicate_pitches(self):
        """Test that a chord cannot hold the same pitch twice."""
        with pytest.raises(ValueError):
            note_event("C4", "C4")

    def test_bad_tuplet(self):
        """Test that an invalid tuplet ratio raises."""
        with pytest.raises(ValueError):
            Tuplet((3, 0), 3, 0, "t")

    def test_quants(self):
        """Test event and measure lengths."""
        measure = Measure(id="m", events=(note_event("C4", duration="half"), rest_event("quarter")))
        assert measure.quants == 48
        assert measure.events[0].quants == 32


class TestDefaultScore:
    """Tests for create_default_score."""

    def test_single_staff(self):
        """Test defaults from configuration."""
        score = create_default_score()
        assert score.title == "Untitled"
        assert score.time_signature == "4/4"
        assert len(score.staves) == 1
        assert score.staves[0].clef == "treble"
        assert len(score.staves[0].measures) == 1

    def test_grand_staff(self):
        """Test a grand staff score."""
        score = create_default_score(grand_staff=True, measure_count=2)
        assert [s.clef for s in score.staves] == ["treble", "bass"]
        assert all(len(s.measures) == 2 for s in score.staves)

    def test_config_defaults(self):
        """Test that score defaults come from the configuration."""
        get_config().score.time_signature = "3/4"
        get_config().score.bpm = 90
        score = create_default_score()
        assert score.time_signature == "3/4"
        assert score.bpm == 90


class TestAccessors:
    """Tests for accessors and structural sharing."""

    def test_get_measure_bounds(self):
        """Test out-of-range lookups."""
        score = build_score([quarters("C4")])
        assert get_measure(score, 0, 0) is not None
        assert get_measure(score, 0, 1) is None
        assert get_measure(score, 3, 0) is None
        assert get_measure(score, 0, None) is None

    def test_active_staff_fallback(self):
        """Test that an invalid staff index falls back to staff 0."""
        score = build_score([quarters("C4")])
        assert get_active_staff(score, 5) is score.staves[0]

    def test_structural_sharing(self):
        """Test that untouched measures keep their identity."""
        score = build_score([quarters("C4"), quarters("D4")])
        event = score.staves[0].measures[0].events[0]
        updated = with_event(score, 0, 0, 0, Event(id=event.id, duration="half",
                                                   notes=(Note(id="x", pitch="C4"),)))
        assert updated is not score
        assert updated.staves[0].measures[1] is score.staves[0].measures[1]
        assert score.staves[0].measures[0].events[0].duration == "quarter"


class TestSerialization:
    """Tests for to_dict / from_dict."""

    def test_round_trip(self):
        """Test that a score survives a JSON round trip."""
        score = build_score([[note_event("C4", "E4"), rest_event("quarter", event_id="r1")]],
                            [[note_event("C3", duration="half", tied=True)]])
        restored = Score.from_json(score.to_json())
        assert restored == score

    def test_snapshot_keys(self):
        """Test the camelCase snapshot layout."""
        data = build_score([quarters("C4")]).to_dict()
        assert set(data) == {"title", "keySignature", "timeSignature", "bpm", "staves"}
        assert "isRest" in data["staves"][0]["measures"][0]["events"][0]

    def test_legacy_measures(self):
        """Test migration of a root-level measures list."""
        data = {
            "title": "Old",
            "timeSignature": "3/4",
            "measures": [{"id": "m1", "events": [
                {"id": "e1", "duration": "quarter", "notes": [{"id": "n1", "pitch": "G4"}]},
            ]}],
        }
        score = Score.from_dict(data)
        assert len(score.staves) == 1
        assert score.staves[0].measures[0].events[0].notes[0].pitch == "G4"

    def test_empty_document(self):
        """Test that a document without staves gets one empty staff."""
        score = Score.from_dict({})
        assert len(score.staves) == 1
        assert len(score.staves[0].measures) == 1

    def test_rest_without_notes(self):
        """Test that a legacy rest without notes gets a pitchless note."""
        event = Event.from_dict({"id": "r", "duration": "half", "isRest": True})
        assert len(event.notes) == 1
        assert event.notes[0].pitch is None

    def test_tuplet_id_migration(self):
        """Test that legacy tuplets get one shared id per bracket."""
        tup = {"ratio": [3, 2], "groupSize": 3}
        data = {"id": "m", "events": [
            {"id": f"e{i}", "duration": "eighth", "notes": [{"id": f"n{i}", "pitch": "C4"}],
             "tuplet": {**tup, "position": i % 3}}
            for i in range(6)
        ]}
        measure = Measure.from_dict(data)
        ids = [e.tuplet.id for e in measure.events]
        assert ids[0] == ids[1] == ids[2]
        assert ids[3] == ids[4] == ids[5]
        assert ids[0] != ids[3]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
