"""
Tests for horizontal and vertical cursor navigation.
"""

import pytest

from score_editor.selection.model import PreviewMode, PreviewNote, Selection
from score_editor.selection.navigation import (
    calculate_next_selection,
    calculate_vertical_navigation,
    navigate_selection,
)

from conftest import build_score, note_event, quarters


def focus(staff_index, measure_index, event_id, note_index=0):
    return Selection(staff_index, measure_index, event_id, f"{event_id}-n{note_index}")


def ghost(measure_index, quant, staff_index=0, pitch="B4", index=0):
    return PreviewNote(measure_index=measure_index, staff_index=staff_index, quant=quant,
                       pitch=pitch, duration="quarter", index=index)


class TestNavigateSelection:
    """Tests for the plain horizontal step."""

    def test_detached_cursor_snaps(self):
        """Test that an append position snaps to the nearest event."""
        score = build_score([[note_event("C4", event_id="a"), note_event("D4", event_id="b")]])
        measures = score.staves[0].measures
        left = navigate_selection(measures, Selection(0, 0), "left")
        right = navigate_selection(measures, Selection(0, 0), "right")
        assert left.event_id == "b"
        assert right.event_id == "a"

    def test_empty_measures(self):
        """Test moving an append position through empty measures."""
        score = build_score([[], []])
        measures = score.staves[0].measures
        start = Selection(0, 1)
        moved = navigate_selection(measures, start, "left")
        assert moved.measure_index == 0
        assert navigate_selection(measures, moved, "left") is moved

    def test_no_measure(self):
        """Test that a selection without a measure is unchanged."""
        score = build_score([[]])
        state = Selection()
        assert navigate_selection(score.staves[0].measures, state, "right") is state


class TestHorizontalGhost:
    """Tests for calculate_next_selection."""

    def _half_full(self):
        return build_score([[note_event("C4", event_id="a"), note_event("D4", event_id="b")]])

    def test_ghost_after_last_event(self):
        """Test that moving right off the last event shows a ghost cursor."""
        score = self._half_full()
        result = calculate_next_selection(score.staves[0].measures, focus(0, 0, "b"), "right")
        assert result.selection.event_id is None
        preview = result.preview_note
        assert (preview.measure_index, preview.quant, preview.index) == (0, 32, 2)
        assert preview.pitch == "D4"
        assert preview.mode == PreviewMode.APPEND
        assert not result.should_create_measure

    def test_ghost_duration_clamped(self):
        """Test that the ghost duration is clamped to the free space."""
        score = self._half_full()
        result = calculate_next_selection(score.staves[0].measures, focus(0, 0, "b"), "right",
                                          active_duration="whole")
        assert result.preview_note.duration == "half"

    def test_rest_mode(self):
        """Test that REST input mode marks the ghost as a rest."""
        score = self._half_full()
        result = calculate_next_selection(score.staves[0].measures, focus(0, 0, "b"), "right",
                                          input_mode="REST")
        assert result.preview_note.is_rest

    def test_request_new_measure(self):
        """Test that a full last measure asks for a new measure."""
        score = build_score([[note_event(p, event_id=f"e{i}") for i, p in enumerate(("C4", "D4", "E4", "F4"))]])
        result = calculate_next_selection(score.staves[0].measures, focus(0, 0, "e3"), "right")
        assert result.should_create_measure
        assert (result.preview_note.measure_index, result.preview_note.quant) == (1, 0)

    def test_ghost_in_empty_next_measure(self):
        """Test that a full measure followed by an empty one puts the ghost there."""
        score = build_score([[note_event(p, event_id=f"e{i}") for i, p in enumerate(("C4", "D4", "E4", "F4"))], []])
        result = calculate_next_selection(score.staves[0].measures, focus(0, 0, "e3"), "right")
        assert not result.should_create_measure
        assert (result.preview_note.measure_index, result.preview_note.quant) == (1, 0)

    def test_ghost_left_snaps_back(self):
        """Test that moving left from a ghost selects the event before it."""
        score = self._half_full()
        result = calculate_next_selection(score.staves[0].measures, Selection(0), "left",
                                          preview_note=ghost(0, 32, index=2))
        assert result.selection.event_id == "b"
        assert result.preview_note is None

    def test_ghost_right_requests_measure(self):
        """Test that moving right from a ghost in the last measure asks for a measure."""
        score = self._half_full()
        result = calculate_next_selection(score.staves[0].measures, Selection(0), "right",
                                          preview_note=ghost(0, 32, index=2))
        assert result.should_create_measure
        assert result.preview_note.measure_index == 1

    def test_ghost_right_to_next_event(self):
        """Test that moving right from a ghost lands on the next measure's first event."""
        score = build_score([quarters("C4"), [note_event("G4", event_id="n")]])
        result = calculate_next_selection(score.staves[0].measures, Selection(0), "right",
                                          preview_note=ghost(0, 16, index=1))
        assert (result.selection.measure_index, result.selection.event_id) == (1, "n")

    def test_left_into_unfilled_measure(self):
        """Test that moving left from a measure start shows a ghost in the previous measure."""
        score = build_score([quarters("C4"), [note_event("G4", event_id="n")]])
        result = calculate_next_selection(score.staves[0].measures, focus(0, 1, "n"), "left")
        assert result.preview_note.measure_index == 0
        assert result.preview_note.quant == 16

    def test_step_between_events(self):
        """Test a plain step inside a measure."""
        score = self._half_full()
        result = calculate_next_selection(score.staves[0].measures, focus(0, 0, "a"), "right")
        assert result.selection.event_id == "b"
        assert result.preview_note is None

    def test_first_event_boundary(self):
        """Test that moving left from the very first event changes nothing."""
        score = self._half_full()
        assert calculate_next_selection(score.staves[0].measures, focus(0, 0, "a"), "left") is None


class TestVertical:
    """Tests for calculate_vertical_navigation."""

    def test_chord_handoff(self):
        """Test handing focus to a chord symbol above the top note."""
        score = build_score([[note_event("G4", event_id="a"), note_event("C4", "E4", event_id="b")]])
        result = calculate_vertical_navigation(score, focus(0, 0, "b", 1), "up",
                                               chord_quants={16: "chord-1"})
        assert result.handoff == "chord-1"
        assert result.selection.selected_notes == ()

    def test_chord_internal_before_handoff(self):
        """Test that chord traversal happens before the handoff."""
        score = build_score([[note_event("G4", event_id="a"), note_event("C4", "E4", event_id="b")]])
        result = calculate_vertical_navigation(score, focus(0, 0, "b", 0), "up",
                                               chord_quants={16: "chord-1"})
        assert result.handoff is None
        assert result.selection.note_id == "b-n1"

    def test_cross_staff_containment(self):
        """Test that the target is the event sounding at the start quant, top note first."""
        score = build_score(
            [[note_event("G4", "B4", duration="half", event_id="g")]],
            [[note_event("C3", event_id="l1"), note_event("E3", event_id="l2")]],
        )
        result = calculate_vertical_navigation(score, focus(1, 0, "l2"), "up")
        assert (result.selection.staff_index, result.selection.event_id) == (0, "g")
        assert result.selection.note_id == "g-n1"

    def test_ghost_on_target_staff(self):
        """Test a ghost cursor when the other staff has nothing at that quant."""
        score = build_score(
            [[note_event("G4", event_id="t")]],
            [[note_event("C3", event_id="l1"), note_event("E3", event_id="l2")]],
        )
        result = calculate_vertical_navigation(score, focus(1, 0, "l2"), "up", active_duration="whole")
        preview = result.preview_note
        assert result.selection.event_id is None
        assert (preview.staff_index, preview.measure_index, preview.quant) == (0, 0, 16)
        assert preview.pitch == "B4"
        assert (preview.duration, preview.dotted) == ("half", True)

    def test_cycle_to_bottom_staff(self):
        """Test that up from the top staff cycles to the bottom staff."""
        score = build_score(
            [[note_event("G4", event_id="t")]],
            [[note_event("C3", "G3", event_id="l1")]],
        )
        result = calculate_vertical_navigation(score, focus(0, 0, "t"), "up")
        assert (result.selection.staff_index, result.selection.note_id) == (1, "l1-n1")

    def test_single_staff_top(self):
        """Test that up from a single-staff top note changes nothing."""
        score = build_score([[note_event("G4", event_id="t")]])
        assert calculate_vertical_navigation(score, focus(0, 0, "t"), "up") is None

    def test_ghost_moves_down(self):
        """Test a ghost cursor moving onto an aligned event below."""
        score = build_score(
            [[note_event("G4", event_id="t")]],
            [[note_event("C3", event_id="l1"), note_event("E3", "G3", event_id="l2")]],
        )
        result = calculate_vertical_navigation(score, Selection(0), "down",
                                               preview_note=ghost(0, 16, index=1))
        assert (result.selection.staff_index, result.selection.note_id) == (1, "l2-n0")

    def test_ghost_moves_to_empty_staff(self):
        """Test a ghost cursor moving to an empty staff takes its clef pitch."""
        score = build_score([[note_event("G4", event_id="t")]], [[]])
        result = calculate_vertical_navigation(score, Selection(0), "down",
                                               preview_note=ghost(0, 16, index=1))
        assert result.preview_note.staff_index == 1
        assert result.preview_note.pitch == "D3"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
