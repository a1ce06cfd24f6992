"""
Tests for scene-to-dialogue association.

Tests for sbg/pipeline/dialogue.py
"""

import pytest

from sbg.models import Action, DialogueAssociation, DialogueBlock, DialoguePart, SceneHeading, Script
from sbg.pipeline import DialogueTracker, find_dialogue_for_scene


def block(character: str, *lines: str) -> DialogueBlock:
    return DialogueBlock(
        character=character,
        elements=[DialoguePart(type="dialogue", content=line) for line in lines],
    )


class TestFindDialogueForScene:
    """Tests for the forward-then-backward dialogue search."""

    def test_forward_match(self, sample_script):
        match = find_dialogue_for_scene(1, sample_script)

        assert match.character == "JANE"
        assert match.text == "Is anyone here? Hello."
        assert match.source_element_index == 2

    def test_backward_match_when_forward_hits_heading(self, sample_script):
        match = find_dialogue_for_scene(3, sample_script)

        assert match.character == "JANE"
        assert match.source_element_index == 2

    def test_no_match_within_scene_boundaries(self, sample_script):
        assert find_dialogue_for_scene(5, sample_script) is None

    def test_backward_scan_stops_at_heading(self):
        script = Script(title="t", scene_elements=[
            Action(content="a"),
            block("A", "hello"),
            SceneHeading(content="INT. HALL"),
            Action(content="b"),
        ])

        assert find_dialogue_for_scene(0, script).character == "A"
        assert find_dialogue_for_scene(0, script).source_element_index == 1
        assert find_dialogue_for_scene(3, script) is None

    def test_skips_blocks_without_spoken_lines(self):
        script = Script(title="t", scene_elements=[
            Action(content="a"),
            DialogueBlock(character="Mute", elements=[DialoguePart(type="parenthetical", content="nods")]),
            block("Bob", "Fine."),
        ])

        match = find_dialogue_for_scene(0, script)
        assert match.character == "BOB"
        assert match.source_element_index == 2

    def test_uses_first_dialogue_part(self):
        script = Script(title="t", scene_elements=[Action(content="a"), block("Ann", "One.", "Two.")])
        assert find_dialogue_for_scene(0, script).text == "One."

    @pytest.mark.parametrize("index", [0, 2, 99, -1])
    def test_rejects_non_action_index(self, sample_script, index):
        with pytest.raises(ValueError):
            find_dialogue_for_scene(index, sample_script)


class TestDialogueTracker:
    """Tests for duplicate tracking."""

    def test_first_use_is_not_duplicate(self):
        tracker = DialogueTracker()
        line = tracker.track(DialogueAssociation(character="JANE", text="Hi.", source_element_index=2), 1)

        assert line.is_duplicate is False
        assert line.duplicate_count == 0
        assert line.scene_index == 1
        assert 2 in tracker

    def test_reuse_counts_earlier_uses(self):
        tracker = DialogueTracker()
        association = DialogueAssociation(character="JANE", text="Hi.", source_element_index=2)

        lines = [tracker.track(association, scene) for scene in (1, 3, 5)]

        assert [line.is_duplicate for line in lines] == [False, True, True]
        assert [line.duplicate_count for line in lines] == [0, 1, 2]

    def test_sources_tracked_independently(self):
        tracker = DialogueTracker()
        tracker.track(DialogueAssociation(character="A", text="x", source_element_index=1))
        line = tracker.track(DialogueAssociation(character="B", text="y", source_element_index=4))

        assert line.is_duplicate is False
        assert 3 not in tracker
