"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from sbg.errors import AuthenticationFailure, ServiceFailure
from sbg.models import (
    Action,
    AnalyzedCharacter,
    CharacterReference,
    CohesivePrompt,
    DialogueBlock,
    DialoguePart,
    ImageResult,
    ReferenceOrigin,
    SceneHeading,
    Script,
    StoryElements,
    Transition,
)
from sbg.pipeline import PipelineAgents


class FakeImageClient:
    """Records every request and returns deterministic image bytes.

    Prompts containing a ``fail_on`` marker raise ServiceFailure, prompts
    containing a ``blocked_on`` marker come back empty and flagged as
    rewritten for safety.
    """

    def __init__(self, fail_on=(), blocked_on=(), auth_fail=False):
        self.fail_on = fail_on
        self.blocked_on = blocked_on
        self.auth_fail = auth_fail
        self.calls = []

    async def generate_image(
        self,
        prompt,
        character_images=(),
        continuity_image=None,
        style=None,
        aspect_ratio="1:1",
    ):
        self.calls.append({
            "prompt": prompt,
            "character_images": list(character_images),
            "continuity_image": continuity_image,
            "style": style,
            "aspect_ratio": aspect_ratio,
        })
        final_prompt = f"Style: {style or 'cinematic, photorealistic'}. {prompt}"

        if self.auth_fail:
            raise AuthenticationFailure()
        if any(marker in prompt for marker in self.fail_on):
            raise ServiceFailure("image service unavailable")
        if any(marker in prompt for marker in self.blocked_on):
            return ImageResult(final_prompt=final_prompt, was_rewritten=True)

        return ImageResult(image_bytes=f"image:{prompt}".encode(), final_prompt=final_prompt)

    def scene_calls(self):
        return [c for c in self.calls if not c["prompt"].startswith("Photorealistic, cinematic, full body portrait")]

    def portrait_calls(self):
        return [c for c in self.calls if c["prompt"].startswith("Photorealistic, cinematic, full body portrait")]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_script() -> Script:
    """Script with three illustrated actions across two scenes.

    Index 1 and 3 both sit next to JANE's block at index 2; index 5 has no
    dialogue before the next boundary.
    """
    return Script(
        title="Moon Story",
        scene_elements=[
            SceneHeading(content="INT. LAB - NIGHT"),
            Action(content="Jane enters the dark lab."),
            DialogueBlock(
                character="Jane",
                elements=[
                    DialoguePart(type="parenthetical", content="whispering"),
                    DialoguePart(type="dialogue", content="Is anyone here? Hello."),
                ],
            ),
            Action(content="John switches on the lights."),
            SceneHeading(content="EXT. MOON - DAY"),
            Action(content="The artifact glows."),
            Transition(content="CUT TO:"),
        ],
    )


@pytest.fixture
def sample_story() -> StoryElements:
    return StoryElements(
        characters="Jane, a curious scientist. John, her cautious partner.",
        story="Two scientists study an artifact on the moon.",
        today="The artifact wakes up.",
    )


@pytest.fixture
def jane_upload() -> CharacterReference:
    return CharacterReference(name="jane", image_bytes=b"jane-upload", origin=ReferenceOrigin.UPLOADED)


@pytest.fixture
def sample_prompts() -> list[CohesivePrompt]:
    return [
        CohesivePrompt(scene_index=1, prompt="Jane steps into a dark lab", characters=["Jane"]),
        CohesivePrompt(scene_index=3, prompt="John flips a switch", characters=["John"]),
        CohesivePrompt(scene_index=5, prompt="A glowing artifact on grey dust", characters=[]),
    ]


@pytest.fixture
def image_client() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def agents(sample_story, sample_script, sample_prompts) -> PipelineAgents:
    """Text-stage agents backed by AsyncMock with a happy-path script."""
    from sbg.agents import RewrittenLine

    story = MagicMock()
    story.run = AsyncMock(return_value=sample_story)

    script = MagicMock()
    script.run = AsyncMock(return_value=sample_script)
    script.build_prompt = MagicMock(return_value="Write a script about the moon.")

    characters = MagicMock()
    characters.run = AsyncMock(return_value=[
        AnalyzedCharacter(name="Jane", gender="female"),
        AnalyzedCharacter(name="John", gender="male", other_descriptors="tall"),
    ])

    prompts = MagicMock()
    prompts.run = AsyncMock(return_value=sample_prompts)

    dialogue = MagicMock()
    dialogue.run = AsyncMock(return_value=[
        RewrittenLine(character="JANE", dialogue="Is anyone here?"),
        RewrittenLine(character="JANE", dialogue="Wait, am I just a storyboard panel?"),
    ])

    return PipelineAgents(
        story=story,
        script=script,
        characters=characters,
        prompts=prompts,
        dialogue=dialogue,
    )


@pytest.fixture
def make_text_client():
    """Factory for stand-in AnthropicClients whose create_message returns a fixed reply."""
    def _make(reply: str) -> MagicMock:
        client = MagicMock()
        client.create_message = AsyncMock(return_value=reply)
        return client
    return _make


@pytest.fixture
def make_image_client():
    """Factory for FakeImageClients with failure markers."""
    return FakeImageClient
