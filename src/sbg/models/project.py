"""Generation run state model."""

from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, Field

from .artifacts import DialogueLine, GeneratedSceneImage, StoryElements
from .character import AnalyzedCharacter, CharacterReference
from .scene import Script


class RunState(str, Enum):
    """Pipeline stage enum, in execution order."""
    INIT = "init"
    ANALYZING_STORY = "analyzing_story"
    GENERATING_SCRIPT = "generating_script"
    ANALYZING_CHARACTERS = "analyzing_characters"
    GENERATING_PORTRAITS = "generating_portraits"
    GENERATING_PROMPTS = "generating_prompts"
    GENERATING_SCENES = "generating_scenes"
    ASSOCIATING_DIALOGUE = "associating_dialogue"
    REWRITING_DIALOGUE = "rewriting_dialogue"
    COMPLETED = "completed"
    FAILED = "failed"


class RunResult(BaseModel):
    """Everything a run produced, complete or partial."""

    state: RunState = Field(default=RunState.INIT, description="Current or final state")
    style: str = Field(default="", description="Style prompt used for image generation")
    story_elements: Optional[StoryElements] = Field(None, description="Story analysis result")
    script: Optional[Script] = Field(None, description="Generated script")
    analyzed_characters: List[AnalyzedCharacter] = Field(default_factory=list)
    portraits: List[CharacterReference] = Field(default_factory=list, description="Generated character portraits")
    scene_images: List[GeneratedSceneImage] = Field(default_factory=list, description="Scene images by scene index")
    skipped_scenes: List[int] = Field(default_factory=list, description="Scene indices skipped for capacity")
    dialogue_lines: List[DialogueLine] = Field(default_factory=list, description="One line per associated scene")
    report: str = Field(default="", description="Rendered generation report")
    error: Optional[str] = Field(None, description="Terminal error message")

    class Config:
        """Pydantic config."""
        frozen = False

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.COMPLETED

    def dialogue_for_scene(self, scene_index: int) -> Optional[DialogueLine]:
        """Return the dialogue line paired with a scene image, if any."""
        for line in self.dialogue_lines:
            if line.scene_index == scene_index:
                return line
        return None
