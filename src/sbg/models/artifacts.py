"""Intermediate and final artifacts produced by a generation run."""

from typing import Optional
from pydantic import BaseModel, Field


class StoryElements(BaseModel):
    """Story components extracted from uploaded text files."""

    characters: str = Field(..., description="Main characters, their personalities and relationships")
    story: str = Field(..., description="Core premise or background story of the series")
    today: str = Field(..., description="Theme, setting or event for this particular episode")


class CohesivePrompt(BaseModel):
    """A generation-ready image prompt for one action scene."""

    scene_index: int = Field(..., description="Index of the action element this prompt illustrates", ge=0)
    prompt: str = Field(..., description="Detailed image prompt")
    characters: list[str] = Field(default_factory=list, description="Character names mentioned in the prompt")


class ImageResult(BaseModel):
    """Outcome of one image generation request."""

    image_bytes: Optional[bytes] = Field(None, description="Generated image, if any")
    final_prompt: str = Field(..., description="Prompt actually sent to the model")
    was_rewritten: bool = Field(default=False, description="True if safety filtering altered or blocked it")


class GeneratedSceneImage(BaseModel):
    """A successfully generated scene image."""

    scene_index: int = Field(..., ge=0)
    image_bytes: bytes
    prompt: str


class DialogueAssociation(BaseModel):
    """The dialogue found nearest to an illustrated action."""

    character: str
    text: str
    source_element_index: int = Field(..., ge=0)


class DialogueLine(BaseModel):
    """One dialogue line paired with a generated scene image."""

    character: str
    text: str
    source_element_index: int = Field(..., ge=0)
    scene_index: Optional[int] = Field(None, description="Scene image this line accompanies")
    is_duplicate: bool = False
    duplicate_count: int = Field(default=0, description="How many times this source was used before", ge=0)


class TextFile(BaseModel):
    """An uploaded text blob."""

    name: str = Field(..., description="File or archive entry name")
    content: str = Field(..., description="Decoded text content")
