"""Data models for the storyboard generator."""

from .scene import (
    Action,
    DialogueBlock,
    DialoguePart,
    SceneElement,
    SceneHeading,
    Script,
    Transition,
)
from .character import AnalyzedCharacter, CharacterReference, ReferenceOrigin, reference_key
from .artifacts import (
    CohesivePrompt,
    DialogueAssociation,
    DialogueLine,
    GeneratedSceneImage,
    ImageResult,
    StoryElements,
    TextFile,
)
from .manifest import ManifestScene, RunManifest
from .project import RunResult, RunState

__all__ = [
    "Action",
    "DialogueBlock",
    "DialoguePart",
    "SceneElement",
    "SceneHeading",
    "Script",
    "Transition",
    "AnalyzedCharacter",
    "CharacterReference",
    "ReferenceOrigin",
    "reference_key",
    "CohesivePrompt",
    "DialogueAssociation",
    "DialogueLine",
    "GeneratedSceneImage",
    "ImageResult",
    "StoryElements",
    "TextFile",
    "ManifestScene",
    "RunManifest",
    "RunResult",
    "RunState",
]
