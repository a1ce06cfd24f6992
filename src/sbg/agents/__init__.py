"""AI agents for the text stages of a generation run."""

from .base import BaseAgent
from .characters import CharacterAnalysisAgent
from .dialogue import DialogueRewriteAgent, RewrittenLine, fallback_lines, first_sentence
from .prompts import CohesivePromptAgent, CohesivePromptInput
from .script import ScriptInput, ScriptWriterAgent
from .story import StoryAnalysisAgent

__all__ = [
    "BaseAgent",
    "CharacterAnalysisAgent",
    "CohesivePromptAgent",
    "CohesivePromptInput",
    "DialogueRewriteAgent",
    "RewrittenLine",
    "ScriptInput",
    "ScriptWriterAgent",
    "StoryAnalysisAgent",
    "fallback_lines",
    "first_sentence",
]
