"""
Storyboard pipeline: orchestration of one generation run.

Usage:
    from sbg.pipeline import StoryboardPipeline, RunInputs

    pipeline = StoryboardPipeline()
    result = await pipeline.run(RunInputs(story_prompt="A robot learns to bake bread."))
"""

from .continuity import ChainState, ContinuityChain, select_scenes
from .dialogue import DialogueTracker, find_dialogue_for_scene
from .matching import (
    CharacterReferenceSet,
    ReferenceMatch,
    edit_distance,
    normalize_name,
    resolve_reference,
)
from .orchestrator import PipelineAgents, RunInputs, StoryboardPipeline
from .report import GenerationReport

__all__ = [
    "ChainState",
    "ContinuityChain",
    "select_scenes",
    "DialogueTracker",
    "find_dialogue_for_scene",
    "CharacterReferenceSet",
    "ReferenceMatch",
    "edit_distance",
    "normalize_name",
    "resolve_reference",
    "PipelineAgents",
    "RunInputs",
    "StoryboardPipeline",
    "GenerationReport",
]
