"""Cohesive image prompt agent."""

import json
from dataclasses import dataclass

from pydantic import BaseModel, Field

from ..models import CohesivePrompt
from .base import BaseAgent

MANDATORY_MARKER = "[MANDATORY VISUAL REFERENCE PROVIDED]"


class CohesivePromptSet(BaseModel):
    """Response schema for cohesive prompt generation."""

    prompts: list[CohesivePrompt] = Field(
        default_factory=list,
        description="An array of generated cohesive image prompts."
    )


@dataclass
class CohesivePromptInput:
    """Action lines to convert plus the character and style context."""

    scenes: list[tuple[int, str]]
    character_descriptions: str
    style: str


class CohesivePromptAgent(BaseAgent[CohesivePromptInput, list[CohesivePrompt]]):
    """Storyboard-artist agent turning action lines into image prompts.

    Each returned prompt keeps the scene index of the action it came from
    and lists the character names it mentions.
    """

    @property
    def name(self) -> str:
        """Return the agent's name."""
        return "CohesivePromptAgent"

    @property
    def system_prompt(self) -> str:
        return (
            "You are a master storyboard artist. You convert simple action lines from a "
            "script into visually rich, cohesive image generation prompts."
        )

    async def run(self, input_data: CohesivePromptInput) -> list[CohesivePrompt]:
        """Generate prompts for the given action scenes.

        Prompts whose scene index was not requested are dropped.
        """
        prompt = self._build_prompt(input_data)
        result = await self._create_structured(prompt, CohesivePromptSet, max_tokens=16000)

        requested = {index for index, _ in input_data.scenes}
        prompts = [p for p in result.prompts if p.scene_index in requested]
        dropped = len(result.prompts) - len(prompts)
        if dropped:
            self._logger.warning(f"Dropped {dropped} prompt(s) for unknown scene indices")

        self._logger.info(f"Generated {len(prompts)} cohesive prompt(s)")
        return prompts

    def _build_prompt(self, input_data: CohesivePromptInput) -> str:
        scenes = [{"sceneIndex": index, "content": content} for index, content in input_data.scenes]
        return "\n".join([
            "**CRITICAL INSTRUCTION: CHARACTER FIDELITY**",
            f"You will be given a list of characters. Some are marked as **{MANDATORY_MARKER}**. "
            "Your highest priority is to ensure these specific characters appear in the generated "
            "image prompts. If an action line is generic (e.g., \"A character walks in\"), choose "
            "one of the mandatory characters to feature. Use the provided names exactly.",
            "",
            "**Rules & Guidelines:**",
            "1. **Visual Detail:** Transform each action line into a descriptive paragraph. Mention "
            "setting, lighting, mood, character actions, and expressions.",
            "2. **Character Consistency:** Faithfully adhere to the character list below.",
            f"3. **Visual Style:** All prompts must incorporate the following style: \"{input_data.style}\".",
            "4. **Shot Composition:** For every prompt, describe a **medium shot** so character faces "
            "and upper bodies are clearly visible.",
            "5. **Identify Characters:** For each prompt, return the list of character names it includes.",
            "6. **Cohesion:** Maintain consistent lighting and environments for scenes in the same location.",
            "7. **Scene Index:** Return each prompt with the scene_index of the action line it converts.",
            "",
            "**Character List:**",
            "---",
            input_data.character_descriptions or "No known characters.",
            "---",
            "",
            "**Action Lines to Convert:**",
            "---",
            json.dumps(scenes),
            "---",
        ])
