"""Script writer agent."""

from dataclasses import dataclass, field

from ..models import Script, StoryElements
from .base import BaseAgent


@dataclass
class ScriptInput:
    """Input data for the script writer."""

    story_elements: StoryElements
    story_prompt: str
    mandatory_characters: list[str] = field(default_factory=list)


class ScriptWriterAgent(BaseAgent[ScriptInput, Script]):
    """Agent for writing a short movie script from a series premise.

    Characters with uploaded reference images are mandatory and must
    appear in the script.
    """

    @property
    def name(self) -> str:
        """Return the agent's name."""
        return "ScriptWriterAgent"

    @property
    def system_prompt(self) -> str:
        return (
            "You are a creative writer for a sci-fi comedy series. You write short, "
            "engaging movie scripts as structured JSON screenplay elements."
        )

    async def run(self, input_data: ScriptInput) -> Script:
        """Write a script.

        Returns:
            Script whose ``source_file`` names the model that wrote it.

        Raises:
            ServiceFailure: If the reply cannot be parsed as a script.
        """
        prompt = self.build_prompt(input_data)
        self._logger.info("Generating movie script...")

        script = await self._create_structured(
            prompt=prompt,
            schema=Script,
            max_tokens=16000,
            temperature=0.9,  # Higher temperature for creative output
        )
        if not script.source_file:
            script.source_file = self.model

        self._logger.info(f"Generated script '{script.title}' with {len(script.scene_elements)} elements")
        return script

    def build_prompt(self, input_data: ScriptInput) -> str:
        """Build the script generation prompt (also recorded in the report)."""
        elements = input_data.story_elements
        prompt_parts = [
            "Your task is to write a new short movie script based on a series premise "
            "and a user-provided event.",
            "",
            "**Series Premise:**",
            "---",
            "**Characters:**",
            elements.characters,
            "",
            "**Core Story:**",
            elements.story,
            "",
            "**Daily Theme:**",
            elements.today,
            "---",
        ]

        if input_data.mandatory_characters:
            names = ", ".join(input_data.mandatory_characters)
            prompt_parts.extend([
                "",
                "**Mandatory Characters:**",
                f"You MUST include characters named: {names}. These characters have visual "
                "references provided by the user. Integrate them naturally into the story.",
                "---",
            ])

        prompt_parts.extend([
            "",
            "**Inspirational Event (Provided by User):**",
            "---",
            input_data.story_prompt,
            "---",
            "",
            "Weave the essence of this user-provided event into your story. It should serve as "
            "the central conflict or comedic situation for the episode. How would the characters "
            "from your Series Premise (and the mandatory characters, if any) react to or cause "
            "a situation like this?",
            "",
            "Use scene_heading, action, dialogue_block and transition elements. Each "
            "dialogue_block names its character and holds parenthetical and dialogue parts.",
        ])

        return "\n".join(prompt_parts)
