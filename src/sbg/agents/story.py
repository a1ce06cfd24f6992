"""Story analysis agent: extracts series elements from uploaded text."""

from ..models import StoryElements, TextFile
from .base import BaseAgent


class StoryAnalysisAgent(BaseAgent[list[TextFile], StoryElements]):
    """Agent that reads uploaded text files and extracts story elements.

    The analysis is strictly grounded in the files: no invented
    characters or traits.
    """

    @property
    def name(self) -> str:
        """Return the agent's name."""
        return "StoryAnalysisAgent"

    @property
    def system_prompt(self) -> str:
        return (
            "You are a strict story analyst. You extract the key elements for a "
            "movie script from source material, using only information present "
            "in the provided text."
        )

    async def run(self, input_data: list[TextFile]) -> StoryElements:
        """Analyze text files into characters, core story and daily theme.

        Raises:
            ValueError: If no files are given.
            ServiceFailure: If the model reply is unusable.
        """
        if not input_data:
            raise ValueError("No text or JSON files were provided to analyze for story elements.")

        self._logger.info(f"Analyzing {len(input_data)} file(s) for story elements")
        return await self._create_structured(
            prompt=self._build_prompt(input_data),
            schema=StoryElements,
            temperature=0.2,
        )

    def _build_prompt(self, files: list[TextFile]) -> str:
        file_contents = "\n\n".join(f"--- FILE: {f.name} ---\n{f.content}" for f in files)
        return "\n".join([
            "Analyze the following text file contents and extract the key elements for a movie script.",
            "Identify the following three components based *only* on the provided text:",
            "1. **Characters:** Who are the main characters? Describe them using only information "
            "from the files. You must not invent any characters or character traits. If no "
            "characters are explicitly described, state that.",
            "2. **Core Story:** What is the overall premise or background of the series?",
            "3. **Daily Theme:** What is a specific theme, setting, or concept for today's episode?",
            "",
            "Here are the file contents:",
            "---",
            file_contents,
            "---",
        ])
