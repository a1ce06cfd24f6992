"""Character analysis agent."""

from pydantic import BaseModel, Field

from ..models import AnalyzedCharacter
from .base import BaseAgent


class CharacterAnalysis(BaseModel):
    """Response schema for character analysis."""

    characters: list[AnalyzedCharacter] = Field(
        default_factory=list,
        description="A list of all characters found in the provided text."
    )


class CharacterAnalysisAgent(BaseAgent[str, list[AnalyzedCharacter]]):
    """Casting-director agent that extracts one record per character."""

    @property
    def name(self) -> str:
        """Return the agent's name."""
        return "CharacterAnalysisAgent"

    @property
    def system_prompt(self) -> str:
        return (
            "You are an expert casting director. You read text and identify every "
            "character mentioned, extracting their details into structured JSON."
        )

    async def run(self, input_data: str) -> list[AnalyzedCharacter]:
        """Analyze source text and return the characters it mentions."""
        prompt = "\n".join([
            "Read the following text and identify every character mentioned.",
            "",
            "Rules:",
            "- Identify each character's name.",
            "- Determine their gender ('male', 'female', or 'unknown') from context, pronouns, "
            "or markers like 'm' or 'f'.",
            "- Note their race/ethnicity if mentioned (e.g., Black, White, Asian).",
            "- Capture any specific descriptions of their voice (e.g., 'white voiced', 'Black voiced').",
            "- Collect any other physical or personality descriptors.",
            "- Consolidate information for each character. If 'JOHN' and 'John' appear, treat "
            "them as the same person.",
            "",
            "Here is the text to analyze:",
            "---",
            input_data,
            "---",
        ])

        analysis = await self._create_structured(prompt, CharacterAnalysis, temperature=0.2)
        self._logger.info(f"Found {len(analysis.characters)} character(s)")
        return analysis.characters
