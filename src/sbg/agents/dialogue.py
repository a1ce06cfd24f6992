"""Dialogue rewrite agent.

Produces exactly one single-sentence line per illustrated scene. Reused
dialogue becomes a "meta outtake" whose self-reference grows with the
duplicate count.
"""

import json
import re

from pydantic import BaseModel, Field

from ..errors import ServiceFailure
from ..models import DialogueLine
from .base import BaseAgent

SENTENCE_END = re.compile(r"[.!?]")


class RewrittenLine(BaseModel):
    """One rewritten dialogue line."""

    character: str
    dialogue: str = Field(..., description="A single sentence of dialogue.")


class DialogueRewrite(BaseModel):
    """Response schema for dialogue rewriting."""

    lines: list[RewrittenLine] = Field(default_factory=list)


def first_sentence(text: str) -> str:
    """Return the text up to the first sentence terminator, closed with a period."""
    return SENTENCE_END.split(text)[0].strip() + "."


def fallback_lines(inputs: list[DialogueLine]) -> list[RewrittenLine]:
    """Deterministic local rewrite used when the service is unavailable."""
    return [RewrittenLine(character=i.character, dialogue=first_sentence(i.text)) for i in inputs]


class DialogueRewriteAgent(BaseAgent[list[DialogueLine], list[RewrittenLine]]):
    """Meta-fictional writer for storyboard panel dialogue."""

    @property
    def name(self) -> str:
        """Return the agent's name."""
        return "DialogueRewriteAgent"

    @property
    def system_prompt(self) -> str:
        return (
            "You are a meta-fictional writer for an AI-generated storyboard project. "
            "You process dialogue requests for storyboard panels."
        )

    async def run(self, input_data: list[DialogueLine]) -> list[RewrittenLine]:
        """Rewrite lines, one output per input, in input order.

        Raises:
            ServiceFailure: If the reply is unusable or has the wrong length.
        """
        if not input_data:
            return []

        inputs = [
            {
                "character": line.character,
                "originalDialogue": line.text,
                "isDuplicate": line.is_duplicate,
                "duplicateCount": line.duplicate_count,
            }
            for line in input_data
        ]
        prompt = "\n".join([
            "**RULES:**",
            "1. **Exactly One Sentence:** Every dialogue line must be exactly one sentence.",
            "2. **Duplicate Handling (META OUTTAKES):** If an input has 'isDuplicate: true', do NOT "
            "repeat the original dialogue. Instead, write a meta outtake where the character breaks "
            "the fourth wall or comments on being in an AI-generated storyboard.",
            "3. **Progression:** 'duplicateCount' says how many times this dialogue was already used. "
            "The higher the count, the more self-referential and weird the outtake must be.",
            "4. **Normal Lines:** If 'isDuplicate: false', take the FIRST sentence of the original "
            "dialogue and use it.",
            "5. Return exactly one line per input, in the same order.",
            "",
            "**INPUT DATA:**",
            "---",
            json.dumps(inputs),
            "---",
        ])

        result = await self._create_structured(prompt, DialogueRewrite, temperature=0.9)
        if len(result.lines) != len(input_data):
            raise ServiceFailure(
                f"{self.name}: expected {len(input_data)} line(s), got {len(result.lines)}"
            )
        return result.lines
