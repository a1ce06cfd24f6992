"""Sequential scene image generation with visual continuity.

Each scene request carries the previous *successful* image, so scenes must
be generated one after another. A failed scene is skipped and the chain
continues from the last image that did succeed.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..errors import AuthenticationFailure, SafetyRejection
from ..models import Action, CohesivePrompt, GeneratedSceneImage, Script
from .matching import CharacterReferenceSet
from .report import GenerationReport

logger = logging.getLogger(__name__)


def select_scenes(script: Script, max_scenes: int) -> tuple[list[tuple[int, Action]], list[int]]:
    """Split action scenes into those to illustrate and those over the cap."""
    actions = script.action_scenes()
    selected = actions[:max_scenes]
    skipped = [index for index, _ in actions[max_scenes:]]
    return selected, skipped


@dataclass(frozen=True)
class ChainState:
    """Accumulator folded over the ordered scene prompts."""

    last_image: Optional[bytes] = None
    results: tuple[GeneratedSceneImage, ...] = ()


class ContinuityChain:
    """Generates scene images in ascending scene order."""

    def __init__(
        self,
        image_client,
        references: CharacterReferenceSet,
        report: GenerationReport,
        script: Script,
        style: Optional[str] = None,
        aspect_ratio: str = "16:9",
    ) -> None:
        self._image_client = image_client
        self._references = references
        self._report = report
        self._script = script
        self._style = style
        self._aspect_ratio = aspect_ratio

    async def run(self, prompts: Sequence[CohesivePrompt]) -> list[GeneratedSceneImage]:
        """Generate one image per prompt, strictly one at a time."""
        ordered: list[CohesivePrompt] = []
        seen: set[int] = set()
        for prompt in sorted(prompts, key=lambda p: p.scene_index):
            if prompt.scene_index in seen:
                logger.warning(f"Ignoring duplicate prompt for scene {prompt.scene_index}")
                continue
            seen.add(prompt.scene_index)
            ordered.append(prompt)

        state = ChainState()
        for position, prompt in enumerate(ordered, 1):
            state = await self.step(state, prompt, position, len(ordered))

        logger.info(f"Scene images: {len(state.results)}/{len(ordered)} generated")
        return list(state.results)

    async def step(
        self,
        state: ChainState,
        prompt: CohesivePrompt,
        position: int,
        total: int,
    ) -> ChainState:
        """Generate a single scene and return the next accumulator."""
        label = f"[IMAGE {position}/{total}] Scene Index: {prompt.scene_index}"
        matches = self._references.resolve_all(prompt.characters)
        continuity_used = state.last_image is not None

        try:
            result = await self._image_client.generate_image(
                prompt.prompt,
                character_images=[m.reference for m in matches],
                continuity_image=state.last_image,
                style=self._style or None,
                aspect_ratio=self._aspect_ratio,
            )
        except AuthenticationFailure:
            raise
        except SafetyRejection as e:
            logger.warning(f"Scene {prompt.scene_index} blocked: {e}")
            self._report.entry(f"{label} - BLOCKED BY SAFETY FILTER\n  - Reason: {e}")
            return state
        except Exception as e:
            logger.warning(f"Scene {prompt.scene_index} failed: {e}")
            self._report.entry(f"{label} - GENERATION FAILED\n  - Error: {e}")
            return state

        if result.image_bytes:
            status = "Success"
        elif result.was_rewritten:
            status = "Blocked By Safety Filter"
        else:
            status = "Failed"

        used = ", ".join(m.describe() for m in matches) or "None"
        self._report.entry("\n".join([
            label,
            f"  - Source Action: \"{self._action_text(prompt.scene_index)}\"",
            f"  - Cohesive Prompt: \"{prompt.prompt}\"",
            f"  - Character Images Used: {used}",
            f"  - Previous Scene Used for Continuity: {'Yes' if continuity_used else 'No'}",
            f"  - Final Prompt Sent: \"{result.final_prompt}\"",
            f"  - Was Rewritten For Safety: {result.was_rewritten}",
            f"  - Generation Status: {status}",
        ]))

        if not result.image_bytes:
            return state

        image = GeneratedSceneImage(
            scene_index=prompt.scene_index,
            image_bytes=result.image_bytes,
            prompt=result.final_prompt,
        )
        return ChainState(last_image=result.image_bytes, results=state.results + (image,))

    def _action_text(self, scene_index: int) -> str:
        elements = self._script.scene_elements
        if 0 <= scene_index < len(elements) and isinstance(elements[scene_index], Action):
            return elements[scene_index].content
        return ""
