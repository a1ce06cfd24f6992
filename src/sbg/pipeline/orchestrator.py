"""
Storyboard Pipeline: main orchestrator.

StoryboardPipeline ties all stages together:
  Story analysis → Script → Character analysis → Portraits →
  Cohesive prompts → Scene images → Dialogue association → Dialogue rewrite

Stages whose output later stages depend on (story analysis, script,
character analysis, cohesive prompts) are fatal. Portraits and scene
images fail per item. Dialogue rewrite falls back to a local rewrite.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from ..agents import (
    CharacterAnalysisAgent,
    CohesivePromptAgent,
    CohesivePromptInput,
    DialogueRewriteAgent,
    ScriptInput,
    ScriptWriterAgent,
    StoryAnalysisAgent,
    fallback_lines,
)
from ..agents.prompts import MANDATORY_MARKER
from ..config import check_aspect_ratio, config
from ..errors import AuthenticationFailure, PipelineError, SafetyRejection
from ..ingest import IngestResult, ingest_paths
from ..models import (
    AnalyzedCharacter,
    CharacterReference,
    CohesivePrompt,
    DialogueBlock,
    ReferenceOrigin,
    RunResult,
    RunState,
    Script,
    StoryElements,
    TextFile,
    reference_key,
)
from .continuity import ContinuityChain, select_scenes
from .dialogue import DialogueTracker, find_dialogue_for_scene
from .matching import CharacterReferenceSet
from .report import GenerationReport

logger = logging.getLogger(__name__)

UNDETERMINED = "To be determined by the writer based on the story prompt."


@dataclass
class RunInputs:
    """Everything the user supplied for one run."""

    text_files: list[TextFile] = field(default_factory=list)
    character_images: list[CharacterReference] = field(default_factory=list)
    story_prompt: str = ""
    style_prompt: str = ""
    ignored_files: list[str] = field(default_factory=list)
    collisions: list[str] = field(default_factory=list)

    @classmethod
    def from_ingest(cls, ingested: IngestResult, story_prompt: str = "", style_prompt: str = "") -> "RunInputs":
        return cls(
            text_files=list(ingested.text_files),
            character_images=ingested.references,
            story_prompt=story_prompt,
            style_prompt=style_prompt,
            ignored_files=list(ingested.ignored),
            collisions=list(ingested.collisions),
        )


@dataclass
class PipelineAgents:
    """The text-stage agents a pipeline delegates to."""

    story: StoryAnalysisAgent
    script: ScriptWriterAgent
    characters: CharacterAnalysisAgent
    prompts: CohesivePromptAgent
    dialogue: DialogueRewriteAgent

    @classmethod
    def from_client(cls, client=None) -> "PipelineAgents":
        """Build every agent on a shared client."""
        if client is None:
            from ..services.anthropic import AnthropicClient
            client = AnthropicClient()
        return cls(
            story=StoryAnalysisAgent(client=client),
            script=ScriptWriterAgent(client=client),
            characters=CharacterAnalysisAgent(client=client),
            prompts=CohesivePromptAgent(client=client),
            dialogue=DialogueRewriteAgent(client=client),
        )


class StoryboardPipeline:
    """
    End-to-end storyboard generator.

    Usage:
        pipeline = StoryboardPipeline()
        result = await pipeline.run(RunInputs(story_prompt="..."))
        # result.script, result.scene_images, result.dialogue_lines, result.report

    Fatal failures raise PipelineError with the partial result attached;
    AuthenticationFailure propagates unchanged. Either way the partial
    result stays available as ``pipeline.last_result``.
    """

    def __init__(
        self,
        agents: Optional[PipelineAgents] = None,
        image_client=None,
        max_scenes: Optional[int] = None,
        aspect_ratio: Optional[str] = None,
    ):
        self.max_scenes = config.max_scenes if max_scenes is None else max_scenes
        if self.max_scenes < 1:
            raise ValueError(f"max_scenes must be at least 1, got {self.max_scenes}")
        self.aspect_ratio = check_aspect_ratio(config.aspect_ratio if aspect_ratio is None else aspect_ratio)

        if image_client is None:
            from ..services.gemini import GeminiImageClient
            image_client = GeminiImageClient()
        self.agents = agents or PipelineAgents.from_client()
        self.image_client = image_client
        self.last_result: Optional[RunResult] = None
        self._running = False

    async def run_from_paths(
        self,
        paths: Sequence[Path],
        story_prompt: str = "",
        style_prompt: str = "",
    ) -> RunResult:
        """Ingest files and archives from disk, then run the pipeline."""
        ingested = await ingest_paths(paths)
        return await self.run(RunInputs.from_ingest(ingested, story_prompt, style_prompt))

    async def run(self, inputs: RunInputs) -> RunResult:
        """
        Execute one complete generation run.

        Returns:
            RunResult with state COMPLETED and the full report.

        Raises:
            RuntimeError: If a run is already in progress.
            PipelineError: If a fatal stage failed.
            AuthenticationFailure: If credentials were rejected.
        """
        if self._running:
            raise RuntimeError("A generation run is already in progress")
        self._running = True

        report = GenerationReport()
        result = RunResult()
        self.last_result = result

        logger.info("=" * 60)
        logger.info("STORYBOARD PIPELINE")
        logger.info("=" * 60)

        try:
            await self._run_stages(inputs, result, report)
            result.state = RunState.COMPLETED
            logger.info(
                f"Run complete: {len(result.scene_images)} scene image(s), "
                f"{len(result.portraits)} portrait(s), {len(result.dialogue_lines)} dialogue line(s)"
            )
            return result

        except Exception as e:
            logger.error(f"Generation failed: {e}")
            result.state = RunState.FAILED
            result.error = str(e)
            report.failure(str(e))
            raise

        finally:
            result.report = report.render()
            self._running = False

    async def _fatal(self, stage: RunState, result: RunResult, coro):
        """Await a structurally required stage, converting failure into PipelineError."""
        result.state = stage
        try:
            return await coro
        except AuthenticationFailure:
            raise
        except Exception as e:
            raise PipelineError(stage.value, f"Stage '{stage.value}' failed: {e}", result) from e

    async def _run_stages(self, inputs: RunInputs, result: RunResult, report: GenerationReport) -> None:
        references = CharacterReferenceSet(inputs.character_images)
        uploaded_names = references.names()

        story_prompt = inputs.story_prompt
        if not inputs.text_files and not story_prompt and not inputs.character_images:
            story_prompt = config.default_story_prompt
            report.note("No inputs provided. Using a default story prompt to begin generation.")

        # === Stage 1: Story analysis ===
        report.section("Source Files")
        if inputs.text_files:
            report.entry("\n".join(f" - {f.name}" for f in inputs.text_files))
        else:
            report.entry("No context files provided. Story elements will be inferred from the prompt.")
        if inputs.ignored_files:
            report.entry("Ignored files:\n" + "\n".join(f" - {name}" for name in inputs.ignored_files))
        if inputs.collisions:
            report.entry("Character image collisions:\n" + "\n".join(f" - {c}" for c in inputs.collisions))

        if inputs.text_files:
            logger.info("Analyzing uploaded files for story elements...")
            story_elements = await self._fatal(
                RunState.ANALYZING_STORY, result, self.agents.story.run(inputs.text_files)
            )
        else:
            story_elements = StoryElements(characters=UNDETERMINED, story=UNDETERMINED, today=UNDETERMINED)
        result.story_elements = story_elements

        style_file = next((f for f in inputs.text_files if f.name.lower() == "style.txt"), None)
        style = (style_file.content if style_file else inputs.style_prompt) or config.default_style
        result.style = style
        if style_file:
            report.note(f"Using style.txt for style prompt.\n---\n{style_file.content}\n---")
        elif inputs.style_prompt:
            report.section("Style Prompt")
            report.entry(f"Style: \"{inputs.style_prompt}\"")

        if uploaded_names:
            report.section("Uploaded Characters")
            report.entry(
                "The following characters were provided via image upload and must be "
                f"included in the story: {', '.join(uploaded_names)}"
            )

        report.section("Story Analysis")
        report.entry("\n".join([
            f"Characters: {story_elements.characters}",
            f"Core Story: {story_elements.story}",
            f"Daily Theme: {story_elements.today}",
            f"Inspirational Event: {story_prompt}",
        ]))

        # === Stage 2: Script ===
        script_input = ScriptInput(
            story_elements=story_elements,
            story_prompt=story_prompt,
            mandatory_characters=uploaded_names,
        )
        report.section("Script Generation Prompt")
        report.entry(self.agents.script.build_prompt(script_input))

        logger.info("Generating movie script...")
        script: Script = await self._fatal(
            RunState.GENERATING_SCRIPT, result, self.agents.script.run(script_input)
        )
        result.script = script
        report.section("Script Generated Successfully")
        report.entry(f"Title: {script.title} ({len(script.scene_elements)} elements)")

        # === Stage 3: Character analysis ===
        report.section("LLM Character Analysis")
        logger.info("Analyzing character descriptions...")
        analyzed: list[AnalyzedCharacter] = await self._fatal(
            RunState.ANALYZING_CHARACTERS,
            result,
            self.agents.characters.run(self._character_source(inputs.text_files, story_elements, script)),
        )
        result.analyzed_characters = analyzed
        report.entry(
            "LLM Analysis Result (JSON):\n"
            + json.dumps([c.model_dump(exclude_none=True) for c in analyzed], indent=2)
        )

        # === Stage 4: Portraits ===
        result.state = RunState.GENERATING_PORTRAITS
        report.section("Character Portrait Generation")
        portraits = await self._generate_portraits(analyzed, references, style, report)
        for portrait in portraits:
            if references.add(portrait):
                result.portraits.append(portrait)

        # === Stage 5: Cohesive prompts ===
        report.section("Scene Asset Generation Log")
        selected, skipped = select_scenes(script, self.max_scenes)
        result.skipped_scenes = skipped
        if skipped:
            report.note(
                f"Found {len(selected) + len(skipped)} actions with content, but limiting image "
                f"generation to the first {self.max_scenes} to manage processing time. "
                f"Skipped for capacity: scene indices {', '.join(str(i) for i in skipped)}."
            )

        prompts: list[CohesivePrompt] = []
        if selected:
            logger.info("Generating cohesive storyboard prompts...")
            prompts = await self._fatal(
                RunState.GENERATING_PROMPTS,
                result,
                self.agents.prompts.run(CohesivePromptInput(
                    scenes=[(index, action.content) for index, action in selected],
                    character_descriptions=self._describe_characters(script, analyzed, uploaded_names),
                    style=style,
                )),
            )
        else:
            report.note("The script contains no action lines to illustrate.")

        # === Stage 6: Scene images ===
        result.state = RunState.GENERATING_SCENES
        chain = ContinuityChain(
            image_client=self.image_client,
            references=references,
            report=report,
            script=script,
            style=style,
            aspect_ratio=self.aspect_ratio,
        )
        result.scene_images = await chain.run(prompts)
        report.entry(f"Generated {len(result.scene_images)} of {len(prompts)} scene image(s).")

        # === Stage 7: Dialogue association ===
        result.state = RunState.ASSOCIATING_DIALOGUE
        report.section("Dialogue Association")
        tracker = DialogueTracker()
        lines = []
        for image in result.scene_images:
            association = find_dialogue_for_scene(image.scene_index, script)
            if not association:
                report.entry(f"[SCENE {image.scene_index}] No dialogue within scene boundaries")
                continue
            line = tracker.track(association, image.scene_index)
            lines.append(line)
            report.entry(
                f"[SCENE {image.scene_index}] Source Element Index: {line.source_element_index} "
                f"({line.character})\n"
                f"  - Duplicate: {line.is_duplicate} (count {line.duplicate_count})"
            )
        if not result.scene_images:
            report.entry("No scene images to associate dialogue with.")

        # === Stage 8: Dialogue rewrite ===
        result.state = RunState.REWRITING_DIALOGUE
        if lines:
            logger.info("Generating unique dialogue entries...")
            try:
                rewritten = await self.agents.dialogue.run(lines)
                used_fallback = False
            except AuthenticationFailure:
                raise
            except Exception as e:
                logger.warning(f"Dialogue rewrite failed, using first sentences: {e}")
                report.note(f"Dialogue rewrite failed ({e}). Using the first sentence of each line.")
                rewritten = fallback_lines(lines)
                used_fallback = True

            for line, new in zip(lines, rewritten):
                line.text = new.dialogue
            result.dialogue_lines = lines

            report.section("Dialogue Generated (local fallback)" if used_fallback else "Dialogue Generated")
            report.entry("\n".join(
                f"{line.character}: \"{line.text}\"" + (" [duplicate]" if line.is_duplicate else "")
                for line in lines
            ))

    async def _generate_portraits(
        self,
        analyzed: list[AnalyzedCharacter],
        references: CharacterReferenceSet,
        style: str,
        report: GenerationReport,
    ) -> list[CharacterReference]:
        """Generate portraits concurrently for characters without an uploaded image."""
        to_generate: list[AnalyzedCharacter] = []
        keys: set[str] = set()
        for character in analyzed:
            key = reference_key(character.name)
            if key and key not in references and key not in keys:
                keys.add(key)
                to_generate.append(character)

        if not to_generate:
            report.entry("All analyzed characters have uploaded reference images.")
            return []

        logger.info(f"Generating {len(to_generate)} character portrait(s)...")
        tasks = [asyncio.ensure_future(self._generate_portrait(character, style)) for character in to_generate]
        try:
            outcomes = await asyncio.gather(*tasks)
        except AuthenticationFailure:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        portraits: list[CharacterReference] = []
        for position, (character, (portrait, entry)) in enumerate(zip(to_generate, outcomes), 1):
            report.entry(f"[PORTRAIT {position}] Character: {character.name}\n{entry}")
            if portrait:
                portraits.append(portrait)
        return portraits

    async def _generate_portrait(
        self,
        character: AnalyzedCharacter,
        style: str,
    ) -> tuple[Optional[CharacterReference], str]:
        """Generate one portrait; failures are returned, not raised."""
        prompt = (
            f"Photorealistic, cinematic, full body portrait of a character named {character.name}. "
            f"Description: {character.descriptor_string()}."
        )
        try:
            image = await self.image_client.generate_image(
                prompt, style=style, aspect_ratio=self.aspect_ratio
            )
        except AuthenticationFailure:
            raise
        except SafetyRejection as e:
            logger.warning(f"Portrait for {character.name} blocked: {e}")
            return None, f"  - BLOCKED BY SAFETY FILTER\n  - Reason: {e}"
        except Exception as e:
            logger.warning(f"Portrait for {character.name} failed: {e}")
            return None, f"  - GENERATION FAILED\n  - Error: {e}"

        entry = f"  - Prompt: \"{image.final_prompt}\"\n  - Status: {'Success' if image.image_bytes else 'Failed'}"
        if image.was_rewritten:
            entry += "\n  - Was Rewritten For Safety: True"
        if not image.image_bytes:
            return None, entry

        return CharacterReference(
            name=character.name,
            image_bytes=image.image_bytes,
            mime_type="image/png",
            origin=ReferenceOrigin.GENERATED,
            prompt=image.final_prompt,
        ), entry

    @staticmethod
    def _character_source(text_files: list[TextFile], story_elements: StoryElements, script: Script) -> str:
        """Text the character analysis reads: a characters file, else story and script."""
        characters_file = next((f for f in text_files if "character" in f.name.lower()), None)
        if characters_file:
            return characters_file.content

        lines = []
        for element in script.scene_elements:
            if isinstance(element, DialogueBlock):
                lines.append(element.character)
                lines.extend(part.content for part in element.elements)
            else:
                lines.append(element.content)
        return story_elements.characters + "\n" + "\n".join(lines)

    @staticmethod
    def _describe_characters(
        script: Script,
        analyzed: list[AnalyzedCharacter],
        uploaded_names: list[str],
    ) -> str:
        """Character list for the prompt stage, marking names with uploaded images."""
        uploaded_upper = [name.upper().strip() for name in uploaded_names]
        known = list(dict.fromkeys(script.dialogue_characters() + uploaded_upper))

        descriptions = []
        for name_upper in known:
            data = next((c for c in analyzed if c.name.upper().strip() == name_upper), None)
            description = f" ({data.descriptor_string(include_voice=False)})" if data else ""
            original = next((n for n in uploaded_names if n.upper().strip() == name_upper), None)
            if original is None:
                original = data.name if data else name_upper
            marker = f" {MANDATORY_MARKER}" if name_upper in uploaded_upper else ""
            descriptions.append(f"{original}{description}{marker}")
        return "; ".join(descriptions)
