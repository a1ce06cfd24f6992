"""
Tests for the end-to-end storyboard pipeline.

Tests for sbg/pipeline/orchestrator.py
"""

import asyncio

import pytest

from sbg.config import config
from sbg.errors import AuthenticationFailure, PipelineError, ServiceFailure
from sbg.models import Action, CohesivePrompt, ReferenceOrigin, RunState, SceneHeading, Script, TextFile
from sbg.pipeline import RunInputs, StoryboardPipeline


def make_pipeline(agents, image_client, **kwargs) -> StoryboardPipeline:
    return StoryboardPipeline(agents=agents, image_client=image_client, aspect_ratio="16:9", **kwargs)


@pytest.fixture
def inputs(jane_upload) -> RunInputs:
    return RunInputs(
        text_files=[TextFile(name="story.md", content="Jane and John find an artifact.")],
        character_images=[jane_upload],
        story_prompt="The artifact wakes up.",
    )


class TestSuccessfulRun:
    """Tests for a run where every stage succeeds."""

    @pytest.mark.asyncio
    async def test_completes_with_all_artifacts(self, agents, image_client, inputs):
        pipeline = make_pipeline(agents, image_client)

        result = await pipeline.run(inputs)

        assert result.state == RunState.COMPLETED
        assert result.succeeded
        assert result.script.title == "Moon Story"
        assert [image.scene_index for image in result.scene_images] == [1, 3, 5]
        assert [line.scene_index for line in result.dialogue_lines] == [1, 3]
        assert result.error is None
        assert pipeline.last_result is result

    @pytest.mark.asyncio
    async def test_uploaded_reference_beats_portrait(self, agents, image_client, inputs):
        result = await make_pipeline(agents, image_client).run(inputs)

        assert [p.name for p in result.portraits] == ["John"]
        assert result.portraits[0].origin == ReferenceOrigin.GENERATED
        assert len(image_client.portrait_calls()) == 1
        assert "named John" in image_client.portrait_calls()[0]["prompt"]

        jane_scene = image_client.scene_calls()[0]
        assert [r.image_bytes for r in jane_scene["character_images"]] == [b"jane-upload"]

        john_scene = image_client.scene_calls()[1]
        assert [r.name for r in john_scene["character_images"]] == ["John"]

    @pytest.mark.asyncio
    async def test_scenes_chain_continuity(self, agents, image_client, inputs):
        await make_pipeline(agents, image_client).run(inputs)

        continuity = [call["continuity_image"] for call in image_client.scene_calls()]
        assert continuity == [None, b"image:Jane steps into a dark lab", b"image:John flips a switch"]

    @pytest.mark.asyncio
    async def test_duplicate_dialogue_flagged_for_rewrite(self, agents, image_client, inputs):
        result = await make_pipeline(agents, image_client).run(inputs)

        sent = agents.dialogue.run.call_args.args[0]
        assert [line.is_duplicate for line in sent] == [False, True]
        assert [line.duplicate_count for line in sent] == [0, 1]
        assert result.dialogue_for_scene(1).text == "Is anyone here?"
        assert result.dialogue_for_scene(3).text == "Wait, am I just a storyboard panel?"
        assert result.dialogue_for_scene(5) is None

    @pytest.mark.asyncio
    async def test_report_covers_every_stage(self, agents, image_client, inputs):
        result = await make_pipeline(agents, image_client).run(inputs)

        report = result.report
        for heading in (
            "--- SOURCE FILES ---",
            "--- UPLOADED CHARACTERS ---",
            "--- STORY ANALYSIS ---",
            "--- SCRIPT GENERATION PROMPT ---",
            "--- LLM CHARACTER ANALYSIS ---",
            "--- CHARACTER PORTRAIT GENERATION ---",
            "--- SCENE ASSET GENERATION LOG ---",
            "--- DIALOGUE ASSOCIATION ---",
            "--- DIALOGUE GENERATED ---",
        ):
            assert heading in report
        assert "[SCENE 1] Source Element Index: 2 (JANE)\n  - Duplicate: False (count 0)" in report
        assert "[SCENE 3] Source Element Index: 2 (JANE)\n  - Duplicate: True (count 1)" in report
        assert "[SCENE 5] No dialogue within scene boundaries" in report
        assert "[IMAGE 3/3] Scene Index: 5" in report
        assert "[PORTRAIT 1] Character: John" in report
        assert "Generated 3 of 3 scene image(s)." in report

    @pytest.mark.asyncio
    async def test_association_logged_when_no_dialogue(self, agents, image_client, inputs):
        agents.script.run.return_value = Script(title="Quiet", scene_elements=[
            SceneHeading(content="EXT. MOON - DAY"),
            Action(content="Dust drifts."),
        ])
        agents.prompts.run.return_value = [CohesivePrompt(scene_index=1, prompt="Dust on the moon")]

        result = await make_pipeline(agents, image_client).run(inputs)

        assert "--- DIALOGUE ASSOCIATION ---" in result.report
        assert "[SCENE 1] No dialogue within scene boundaries" in result.report
        assert "--- DIALOGUE GENERATED ---" not in result.report
        assert result.dialogue_lines == []
        agents.dialogue.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_association_logged_without_scene_images(self, agents, make_image_client, inputs):
        pipeline = make_pipeline(agents, make_image_client(fail_on=("dark lab", "switch", "artifact")))

        result = await pipeline.run(inputs)

        assert "--- DIALOGUE ASSOCIATION ---" in result.report
        assert "No scene images to associate dialogue with." in result.report

    @pytest.mark.asyncio
    async def test_scene_cap_skips_later_actions(self, agents, image_client, inputs, sample_prompts):
        agents.prompts.run.return_value = sample_prompts[:2]
        result = await make_pipeline(agents, image_client, max_scenes=2).run(inputs)

        requested = agents.prompts.run.call_args.args[0]
        assert [index for index, _ in requested.scenes] == [1, 3]
        assert result.skipped_scenes == [5]
        assert "Skipped for capacity: scene indices 5." in result.report

    @pytest.mark.asyncio
    async def test_style_file_overrides_style_prompt(self, agents, image_client, inputs):
        inputs.text_files.append(TextFile(name="style.txt", content="charcoal sketch"))
        inputs.style_prompt = "watercolor"

        result = await make_pipeline(agents, image_client).run(inputs)

        assert result.style == "charcoal sketch"
        assert {call["style"] for call in image_client.calls} == {"charcoal sketch"}

    @pytest.mark.asyncio
    async def test_default_style_shared_by_prompts_and_images(self, agents, image_client, inputs):
        result = await make_pipeline(agents, image_client).run(inputs)

        assert result.style == config.default_style
        assert agents.prompts.run.call_args.args[0].style == config.default_style
        assert image_client.portrait_calls() and image_client.scene_calls()
        assert {call["style"] for call in image_client.calls} == {config.default_style}

    @pytest.mark.asyncio
    async def test_no_inputs_uses_default_prompt(self, agents, image_client):
        result = await make_pipeline(agents, image_client).run(RunInputs())

        agents.story.run.assert_not_awaited()
        script_input = agents.script.run.call_args.args[0]
        assert script_input.story_prompt == config.default_story_prompt
        assert "Using a default story prompt" in result.report

    @pytest.mark.asyncio
    async def test_mandatory_characters_passed_to_script(self, agents, image_client, inputs):
        await make_pipeline(agents, image_client).run(inputs)

        script_input = agents.script.run.call_args.args[0]
        assert script_input.mandatory_characters == ["jane"]

        prompt_input = agents.prompts.run.call_args.args[0]
        assert "[MANDATORY VISUAL REFERENCE PROVIDED]" in prompt_input.character_descriptions


class TestPartialFailures:
    """Tests for failures the run survives."""

    @pytest.mark.asyncio
    async def test_failed_scene_is_skipped(self, agents, make_image_client, inputs):
        client = make_image_client(fail_on=("John flips",))
        result = await make_pipeline(agents, client).run(inputs)

        assert result.state == RunState.COMPLETED
        assert [image.scene_index for image in result.scene_images] == [1, 5]
        assert client.scene_calls()[2]["continuity_image"] == b"image:Jane steps into a dark lab"
        assert result.dialogue_for_scene(3) is None

    @pytest.mark.asyncio
    async def test_failed_portrait_is_skipped(self, agents, make_image_client, inputs):
        client = make_image_client(fail_on=("named John",))
        result = await make_pipeline(agents, client).run(inputs)

        assert result.state == RunState.COMPLETED
        assert result.portraits == []
        assert "GENERATION FAILED" in result.report
        john_scene = client.scene_calls()[1]
        assert john_scene["character_images"] == []

    @pytest.mark.asyncio
    async def test_rewrite_failure_falls_back_to_first_sentence(self, agents, image_client, inputs):
        agents.dialogue.run.side_effect = ServiceFailure("rewrite service down")

        result = await make_pipeline(agents, image_client).run(inputs)

        assert result.state == RunState.COMPLETED
        assert [line.text for line in result.dialogue_lines] == ["Is anyone here.", "Is anyone here."]
        assert "--- DIALOGUE GENERATED (LOCAL FALLBACK) ---" in result.report


class TestFatalFailures:
    """Tests for failures that abort the run."""

    @pytest.mark.asyncio
    async def test_script_failure_aborts_before_images(self, agents, image_client, inputs):
        agents.script.run.side_effect = ServiceFailure("script service down")
        pipeline = make_pipeline(agents, image_client)

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.run(inputs)

        assert exc_info.value.stage == RunState.GENERATING_SCRIPT.value
        result = pipeline.last_result
        assert exc_info.value.result is result
        assert result.state == RunState.FAILED
        assert result.scene_images == []
        assert result.portraits == []
        assert image_client.calls == []
        assert "--- GENERATION FAILED ---" in result.report
        assert "script service down" in result.report

    @pytest.mark.asyncio
    async def test_story_failure_is_fatal(self, agents, image_client, inputs):
        agents.story.run.side_effect = ServiceFailure("story service down")
        pipeline = make_pipeline(agents, image_client)

        with pytest.raises(PipelineError):
            await pipeline.run(inputs)

        agents.script.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_authentication_failure_propagates_unwrapped(self, agents, image_client, inputs):
        agents.characters.run.side_effect = AuthenticationFailure()
        pipeline = make_pipeline(agents, image_client)

        with pytest.raises(AuthenticationFailure):
            await pipeline.run(inputs)

        assert pipeline.last_result.state == RunState.FAILED
        assert pipeline.last_result.script is not None
        assert "PERMISSION_DENIED" in pipeline.last_result.report

    @pytest.mark.asyncio
    async def test_authentication_failure_during_images(self, agents, make_image_client, inputs):
        pipeline = make_pipeline(agents, make_image_client(auth_fail=True))

        with pytest.raises(AuthenticationFailure):
            await pipeline.run(inputs)

        assert pipeline.last_result.scene_images == []

    @pytest.mark.asyncio
    async def test_authentication_failure_cancels_pending_portraits(self, agents, inputs):
        class StallingImageClient:
            """Rejects John's portrait and stalls on every other request."""

            def __init__(self):
                self.cancelled = []

            async def generate_image(self, prompt, character_images=(), continuity_image=None,
                                     style=None, aspect_ratio="1:1"):
                if "named John" in prompt:
                    raise AuthenticationFailure()
                try:
                    await asyncio.Event().wait()
                except asyncio.CancelledError:
                    self.cancelled.append(prompt)
                    raise

        inputs.character_images = []
        image_client = StallingImageClient()
        pipeline = make_pipeline(agents, image_client)

        with pytest.raises(AuthenticationFailure):
            await pipeline.run(inputs)

        assert len(image_client.cancelled) == 1
        assert "named Jane" in image_client.cancelled[0]
        agents.prompts.run.assert_not_awaited()


class TestConstruction:
    """Tests for settings checked before any stage runs."""

    @pytest.mark.parametrize("aspect_ratio", ["2:1", "16x9", ""])
    def test_rejects_unsupported_aspect_ratio(self, agents, image_client, aspect_ratio):
        with pytest.raises(ValueError, match="Invalid aspect_ratio"):
            StoryboardPipeline(agents=agents, image_client=image_client, aspect_ratio=aspect_ratio)

        assert image_client.calls == []

    def test_rejects_unsupported_configured_aspect_ratio(self, agents, image_client, monkeypatch):
        monkeypatch.setattr(config, "aspect_ratio", "2:1")

        with pytest.raises(ValueError, match="Invalid aspect_ratio"):
            StoryboardPipeline(agents=agents, image_client=image_client)

    @pytest.mark.parametrize("max_scenes", [0, -3])
    def test_rejects_non_positive_scene_cap(self, agents, image_client, max_scenes):
        with pytest.raises(ValueError, match="max_scenes"):
            StoryboardPipeline(agents=agents, image_client=image_client, max_scenes=max_scenes)

    def test_defaults_come_from_config(self, agents, image_client):
        pipeline = StoryboardPipeline(agents=agents, image_client=image_client)

        assert pipeline.max_scenes == config.max_scenes
        assert pipeline.aspect_ratio == config.aspect_ratio


class TestRunGuard:
    """Tests for the single in-flight run rule."""

    @pytest.mark.asyncio
    async def test_second_concurrent_run_rejected(self, agents, image_client, inputs, sample_story):
        release = asyncio.Event()

        async def slow_story(files):
            await release.wait()
            return sample_story

        agents.story.run.side_effect = slow_story
        pipeline = make_pipeline(agents, image_client)

        first = asyncio.create_task(pipeline.run(inputs))
        await asyncio.sleep(0)

        with pytest.raises(RuntimeError):
            await pipeline.run(inputs)

        release.set()
        result = await first
        assert result.state == RunState.COMPLETED

    @pytest.mark.asyncio
    async def test_new_run_discards_previous_state(self, agents, image_client, inputs):
        pipeline = make_pipeline(agents, image_client)
        first = await pipeline.run(inputs)
        second = await pipeline.run(inputs)

        assert second is not first
        assert pipeline.last_result is second
        assert second.report.count("--- STORY ANALYSIS ---") == 1
