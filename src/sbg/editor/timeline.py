"""Slideshow timeline and playback state."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..models import Action, DialogueLine, GeneratedSceneImage, RunManifest, Script

logger = logging.getLogger(__name__)

SECONDS_PER_SLIDE = 4.0


@dataclass(frozen=True)
class Slide:
    """One scene image with the text shown beneath it."""

    scene_index: int
    image_bytes: bytes
    prompt: str
    action_text: str = ""
    character: Optional[str] = None
    dialogue: Optional[str] = None

    @property
    def caption(self) -> str:
        if self.character and self.dialogue:
            return f"{self.character}: \"{self.dialogue}\""
        return self.action_text


def _action_text(script: Optional[Script], scene_index: int) -> str:
    if script is None or scene_index >= len(script.scene_elements):
        return ""
    element = script.scene_elements[scene_index]
    return element.content if isinstance(element, Action) else ""


def build_timeline(
    images: Sequence[GeneratedSceneImage],
    script: Optional[Script] = None,
    dialogue_lines: Sequence[DialogueLine] = (),
) -> list[Slide]:
    """Order scene images by scene index and attach their captions.

    Dialogue is paired by scene index, so a skipped scene never shifts
    lines onto the wrong image.
    """
    by_scene = {line.scene_index: line for line in dialogue_lines if line.scene_index is not None}

    slides = []
    for image in sorted(images, key=lambda i: i.scene_index):
        line = by_scene.get(image.scene_index)
        slides.append(Slide(
            scene_index=image.scene_index,
            image_bytes=image.image_bytes,
            prompt=image.prompt,
            action_text=_action_text(script, image.scene_index),
            character=line.character if line else None,
            dialogue=line.text if line else None,
        ))
    return slides


def timeline_from_manifest(
    manifest: RunManifest,
    images: dict[int, bytes],
    script: Optional[Script] = None,
) -> list[Slide]:
    """Rebuild slides from an exported archive's manifest."""
    slides = []
    for scene in sorted(manifest.scenes, key=lambda s: s.scene_index):
        if scene.scene_index not in images:
            logger.warning(f"Scene {scene.scene_index} has no image in the archive, skipping")
            continue
        slides.append(Slide(
            scene_index=scene.scene_index,
            image_bytes=images[scene.scene_index],
            prompt=scene.prompt,
            action_text=_action_text(script, scene.scene_index),
            character=scene.character,
            dialogue=scene.dialogue,
        ))
    return slides


class SlideshowPlayer:
    """Timed playback over a list of slides.

    Playing advances one slide every ``seconds_per_slide`` and stops on the
    last slide. Pressing play at the end restarts from the first slide.
    """

    def __init__(self, slides: Sequence[Slide], seconds_per_slide: float = SECONDS_PER_SLIDE) -> None:
        if seconds_per_slide <= 0:
            raise ValueError("seconds_per_slide must be positive")
        self.slides = list(slides)
        self.seconds_per_slide = seconds_per_slide
        self.index = 0
        self.playing = False
        self._elapsed = 0.0

    @property
    def current(self) -> Optional[Slide]:
        if not self.slides:
            return None
        return self.slides[self.index]

    @property
    def at_end(self) -> bool:
        return self.index >= len(self.slides) - 1

    def play(self) -> None:
        if not self.slides:
            return
        if self.at_end:
            self.index = 0
        self._elapsed = 0.0
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def toggle(self) -> None:
        if self.playing:
            self.pause()
        else:
            self.play()

    def next(self) -> None:
        self.index = min(self.index + 1, max(len(self.slides) - 1, 0))
        self._elapsed = 0.0

    def prev(self) -> None:
        self.index = max(self.index - 1, 0)
        self._elapsed = 0.0

    def tick(self, elapsed: float) -> Optional[Slide]:
        """Advance playback by ``elapsed`` seconds and return the current slide."""
        if not self.playing:
            return self.current

        self._elapsed += elapsed
        while self._elapsed >= self.seconds_per_slide:
            self._elapsed -= self.seconds_per_slide
            if self.at_end:
                self.playing = False
                self._elapsed = 0.0
                break
            self.index += 1

        return self.current
