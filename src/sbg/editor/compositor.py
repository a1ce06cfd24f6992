"""Render a slideshow of scene images to a video file."""

import logging
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from moviepy import CompositeVideoClip, ImageClip, VideoClip, concatenate_videoclips
from moviepy.video.fx import CrossFadeIn, CrossFadeOut

from .audio import BACKGROUND_VOLUME, add_background_music
from .overlays import STYLES, TextStyle, position_overlay, render_text
from .timeline import SECONDS_PER_SLIDE, Slide

logger = logging.getLogger(__name__)

FRAME_SIZES = {
    "16:9": (1280, 720),
    "9:16": (720, 1280),
    "1:1": (1024, 1024),
    "4:3": (1024, 768),
    "3:4": (768, 1024),
}


def fit_to_frame(clip: ImageClip, frame_size: Tuple[int, int]) -> ImageClip:
    """Scale a clip to fit inside the frame, keeping its aspect ratio."""
    frame_w, frame_h = frame_size
    scale = min(frame_w / clip.w, frame_h / clip.h)
    if abs(scale - 1.0) < 0.01:
        return clip
    return clip.resized(scale)


def slide_clip(
    slide: Slide,
    image_path: Path,
    frame_size: Tuple[int, int],
    duration: float,
    caption_style: Optional[TextStyle] = None,
) -> CompositeVideoClip:
    """Compose one slide: the centred image with its caption at the bottom."""
    image = fit_to_frame(ImageClip(str(image_path)), frame_size)
    layers: List[VideoClip] = [image.with_duration(duration).with_position("center")]

    caption = slide.caption
    if caption:
        text = render_text(
            caption,
            style=caption_style or STYLES["caption"],
            duration=duration,
            width=int(frame_size[0] * 0.9),
        )
        layers.append(position_overlay(text, frame_size, "bottom"))

    return CompositeVideoClip(layers, size=frame_size, bg_color=(0, 0, 0)).with_duration(duration)


def add_transitions(clips: List[VideoClip], duration: float = 0.5) -> List[VideoClip]:
    """Add crossfade transitions between clips."""
    if len(clips) < 2:
        return clips

    result: List[VideoClip] = []
    for i, clip in enumerate(clips):
        if i < len(clips) - 1:
            clip = clip.with_effects([CrossFadeOut(duration)])
        if i > 0:
            clip = clip.with_effects([CrossFadeIn(duration)])
        result.append(clip)

    return result


def export(
    video: VideoClip,
    output_path: Path,
    fps: int = 24,
    codec: str = "libx264",
    audio_codec: str = "aac",
    preset: str = "medium",
) -> Path:
    """Export video to file with proper encoding.

    Args:
        video: Video clip to export.
        output_path: Path for output file.
        fps: Frames per second.
        codec: Video codec (default libx264).
        audio_codec: Audio codec (default aac).
        preset: Encoding preset (ultrafast, fast, medium, slow, slower).

    Returns:
        Path to the exported video file.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    video.write_videofile(
        str(output_path),
        fps=fps,
        codec=codec,
        audio_codec=audio_codec,
        preset=preset,
    )

    return output_path


def render_slideshow(
    slides: Sequence[Slide],
    output_path: Path,
    seconds_per_slide: float = SECONDS_PER_SLIDE,
    aspect_ratio: str = "16:9",
    music_path: Optional[Path] = None,
    music_volume: float = BACKGROUND_VOLUME,
    transition_duration: float = 0.0,
    fps: int = 24,
) -> Path:
    """Render slides, in scene order, to a video file.

    Args:
        slides: Slides to render. Sorted by scene index before rendering.
        output_path: Path for the video file.
        seconds_per_slide: How long each slide stays on screen.
        aspect_ratio: Frame aspect ratio, one of FRAME_SIZES.
        music_path: Optional background music, looped under the video.
        music_volume: Volume factor for the music.
        transition_duration: Crossfade between slides in seconds. 0 disables.
        fps: Frames per second of the output.

    Returns:
        Path to the rendered video.

    Raises:
        ValueError: If there are no slides or the aspect ratio is unknown.
    """
    if not slides:
        raise ValueError("No slides to render")
    if aspect_ratio not in FRAME_SIZES:
        raise ValueError(f"Unknown aspect ratio: {aspect_ratio}. Available: {list(FRAME_SIZES.keys())}")

    frame_size = FRAME_SIZES[aspect_ratio]
    ordered = sorted(slides, key=lambda s: s.scene_index)

    with tempfile.TemporaryDirectory(prefix="sbg_slides_") as tmp:
        clips: List[VideoClip] = []
        for slide in ordered:
            image_path = Path(tmp) / f"scene_{slide.scene_index:04d}.png"
            image_path.write_bytes(slide.image_bytes)
            clips.append(slide_clip(slide, image_path, frame_size, seconds_per_slide))

        if transition_duration > 0:
            clips = add_transitions(clips, transition_duration)

        video = clips[0] if len(clips) == 1 else concatenate_videoclips(clips, method="compose")

        if music_path:
            video = add_background_music(video, music_path, volume=music_volume)

        logger.info(f"Rendering {len(ordered)} slide(s) to {output_path}")
        export(video, output_path, fps=fps)

    return output_path
