"""Caption rendering for slideshow frames."""

from dataclasses import dataclass
from typing import Optional, Tuple

from moviepy import TextClip


@dataclass
class TextStyle:
    """Configuration for caption styling."""

    font: Optional[str] = None
    font_size: int = 32
    color: str = "white"
    stroke_color: Optional[str] = None
    stroke_width: int = 0
    background_color: Optional[str] = None


# Preset styles
STYLES = {
    "caption": TextStyle(background_color="rgba(0,0,0,180)"),
}


def render_text(
    text: str,
    style: Optional[TextStyle] = None,
    duration: Optional[float] = None,
    width: Optional[int] = None,
) -> TextClip:
    """Create a text clip with the given style.

    Args:
        text: Text content to render.
        style: TextStyle configuration. Uses the caption style if None.
        duration: Duration of the text clip in seconds.
        width: Wrap text to this width in pixels. No wrapping if None.

    Returns:
        TextClip with the styled text.
    """
    if style is None:
        style = STYLES["caption"]

    params = {
        "text": text,
        "font": style.font,
        "font_size": style.font_size,
        "color": style.color,
    }

    if style.stroke_color and style.stroke_width > 0:
        params["stroke_color"] = style.stroke_color
        params["stroke_width"] = style.stroke_width

    if style.background_color:
        params["bg_color"] = style.background_color

    if width:
        params["method"] = "caption"
        params["size"] = (width, None)

    text_clip = TextClip(**params)

    if duration is not None:
        text_clip = text_clip.with_duration(duration)

    return text_clip


def position_overlay(
    text_clip: TextClip,
    frame_size: Tuple[int, int],
    position: str = "bottom",
    margin: int = 40,
) -> TextClip:
    """Place a text clip inside a frame.

    Args:
        text_clip: Text clip to position.
        frame_size: (width, height) of the frame.
        position: One of "center", "top" or "bottom".
        margin: Distance from the top or bottom edge in pixels.

    Returns:
        Text clip with position set.
    """
    frame_w, frame_h = frame_size
    x = max((frame_w - text_clip.w) // 2, 0)

    if position == "center":
        y = max((frame_h - text_clip.h) // 2, 0)
    elif position == "top":
        y = margin
    elif position == "bottom":
        y = max(frame_h - text_clip.h - margin, 0)
    else:
        raise ValueError(f"Unknown position: {position}. Available: center, top, bottom")

    return text_clip.with_position((x, y))
