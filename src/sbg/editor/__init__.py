"""Slideshow presentation of generated storyboards."""

from .timeline import (
    SECONDS_PER_SLIDE,
    Slide,
    SlideshowPlayer,
    build_timeline,
    timeline_from_manifest,
)
from .compositor import (
    FRAME_SIZES,
    render_slideshow,
    export,
)
from .overlays import (
    TextStyle,
    STYLES,
    render_text,
    position_overlay,
)
from .audio import (
    BACKGROUND_VOLUME,
    add_background_music,
)

__all__ = [
    # Timeline
    "SECONDS_PER_SLIDE",
    "Slide",
    "SlideshowPlayer",
    "build_timeline",
    "timeline_from_manifest",
    # Compositor
    "FRAME_SIZES",
    "render_slideshow",
    "export",
    # Overlays
    "TextStyle",
    "STYLES",
    "render_text",
    "position_overlay",
    # Audio
    "BACKGROUND_VOLUME",
    "add_background_music",
]
