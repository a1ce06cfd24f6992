"""Configuration management."""

import os
from pathlib import Path
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

ASPECT_RATIOS = ("1:1", "16:9", "9:16", "4:3", "3:4")


def check_aspect_ratio(aspect_ratio: str) -> str:
    """Return the aspect ratio unchanged, or raise ValueError if it is unsupported."""
    if aspect_ratio not in ASPECT_RATIOS:
        raise ValueError(f"Invalid aspect_ratio: {aspect_ratio}. Must be one of {ASPECT_RATIOS}")
    return aspect_ratio


class Config(BaseModel):
    """Application configuration."""

    # API Keys
    anthropic_api_key: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_KEY", ""),
        description="Anthropic API key (script and analysis stages)"
    )
    gemini_api_key: str = Field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY", ""),
        description="Gemini API key (image generation)"
    )

    # Paths
    workspace: Path = Field(
        default_factory=lambda: Path(os.getenv("SBG_WORKSPACE", ".")),
        description="Workspace directory"
    )

    # Model settings
    default_model: str = Field(
        default_factory=lambda: os.getenv("SBG_TEXT_MODEL", "claude-sonnet-4-20250514"),
        description="Default Claude model"
    )
    image_model: str = Field(
        default_factory=lambda: os.getenv("SBG_IMAGE_MODEL", "gemini-2.5-flash-image"),
        description="Gemini image model"
    )

    # Generation settings
    max_scenes: int = Field(
        default=20,
        description="Maximum number of action scenes illustrated per run",
        gt=0,
    )
    aspect_ratio: str = Field(
        default="16:9",
        description="Aspect ratio for portraits and scene images"
    )
    default_style: str = Field(
        default="cinematic, photorealistic, high detail",
        description="Visual style used when no style prompt or style.txt is given"
    )
    default_story_prompt: str = Field(
        default="A lone astronaut discovers a strange, glowing artifact on a desolate moon.",
        description="Story prompt used when a run has no inputs at all"
    )

    class Config:
        """Pydantic config."""
        frozen = False

    def validate_required(self) -> None:
        """Validate that required credentials are set."""
        if not self.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY not set")

    def validate_image_required(self) -> None:
        """Validate that image generation credentials are set.

        Raises:
            ValueError: If the Gemini API key is missing.
        """
        if not self.gemini_api_key:
            raise ValueError(
                "Missing required image configuration: GEMINI_API_KEY. "
                "Set GEMINI_API_KEY or GOOGLE_API_KEY."
            )


# Global config instance
config = Config()
