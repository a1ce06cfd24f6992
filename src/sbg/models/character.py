"""Character data models."""

from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, Field


class ReferenceOrigin(str, Enum):
    """Where a character reference image came from."""
    UPLOADED = "uploaded"
    GENERATED = "generated"


class AnalyzedCharacter(BaseModel):
    """A character extracted from source text by the analysis stage."""

    name: str = Field(..., description="The character's name. Be precise.")
    gender: Literal["male", "female", "unknown"] = Field(
        default="unknown",
        description="Gender inferred from pronouns or explicit markers (m/f/male/female)"
    )
    race: Optional[str] = Field(None, description="Race or ethnicity, if mentioned")
    voice_description: Optional[str] = Field(None, description="Voice descriptions like 'Black voiced'")
    other_descriptors: Optional[str] = Field(None, description="Other physical or personality descriptors")

    def descriptor_string(self, include_voice: bool = True) -> str:
        """Join the non-empty descriptors into one comma-separated string."""
        parts = [self.race, self.gender]
        if include_voice:
            parts.append(self.voice_description)
        parts.append(self.other_descriptors)
        return ", ".join(p for p in parts if p)


class CharacterReference(BaseModel):
    """An image used to keep a character's appearance consistent."""

    name: str = Field(..., description="Display name of the character")
    image_bytes: bytes = Field(..., description="Raw image data")
    mime_type: str = Field(default="image/png", description="Image MIME type")
    origin: ReferenceOrigin = Field(default=ReferenceOrigin.UPLOADED, description="Reference origin")
    prompt: Optional[str] = Field(None, description="Prompt used for generated portraits")

    @property
    def key(self) -> str:
        """Case-insensitive, trimmed lookup key."""
        return reference_key(self.name)


def reference_key(name: str) -> str:
    """Normalise a character name into a reference-set key."""
    return name.lower().strip()
