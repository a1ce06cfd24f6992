"""Run manifest data model."""

from datetime import datetime
from typing import List, Optional
from pathlib import Path
from pydantic import BaseModel, Field
import yaml


class ManifestScene(BaseModel):
    """One illustrated scene as recorded in the manifest."""

    scene_index: int = Field(..., description="Index of the action element")
    image: str = Field(..., description="Archive path of the scene image")
    prompt: str = Field(..., description="Final prompt sent to the image model")
    character: Optional[str] = Field(None, description="Speaker of the paired dialogue line")
    dialogue: Optional[str] = Field(None, description="Paired dialogue line")


class RunManifest(BaseModel):
    """Summary of a generation run, stored next to its artifacts."""

    title: str = Field(..., description="Script title")
    generated_at: str = Field(
        default_factory=lambda: datetime.now().isoformat(timespec="seconds"),
        description="Generation timestamp"
    )
    state: str = Field(default="completed", description="Final run state")
    style: str = Field(default="", description="Style prompt")
    scenes: List[ManifestScene] = Field(default_factory=list, description="Illustrated scenes")
    portraits: List[str] = Field(default_factory=list, description="Archive paths of generated portraits")
    error: Optional[str] = Field(None, description="Terminal error, if the run failed")

    class Config:
        """Pydantic config."""
        frozen = False

    @classmethod
    def from_yaml(cls, path: Path) -> "RunManifest":
        """Load manifest from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls(**data)

    @classmethod
    def from_yaml_text(cls, text: str) -> "RunManifest":
        """Load manifest from a YAML string."""
        return cls(**yaml.safe_load(text))

    def to_yaml_text(self) -> str:
        """Serialize manifest to a YAML string."""
        return yaml.safe_dump(self.model_dump(), default_flow_style=False, sort_keys=False)

    def to_yaml(self, path: Path) -> None:
        """Save manifest to YAML file."""
        with open(path, "w") as f:
            f.write(self.to_yaml_text())
