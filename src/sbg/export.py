"""Packaging of run artifacts into a downloadable zip archive."""

import json
import logging
import re
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .models import (
    DialogueLine,
    ManifestScene,
    ReferenceOrigin,
    RunManifest,
    RunResult,
    Script,
)

logger = logging.getLogger(__name__)

Artifact = tuple[str, Union[bytes, str]]

UNSAFE_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def safe_name(text: str) -> str:
    """Lowercase a name and replace anything but letters and digits with '_'."""
    return UNSAFE_CHARS.sub("_", text).lower()


def scene_path(scene_index: int, extension: str) -> str:
    return f"images/scene_{scene_index:04d}.{extension}"


def portrait_path(name: str, extension: str) -> str:
    return f"images/characters/{safe_name(name)}.{extension}"


def dialogue_summary(lines: list[DialogueLine]) -> str:
    """One `CHARACTER "line"` entry per dialogue line."""
    return "\n".join(f"{line.character} \"{line.text}\"" for line in lines)


def dialogue_summary_path(title: str, now: datetime) -> str:
    return f"0hs3000_{safe_name(title)}_{now.strftime('%Y%m%d_%H%M')}.txt"


def build_manifest(result: RunResult) -> RunManifest:
    """Summarise a run for ``manifest.yaml``."""
    scenes = []
    for image in result.scene_images:
        line = result.dialogue_for_scene(image.scene_index)
        scenes.append(ManifestScene(
            scene_index=image.scene_index,
            image=scene_path(image.scene_index, "png"),
            prompt=image.prompt,
            character=line.character if line else None,
            dialogue=line.text if line else None,
        ))

    return RunManifest(
        title=result.script.title if result.script else "untitled",
        state=result.state.value,
        style=result.style,
        scenes=scenes,
        portraits=[
            portrait_path(p.name, "png") for p in result.portraits if p.origin == ReferenceOrigin.GENERATED
        ],
        error=result.error,
    )


def build_artifacts(result: RunResult, now: Optional[datetime] = None) -> list[Artifact]:
    """List every (relative path, content) pair for a run.

    Paths are deterministic and collision-free: scene files are keyed by
    zero-padded scene index.
    """
    now = now or datetime.now()
    artifacts: list[Artifact] = [
        ("generation_report.txt", result.report),
        ("manifest.yaml", build_manifest(result).to_yaml_text()),
    ]

    if result.script is None:
        return artifacts

    artifacts.extend([
        ("script.json", json.dumps(result.script.model_dump(mode="json"), indent=2)),
        ("story.txt", result.script.to_text()),
        (dialogue_summary_path(result.script.title, now), dialogue_summary(result.dialogue_lines)),
    ])

    for image in result.scene_images:
        text = image.prompt
        line = result.dialogue_for_scene(image.scene_index)
        if line:
            text += f"\n\n{line.character}: {line.text}"
        artifacts.append((scene_path(image.scene_index, "png"), image.image_bytes))
        artifacts.append((scene_path(image.scene_index, "txt"), text))

    used: set[str] = set()
    for portrait in result.portraits:
        if portrait.origin != ReferenceOrigin.GENERATED:
            continue
        path = portrait_path(portrait.name, "png")
        if path in used:
            logger.warning(f"Skipping portrait '{portrait.name}': {path} already written")
            continue
        used.add(path)
        artifacts.append((path, portrait.image_bytes))
        artifacts.append((portrait_path(portrait.name, "txt"), portrait.prompt or ""))

    return artifacts


def archive_name(result: RunResult) -> str:
    title = result.script.title if result.script else "untitled"
    return f"{safe_name(title)}_assets.zip"


def write_archive(result: RunResult, output_path: Path, now: Optional[datetime] = None) -> Path:
    """Write all run artifacts into one zip file.

    Args:
        result: Completed or partial run result.
        output_path: Zip file path, or a directory to place it in.

    Returns:
        Path to the written archive.
    """
    if output_path.is_dir():
        output_path = output_path / archive_name(result)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    artifacts = build_artifacts(result, now)
    with zipfile.ZipFile(output_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path, content in artifacts:
            archive.writestr(path, content)

    logger.info(f"Wrote {len(artifacts)} artifact(s) to {output_path}")
    return output_path


@dataclass
class ArchiveContents:
    """What a presentation needs back from a written archive."""

    manifest: RunManifest
    script: Optional[Script] = None
    images: dict[int, bytes] = field(default_factory=dict)


def read_archive(path: Path) -> ArchiveContents:
    """Load the manifest, script and scene images from an archive.

    Raises:
        ValueError: If the archive has no manifest.
    """
    with zipfile.ZipFile(path) as archive:
        names = set(archive.namelist())
        if "manifest.yaml" not in names:
            raise ValueError(f"Not a storyboard archive (no manifest.yaml): {path}")

        manifest = RunManifest.from_yaml_text(archive.read("manifest.yaml").decode("utf-8"))
        script = None
        if "script.json" in names:
            script = Script.model_validate_json(archive.read("script.json"))

        images = {
            scene.scene_index: archive.read(scene.image)
            for scene in manifest.scenes
            if scene.image in names
        }

    return ArchiveContents(manifest=manifest, script=script, images=images)
