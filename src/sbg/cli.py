"""CLI entry point for the storyboard generator."""

import asyncio
import logging
import typer
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import config
from .errors import AuthenticationFailure, PipelineError

app = typer.Typer(
    name="sbg",
    help="AI-powered storyboard generator",
    no_args_is_help=True
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"sbg version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """Storyboard Generator - Turn story notes into illustrated scripts using AI."""
    pass


def _preview(text: str, limit: int = 70) -> str:
    return text[:limit] + "..." if len(text) > limit else text


@app.command()
def generate(
    inputs: List[Path] = typer.Argument(
        None,
        help="Text files, character images or zip archives to build the story from"
    ),
    prompt: str = typer.Option(
        "",
        "--prompt",
        "-p",
        help="What this episode should be about"
    ),
    style: str = typer.Option(
        "",
        "--style",
        "-s",
        help="Visual style for every image (overridden by an uploaded style.txt)"
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Zip archive path or directory (defaults to the workspace)"
    ),
    max_scenes: Optional[int] = typer.Option(
        None,
        "--max-scenes",
        "-n",
        help="Maximum number of scene images to generate",
        min=1
    ),
    aspect_ratio: Optional[str] = typer.Option(
        None,
        "--aspect-ratio",
        "-a",
        help="Scene image aspect ratio (e.g. 16:9, 9:16, 1:1)"
    ),
    slideshow: Optional[Path] = typer.Option(
        None,
        "--slideshow",
        help="Also render the storyboard to this video file"
    ),
    music: Optional[Path] = typer.Option(
        None,
        "--music",
        "-m",
        help="Background music for the slideshow"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable debug logging"
    )
) -> None:
    """Generate a script, portraits and continuity-chained scene images."""
    from .export import write_archive
    from .pipeline import StoryboardPipeline

    setup_logging(verbose)
    inputs = inputs or []

    try:
        config.validate_required()
        config.validate_image_required()
    except ValueError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(1)

    typer.echo(f"🎬 Generating storyboard from {len(inputs)} input(s)")
    if prompt:
        typer.echo(f"   Story prompt: {_preview(prompt)}")
    if style:
        typer.echo(f"   Style: {style}")

    output = output or config.workspace
    try:
        pipeline = StoryboardPipeline(max_scenes=max_scenes, aspect_ratio=aspect_ratio)
    except ValueError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(1)

    try:
        result = asyncio.run(pipeline.run_from_paths(inputs, story_prompt=prompt, style_prompt=style))
    except (PipelineError, AuthenticationFailure) as e:
        typer.echo(f"❌ Generation failed: {e}")
        if pipeline.last_result is not None:
            archive = write_archive(pipeline.last_result, output)
            typer.echo(f"   Partial results and report saved: {archive}")
        raise typer.Exit(1)
    except ValueError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(1)

    archive = write_archive(result, output)

    typer.echo(f"\n✅ Storyboard saved: {archive}")
    typer.echo(f"\n📋 Summary:")
    typer.echo(f"   Title: {result.script.title if result.script else 'untitled'}")
    typer.echo(f"   Portraits: {len(result.portraits)}")
    typer.echo(f"   Scene images: {len(result.scene_images)}")
    if result.skipped_scenes:
        typer.echo(f"   Skipped scenes: {len(result.skipped_scenes)}")
    typer.echo(f"   Dialogue lines: {len(result.dialogue_lines)}")

    if result.scene_images:
        typer.echo(f"\n🖼️  Scenes:")
        for image in result.scene_images:
            typer.echo(f"   • scene {image.scene_index}: {_preview(image.prompt)}")
            line = result.dialogue_for_scene(image.scene_index)
            if line:
                typer.echo(f"     {line.character}: {_preview(line.text, 60)}")

    if slideshow:
        from .editor import build_timeline, render_slideshow

        slides = build_timeline(result.scene_images, result.script, result.dialogue_lines)
        if not slides:
            typer.echo("⚠️  No scene images to put in a slideshow")
            return
        try:
            video = render_slideshow(
                slides,
                slideshow,
                aspect_ratio=pipeline.aspect_ratio,
                music_path=music,
            )
        except (ValueError, FileNotFoundError, OSError) as e:
            typer.echo(f"❌ Error rendering slideshow: {e}")
            raise typer.Exit(1)
        typer.echo(f"\n🎞️  Slideshow saved: {video}")


@app.command()
def inspect(
    inputs: List[Path] = typer.Argument(
        ...,
        help="Files or zip archives to check"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable debug logging"
    )
) -> None:
    """Show what a set of inputs would contribute to a run, without generating."""
    from .ingest import ingest_paths

    setup_logging(verbose)
    ingested = asyncio.run(ingest_paths(inputs))

    typer.echo(f"📄 Text files: {len(ingested.text_files)}")
    for text_file in ingested.text_files:
        typer.echo(f"   • {text_file.name} ({len(text_file.content)} chars)")

    typer.echo(f"\n🧑 Character images: {len(ingested.character_images)}")
    for reference in ingested.references:
        typer.echo(f"   • {reference.name} ({reference.mime_type}, {len(reference.image_bytes)} bytes)")

    if ingested.collisions:
        typer.echo(f"\n⚠️  Replaced character images:")
        for collision in ingested.collisions:
            typer.echo(f"   • {collision}")

    if ingested.ignored:
        typer.echo(f"\n⏭️  Ignored: {len(ingested.ignored)}")
        for name in ingested.ignored:
            typer.echo(f"   • {name}")


@app.command()
def slideshow(
    archive: Path = typer.Argument(
        ...,
        help="Storyboard zip archive written by 'sbg generate'",
        exists=True,
        file_okay=True,
        dir_okay=False
    ),
    output: Path = typer.Option(
        Path("output/storyboard.mp4"),
        "--output",
        "-o",
        help="Output video path"
    ),
    music: Optional[Path] = typer.Option(
        None,
        "--music",
        "-m",
        help="Background music file"
    ),
    seconds: float = typer.Option(
        4.0,
        "--seconds",
        help="Seconds each scene stays on screen",
        min=0.5
    ),
    aspect_ratio: Optional[str] = typer.Option(
        None,
        "--aspect-ratio",
        "-a",
        help="Video frame aspect ratio"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable debug logging"
    )
) -> None:
    """Render a previously generated storyboard archive to a video."""
    from .editor import render_slideshow, timeline_from_manifest
    from .export import read_archive

    setup_logging(verbose)

    try:
        contents = read_archive(archive)
    except Exception as e:
        typer.echo(f"❌ Error loading archive: {e}")
        raise typer.Exit(1)

    slides = timeline_from_manifest(contents.manifest, contents.images, contents.script)
    if not slides:
        typer.echo(f"❌ No scene images in {archive}")
        raise typer.Exit(1)

    typer.echo(f"📼 Rendering {len(slides)} scene(s) from {contents.manifest.title}")

    try:
        video = render_slideshow(
            slides,
            output,
            seconds_per_slide=seconds,
            aspect_ratio=aspect_ratio or config.aspect_ratio,
            music_path=music,
        )
    except Exception as e:
        typer.echo(f"❌ Error rendering slideshow: {e}")
        raise typer.Exit(1)

    typer.echo(f"\n✅ Slideshow saved: {video}")


if __name__ == "__main__":
    app()
