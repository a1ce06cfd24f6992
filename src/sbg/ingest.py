"""Reading uploaded files and zip archives into text files and character images."""

import asyncio
import io
import logging
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional, Sequence, Union

from .errors import IngestionFailure
from .models import CharacterReference, ReferenceOrigin, TextFile, reference_key

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "webp", "gif", "bmp"}
TEXT_EXTENSIONS = {"txt", "json", "md"}


@dataclass
class Upload:
    """One uploaded item: a plain file or a zip archive."""

    name: str
    data: bytes


@dataclass
class _Item:
    """A readable blob, tagged with where it came from."""

    order: int
    name: str
    text: Optional[str] = None
    image: Optional[bytes] = None
    mime_type: str = ""


@dataclass
class IngestResult:
    """Flat view of everything uploaded for a run."""

    text_files: list[TextFile] = field(default_factory=list)
    character_images: dict[str, CharacterReference] = field(default_factory=dict)
    ignored: list[str] = field(default_factory=list)
    collisions: list[str] = field(default_factory=list)

    @property
    def references(self) -> list[CharacterReference]:
        return list(self.character_images.values())


def _extension(name: str) -> str:
    suffix = PurePosixPath(name).suffix.lower()
    return suffix[1:] if suffix else ""


def image_mime_type(extension: str) -> str:
    return f"image/{'jpeg' if extension == 'jpg' else extension}"


def character_name(entry_name: str) -> str:
    """Character key for an image: its file stem, lowercased."""
    return PurePosixPath(entry_name).stem.lower()


def _read_entry(order: int, name: str, data: bytes) -> Optional[_Item]:
    """Classify one blob. Returns None for unsupported types."""
    extension = _extension(name)
    if extension in IMAGE_EXTENSIONS:
        if not data:
            raise IngestionFailure(name, "empty image")
        return _Item(order=order, name=name, image=data, mime_type=image_mime_type(extension))
    if extension in TEXT_EXTENSIONS:
        try:
            return _Item(order=order, name=name, text=data.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise IngestionFailure(name, f"not valid UTF-8 text ({e})") from e
    return None


def _read_upload(order: int, upload: Upload) -> tuple[list[_Item], list[str]]:
    """Read one upload, expanding zip archives. Never raises."""
    items: list[_Item] = []
    ignored: list[str] = []

    if _extension(upload.name) != "zip":
        try:
            item = _read_entry(order, upload.name, upload.data)
        except IngestionFailure as e:
            logger.warning(f"Failed to read file {e}")
            ignored.append(upload.name)
            return items, ignored
        if item:
            items.append(item)
        else:
            ignored.append(upload.name)
        return items, ignored

    logger.info(f"Unpacking {upload.name}...")
    try:
        archive = zipfile.ZipFile(io.BytesIO(upload.data))
    except zipfile.BadZipFile as e:
        logger.error(f"Error reading zip file {upload.name}: {e}")
        ignored.append(upload.name)
        return items, ignored

    with archive:
        for info in sorted(archive.infolist(), key=lambda i: i.filename):
            if info.is_dir():
                continue
            try:
                item = _read_entry(order, info.filename, archive.read(info))
            except (IngestionFailure, zipfile.BadZipFile, OSError, RuntimeError, zlib.error) as e:
                logger.warning(f"Failed to process zip entry {info.filename}: {e}")
                ignored.append(info.filename)
                continue
            if item:
                items.append(item)
            else:
                ignored.append(info.filename)

    return items, ignored


def merge_items(items: Sequence[_Item]) -> IngestResult:
    """Merge read items in upload order, then name.

    Later images for the same character key replace earlier ones and the
    replacement is recorded in ``collisions``.
    """
    result = IngestResult()
    sources: dict[str, str] = {}

    for item in sorted(items, key=lambda i: (i.order, i.name)):
        if item.text is not None:
            result.text_files.append(TextFile(name=item.name, content=item.text))
            continue

        name = character_name(item.name)
        key = reference_key(name)
        if key in sources:
            result.collisions.append(f"{key}: {sources[key]} replaced by {item.name}")
            logger.warning(f"Character image '{key}' from {sources[key]} replaced by {item.name}")
        sources[key] = item.name
        result.character_images[key] = CharacterReference(
            name=name,
            image_bytes=item.image,
            mime_type=item.mime_type,
            origin=ReferenceOrigin.UPLOADED,
        )

    return result


async def ingest_uploads(uploads: Sequence[Upload]) -> IngestResult:
    """Read every upload concurrently and merge them deterministically."""
    outcomes = await asyncio.gather(
        *(asyncio.to_thread(_read_upload, order, upload) for order, upload in enumerate(uploads))
    )

    items: list[_Item] = []
    ignored: list[str] = []
    for read_items, read_ignored in outcomes:
        items.extend(read_items)
        ignored.extend(read_ignored)

    result = merge_items(items)
    result.ignored = ignored

    logger.info(
        f"Ingested {len(result.text_files)} text file(s), "
        f"{len(result.character_images)} character image(s), ignored {len(ignored)}"
    )
    return result


def _load_upload(path: Path) -> Union[Upload, str]:
    try:
        return Upload(name=path.name, data=path.read_bytes())
    except OSError as e:
        logger.warning(f"Failed to read file {path}: {e}")
        return path.name


async def ingest_paths(paths: Sequence[Path]) -> IngestResult:
    """Read files from disk and ingest them. Unreadable paths are ignored."""
    loaded = await asyncio.gather(*(asyncio.to_thread(_load_upload, Path(p)) for p in paths))
    uploads = [item for item in loaded if isinstance(item, Upload)]
    unreadable = [item for item in loaded if isinstance(item, str)]

    result = await ingest_uploads(uploads)
    result.ignored = unreadable + result.ignored
    return result
