"""
Image metadata collection - one record per figure folder
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from loguru import logger

from .context_parser import parse_context_file
from .models import IMAGE_EXTENSIONS, ImageRecord, PipelineError


@dataclass
class CollectResult:
    """Records found in a source tree, plus what was left out"""
    records: List[ImageRecord] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    multiple_images: List[str] = field(default_factory=list)


def locate_images(folder: Path) -> List[Path]:
    """Image files directly inside ``folder``, sorted by name."""
    folder = Path(folder)
    if not folder.is_dir():
        return []
    return sorted(
        (
            child
            for child in folder.iterdir()
            if child.is_file() and child.suffix.lower() in IMAGE_EXTENSIONS
        ),
        key=lambda child: child.name,
    )


def find_image_file(folder: Path) -> Optional[Path]:
    """
    Locate the image for a figure folder

    Args:
        folder: Figure folder to scan

    Returns:
        First image by name, or None when the folder holds no image
    """
    candidates = locate_images(folder)
    if not candidates:
        return None
    if len(candidates) > 1:
        logger.warning(
            "{} holds {} images, using {}",
            Path(folder).name,
            len(candidates),
            candidates[0].name,
        )
    return candidates[0]


def list_subdirectories(root: Path) -> List[Path]:
    return sorted(
        (child for child in Path(root).iterdir() if child.is_dir()),
        key=lambda child: child.name,
    )


class MetadataAggregator:
    """Build ImageRecords from a folder of figure folders"""

    def __init__(self, context_filenames: Sequence[str] = ("info.txt", "context.txt")):
        """
        Initialize aggregator

        Args:
            context_filenames: Context file names to look for, in priority order
        """
        self.context_filenames = tuple(context_filenames)

    def collect(self, source_root: Path) -> CollectResult:
        """
        Collect one ImageRecord per usable figure folder

        Args:
            source_root: Directory whose subdirectories are figure folders

        Returns:
            CollectResult with records in folder-name order

        Raises:
            FileNotFoundError: If source_root does not exist
        """
        root = Path(source_root).expanduser()
        if not root.is_dir():
            raise FileNotFoundError(f"Source directory not found: {root}")

        result = CollectResult()
        for folder in list_subdirectories(root):
            context_path = self.find_context_file(folder)
            if context_path is None:
                logger.warning("No context file found in {}", folder.name)
                result.skipped.append(folder.name)
                continue

            images = locate_images(folder)
            if not images:
                logger.warning("No image file found in {}", folder.name)
                result.skipped.append(folder.name)
                continue
            if len(images) > 1:
                logger.warning(
                    "{} holds {} images, using {}",
                    folder.name,
                    len(images),
                    images[0].name,
                )
                result.multiple_images.append(folder.name)

            blocks = parse_context_file(context_path)
            image_path = images[0].resolve()
            result.records.append(
                ImageRecord(
                    folder_name=folder.name,
                    context_before=blocks.context_before,
                    caption=blocks.caption,
                    context_after=blocks.context_after,
                    image_path=str(image_path),
                    image_filename=image_path.name,
                )
            )
            logger.debug("Collected {}", folder.name)

        return result

    def find_context_file(self, folder: Path) -> Optional[Path]:
        for name in self.context_filenames:
            candidate = Path(folder) / name
            if candidate.is_file():
                return candidate
        return None


def save_metadata(records: Iterable[ImageRecord], path: Path) -> None:
    """Persist records as the interchange document."""
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        json.dumps([record.to_dict() for record in records], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


def load_metadata(path: Path) -> List[ImageRecord]:
    """
    Load the interchange document

    Raises:
        FileNotFoundError: If the document does not exist
        PipelineError: If it is not a JSON list of records
    """
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Image metadata not found: {source}")

    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PipelineError(f"Malformed image metadata: {source}") from exc

    if not isinstance(payload, list):
        raise PipelineError(f"Image metadata must be a JSON list: {source}")

    records = [ImageRecord.from_dict(entry) for entry in payload]
    seen = set()
    for record in records:
        if record.folder_name in seen:
            raise PipelineError(f"Duplicate folderName in image metadata: {record.folder_name}")
        seen.add(record.folder_name)
    return records
