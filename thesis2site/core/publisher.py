"""
Image publishing - copy figure images into the flat public directory
"""
from __future__ import annotations

import json
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from loguru import logger

from .models import ImageRecord, PipelineError

UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
REPEATED_UNDERSCORES = re.compile(r"_{2,}")


def sanitize_filename(name: str) -> str:
    """Restrict a name to ``[a-z0-9._-]`` with single underscores."""
    safe = UNSAFE_CHARS.sub("_", name or "")
    safe = REPEATED_UNDERSCORES.sub("_", safe)
    return safe.lower().strip("_")


def published_filename(folder_name: str, image_filename: str) -> str:
    """
    Derive the public filename for a figure

    Args:
        folder_name: Source folder name (may itself end in the extension)
        image_filename: Name of the image inside the folder

    Returns:
        Sanitized folder name plus the image's original extension
    """
    extension = Path(image_filename).suffix
    base = folder_name
    if extension and base.lower().endswith(extension.lower()):
        base = base[: -len(extension)]
    return f"{sanitize_filename(base) or 'image'}{extension}"


@dataclass
class PublishResult:
    """Outcome of one publish run"""
    mapping: Dict[str, str] = field(default_factory=dict)
    failures: List[Tuple[str, str]] = field(default_factory=list)
    collisions: List[str] = field(default_factory=list)

    @property
    def copied(self) -> int:
        return len(self.mapping)


class ImagePublisher:
    """Publish figure images under sanitized names"""

    def __init__(self, publish_dir: Path):
        """
        Initialize publisher

        Args:
            publish_dir: Flat directory the site serves images from
        """
        self.publish_dir = Path(publish_dir)

    def publish(self, records: Iterable[ImageRecord]) -> PublishResult:
        """
        Copy every record's image into the publish directory

        Two folders that sanitize to the same name overwrite each other;
        the later one wins and the name is reported in ``collisions``.
        A failed copy is logged and the run moves on.
        """
        self.publish_dir.mkdir(parents=True, exist_ok=True)
        result = PublishResult()
        owners: Dict[str, str] = {}

        for record in records:
            target_name = published_filename(record.folder_name, record.image_filename)
            target = self.publish_dir / target_name

            try:
                shutil.copyfile(record.image_path, target)
            except OSError as exc:
                logger.error("Failed to copy {}: {}", record.folder_name, exc)
                result.failures.append((record.folder_name, str(exc)))
                continue

            if target_name in owners and owners[target_name] != record.folder_name:
                logger.warning(
                    "{} overwrote {} (both publish as {})",
                    record.folder_name,
                    owners[target_name],
                    target_name,
                )
                result.collisions.append(target_name)
            owners[target_name] = record.folder_name
            result.mapping[record.folder_name] = target_name
            logger.debug("Copied {} -> {}", record.folder_name, target_name)

        return result


def save_filename_mapping(mapping: Dict[str, str], path: Path) -> None:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(mapping, ensure_ascii=False, indent=2), encoding="utf-8")


def load_filename_mapping(path: Path) -> Dict[str, str]:
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Filename mapping not found: {source}")
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PipelineError(f"Malformed filename mapping: {source}") from exc
    if not isinstance(payload, dict):
        raise PipelineError(f"Filename mapping must be a JSON object: {source}")
    return {str(key): str(value) for key, value in payload.items()}
