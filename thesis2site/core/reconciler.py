"""
Path reconciliation - re-point image records at a moved or renamed tree
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Collection, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from .metadata import find_image_file, list_subdirectories
from .models import ImageRecord


@dataclass
class ReconcileResult:
    """Updated records and per-folder outcome counts"""
    records: List[ImageRecord] = field(default_factory=list)
    matched: int = 0
    updated: int = 0
    skipped: int = 0
    not_found: int = 0
    ambiguous: int = 0
    unmatched_folders: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.updated > 0


def match_record(
    folder_name: str,
    records: Sequence[ImageRecord],
    exclude: Collection[int] = (),
) -> Optional[int]:
    """
    Find the record for a tree folder

    An exact folder name wins. Otherwise any record whose name is a prefix
    of the folder name (or the reverse) qualifies; the longest shared prefix
    wins and ties go to the earliest record.

    Args:
        folder_name: Tree folder name
        records: Interchange records
        exclude: Record indexes that may not be taken by prefix

    Returns:
        Index into records, or None
    """
    for index, record in enumerate(records):
        if record.folder_name == folder_name:
            return index
    return best_prefix_match(folder_name, records, prefix_candidates(folder_name, records, exclude))


def prefix_candidates(
    folder_name: str,
    records: Sequence[ImageRecord],
    exclude: Collection[int] = (),
) -> List[int]:
    return [
        index
        for index, record in enumerate(records)
        if index not in exclude
        and (record.folder_name.startswith(folder_name) or folder_name.startswith(record.folder_name))
    ]


def best_prefix_match(folder_name: str, records: Sequence[ImageRecord], candidates: Sequence[int]) -> Optional[int]:
    if not candidates:
        return None
    return max(candidates, key=lambda index: (_shared_length(folder_name, records[index]), -index))


def reconcile_paths(records: Sequence[ImageRecord], tree_root: Path) -> ReconcileResult:
    """
    Re-locate each record's image under ``tree_root``

    A record whose name matches a tree folder exactly belongs to that folder;
    other folders only reach it by prefix when no folder claims it exactly.

    Args:
        records: Current interchange records (not mutated)
        tree_root: Directory of figure folders, possibly renamed

    Returns:
        ReconcileResult whose records hold the new paths; records with no
        folder in the tree are carried over unchanged

    Raises:
        FileNotFoundError: If tree_root does not exist
    """
    root = Path(tree_root).expanduser()
    if not root.is_dir():
        raise FileNotFoundError(f"Image directory not found: {root}")

    result = ReconcileResult(records=list(records))
    folders: List[Tuple[Path, Path]] = []
    for folder in list_subdirectories(root):
        image_file = find_image_file(folder)
        if image_file is None:
            logger.warning("Skipping {}: no image file found", folder.name)
            result.skipped += 1
            continue
        folders.append((folder, image_file))

    by_name: Dict[str, int] = {}
    for index, record in enumerate(result.records):
        by_name.setdefault(record.folder_name, index)
    exact_claimed = {by_name[folder.name] for folder, _ in folders if folder.name in by_name}

    claimed: Dict[int, str] = {}
    for folder, image_file in folders:
        index = by_name.get(folder.name)
        if index is None:
            candidates = prefix_candidates(folder.name, result.records, exclude=exact_claimed)
            index = best_prefix_match(folder.name, result.records, candidates)
            if index is not None and len(candidates) > 1:
                logger.warning(
                    "{} matches {} metadata entries by prefix, using {}",
                    folder.name,
                    len(candidates),
                    result.records[index].folder_name,
                )
                result.ambiguous += 1

        if index is None:
            logger.warning("No metadata entry found for folder: {}", folder.name)
            result.not_found += 1
            result.unmatched_folders.append(folder.name)
            continue

        if index in claimed:
            logger.warning(
                "{} and {} both map to {}",
                claimed[index],
                folder.name,
                result.records[index].folder_name,
            )
        claimed[index] = folder.name
        result.matched += 1

        resolved = image_file.resolve()
        current = result.records[index]
        if current.image_path == str(resolved) and current.image_filename == resolved.name:
            continue

        result.records[index] = replace(
            current,
            image_path=str(resolved),
            image_filename=resolved.name,
        )
        result.updated += 1
        logger.info("Updated {} -> {}", folder.name, resolved.name)

    return result


def _shared_length(folder_name: str, record: ImageRecord) -> int:
    return min(len(folder_name), len(record.folder_name))
