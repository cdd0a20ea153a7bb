"""
Context file parsing - the text around each figure
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

BEFORE = "before"
CAPTION = "caption"
AFTER = "after"

DELIMITER_LABELS = {
    "text before": BEFORE,
    "full caption": CAPTION,
    "text after": AFTER,
}

DELIMITER_PATTERN = re.compile(r"^-{3,}\s*(?P<label>.+?)\s*-{3,}$")


@dataclass
class ContextBlocks:
    """Text before, caption and text after one image"""
    context_before: List[str] = field(default_factory=list)
    caption: str = ""
    context_after: List[str] = field(default_factory=list)


def parse_context_file(path: Path) -> ContextBlocks:
    """
    Parse a context file into its three blocks

    An unreadable file yields empty blocks; the caller decides whether
    that is worth skipping the folder for.
    """
    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("Unable to read context file {}: {}", path, exc)
        return ContextBlocks()
    return parse_context_text(text)


def parse_context_text(text: str) -> ContextBlocks:
    """
    Split context text on its ``--- Label ---`` delimiters

    Args:
        text: Raw context file contents

    Returns:
        ContextBlocks; any missing delimiter leaves its field empty
    """
    lines = [line.strip() for line in (text or "").splitlines()]
    positions = _find_delimiters(lines)

    blocks = ContextBlocks()
    if BEFORE in positions:
        blocks.context_before = _block_lines(lines, positions[BEFORE])
    if CAPTION in positions:
        caption_lines = _block_lines(lines, positions[CAPTION])
        blocks.caption = caption_lines[0] if caption_lines else ""
    if AFTER in positions:
        blocks.context_after = _block_lines(lines, positions[AFTER])
    return blocks


def delimiter_kind(line: str) -> Optional[str]:
    match = DELIMITER_PATTERN.match(line.strip())
    if not match:
        return None
    label = match.group("label").lower()
    for prefix, kind in DELIMITER_LABELS.items():
        if label.startswith(prefix):
            return kind
    return None


def _find_delimiters(lines: List[str]) -> Dict[str, int]:
    positions: Dict[str, int] = {}
    for index, line in enumerate(lines):
        kind = delimiter_kind(line)
        if kind and kind not in positions:
            positions[kind] = index
    return positions


def _block_lines(lines: List[str], start: int) -> List[str]:
    collected: List[str] = []
    for line in lines[start + 1:]:
        if delimiter_kind(line):
            break
        if line:
            collected.append(line)
    return collected
