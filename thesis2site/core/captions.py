"""
Caption reconciliation - check and repair image captions against the lookup table
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger

from .models import CaptionMapping, ContentDocument, ImageBlock, PipelineError

PAGE_IMAGE_PATTERN = re.compile(r"^page_(?P<page>\d+)_img_(?P<index>\d+)\.(png|jpe?g)$", re.IGNORECASE)
NUMERIC_KEY = re.compile(r"\d+", re.ASCII)

UNDECODABLE = "undecodable"
MISSING_CAPTION = "missing-caption"
MISMATCH = "mismatch"


@dataclass
class CaptionMismatch:
    """One image block whose caption or alt is not as expected"""
    section: str
    filename: str
    reason: str
    expected_caption: str = ""
    actual_caption: str = ""
    expected_alt: str = ""
    actual_alt: str = ""


@dataclass
class CaptionReport:
    """Counts from a verify or fix pass"""
    total: int = 0
    matched: int = 0
    fixed: int = 0
    mismatches: List[CaptionMismatch] = field(default_factory=list)

    @property
    def mismatched(self) -> int:
        return len(self.mismatches)

    @property
    def ok(self) -> bool:
        return not self.mismatches


def decode_filename(filename: str) -> Optional[Tuple[int, int]]:
    """Decode ``page_<N>_img_<M>.<ext>`` into (page, index)."""
    match = PAGE_IMAGE_PATTERN.match(filename or "")
    if not match:
        return None
    return int(match.group("page")), int(match.group("index"))


def expected_alt(page_number: int, caption: str) -> str:
    return f"Page {page_number} Image - {caption}"


class CaptionReconciler:
    """Compare image blocks with the page/index caption table"""

    def __init__(self, mapping: CaptionMapping):
        """
        Initialize reconciler

        Args:
            mapping: Page number -> image index -> caption
        """
        self.mapping = mapping

    def lookup(self, page_number: int, image_index: int) -> Optional[str]:
        caption = self.mapping.get(str(page_number), {}).get(str(image_index))
        return caption or None

    def verify(self, document: ContentDocument) -> CaptionReport:
        """
        Report which image blocks carry the expected caption and alt

        The document is not modified.
        """
        report = CaptionReport()
        for key, _, block in document.iter_images():
            report.total += 1
            mismatch = self._check(key, block)
            if mismatch is None:
                report.matched += 1
            else:
                report.mismatches.append(mismatch)
        return report

    def fix(self, document: ContentDocument) -> Tuple[ContentDocument, CaptionReport]:
        """
        Rewrite caption and alt of every decodable image with a table entry

        Args:
            document: Content document (not mutated)

        Returns:
            (new document, report); ``report.fixed`` counts changed blocks and
            ``report.mismatches`` lists the blocks that could not be fixed
        """
        report = CaptionReport()
        sections = {}
        for key, section in document.sections.items():
            content = []
            for block in section.content:
                if isinstance(block, ImageBlock):
                    report.total += 1
                    block = self._fix_block(key, block, report)
                content.append(block)
            sections[key] = replace(section, content=content)

        fixed_doc = ContentDocument(
            sections=sections,
            extra=dict(document.extra),
            key_order=list(document.key_order),
        )
        return fixed_doc, report

    def _fix_block(self, section: str, block: ImageBlock, report: CaptionReport) -> ImageBlock:
        mismatch = self._check(section, block)
        if mismatch is None:
            report.matched += 1
            return block
        if mismatch.reason != MISMATCH:
            report.mismatches.append(mismatch)
            return block

        report.fixed += 1
        report.matched += 1
        logger.info("Updated {} -> {!r}", block.filename, mismatch.expected_caption)
        return replace(block, caption=mismatch.expected_caption, alt=mismatch.expected_alt)

    def _check(self, section: str, block: ImageBlock) -> Optional[CaptionMismatch]:
        filename = block.filename
        decoded = decode_filename(filename)
        if decoded is None:
            logger.warning("Could not extract page info from {}", filename)
            return CaptionMismatch(section=section, filename=filename, reason=UNDECODABLE)

        page_number, image_index = decoded
        caption = self.lookup(page_number, image_index)
        if caption is None:
            logger.warning("No caption found for page {}, image {}", page_number, image_index)
            return CaptionMismatch(section=section, filename=filename, reason=MISSING_CAPTION)

        alt = expected_alt(page_number, caption)
        if block.caption == caption and block.alt == alt:
            return None
        return CaptionMismatch(
            section=section,
            filename=filename,
            reason=MISMATCH,
            expected_caption=caption,
            actual_caption=block.caption,
            expected_alt=alt,
            actual_alt=block.alt,
        )


def load_caption_mapping(path: Path) -> CaptionMapping:
    """
    Load and validate the page/index caption table

    Raises:
        FileNotFoundError: If the table does not exist
        PipelineError: If it is not a numeric-keyed nested mapping of strings
    """
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Caption mapping not found: {source}")
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PipelineError(f"Malformed caption mapping: {source}") from exc
    return validate_caption_mapping(payload)


def validate_caption_mapping(payload: object) -> CaptionMapping:
    if not isinstance(payload, dict):
        raise PipelineError("Caption mapping must be a JSON object.")

    mapping: CaptionMapping = {}
    for page_key, images in payload.items():
        if not NUMERIC_KEY.fullmatch(str(page_key)):
            raise PipelineError(f"Caption mapping page key is not numeric: {page_key!r}")
        if not isinstance(images, dict):
            raise PipelineError(f"Caption mapping page {page_key} must map image indexes.")
        page: dict = {}
        for index_key, caption in images.items():
            if not NUMERIC_KEY.fullmatch(str(index_key)):
                raise PipelineError(f"Caption mapping image key is not numeric: {page_key}/{index_key!r}")
            if not isinstance(caption, str):
                raise PipelineError(f"Caption for page {page_key}, image {index_key} must be text.")
            page[str(int(index_key))] = caption
        mapping[str(int(page_key))] = page
    return mapping
