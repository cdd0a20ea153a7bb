"""
Content assembly - build the section-keyed content document
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from loguru import logger

from .models import (
    IMAGE_EXTENSIONS,
    SECTION_KEYS,
    ContentDocument,
    ContentSection,
    ImageBlock,
    ImageRecord,
    TextBlock,
)
from .sections import DEFAULT_SECTION_SPECS, SectionSpec
from .text_cleaner import TextCleaner

MIN_WORD_LENGTH = 4
MATCH_THRESHOLD = 0.5


@dataclass
class PlacementResult:
    """Document with images placed, plus the records that found no spot"""
    document: ContentDocument
    placed: int = 0
    unplaced: List[str] = field(default_factory=list)
    already_present: int = 0


@dataclass
class PlacementReport:
    """Cross-check of metadata, published files and content references"""
    figures: int = 0
    published_files: int = 0
    references: int = 0
    unpublished: List[str] = field(default_factory=list)
    unreferenced: List[str] = field(default_factory=list)
    broken_references: List[str] = field(default_factory=list)
    extra_files: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.unpublished and not self.broken_references


class ContentAssembler:
    """Assemble cleaned section texts and figures into a content document"""

    def __init__(
        self,
        section_specs: Optional[Sequence[SectionSpec]] = None,
        cleaner: Optional[TextCleaner] = None,
    ):
        """
        Initialize assembler

        Args:
            section_specs: Section titles and markers; defaults cover the four thesis sections
            cleaner: Cleaner used for section extraction
        """
        self.section_specs = list(section_specs or DEFAULT_SECTION_SPECS)
        self.cleaner = cleaner or TextCleaner()

    def extract_sections(self, paragraphs: Sequence[str]) -> Dict[str, List[str]]:
        """Cut the document's paragraphs into sections using their configured markers."""
        sections: Dict[str, List[str]] = {}
        for spec in self.section_specs:
            sections[spec.key] = self.cleaner.extract_section(
                paragraphs,
                start_marker=spec.start_marker,
                end_marker=spec.end_marker,
                min_length=spec.min_length,
            )
            logger.info("Section {}: {} paragraphs", spec.key, len(sections[spec.key]))
        return sections

    def assemble(
        self,
        section_paragraphs: Mapping[str, Sequence[str]],
        base: Optional[ContentDocument] = None,
    ) -> ContentDocument:
        """
        Merge section texts into one content document

        Args:
            section_paragraphs: Section key -> cleaned paragraphs
            base: Existing document whose non-section entries are kept

        Returns:
            New ContentDocument; sections appear in configured order
        """
        document = ContentDocument()
        if base is not None:
            document.extra = dict(base.extra)
            document.key_order = list(base.key_order)
            for key, section in base.sections.items():
                if key not in section_paragraphs:
                    document.sections[key] = section

        titles = {spec.key: spec.title for spec in self.section_specs}
        ordered = [spec.key for spec in self.section_specs]
        ordered += [key for key in section_paragraphs if key not in ordered]
        for key in ordered:
            if key not in section_paragraphs:
                continue
            section = ContentSection(
                title=titles.get(key, key.title()),
                content=[TextBlock(value=text) for text in section_paragraphs[key] if text.strip()],
            )
            if base is not None and key in base.sections:
                section = replace(base.sections[key], title=section.title, content=section.content)
            document.sections[key] = section

        if not document.key_order:
            document.key_order = [key for key in SECTION_KEYS if key in document.sections]
        return document

    def place_images(
        self,
        document: ContentDocument,
        records: Sequence[ImageRecord],
        filename_map: Mapping[str, str],
        public_prefix: str = "/images",
    ) -> PlacementResult:
        """
        Insert an image block next to the paragraph each figure belongs to

        The last "text before" line is matched first and the image goes
        after that paragraph; failing that, the first "text after" line is
        matched and the image goes before it.

        Args:
            document: Document to place images into (not mutated)
            records: Image metadata
            filename_map: Folder name -> published filename
            public_prefix: URL prefix of the published image directory

        Returns:
            PlacementResult with a new document
        """
        sections = {
            key: replace(section, content=list(section.content))
            for key, section in document.sections.items()
        }
        placed_doc = ContentDocument(
            sections=sections,
            extra=dict(document.extra),
            key_order=list(document.key_order),
        )
        result = PlacementResult(document=placed_doc)
        present: Set[str] = {block.src for _, _, block in document.iter_images()}
        prefix = public_prefix.rstrip("/")

        for record in records:
            filename = filename_map.get(record.folder_name)
            if not filename:
                logger.warning("{} has not been published, skipping placement", record.folder_name)
                result.unplaced.append(record.folder_name)
                continue

            src = f"{prefix}/{filename}"
            if src in present:
                result.already_present += 1
                continue

            target = self._find_position(sections, record)
            if target is None:
                logger.warning("No matching paragraph for {}", record.folder_name)
                result.unplaced.append(record.folder_name)
                continue

            key, index = target
            caption = record.caption or record.folder_name
            sections[key].content.insert(index, ImageBlock(src=src, alt=caption, caption=caption))
            present.add(src)
            result.placed += 1
            logger.debug("Placed {} in {} at {}", record.folder_name, key, index)

        return result

    def _find_position(
        self,
        sections: Mapping[str, ContentSection],
        record: ImageRecord,
    ) -> Optional[Tuple[str, int]]:
        if record.context_before:
            match = self._best_paragraph(sections, record.context_before[-1])
            if match is not None:
                key, index = match
                return key, _after_images(sections[key].content, index + 1)
        if record.context_after:
            match = self._best_paragraph(sections, record.context_after[0])
            if match is not None:
                return match
        return None

    def _best_paragraph(
        self,
        sections: Mapping[str, ContentSection],
        context: str,
    ) -> Optional[Tuple[str, int]]:
        words = context_words(context)
        if not words:
            return None

        best: Optional[Tuple[str, int]] = None
        best_score = 0.0
        for key, section in sections.items():
            for index, block in enumerate(section.content):
                if not isinstance(block, TextBlock):
                    continue
                score = overlap_score(words, block.value)
                if score > best_score:
                    best, best_score = (key, index), score

        if best_score < MATCH_THRESHOLD:
            return None
        return best


def verify_placement(
    document: ContentDocument,
    records: Sequence[ImageRecord],
    filename_map: Mapping[str, str],
    public_dir: Path,
    public_prefix: str = "/images",
) -> PlacementReport:
    """
    Check that every figure is published and referenced, and every reference has a file

    Args:
        document: Content document
        records: Image metadata
        filename_map: Folder name -> published filename
        public_dir: Directory served under ``public_prefix``
        public_prefix: URL prefix of ``public_dir``

    Returns:
        PlacementReport; unreferenced figures and extra files are reported
        but do not make it fail
    """
    public_dir = Path(public_dir)
    published: Set[str] = set()
    if public_dir.is_dir():
        published = {
            child.name
            for child in public_dir.iterdir()
            if child.is_file() and child.suffix.lower() in IMAGE_EXTENSIONS
        }

    prefix = public_prefix.rstrip("/") + "/"
    referenced: Set[str] = set()
    report = PlacementReport(figures=len(records), published_files=len(published))
    for key, _, block in document.iter_images():
        report.references += 1
        relative = block.src[len(prefix):] if block.src.startswith(prefix) else block.filename
        referenced.add(relative)
        if not (public_dir / relative).is_file():
            logger.warning("{} references missing file {}", key, block.src)
            report.broken_references.append(block.src)

    expected: Set[str] = set()
    for record in records:
        filename = filename_map.get(record.folder_name)
        if not filename or filename not in published:
            logger.warning("{} is not published", record.folder_name)
            report.unpublished.append(record.folder_name)
            continue
        expected.add(filename)
        if filename not in referenced:
            report.unreferenced.append(record.folder_name)

    report.extra_files = sorted(published - expected - referenced)
    return report


def context_words(text: str) -> List[str]:
    return [word for word in re.findall(r"[a-z0-9]+", (text or "").lower()) if len(word) >= MIN_WORD_LENGTH]


def overlap_score(words: Sequence[str], paragraph: str) -> float:
    """Share of ``words`` that occur in ``paragraph``."""
    if not words:
        return 0.0
    haystack = set(re.findall(r"[a-z0-9]+", paragraph.lower()))
    return sum(1 for word in words if word in haystack) / len(words)


def _after_images(content: List, index: int) -> int:
    while index < len(content) and isinstance(content[index], ImageBlock):
        index += 1
    return index
