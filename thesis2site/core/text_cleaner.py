"""
Text cleaning - strip PDF layout artifacts and segment paragraphs
"""
from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, List, Optional, Sequence

from loguru import logger

PAGE_NUMBER_LINE = re.compile(
    r"(\d{1,4}|-+\s*\d{1,4}\s*-+|-\s*[ivxlcdm]+\s*-|page\s+\d{1,4}(\s+of\s+\d{1,4})?)",
    re.IGNORECASE,
)
CONTENTS_HEADING = re.compile(r"(table\s+of\s+)?contents?|list\s+of\s+(figures|tables)", re.IGNORECASE)
NUMBERED_TOC_LINE = re.compile(
    r"^\d{1,2}(\.\d{1,2})*\.?\s+(?P<title>[A-Z][^.!?:;]{0,80}?)\s*(\.{2,}\s*)?\d{1,4}$"
)
DOTTED_TOC_LINE = re.compile(r"^(?P<title>[A-Z][^!?:;]{0,80}?)\s*\.{3,}\s*\d{1,4}$")
PLAIN_TOC_LINE = re.compile(r"^(?P<title>[A-Z][^.!?:;,]{0,80}?)\s+\d{1,4}$")
SECTION_PREFIX = re.compile(r"^\d{1,2}(\.\d{1,2})*\.?\s+(?=[A-Z])")
SENTENCE_END = re.compile(r"[.!?:]['\")\]]?$")

DEFAULT_HEADER_PATTERNS = (
    r"^\d{2}[-/.]\d{2}[-/.]\d{4}$",
)

MAX_TOC_TITLE_WORDS = 10
MAX_HEADER_LENGTH = 90


class TextCleaner:
    """Clean extracted thesis text and split it into paragraphs"""

    def __init__(
        self,
        header_patterns: Optional[Iterable[str]] = None,
        repeat_threshold: int = 3,
    ):
        """
        Initialize cleaner

        Args:
            header_patterns: Regexes for header/footer lines to drop
            repeat_threshold: Short lines seen on this many pages count as running headers
        """
        patterns = DEFAULT_HEADER_PATTERNS if header_patterns is None else tuple(header_patterns)
        self.header_patterns = [re.compile(pattern, re.IGNORECASE) for pattern in patterns]
        self.repeat_threshold = repeat_threshold

    def paragraphs(self, pages: Sequence[str]) -> List[str]:
        """Clean raw page texts and return their paragraphs in order."""
        return self.split_paragraphs(self.clean_pages(pages))

    def clean_pages(self, pages: Sequence[str]) -> str:
        """
        Clean a sequence of raw page texts into one text

        Args:
            pages: Raw text per page, in page order

        Returns:
            Cleaned text with pages separated by blank lines
        """
        repeated = self._repeated_lines(pages)
        cleaned_pages: List[str] = []
        for text in pages:
            cleaned = self.clean_page(text, repeated=repeated)
            if cleaned.strip():
                cleaned_pages.append(cleaned)
        return self.normalize_blank_lines("\n\n".join(cleaned_pages)).strip()

    def clean_page(self, text: str, repeated: Optional[set] = None) -> str:
        """Strip page numbers, headers and TOC lines from one page."""
        if not text:
            return ""

        normalized = text.replace("\r", "\n")
        normalized = re.sub(r"([a-z])-\n([a-z])", r"\1\2", normalized)

        raw_lines = [re.sub(r"[ \t]+", " ", line).strip() for line in normalized.split("\n")]
        lines: List[str] = []
        for line in raw_lines:
            if line and repeated and line in repeated:
                continue
            if line and self.is_artifact_line(line):
                continue
            lines.append(line)

        if not any(not line for line in _trim_blank(lines)):
            lines = self._reflow(lines)
        return self.normalize_blank_lines("\n".join(lines)).strip()

    def is_artifact_line(self, line: str) -> bool:
        """True for page numbers, header/footer boilerplate and TOC entries."""
        text = line.strip()
        if PAGE_NUMBER_LINE.fullmatch(text):
            return True
        if CONTENTS_HEADING.fullmatch(text):
            return True
        if any(pattern.search(text) for pattern in self.header_patterns):
            return True
        return self.is_toc_line(text)

    @staticmethod
    def is_toc_line(line: str) -> bool:
        for pattern in (NUMBERED_TOC_LINE, DOTTED_TOC_LINE, PLAIN_TOC_LINE):
            match = pattern.match(line)
            if not match:
                continue
            words = match.group("title").split()
            if len(words) > MAX_TOC_TITLE_WORDS:
                continue
            # unnumbered, undotted entries must read like a title
            if pattern is PLAIN_TOC_LINE and not _is_title_case(words):
                continue
            return True
        return False

    @staticmethod
    def normalize_blank_lines(text: str) -> str:
        """Collapse runs of blank lines into a single blank line."""
        return re.sub(r"\n[ \t]*(\n[ \t]*){2,}", "\n\n", text or "")

    @staticmethod
    def split_paragraphs(text: str) -> List[str]:
        """
        Split cleaned text on blank lines

        Lines inside a paragraph are joined with single spaces; empty and
        page-number-only paragraphs are dropped.
        """
        paragraphs: List[str] = []
        for chunk in re.split(r"\n[ \t]*\n", text or ""):
            paragraph = re.sub(r"\s+", " ", chunk).strip()
            if not paragraph or PAGE_NUMBER_LINE.fullmatch(paragraph):
                continue
            paragraphs.append(paragraph)
        return paragraphs

    def extract_section(
        self,
        paragraphs: Sequence[str],
        start_marker: str,
        end_marker: Optional[str] = None,
        min_length: int = 50,
    ) -> List[str]:
        """
        Keep the paragraphs of one section

        Args:
            paragraphs: Cleaned paragraphs of the whole document
            start_marker: Text that opens the section (paragraph kept)
            end_marker: Text that opens the next section (paragraph dropped)
            min_length: Paragraphs shorter than this are dropped

        Returns:
            Section paragraphs without leading section numbers
        """
        start = _find_marker(paragraphs, start_marker, begin=0)
        if start is None:
            logger.warning("Section start marker not found: {}", start_marker)
            return []

        end = len(paragraphs)
        if end_marker:
            found = _find_marker(paragraphs, end_marker, begin=start + 1)
            if found is None:
                logger.warning("Section end marker not found: {}", end_marker)
            else:
                end = found

        selected: List[str] = []
        for paragraph in paragraphs[start:end]:
            text = strip_section_number(paragraph)
            if len(text) >= min_length:
                selected.append(text)
        return selected

    def _repeated_lines(self, pages: Sequence[str]) -> set:
        if len(pages) < self.repeat_threshold:
            return set()
        counter = Counter(
            line
            for text in pages
            for line in {
                re.sub(r"[ \t]+", " ", raw).strip()
                for raw in (text or "").replace("\r", "\n").split("\n")
            }
            if line and len(line) <= MAX_HEADER_LENGTH
        )
        return {line for line, count in counter.items() if count >= self.repeat_threshold}

    @staticmethod
    def _reflow(lines: List[str]) -> List[str]:
        content = [line for line in lines if line]
        if len(content) < 3:
            return lines
        width = max(len(line) for line in content)
        reflowed: List[str] = []
        for line in content:
            reflowed.append(line)
            if SENTENCE_END.search(line) and len(line) < width * 0.75:
                reflowed.append("")
        return reflowed


def strip_section_number(paragraph: str) -> str:
    return SECTION_PREFIX.sub("", paragraph.strip(), count=1)


def _find_marker(paragraphs: Sequence[str], marker: str, begin: int) -> Optional[int]:
    needle = marker.lower()
    for index in range(begin, len(paragraphs)):
        if strip_section_number(paragraphs[index]).lower().startswith(needle):
            return index
    for index in range(begin, len(paragraphs)):
        if needle in paragraphs[index].lower():
            return index
    return None


def _is_title_case(words: List[str]) -> bool:
    return all(word[0].isupper() for word in words if len(word) > 3)


def _trim_blank(lines: List[str]) -> List[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start]:
        start += 1
    while end > start and not lines[end - 1]:
        end -= 1
    return lines[start:end]
