"""
PDF extraction module - raw page text and embedded images
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, List, Set

import fitz  # PyMuPDF
from loguru import logger
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .models import PageText, PipelineError

NATIVE_EXTENSIONS = {"png": ".png", "jpg": ".jpg", "jpeg": ".jpg"}


class PdfExtractor:
    """Pull page text and images out of the thesis PDF"""

    def __init__(self, min_image_bytes: int = 0):
        """
        Initialize extractor

        Args:
            min_image_bytes: Embedded images smaller than this are ignored
        """
        self.min_image_bytes = min_image_bytes

    def extract_pages(self, pdf_path: str) -> List[PageText]:
        """
        Extract the raw text of every page

        Args:
            pdf_path: Path to PDF file

        Returns:
            One PageText per page, numbered from 1; cleaning is left to
            the text cleaner

        Raises:
            FileNotFoundError: If PDF not found
            PipelineError: If PDF cannot be read
        """
        pdf_file = self._resolve(pdf_path)
        try:
            reader = PdfReader(str(pdf_file))
        except (PdfReadError, OSError, ValueError) as exc:
            raise PipelineError(f"Unable to read PDF: {pdf_file}") from exc

        pages: List[PageText] = []
        for index, page in enumerate(reader.pages):
            try:
                text = page.extract_text() or ""
            except Exception as exc:
                logger.warning("Unable to extract text from page {}: {}", index + 1, exc)
                text = ""
            pages.append(PageText(page_number=index + 1, text=text.replace("\r", "\n")))

        logger.info("Extracted text from {} pages of {}", len(pages), pdf_file.name)
        return pages

    def extract_images(self, pdf_path: str, output_dir: str) -> List[Path]:
        """
        Write every embedded image as ``page_<N>_img_<M>.<ext>``

        Args:
            pdf_path: Path to PDF file
            output_dir: Directory for the extracted files

        Returns:
            Paths written, in page order

        Raises:
            FileNotFoundError: If PDF not found
            PipelineError: If PDF cannot be opened
        """
        pdf_file = self._resolve(pdf_path)
        out_dir = Path(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)

        try:
            document = fitz.open(str(pdf_file))
        except RuntimeError as exc:
            raise PipelineError(f"Unable to open PDF: {pdf_file}") from exc

        written: List[Path] = []
        try:
            for page_index in range(document.page_count):
                page = document.load_page(page_index)
                written.extend(
                    self._extract_page_images(
                        document,
                        xrefs=self._page_xrefs(page.get_images(full=True)),
                        page_number=page_index + 1,
                        out_dir=out_dir,
                    )
                )
        finally:
            document.close()

        logger.info("Extracted {} images from {}", len(written), pdf_file.name)
        return written

    def _extract_page_images(
        self,
        document: Any,
        xrefs: List[int],
        page_number: int,
        out_dir: Path,
    ) -> List[Path]:
        written: List[Path] = []
        image_index = 0
        for xref in xrefs:
            try:
                info = document.extract_image(xref)
            except (RuntimeError, ValueError) as exc:
                logger.warning("Failed to extract image xref {} on page {}: {}", xref, page_number, exc)
                continue
            if not info or len(info.get("image") or b"") < max(self.min_image_bytes, 1):
                continue

            image_index += 1
            stem = f"page_{page_number}_img_{image_index}"
            extension = NATIVE_EXTENSIONS.get(str(info.get("ext", "")).lower())
            try:
                if extension:
                    output_path = out_dir / f"{stem}{extension}"
                    output_path.write_bytes(info["image"])
                else:
                    output_path = out_dir / f"{stem}.png"
                    self._save_as_png(document, xref, output_path)
            except (OSError, RuntimeError, ValueError) as exc:
                logger.warning("Failed to write {}: {}", stem, exc)
                continue

            written.append(output_path)
            logger.debug("Extracted image: {}", output_path.name)
        return written

    @staticmethod
    def _save_as_png(document: Any, xref: int, output_path: Path) -> None:
        pix = fitz.Pixmap(document, xref)
        if pix.n - pix.alpha >= 4:
            pix = fitz.Pixmap(fitz.csRGB, pix)
        pix.save(str(output_path))

    @staticmethod
    def _page_xrefs(images: Iterable[Any]) -> List[int]:
        seen: Set[int] = set()
        xrefs: List[int] = []
        for image in images:
            if not image:
                continue
            xref = int(image[0])
            if xref in seen:
                continue
            seen.add(xref)
            xrefs.append(xref)
        return xrefs

    @staticmethod
    def _resolve(pdf_path: str) -> Path:
        pdf_file = Path(pdf_path).expanduser().resolve()
        if not pdf_file.exists():
            raise FileNotFoundError(f"PDF not found: {pdf_file}")
        return pdf_file


def save_pages(pages: Iterable[PageText], path: Path) -> None:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        json.dumps([page.to_dict() for page in pages], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


def load_pages(path: Path) -> List[PageText]:
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Pages document not found: {source}")
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PipelineError(f"Malformed pages document: {source}") from exc
    if not isinstance(payload, list):
        raise PipelineError(f"Pages document must be a JSON list: {source}")
    return sorted((PageText.from_dict(entry) for entry in payload), key=lambda page: page.page_number)

