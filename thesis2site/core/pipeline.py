"""
Pipeline facade - run each authoring stage against the workspace files
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from .assembler import ContentAssembler, PlacementReport, PlacementResult, verify_placement
from .captions import CaptionReconciler, CaptionReport, load_caption_mapping
from .metadata import CollectResult, MetadataAggregator, load_metadata, save_metadata
from .models import ContentDocument, PageText
from .pdf_extractor import PdfExtractor, load_pages, save_pages
from .publisher import ImagePublisher, PublishResult, load_filename_mapping, save_filename_mapping
from .reconciler import ReconcileResult, reconcile_paths
from .sections import load_section_specs
from .settings import Settings
from .slides import inspect_slide_deck
from .text_cleaner import TextCleaner


@dataclass
class ExtractResult:
    """Pages and image files pulled out of the PDF"""
    pages: List[PageText] = field(default_factory=list)
    images: List[Path] = field(default_factory=list)


@dataclass
class BuildResult:
    """Assembled content document and how its sections came out"""
    document: ContentDocument
    section_counts: Dict[str, int] = field(default_factory=dict)
    placement: Optional[PlacementResult] = None


class ThesisPipeline:
    """Main class for running the thesis authoring stages"""

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize pipeline

        Args:
            settings: Workspace layout and extraction options; read from the
                environment when omitted
        """
        self.settings = settings or Settings()

        self.aggregator = MetadataAggregator(context_filenames=self.settings.context_filenames)
        self.extractor = PdfExtractor(min_image_bytes=self.settings.min_image_bytes)
        self.cleaner = TextCleaner(
            header_patterns=self.settings.header_patterns,
            repeat_threshold=self.settings.repeat_threshold,
        )

    def path(self, value: Optional[str], default: str) -> Path:
        return self.settings.resolve(value or default)

    def collect(self, source_dir: Optional[str] = None, metadata_path: Optional[str] = None) -> CollectResult:
        """
        Build the interchange document from the figure folders

        Args:
            source_dir: Folder of figure folders
            metadata_path: Where to write the interchange document

        Returns:
            CollectResult
        """
        result = self.aggregator.collect(self.path(source_dir, self.settings.source_dir))
        save_metadata(result.records, self.path(metadata_path, self.settings.metadata_path))
        return result

    def reconcile(self, source_dir: Optional[str] = None, metadata_path: Optional[str] = None) -> ReconcileResult:
        """Re-point the interchange document at the current figure folders."""
        metadata_file = self.path(metadata_path, self.settings.metadata_path)
        records = load_metadata(metadata_file)
        result = reconcile_paths(records, self.path(source_dir, self.settings.source_dir))
        save_metadata(result.records, metadata_file)
        return result

    def publish(
        self,
        metadata_path: Optional[str] = None,
        public_dir: Optional[str] = None,
        mapping_path: Optional[str] = None,
    ) -> PublishResult:
        """Copy every figure into the public directory and save the name mapping."""
        records = load_metadata(self.path(metadata_path, self.settings.metadata_path))
        publisher = ImagePublisher(self.path(public_dir, self.settings.public_dir))
        result = publisher.publish(records)
        save_filename_mapping(result.mapping, self.path(mapping_path, self.settings.mapping_path))
        return result

    def extract_pdf(
        self,
        pdf_path: Optional[str] = None,
        pages_path: Optional[str] = None,
        images_dir: Optional[str] = None,
    ) -> ExtractResult:
        """
        Extract page text, and optionally embedded images, from the thesis PDF

        Args:
            pdf_path: Thesis PDF
            pages_path: Where to write the pages document
            images_dir: Where to write ``page_<N>_img_<M>`` files; skipped when None
        """
        pdf_file = self.path(pdf_path, self.settings.pdf_path)
        result = ExtractResult(pages=self.extractor.extract_pages(str(pdf_file)))
        save_pages(result.pages, self.path(pages_path, self.settings.pages_path))
        if images_dir:
            result.images = self.extractor.extract_images(str(pdf_file), str(self.settings.resolve(images_dir)))
        return result

    def build_content(
        self,
        pages_path: Optional[str] = None,
        content_path: Optional[str] = None,
        metadata_path: Optional[str] = None,
        mapping_path: Optional[str] = None,
        sections_config: Optional[str] = None,
        place_images: bool = True,
    ) -> BuildResult:
        """
        Clean the extracted pages, cut them into sections and write the content document

        Entries of an existing content document that are not sections
        (hero, downloads, ...) are carried over. Figures are placed when
        both the interchange document and the filename mapping exist.
        """
        specs = load_section_specs(
            self.path(sections_config, self.settings.sections_config),
            default_min_length=self.settings.min_paragraph_length,
        )
        assembler = ContentAssembler(section_specs=specs, cleaner=self.cleaner)

        pages = load_pages(self.path(pages_path, self.settings.pages_path))
        paragraphs = self.cleaner.paragraphs([page.text for page in pages])
        sections = assembler.extract_sections(paragraphs)

        content_file = self.path(content_path, self.settings.content_path)
        base = ContentDocument.load(str(content_file)) if content_file.exists() else None
        document = assembler.assemble(sections, base=base)
        result = BuildResult(
            document=document,
            section_counts={key: len(value) for key, value in sections.items()},
        )

        if place_images:
            metadata_file = self.path(metadata_path, self.settings.metadata_path)
            mapping_file = self.path(mapping_path, self.settings.mapping_path)
            if metadata_file.exists() and mapping_file.exists():
                result.placement = assembler.place_images(
                    document,
                    load_metadata(metadata_file),
                    load_filename_mapping(mapping_file),
                    public_prefix=self.settings.public_prefix,
                )
                result.document = result.placement.document
            else:
                logger.warning("Image metadata or filename mapping missing, images not placed")

        result.document.save(str(content_file))
        return result

    def verify_placement(
        self,
        metadata_path: Optional[str] = None,
        mapping_path: Optional[str] = None,
        content_path: Optional[str] = None,
        public_dir: Optional[str] = None,
    ) -> PlacementReport:
        """Cross-check figures, published files and the images the content document references."""
        return verify_placement(
            ContentDocument.load(str(self.path(content_path, self.settings.content_path))),
            load_metadata(self.path(metadata_path, self.settings.metadata_path)),
            load_filename_mapping(self.path(mapping_path, self.settings.mapping_path)),
            self.path(public_dir, self.settings.public_dir),
            public_prefix=self.settings.public_prefix,
        )

    def verify_captions(self, captions_path: Optional[str] = None, content_path: Optional[str] = None) -> CaptionReport:
        """Compare image captions in the content document with the caption table."""
        reconciler = CaptionReconciler(load_caption_mapping(self.path(captions_path, self.settings.captions_path)))
        document = ContentDocument.load(str(self.path(content_path, self.settings.content_path)))
        return reconciler.verify(document)

    def fix_captions(self, captions_path: Optional[str] = None, content_path: Optional[str] = None) -> CaptionReport:
        """
        Rewrite mismatched captions and alt texts in the content document

        The file is only rewritten when at least one block changed, so a
        repeated run leaves it byte-identical.
        """
        reconciler = CaptionReconciler(load_caption_mapping(self.path(captions_path, self.settings.captions_path)))
        content_file = self.path(content_path, self.settings.content_path)
        document, report = reconciler.fix(ContentDocument.load(str(content_file)))
        if report.fixed:
            document.save(str(content_file))
        return report

    def inspect_slides(self, pptx_path: Optional[str] = None, slide: int = 1) -> Dict[str, Any]:
        return inspect_slide_deck(str(self.path(pptx_path, self.settings.slides_path)), slide=slide)
