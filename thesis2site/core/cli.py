"""
CLI interface for thesis2site
"""
import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from .pipeline import ThesisPipeline
from .settings import Settings


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser"""
    parser = argparse.ArgumentParser(
        description="Extract and reconcile thesis content for the website"
    )

    parser.add_argument(
        "--root",
        default=None,
        help="Workspace root (defaults to THESIS2SITE_ROOT or the current directory)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    collect = subparsers.add_parser("collect", help="Build image metadata from figure folders")
    collect.add_argument("--source", help="Folder of figure folders")
    collect.add_argument("--metadata", help="Image metadata output path")

    reconcile = subparsers.add_parser("reconcile", help="Re-point image metadata at moved folders")
    reconcile.add_argument("--source", help="Folder of figure folders")
    reconcile.add_argument("--metadata", help="Image metadata path")

    publish = subparsers.add_parser("publish", help="Copy images into the public directory")
    publish.add_argument("--metadata", help="Image metadata path")
    publish.add_argument("--public-dir", help="Published image directory")
    publish.add_argument("--mapping", help="Filename mapping output path")

    extract = subparsers.add_parser("extract-pdf", help="Extract page text and images from the PDF")
    extract.add_argument("pdf", nargs="?", help="Thesis PDF path")
    extract.add_argument("--pages", help="Pages document output path")
    extract.add_argument("--images-dir", help="Also extract embedded images into this directory")

    build = subparsers.add_parser("build-content", help="Assemble the content document")
    build.add_argument("--pages", help="Pages document path")
    build.add_argument("--content", help="Content document path")
    build.add_argument("--metadata", help="Image metadata path")
    build.add_argument("--mapping", help="Filename mapping path")
    build.add_argument("--sections", help="Section config (YAML)")
    build.add_argument("--no-images", action="store_true", help="Do not place figures")

    placement = subparsers.add_parser("verify-placement", help="Cross-check figures, public images and content references")
    placement.add_argument("--metadata", help="Image metadata path")
    placement.add_argument("--mapping", help="Filename mapping path")
    placement.add_argument("--content", help="Content document path")
    placement.add_argument("--public-dir", help="Published image directory")

    for name, help_text in (
        ("fix-captions", "Rewrite image captions from the caption table"),
        ("verify-captions", "Check image captions against the caption table"),
    ):
        captions = subparsers.add_parser(name, help=help_text)
        captions.add_argument("--captions", help="Caption table path")
        captions.add_argument("--content", help="Content document path")

    slides = subparsers.add_parser("inspect-slides", help="Show XML excerpts from the slide deck")
    slides.add_argument("pptx", nargs="?", help="Slide deck path")
    slides.add_argument("--slide", type=int, default=1, help="Slide number")

    return parser


def main(argv=None):
    """Main CLI entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    settings = Settings(root=Path(args.root)) if args.root else Settings()
    pipeline = ThesisPipeline(settings=settings)

    try:
        exit_code = _run(pipeline, args)
    except Exception as exc:
        if args.verbose:
            raise
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


def _run(pipeline: ThesisPipeline, args: argparse.Namespace) -> int:
    if args.command == "collect":
        result = pipeline.collect(source_dir=args.source, metadata_path=args.metadata)
        print(f"Extracted metadata for {len(result.records)} images")
        print(f"Skipped: {len(result.skipped)}")
        if result.multiple_images:
            print(f"Folders with several images: {len(result.multiple_images)}")
        return 0

    if args.command == "reconcile":
        result = pipeline.reconcile(source_dir=args.source, metadata_path=args.metadata)
        print("Summary:")
        print(f"  Matched: {result.matched}")
        print(f"  Updated: {result.updated}")
        print(f"  Skipped (no image): {result.skipped}")
        print(f"  Not found in metadata: {result.not_found}")
        print(f"  Ambiguous prefix matches: {result.ambiguous}")
        return 0

    if args.command == "publish":
        result = pipeline.publish(
            metadata_path=args.metadata,
            public_dir=args.public_dir,
            mapping_path=args.mapping,
        )
        print(f"Copied {result.copied} images")
        if result.failures:
            print(f"Failed: {len(result.failures)}")
        if result.collisions:
            print(f"Name collisions: {len(result.collisions)}")
        return 0

    if args.command == "extract-pdf":
        result = pipeline.extract_pdf(
            pdf_path=args.pdf,
            pages_path=args.pages,
            images_dir=args.images_dir,
        )
        print(f"Pages extracted: {len(result.pages)}")
        if args.images_dir:
            print(f"Images extracted: {len(result.images)}")
        return 0

    if args.command == "build-content":
        result = pipeline.build_content(
            pages_path=args.pages,
            content_path=args.content,
            metadata_path=args.metadata,
            mapping_path=args.mapping,
            sections_config=args.sections,
            place_images=not args.no_images,
        )
        for key, count in result.section_counts.items():
            print(f"{key}: {count} paragraphs")
        if result.placement is not None:
            print(f"Images placed: {result.placement.placed}")
            print(f"Images not placed: {len(result.placement.unplaced)}")
        return 0

    if args.command == "verify-placement":
        report = pipeline.verify_placement(
            metadata_path=args.metadata,
            mapping_path=args.mapping,
            content_path=args.content,
            public_dir=args.public_dir,
        )
        for label, names in (
            ("Not published", report.unpublished),
            ("Broken references", report.broken_references),
            ("Not referenced in content", report.unreferenced),
            ("Extra files in public directory", report.extra_files),
        ):
            if names:
                print(f"{label}: {len(names)}")
                for name in names:
                    print(f"   - {name}")
        print(f"Metadata images: {report.figures}")
        print(f"Public images: {report.published_files}")
        print(f"Content references: {report.references}")
        return 0 if report.ok else 1

    if args.command == "fix-captions":
        report = pipeline.fix_captions(captions_path=args.captions, content_path=args.content)
        print(f"Updated {report.fixed} image captions")
        print(f"Could not fix: {report.mismatched}")
        return 0

    if args.command == "verify-captions":
        report = pipeline.verify_captions(captions_path=args.captions, content_path=args.content)
        for mismatch in report.mismatches:
            print(f"{mismatch.filename}: {mismatch.reason}")
            if mismatch.expected_caption:
                print(f"   Expected caption: {mismatch.expected_caption!r}")
                print(f"   Actual caption:   {mismatch.actual_caption!r}")
        print(f"Correct mappings: {report.matched}")
        print(f"Incorrect mappings: {report.mismatched}")
        print(f"Total images: {report.total}")
        return 0 if report.ok else 1

    if args.command == "inspect-slides":
        print(json.dumps(pipeline.inspect_slides(pptx_path=args.pptx, slide=args.slide), indent=2))
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


if __name__ == "__main__":
    main()
