"""
Slide deck inspection - peek at the XML inside a .pptx for debugging
"""
from __future__ import annotations

import re
import zipfile
from pathlib import Path
from typing import Any, Dict

from .models import PipelineError

SLIDE_ENTRY = re.compile(r"^ppt/slides/slide(\d+)\.xml$")


def inspect_slide_deck(
    pptx_path: str,
    slide: int = 1,
    slide_chars: int = 5000,
    presentation_chars: int = 2000,
) -> Dict[str, Any]:
    """
    Return truncated XML excerpts from a slide deck

    Args:
        pptx_path: Path to the .pptx archive
        slide: 1-based slide number to excerpt
        slide_chars: Maximum characters of slide XML to return
        presentation_chars: Maximum characters of presentation.xml to return

    Returns:
        Dict with ``slideXML``, ``presentationXML``, ``slideLength`` and
        ``slideCount``, or ``error`` when the slide is missing

    Raises:
        FileNotFoundError: If the deck does not exist
        PipelineError: If the deck is not a zip archive
    """
    path = Path(pptx_path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Slide deck not found: {path}")

    try:
        with zipfile.ZipFile(path) as archive:
            names = archive.namelist()
            slide_count = sum(1 for name in names if SLIDE_ENTRY.match(name))
            slide_name = f"ppt/slides/slide{slide}.xml"
            if slide_name not in names:
                return {"error": f"Could not find slide{slide}.xml", "slideCount": slide_count}

            slide_xml = archive.read(slide_name).decode("utf-8", errors="replace")
            presentation_xml = None
            if "ppt/presentation.xml" in names:
                presentation_xml = archive.read("ppt/presentation.xml").decode("utf-8", errors="replace")
    except zipfile.BadZipFile as exc:
        raise PipelineError(f"Not a valid slide deck: {path}") from exc

    return {
        "slideXML": slide_xml[:slide_chars],
        "presentationXML": presentation_xml[:presentation_chars] if presentation_xml is not None else None,
        "slideLength": len(slide_xml),
        "slideCount": slide_count,
    }
