"""
Test for slide deck inspection
"""
import zipfile
from pathlib import Path

import pytest

from thesis2site.core.models import PipelineError
from thesis2site.core.slides import inspect_slide_deck


SLIDE_XML = '<p:sld xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main"><p:cSld/></p:sld>'


def _deck(path: Path, slides: int = 2) -> Path:
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("ppt/presentation.xml", "<p:presentation/>")
        for number in range(1, slides + 1):
            archive.writestr(f"ppt/slides/slide{number}.xml", SLIDE_XML.replace("cSld", f"cSld{number}"))
        archive.writestr("ppt/slides/_rels/slide1.xml.rels", "<Relationships/>")
    return path


class TestInspectSlideDeck:
    """Test inspect_slide_deck"""

    def test_excerpt(self, tmp_path: Path):
        deck = _deck(tmp_path / "presentation.pptx")
        info = inspect_slide_deck(str(deck), slide=2)
        assert info["slideCount"] == 2
        assert "cSld2" in info["slideXML"]
        assert info["presentationXML"] == "<p:presentation/>"
        assert info["slideLength"] == len(info["slideXML"])

    def test_truncates(self, tmp_path: Path):
        deck = _deck(tmp_path / "presentation.pptx")
        info = inspect_slide_deck(str(deck), slide=1, slide_chars=10, presentation_chars=3)
        assert info["slideXML"] == SLIDE_XML.replace("cSld", "cSld1")[:10]
        assert info["presentationXML"] == "<p:"
        assert info["slideLength"] > 10

    def test_missing_slide(self, tmp_path: Path):
        deck = _deck(tmp_path / "presentation.pptx")
        info = inspect_slide_deck(str(deck), slide=5)
        assert "error" in info
        assert info["slideCount"] == 2

    def test_missing_deck(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            inspect_slide_deck(str(tmp_path / "missing.pptx"))

    def test_not_a_zip(self, tmp_path: Path):
        path = tmp_path / "broken.pptx"
        path.write_text("not a zip", encoding="utf-8")
        with pytest.raises(PipelineError):
            inspect_slide_deck(str(path))
