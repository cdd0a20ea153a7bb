"""
Test for section config loading
"""
from pathlib import Path

import pytest

from thesis2site.core.models import PipelineError
from thesis2site.core.sections import DEFAULT_SECTION_SPECS, SectionSpec, load_section_specs


class TestLoadSectionSpecs:
    """Test load_section_specs"""

    def test_defaults_when_missing(self, tmp_path: Path):
        specs = load_section_specs(tmp_path / "sections.yaml", default_min_length=30)
        assert [spec.key for spec in specs] == ["introduction", "methodology", "results", "conclusions"]
        assert all(spec.min_length == 30 for spec in specs)
        assert DEFAULT_SECTION_SPECS[0].min_length == 50

    def test_defaults_when_none(self):
        assert load_section_specs(None)[3].end_marker == "References"

    def test_parses_yaml(self, tmp_path: Path):
        path = tmp_path / "sections.yaml"
        path.write_text(
            "sections:\n"
            "  - key: introduction\n"
            "    title: Introduction\n"
            "    start: Introduction\n"
            "    end: Background\n"
            "  - key: results\n"
            "    start: Experiments\n"
            "    min_length: 10\n",
            encoding="utf-8",
        )
        specs = load_section_specs(path, default_min_length=40)
        assert specs == [
            SectionSpec("introduction", "Introduction", "Introduction", "Background", 40),
            SectionSpec("results", "Results", "Experiments", None, 10),
        ]

    def test_entry_without_start(self, tmp_path: Path):
        path = tmp_path / "sections.yaml"
        path.write_text("sections:\n  - key: results\n", encoding="utf-8")
        with pytest.raises(PipelineError):
            load_section_specs(path)

    def test_missing_sections_list(self, tmp_path: Path):
        path = tmp_path / "sections.yaml"
        path.write_text("other: 1\n", encoding="utf-8")
        with pytest.raises(PipelineError):
            load_section_specs(path)

    def test_malformed_yaml(self, tmp_path: Path):
        path = tmp_path / "sections.yaml"
        path.write_text("sections: [unclosed\n", encoding="utf-8")
        with pytest.raises(PipelineError):
            load_section_specs(path)

    def test_repository_config_loads(self):
        """Test the bundled sections.yaml"""
        path = Path(__file__).resolve().parents[1] / "sections.yaml"
        specs = load_section_specs(path)
        assert [spec.key for spec in specs] == ["introduction", "methodology", "results", "conclusions"]
        assert specs[3].min_length == 30
