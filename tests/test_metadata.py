"""
Test for image metadata collection
"""
import base64
import json
from pathlib import Path

import pytest

from thesis2site.core.metadata import (
    MetadataAggregator,
    find_image_file,
    load_metadata,
    locate_images,
    save_metadata,
)
from thesis2site.core.models import ImageRecord, PipelineError


PNG_1X1 = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8"
    "/w8AAgMBgN6M6vQAAAAASUVORK5CYII="
)

CONTEXT = """--- Text Before Image ---
Before the figure.
--- Full Caption ---
Figure: A caption.
--- Text After Image ---
After the figure.
"""


def _figure(root: Path, name: str, images=("figure.png",), context_name="info.txt", context=CONTEXT) -> Path:
    folder = root / name
    folder.mkdir(parents=True)
    for image in images:
        (folder / image).write_bytes(PNG_1X1)
    if context_name:
        (folder / context_name).write_text(context, encoding="utf-8")
    return folder


class TestLocateImages:
    """Test image discovery"""

    def test_sorted_and_filtered(self, tmp_path: Path):
        folder = _figure(tmp_path, "Fig", images=("b.png", "a.JPG", "notes.gif"))
        names = [path.name for path in locate_images(folder)]
        assert names == ["a.JPG", "b.png"]

    def test_find_image_file_none(self, tmp_path: Path):
        folder = _figure(tmp_path, "Fig", images=())
        assert find_image_file(folder) is None


class TestMetadataAggregator:
    """Test MetadataAggregator class"""

    def test_skips_folder_without_image(self, tmp_path: Path):
        """Test one record for FigA, FigB skipped"""
        _figure(tmp_path, "FigA")
        _figure(tmp_path, "FigB", images=())

        result = MetadataAggregator().collect(tmp_path)
        assert [record.folder_name for record in result.records] == ["FigA"]
        assert result.skipped == ["FigB"]

        record = result.records[0]
        assert record.caption == "Figure: A caption."
        assert record.context_before == ["Before the figure."]
        assert record.context_after == ["After the figure."]
        assert record.image_filename == "figure.png"
        assert record.image_path == str((tmp_path / "FigA" / "figure.png").resolve())

    def test_skips_folder_without_context(self, tmp_path: Path):
        _figure(tmp_path, "FigA", context_name=None)
        result = MetadataAggregator().collect(tmp_path)
        assert result.records == []
        assert result.skipped == ["FigA"]

    def test_context_filename_fallback(self, tmp_path: Path):
        _figure(tmp_path, "FigA", context_name="context.txt")
        result = MetadataAggregator().collect(tmp_path)
        assert len(result.records) == 1

    def test_custom_context_filenames(self, tmp_path: Path):
        _figure(tmp_path, "FigA", context_name="notes.txt")
        assert MetadataAggregator().collect(tmp_path).records == []
        result = MetadataAggregator(context_filenames=["notes.txt"]).collect(tmp_path)
        assert len(result.records) == 1

    def test_multiple_images_uses_first(self, tmp_path: Path):
        """Test deterministic pick for folders with several images"""
        _figure(tmp_path, "FigC", images=("b.png", "a.jpg"))
        result = MetadataAggregator().collect(tmp_path)
        assert result.records[0].image_filename == "a.jpg"
        assert result.multiple_images == ["FigC"]

    def test_records_in_folder_order(self, tmp_path: Path):
        for name in ("Figure 2", "Figure 10", "Figure 1"):
            _figure(tmp_path, name)
        result = MetadataAggregator().collect(tmp_path)
        assert [record.folder_name for record in result.records] == ["Figure 1", "Figure 10", "Figure 2"]

    def test_empty_context_file(self, tmp_path: Path):
        _figure(tmp_path, "FigA", context="")
        record = MetadataAggregator().collect(tmp_path).records[0]
        assert record.caption == ""
        assert record.context_before == []

    def test_missing_source(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            MetadataAggregator().collect(tmp_path / "missing")


class TestMetadataPersistence:
    """Test interchange document load/save"""

    def test_save_and_load(self, tmp_path: Path):
        records = [
            ImageRecord("Figure 1", caption="One", image_path="/a/one.png", image_filename="one.png"),
            ImageRecord("Figure 2", context_before=["Before."], image_filename="two.jpg"),
        ]
        path = tmp_path / "data" / "image-metadata.json"
        save_metadata(records, path)

        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload[0]["folderName"] == "Figure 1"
        assert load_metadata(path) == records

    def test_load_missing(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_metadata(tmp_path / "missing.json")

    def test_load_not_a_list(self, tmp_path: Path):
        path = tmp_path / "meta.json"
        path.write_text(json.dumps({"folderName": "x"}), encoding="utf-8")
        with pytest.raises(PipelineError):
            load_metadata(path)

    def test_load_duplicate_folder(self, tmp_path: Path):
        """Test folder names must be unique"""
        path = tmp_path / "meta.json"
        path.write_text(json.dumps([{"folderName": "x"}, {"folderName": "x"}]), encoding="utf-8")
        with pytest.raises(PipelineError):
            load_metadata(path)
