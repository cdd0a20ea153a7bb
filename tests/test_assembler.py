"""
Test for content assembly and image placement
"""
from thesis2site.core.assembler import ContentAssembler, context_words, overlap_score, verify_placement
from thesis2site.core.models import ContentDocument, ImageBlock, ImageRecord, TextBlock
from thesis2site.core.sections import SectionSpec


INTRO_1 = "Large language models are trained on vast corpora of text and show emergent abilities."
INTRO_2 = "The Hessian metrics of weights reveal clear outliers in the attention layers of the model."
METHOD = "We quantize the weights with a mixed precision scheme guided by second order information."


def _document():
    return ContentDocument.from_dict(
        {
            "hero": {"title": "Thesis"},
            "introduction": {
                "title": "Introduction",
                "content": [{"type": "text", "value": INTRO_1}, {"type": "text", "value": INTRO_2}],
            },
            "methodology": {"title": "Methodology", "content": [{"type": "text", "value": METHOD}]},
        }
    )


def _record(name="Figure 3", before=None, after=None, caption="Figure 3: Hessian metrics"):
    return ImageRecord(
        folder_name=name,
        context_before=before or [],
        caption=caption,
        context_after=after or [],
    )


class TestExtractSections:
    """Test section extraction with specs"""

    def test_default_specs(self):
        paragraphs = [
            "Introduction",
            INTRO_1,
            "Methodology",
            METHOD,
            "Results",
            "The quantized model retains nearly all of its accuracy on the benchmarks.",
            "Conclusion",
            "Mixed precision quantization guided by the Hessian is an effective method.",
            "References",
            "[1] A reference entry that is long enough to be kept as a paragraph.",
        ]
        sections = ContentAssembler().extract_sections(paragraphs)
        assert list(sections) == ["introduction", "methodology", "results", "conclusions"]
        assert sections["introduction"] == [INTRO_1]
        assert sections["methodology"] == [METHOD]
        assert len(sections["results"]) == 1
        assert sections["conclusions"][0].startswith("Mixed precision")

    def test_custom_specs(self):
        specs = [SectionSpec("overview", "Overview", "Overview", None, 10)]
        sections = ContentAssembler(section_specs=specs).extract_sections(["Overview", METHOD])
        assert sections == {"overview": [METHOD]}


class TestAssemble:
    """Test document assembly"""

    def test_new_document(self):
        document = ContentAssembler().assemble({"methodology": [METHOD], "introduction": [INTRO_1, "  "]})
        assert list(document.to_dict()) == ["introduction", "methodology"]
        assert document.section("introduction").paragraphs == [INTRO_1]
        assert document.section("methodology").title == "Methodology"

    def test_keeps_base_entries(self):
        """Test non-section entries and untouched sections survive"""
        base = _document()
        document = ContentAssembler().assemble({"introduction": [INTRO_2]}, base=base)
        data = document.to_dict()
        assert list(data) == ["hero", "introduction", "methodology"]
        assert data["hero"] == {"title": "Thesis"}
        assert document.section("introduction").paragraphs == [INTRO_2]
        assert document.section("methodology").paragraphs == [METHOD]
        assert base.section("introduction").paragraphs == [INTRO_1, INTRO_2]


class TestPlaceImages:
    """Test image placement"""

    def test_after_context_before(self):
        """Test image goes after the paragraph matching the last before-line"""
        document = _document()
        record = _record(before=["Unrelated opening line.", INTRO_2])
        result = ContentAssembler().place_images(document, [record], {"Figure 3": "figure_3.png"})

        content = result.document.section("introduction").content
        assert result.placed == 1
        assert isinstance(content[2], ImageBlock)
        assert content[2].src == "/images/figure_3.png"
        assert content[2].caption == "Figure 3: Hessian metrics"
        assert content[2].alt == "Figure 3: Hessian metrics"
        assert len(document.section("introduction").content) == 2

    def test_before_context_after(self):
        document = _document()
        record = _record(after=[METHOD])
        result = ContentAssembler().place_images(document, [record], {"Figure 3": "figure_3.png"})
        content = result.document.section("methodology").content
        assert isinstance(content[0], ImageBlock)
        assert isinstance(content[1], TextBlock)

    def test_consecutive_images_keep_order(self):
        document = _document()
        records = [_record("A", before=[INTRO_1]), _record("B", before=[INTRO_1])]
        result = ContentAssembler().place_images(document, records, {"A": "a.png", "B": "b.png"})
        content = result.document.section("introduction").content
        assert [block.filename for block in content if isinstance(block, ImageBlock)] == ["a.png", "b.png"]
        assert isinstance(content[3], TextBlock)

    def test_already_present_skipped(self):
        document = _document()
        record = _record(before=[INTRO_2])
        first = ContentAssembler().place_images(document, [record], {"Figure 3": "figure_3.png"})
        second = ContentAssembler().place_images(first.document, [record], {"Figure 3": "figure_3.png"})
        assert second.placed == 0
        assert second.already_present == 1
        assert second.document.to_dict() == first.document.to_dict()

    def test_unpublished_and_unmatched(self):
        document = _document()
        records = [
            _record("Unpublished", before=[INTRO_2]),
            _record("Elsewhere", before=["Completely different words about cooking pasta."]),
        ]
        result = ContentAssembler().place_images(document, records, {"Elsewhere": "elsewhere.png"})
        assert result.placed == 0
        assert result.unplaced == ["Unpublished", "Elsewhere"]

    def test_custom_prefix_and_caption_fallback(self):
        document = _document()
        record = _record(before=[INTRO_2], caption="")
        result = ContentAssembler().place_images(
            document, [record], {"Figure 3": "figure_3.png"}, public_prefix="/static/img/"
        )
        block = result.document.section("introduction").content[2]
        assert block.src == "/static/img/figure_3.png"
        assert block.caption == "Figure 3"


class TestMatching:
    def test_context_words(self):
        assert context_words("The big Hessian of an A100") == ["hessian", "a100"]

    def test_overlap_score(self):
        words = context_words("Hessian metrics outliers")
        assert overlap_score(words, INTRO_2) == 1.0
        assert overlap_score(words, METHOD) == 0.0
        assert overlap_score([], INTRO_2) == 0.0


class TestVerifyPlacement:
    """Test the cross-check of metadata, public files and content references"""

    def _setup(self, tmp_path, files=("fig_a.png", "fig_b.png"), srcs=("/images/fig_a.png", "/images/fig_b.png")):
        public = tmp_path / "images"
        public.mkdir()
        for name in files:
            (public / name).write_bytes(b"png")
        document = ContentDocument.from_dict(
            {
                "results": {
                    "title": "Results",
                    "content": ["Body."] + [{"type": "image", "src": src} for src in srcs],
                }
            }
        )
        records = [_record("Fig A"), _record("Fig B")]
        mapping = {"Fig A": "fig_a.png", "Fig B": "fig_b.png"}
        return document, records, mapping, public

    def test_all_present(self, tmp_path):
        document, records, mapping, public = self._setup(tmp_path)
        report = verify_placement(document, records, mapping, public)
        assert report.ok
        assert (report.figures, report.published_files, report.references) == (2, 2, 2)
        assert report.unreferenced == []
        assert report.extra_files == []

    def test_unpublished(self, tmp_path):
        document, records, mapping, public = self._setup(tmp_path, files=("fig_a.png",), srcs=("/images/fig_a.png",))
        records.append(_record("Fig C"))
        report = verify_placement(document, records, mapping, public)
        assert not report.ok
        assert report.unpublished == ["Fig B", "Fig C"]

    def test_unreferenced_is_not_a_failure(self, tmp_path):
        document, records, mapping, public = self._setup(tmp_path, srcs=("/images/fig_a.png",))
        report = verify_placement(document, records, mapping, public)
        assert report.ok
        assert report.unreferenced == ["Fig B"]

    def test_broken_reference(self, tmp_path):
        document, records, mapping, public = self._setup(
            tmp_path, srcs=("/images/fig_a.png", "/images/fig_b.png", "/images/gone.png")
        )
        report = verify_placement(document, records, mapping, public)
        assert not report.ok
        assert report.broken_references == ["/images/gone.png"]

    def test_subdirectory_reference_and_extra_files(self, tmp_path):
        document, records, mapping, public = self._setup(
            tmp_path,
            files=("fig_a.png", "fig_b.png", "stray.jpg"),
            srcs=("/images/fig_a.png", "/images/fig_b.png", "/images/pages/page_3_img_1.png"),
        )
        (public / "pages").mkdir()
        (public / "pages" / "page_3_img_1.png").write_bytes(b"png")
        report = verify_placement(document, records, mapping, public)
        assert report.ok
        assert report.references == 3
        assert report.extra_files == ["stray.jpg"]

    def test_missing_public_dir(self, tmp_path):
        document, records, mapping, _ = self._setup(tmp_path)
        report = verify_placement(document, records, mapping, tmp_path / "nowhere")
        assert report.unpublished == ["Fig A", "Fig B"]
        assert len(report.broken_references) == 2
