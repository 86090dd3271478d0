# tests/test_analyzer.py
"""
Tests for analyzer.py - End-to-end package analysis
"""
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from scormlens import analyze_file, analyze_package
from scormlens.config_utils import AnalyzerConfig
from scormlens.errors import ArchiveUnreadable, ManifestMalformed, ManifestMissing
from scormlens.models import ExtractionStrategy, MediaFile, ScormVersion
from conftest import build_corrupt_zip, manifest_12


class TestAnalyzePackage:
    """Tests for analyze_package"""

    def test_scorm_2004_package(self, scorm_2004_package):
        analysis = analyze_package(scorm_2004_package)

        assert analysis.format == "SCORM"
        assert analysis.version == ScormVersion.SCORM_2004
        assert analysis.title == "Safety Course"
        assert len(analysis.structure) == 2
        assert analysis.entry_points == ("index.html",)
        assert analysis.launch_target == "index.html"
        assert analysis.metadata.keywords == ("safety", "training")
        assert len(analysis.sequencing_rules) == 1
        assert analysis.caption_files == ("media/intro.vtt",)

    def test_content_files(self, scorm_2004_package):
        analysis = analyze_package(scorm_2004_package)
        files = analysis.content_files

        assert files["html"] == ("index.html",)
        assert files["javascript"] == ("scripts/app.js", "scripts/scormdriver.js")
        assert files["css"] == ("styles/site.css",)
        assert isinstance(files["videos"][0], MediaFile)
        assert isinstance(files["audio"][0], MediaFile)
        assert "imsmanifest.xml" not in files["other"]
        assert "media/intro.vtt" in files["other"]

    def test_walk_structure(self, scorm_2004_package):
        analysis = analyze_package(scorm_2004_package)
        assert [n.identifier for n in analysis.walk_structure()] == ["item_a", "item_b", "item_c"]

    def test_no_assessments_is_a_warning(self, scorm_2004_package):
        analysis = analyze_package(scorm_2004_package)
        assert analysis.assessments == ()
        assert "No assessments found" in analysis.warnings

    def test_dangling_references_are_warnings(self, make_zip):
        manifest = manifest_12(href="missing.html").replace('identifierref="res_1"', 'identifierref="nope"')
        analysis = analyze_package(make_zip({"imsmanifest.xml": manifest, "index.html": "x"}))

        assert analysis.entry_points == ()
        assert analysis.launch_target is None
        assert any("unknown resource: nope" in w for w in analysis.warnings)
        assert any("missing.html" in w for w in analysis.warnings)

    def test_entry_points_deduplicated_and_normalized(self, make_zip):
        extra_resource = manifest_12(href="index.html?start=1").replace(
            "</resources>",
            '<resource identifier="res_2" type="webcontent" href="./index.html"/></resources>',
        )
        analysis = analyze_package(make_zip({"imsmanifest.xml": extra_resource, "index.html": "x"}))
        assert analysis.entry_points == ("index.html",)

    def test_unknown_version_is_not_an_error(self, make_zip):
        analysis = analyze_package(make_zip({"imsmanifest.xml": "<manifest/>"}))
        assert analysis.version == ScormVersion.UNKNOWN
        assert analysis.title == ""
        assert analysis.structure == ()
        assert "Manifest organization has no items" in analysis.warnings

    def test_assessments_found(self, make_zip):
        page = '<html><body><p>quiz</p><div class="question-1">What is 2+2? ___</div></body></html>'
        analysis = analyze_package(make_zip({
            "imsmanifest.xml": manifest_12(href="quiz.html"),
            "quiz.html": page,
        }))

        assert len(analysis.assessments) == 1
        assessment = analysis.assessments[0]
        assert assessment.source_file == "quiz.html"
        assert assessment.extraction_strategy == ExtractionStrategy.HTML_HEURISTIC
        assert assessment.question_count == 1
        assert analysis.question_count == 1

    def test_analysis_is_repeatable(self, scorm_2004_package):
        assert analyze_package(scorm_2004_package) == analyze_package(scorm_2004_package)

    def test_manifest_name_from_config(self, make_zip):
        config = AnalyzerConfig(manifest_name="course.xml")
        analysis = analyze_package(make_zip({"course.xml": manifest_12(), "index.html": "x"}), config)
        assert analysis.version == ScormVersion.SCORM_12


class TestFatalErrors:
    """Tests for the fatal error taxonomy"""

    def test_not_a_zip(self):
        with pytest.raises(ArchiveUnreadable):
            analyze_package(b"PK but not really")

    def test_missing_manifest(self, make_zip):
        with pytest.raises(ManifestMissing) as exc_info:
            analyze_package(make_zip({"IMSMANIFEST.XML": manifest_12(), "index.html": "x"}))
        assert exc_info.value.context["entries_in_archive"] == 2

    def test_malformed_manifest(self, make_zip):
        with pytest.raises(ManifestMalformed):
            analyze_package(make_zip({"imsmanifest.xml": "<manifest><title>R&D</title></manifest>"}))



class TestUnreadableEntries:
    """Entries whose data fails to decompress or checksum"""

    def test_corrupt_media_is_a_warning(self):
        data = build_corrupt_zip(
            {"imsmanifest.xml": manifest_12(), "index.html": "<html>Hi</html>", "media/clip.mp4": b""},
            victim="media/clip.mp4",
        )
        analysis = analyze_package(data, AnalyzerConfig(max_workers=1))

        video = analysis.content_files["videos"][0]
        assert video.path == "media/clip.mp4"
        assert video.data == b""
        assert analysis.entry_points == ("index.html",)
        assert any("media/clip.mp4" in w for w in analysis.warnings)

    def test_corrupt_media_with_thread_pool(self):
        data = build_corrupt_zip(
            {"imsmanifest.xml": manifest_12(), "index.html": "x", "a.mp3": b"", "media/clip.mp4": b"v"},
            victim="a.mp3",
        )
        analysis = analyze_package(data, AnalyzerConfig(max_workers=4))

        assert analysis.content_files["audio"][0].data == b""
        assert analysis.content_files["videos"][0].data == b"v"
        assert [w for w in analysis.warnings if "a.mp3" in w]

    def test_corrupt_manifest_is_unreadable(self):
        data = build_corrupt_zip({"imsmanifest.xml": b"", "index.html": "x"}, victim="imsmanifest.xml")
        with pytest.raises(ArchiveUnreadable):
            analyze_package(data)

class TestAnalyzeFile:
    """Tests for analyze_file"""

    def test_reads_from_disk(self, tmp_path, scorm_12_package):
        path = tmp_path / "course.zip"
        path.write_bytes(scorm_12_package)
        analysis = analyze_file(path)
        assert analysis.title == "Intro Course"
        assert analysis.entry_points == ("index.html",)
