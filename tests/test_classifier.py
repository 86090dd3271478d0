# tests/test_classifier.py
"""
Tests for classifier.py - Content bucketing
"""
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from scormlens.archive import ScormArchive
from scormlens.classifier import caption_files, categorize_files, category_for, mime_type_for, run_ordered
from scormlens.config_utils import AnalyzerConfig
from scormlens.models import CATEGORY_KEYS, MediaFile


class TestCategoryFor:
    """Tests for extension -> category"""

    @pytest.mark.parametrize("name,expected", [
        ("index.HTML", "html"),
        ("page.htm", "html"),
        ("clip.MP4", "videos"),
        ("clip.ogg", "videos"),
        ("voice.mp3", "audio"),
        ("voice.flac", "audio"),
        ("logo.SVG", "images"),
        ("app.js", "javascript"),
        ("site.css", "css"),
        ("data.json", "other"),
        ("Makefile", "other"),
    ])
    def test_priority_order(self, name, expected):
        assert category_for(name) == expected

    def test_mime_types(self):
        assert mime_type_for("a.mp4") == "video/mp4"
        assert mime_type_for("a.MP3") == "audio/mpeg"
        assert mime_type_for("a.unknownext") == "application/octet-stream"


class TestCategorizeFiles:
    """Tests for categorize_files"""

    def test_partition_covers_every_entry_once(self, scorm_2004_package):
        archive = ScormArchive(scorm_2004_package)
        buckets = categorize_files(archive)

        assert set(buckets) == set(CATEGORY_KEYS)
        paths = []
        for entries in buckets.values():
            paths.extend(e.path if isinstance(e, MediaFile) else e for e in entries)
        expected = [n for n in archive.names if n != "imsmanifest.xml"]
        assert sorted(paths) == sorted(expected)
        assert len(paths) == len(set(paths))

    def test_media_is_materialized(self, scorm_2004_package):
        buckets = categorize_files(ScormArchive(scorm_2004_package))

        video = buckets["videos"][0]
        assert isinstance(video, MediaFile)
        assert video.path == "media/intro.mp4"
        assert video.mime_type == "video/mp4"
        assert video.size == len(video.data) > 0
        assert buckets["audio"][0].mime_type == "audio/mpeg"
        assert buckets["images"] == ("images/logo.png",)

    def test_materialize_media_off(self, scorm_2004_package):
        config = AnalyzerConfig(materialize_media=False)
        video = categorize_files(ScormArchive(scorm_2004_package), config)["videos"][0]
        assert video.data == b""
        assert video.size > 0

    def test_order_matches_archive_with_threads(self, make_zip):
        names = [f"page{i}.html" for i in range(20)]
        archive = ScormArchive(make_zip({n: "x" for n in names}))
        buckets = categorize_files(archive, AnalyzerConfig(max_workers=8))
        assert list(buckets["html"]) == names

    def test_manifest_excluded_case_insensitively(self, make_zip):
        archive = ScormArchive(make_zip({"IMSMANIFEST.XML": "<m/>", "notes.xml": "<n/>"}))
        assert categorize_files(archive)["other"] == ("notes.xml",)

    def test_caption_files(self, scorm_2004_package):
        assert caption_files(ScormArchive(scorm_2004_package)) == ("media/intro.vtt",)


class TestRunOrdered:
    """Tests for the ordered worker helper"""

    def test_inline_and_threaded_agree(self):
        items = list(range(50))
        assert run_ordered(lambda x: x * 2, items, 1) == run_ordered(lambda x: x * 2, items, 6)
