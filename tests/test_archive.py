# tests/test_archive.py
"""
Tests for archive.py - ZIP access and the repair working copy
"""
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from scormlens.archive import ENTRY_READ_ERRORS, ScormArchive, decode_text, extension_of, normalize_href
from scormlens.errors import ArchiveUnreadable
from conftest import build_corrupt_zip, read_zip


class TestNormalizeHref:
    """Tests for href normalization"""

    def test_strips_query_and_fragment(self):
        assert normalize_href("index.html?lang=en#top") == "index.html"

    def test_unquotes_and_strips_leading_dot_slash(self):
        assert normalize_href("./content/my%20page.html") == "content/my page.html"

    def test_converts_backslashes(self):
        assert normalize_href("content\\page.html") == "content/page.html"

    def test_extension_of_is_lowercase(self):
        assert extension_of("Media/CLIP.MP4") == ".mp4"
        assert extension_of("README") == ""


class TestScormArchive:
    """Tests for ScormArchive"""

    def test_names_skip_directories(self, make_zip):
        archive = ScormArchive(make_zip({"a.html": "x", "b/c.js": "y"}, dirs=["b"]))
        assert archive.names == ["a.html", "b/c.js"]
        assert len(archive) == 2

    def test_not_a_zip_raises(self):
        with pytest.raises(ArchiveUnreadable) as exc_info:
            ScormArchive(b"definitely not a zip", source="broken.zip")
        assert "broken.zip" in exc_info.value.message
        assert exc_info.value.suggestion

    def test_from_path_missing_file(self, tmp_path):
        with pytest.raises(ArchiveUnreadable):
            ScormArchive.from_path(tmp_path / "nope.zip")

    def test_from_path_reads_file(self, tmp_path, make_zip):
        path = tmp_path / "course.zip"
        path.write_bytes(make_zip({"index.html": "hi"}))
        archive = ScormArchive.from_path(path)
        assert archive.read_text("index.html") == "hi"
        assert archive.source == str(path)

    def test_find_case_insensitive(self, make_zip):
        archive = ScormArchive(make_zip({"IMSManifest.XML": "<manifest/>"}))
        assert archive.find("imsmanifest.xml") is None
        assert archive.find_case_insensitive("imsmanifest.xml") == "IMSManifest.XML"

    def test_resolve_href(self, make_zip):
        archive = ScormArchive(make_zip({"content/my page.html": "x"}))
        assert archive.resolve_href("content/my%20page.html?x=1") == "content/my page.html"
        assert archive.resolve_href("missing.html") is None
        assert archive.resolve_href("") is None

    def test_size_of(self, make_zip):
        archive = ScormArchive(make_zip({"clip.mp4": b"12345"}))
        assert archive.size_of("clip.mp4") == 5

    def test_unreadable_entries(self):
        archive = ScormArchive(build_corrupt_zip({"a.html": "x", "clip.mp4": b""}, victim="clip.mp4"))
        assert archive.unreadable_entries() == ["clip.mp4"]
        assert archive.read_bytes("a.html") == b"x"
        with pytest.raises(ENTRY_READ_ERRORS):
            archive.read_bytes("clip.mp4")

    def test_no_unreadable_entries(self, make_zip):
        assert ScormArchive(make_zip({"a.html": "x"})).unreadable_entries() == []

    def test_decode_text_falls_back_to_cp1252(self):
        assert decode_text("café".encode("cp1252")) == "café"
        assert decode_text("﻿hello".encode("utf-8")) == "hello"


class TestWorkingCopy:
    """Tests for the copy-on-write overlay"""

    def test_replace_only_changes_that_entry(self, make_zip):
        original = make_zip({"imsmanifest.xml": "<old/>", "index.html": "page"})
        archive = ScormArchive(original)
        working = archive.working_copy()
        working.replace("imsmanifest.xml", "<new/>")

        rebuilt = read_zip(working.to_bytes())
        assert rebuilt == {"imsmanifest.xml": b"<new/>", "index.html": b"page"}
        # Source archive is untouched
        assert archive.read_text("imsmanifest.xml") == "<old/>"
        assert archive.raw_bytes == original

    def test_rename(self, make_zip):
        archive = ScormArchive(make_zip({"IMSMANIFEST.xml": "<m/>", "index.html": "page"}))
        working = archive.working_copy()
        working.rename("IMSMANIFEST.xml", "imsmanifest.xml")

        rebuilt = read_zip(working.to_bytes())
        assert set(rebuilt) == {"imsmanifest.xml", "index.html"}
        assert rebuilt["imsmanifest.xml"] == b"<m/>"
        assert working.dirty

    def test_to_bytes_keeps_order_and_is_repeatable(self, make_zip):
        archive = ScormArchive(make_zip({"a.html": "1", "b.js": "2", "c.css": "3"}))
        working = archive.working_copy()
        working.replace("b.js", "22")

        first = working.to_bytes()
        second = working.to_bytes()
        assert list(read_zip(first)) == ["a.html", "b.js", "c.css"]
        assert read_zip(first) == read_zip(second)
        # Original entries can still be read after rebuilding
        assert archive.read_text("a.html") == "1"

    def test_new_entry_added(self, make_zip):
        archive = ScormArchive(make_zip({"index.html": "page"}))
        working = archive.working_copy()
        assert not working.dirty
        working.replace("imsmanifest.xml", b"<manifest/>")

        rebuilt = read_zip(working.to_bytes())
        assert rebuilt["imsmanifest.xml"] == b"<manifest/>"
        assert rebuilt["index.html"] == b"page"
