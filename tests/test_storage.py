"""Tests for batch directory layout helpers."""
from __future__ import annotations

import os

import pytest

from mangalens.errors import InvalidDirectoryError, PersistenceError
from mangalens.models import Artifact
from mangalens.storage import (
    derived_text_path,
    is_image_file,
    list_artifacts,
    list_images,
    natural_sort_key,
    persist_text,
    read_text,
    resolve_directory,
    sequence_key,
)


def _touch(directory, *names):
    for name in names:
        (directory / name).write_bytes(b"x")


class TestOrdering:
    def test_numeric_not_lexicographic(self, tmp_path):
        _touch(tmp_path, "page10.jpg", "page2.jpg", "page1.jpg")
        assert list_images(str(tmp_path)) == ["page1.jpg", "page2.jpg", "page10.jpg"]

    def test_last_digit_run_wins(self):
        assert sequence_key("vol2_page07.png") == 7
        assert sequence_key("ch03-12") == 12

    def test_names_without_digits_sort_last(self, tmp_path):
        _touch(tmp_path, "cover.jpg", "page3.jpg", "back.png", "page1.jpg")
        assert list_images(str(tmp_path)) == ["page1.jpg", "page3.jpg", "back.png", "cover.jpg"]

    def test_ties_broken_by_name(self):
        names = ["b1.jpg", "a1.jpg", "a01.png"]
        assert sorted(names, key=natural_sort_key) == ["a01.png", "a1.jpg", "b1.jpg"]

    def test_digits_in_extension_ignored(self):
        assert sequence_key("page5.mp4") == 5


class TestListing:
    def test_filters_to_image_extensions(self, page_dir):
        (page_dir / "page3.txt").write_text("t", encoding="utf-8")
        (page_dir / "page4.GIF").write_bytes(b"x")
        assert list_images(str(page_dir)) == ["page1.jpg", "page2.jpg", "page10.jpg"]

    def test_extension_match_is_case_insensitive(self, tmp_path):
        _touch(tmp_path, "P1.JPG", "P2.Png", "P3.WEBP", "P4.jpeg")
        assert list_images(str(tmp_path)) == ["P1.JPG", "P2.Png", "P3.WEBP", "P4.jpeg"]

    def test_subdirectories_ignored(self, tmp_path):
        (tmp_path / "sub.jpg").mkdir()
        _touch(tmp_path, "page1.jpg")
        assert list_images(str(tmp_path)) == ["page1.jpg"]

    def test_artifacts_report_text_presence(self, page_dir):
        (page_dir / "page2.txt").write_text("[]", encoding="utf-8")
        assert list_artifacts(str(page_dir)) == [
            Artifact(file="page1.jpg", has_text=False),
            Artifact(file="page2.jpg", has_text=True),
            Artifact(file="page10.jpg", has_text=False),
        ]

    def test_artifact_wire_format(self):
        assert Artifact(file="p.jpg", has_text=True).to_dict() == {"file": "p.jpg", "hasText": True}

    @pytest.mark.parametrize("name,expected", [
        ("a.jpg", True),
        ("a.webp", True),
        ("a.txt", False),
        ("jpg", False),
    ])
    def test_is_image_file(self, name, expected):
        assert is_image_file(name) is expected


class TestResolveDirectory:
    def test_returns_absolute_path(self, page_dir, monkeypatch):
        monkeypatch.chdir(page_dir.parent)
        resolved = resolve_directory("chapter")
        assert os.path.isabs(resolved)
        assert os.path.realpath(resolved) == os.path.realpath(page_dir)

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_rejected(self, value):
        with pytest.raises(InvalidDirectoryError, match="dir is required"):
            resolve_directory(value)

    def test_missing_rejected(self, tmp_path):
        with pytest.raises(InvalidDirectoryError):
            resolve_directory(str(tmp_path / "nope"))

    def test_file_rejected(self, page_dir):
        with pytest.raises(InvalidDirectoryError):
            resolve_directory(str(page_dir / "page1.jpg"))


class TestTextFiles:
    def test_derived_path_replaces_extension(self):
        assert derived_text_path(os.path.join("dir", "page1.jpeg")) == os.path.join("dir", "page1.txt")

    def test_persist_is_verbatim(self, tmp_path):
        text = '```json\r\n[{"original": "あ", "translation": "阿"}]\r\n```'
        path = str(tmp_path / "page1.txt")
        persist_text(path, text)
        assert read_text(path) == text

    def test_persist_replaces_existing(self, tmp_path):
        path = str(tmp_path / "page1.txt")
        persist_text(path, "old")
        persist_text(path, "new")
        assert read_text(path) == "new"

    def test_persist_failure_raises(self, tmp_path):
        with pytest.raises(PersistenceError):
            persist_text(str(tmp_path / "missing" / "page1.txt"), "text")
