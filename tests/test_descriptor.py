"""
Tests for FileDescriptor.
"""

import pytest

from maskstream.listing.descriptor import FileDescriptor, relative_to_source


class TestRelativeToSource:
    def test_keeps_last_source_component(self):
        assert relative_to_source("/foo/bar/baz/a.csv", "/foo/bar") == "bar/baz/a.csv"

    def test_source_must_be_prefix(self):
        with pytest.raises(ValueError, match="valid prefix"):
            relative_to_source("/foo/bar/a.csv", "/other")


class TestFromPath:
    def test_local_file(self, tmp_path):
        source = tmp_path / "landing"
        (source / "daily").mkdir(parents=True)
        path = source / "daily" / "a.csv"
        path.write_text("a,b\n")

        d = FileDescriptor.from_path(path, source)

        assert d.file_name == "a.csv"
        assert d.file_size == 4
        assert d.is_dir is False
        assert d.relative_path == "landing/daily/a.csv"
        assert d.host_uri == "file:///"
        assert d.scheme == "file"

    def test_directory(self, tmp_path):
        (tmp_path / "sub").mkdir()
        assert FileDescriptor.from_path(tmp_path / "sub", tmp_path).is_dir is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FileDescriptor.from_path(tmp_path / "nope.csv", tmp_path)


class TestFromUri:
    def test_sftp(self):
        d = FileDescriptor.from_uri("sftp://files.example.com/exports/2024/a.csv", "/exports", file_size=10)
        assert d.scheme == "sftp"
        assert d.host == "files.example.com"
        assert d.full_path == "/exports/2024/a.csv"
        assert d.relative_path == "exports/2024/a.csv"
        assert d.source_uri == "sftp://files.example.com/exports/2024/a.csv"


class TestOrdering:
    def test_sorted_by_size_only(self):
        big = FileDescriptor(300, "a.csv", "/a.csv")
        small = FileDescriptor(10, "z.csv", "/z.csv")
        assert sorted([big, small]) == [small, big]

    def test_equal_sizes_compare_equal(self):
        assert FileDescriptor(5, "a.csv", "/a.csv") == FileDescriptor(5, "b.csv", "/b.csv")


class TestRecord:
    def test_round_trip(self):
        d = FileDescriptor(7, "a.csv.gz", "/in/a.csv.gz", relative_path="in/a.csv.gz", host_uri="s3://landing/")
        record = d.to_record()

        assert record == {
            "fileName": "a.csv.gz",
            "fullPath": "/in/a.csv.gz",
            "fileSize": 7,
            "isDir": False,
            "relativePath": "in/a.csv.gz",
            "hostURI": "s3://landing/",
        }
        restored = FileDescriptor.from_record(record)
        assert restored.to_record() == record

    def test_from_record_defaults(self):
        d = FileDescriptor.from_record({"fileName": "a.csv", "fullPath": "/a.csv"})
        assert d.file_size == 0
        assert d.relative_path == ""
        assert d.host_uri == "file:///"

    def test_metadata(self):
        d = FileDescriptor(7, "a.csv", "/in/a.csv", relative_path="in/a.csv")
        assert d.metadata() == {
            "source-uri": "file:///in/a.csv",
            "source-size": "7",
            "relative-path": "in/a.csv",
        }
