"""Tests for download target resolution."""

import pytest

from wis2_subscriber.core.security import (
    MAX_FILENAME_BYTES,
    UnsafeFilenameError,
    URLValidationError,
    ValidationError,
    extract_filename,
    resolve_download_target,
)


class TestExtractFilename:

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://host/path/file123.bin", "file123.bin"),
            ("https://host/path/a.bin?token=x", "a.bin"),
            ("https://host/path/a.bin#frag", "a.bin"),
            ("https://host/path/a.bin?x=1#frag", "a.bin"),
            ("https://host/dir/", "dir"),
            ("https://host/dir//", "dir"),
            ("http://host:8080/x/y/z.grib2", "z.grib2"),
            ("https://host/path/a%20b.bufr4", "a b.bufr4"),
        ],
    )
    def test_derives_last_segment(self, url, expected):
        assert extract_filename(url) == expected

    @pytest.mark.parametrize(
        "url",
        [
            "https://host/x/..",
            "https://host/x/%2E%2E",
            "https://host/x/.",
            "https://host/x/..%2Fetc%2Fpasswd",
            "https://host/x/a%5Cb",
            "https://host/x/a%00b",
            "https://host/",
            "https://host",
            "https://host/x/%20",
        ],
    )
    def test_rejects_unsafe_names(self, url):
        with pytest.raises(UnsafeFilenameError):
            extract_filename(url)

    def test_rejects_overlong_names(self):
        name = "a" * (MAX_FILENAME_BYTES + 1)
        with pytest.raises(UnsafeFilenameError):
            extract_filename(f"https://host/{name}")

    def test_accepts_name_at_limit(self):
        name = "a" * MAX_FILENAME_BYTES
        assert extract_filename(f"https://host/{name}") == name

    @pytest.mark.parametrize(
        "url",
        ["", "ftp://host/a.bin", "file:///etc/passwd", "https:///a.bin", "a.bin"],
    )
    def test_rejects_unfetchable_urls(self, url):
        with pytest.raises(URLValidationError):
            extract_filename(url)


class TestResolveDownloadTarget:

    def test_target_is_inside_download_dir(self, download_dir):
        target = resolve_download_target("https://host/path/file123.bin", download_dir)
        assert target == download_dir.resolve() / "file123.bin"
        assert target.parent == download_dir.resolve()

    def test_query_string_ignored(self, download_dir):
        target = resolve_download_target("https://host/path/a.bin?token=x", download_dir)
        assert target.name == "a.bin"

    def test_relative_download_dir_is_resolved(self, download_dir, monkeypatch):
        monkeypatch.chdir(download_dir.parent)
        target = resolve_download_target("https://host/a.bin", download_dir.name)
        assert target == download_dir.resolve() / "a.bin"

    def test_traversal_rejected(self, download_dir):
        with pytest.raises(UnsafeFilenameError):
            resolve_download_target("https://host/x/%2E%2E", download_dir)

    def test_symlink_escaping_dir_rejected(self, download_dir, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (download_dir / "link.bin").symlink_to(outside / "victim.bin")

        with pytest.raises(UnsafeFilenameError):
            resolve_download_target("https://host/link.bin", download_dir)

    def test_errors_share_validation_base(self, download_dir):
        with pytest.raises(ValidationError):
            resolve_download_target("ftp://host/a.bin", download_dir)
