"""
Download target resolution.

Maps a link's href onto a file directly inside the download directory.
The filename is the final non-empty path segment of the URL, percent
decoded; query string and fragment never contribute. Any name that could
resolve outside the download directory is rejected rather than repaired.
"""

from pathlib import Path
from urllib.parse import unquote, urlparse

from wis2_subscriber.core.security.exceptions import UnsafeFilenameError
from wis2_subscriber.core.security.url_validation import validate_download_url

# Most filesystems cap a single path component at 255 bytes
MAX_FILENAME_BYTES = 255

_FORBIDDEN_CHARS = ("/", "\\", "\x00")


def extract_filename(url: str) -> str:
    """
    Derive the local filename for a URL.

    Examples:
        https://host/path/file123.bin        -> file123.bin
        https://host/path/file123.bin?x=1#f  -> file123.bin
        https://host/path/dir/               -> dir
        https://host/path/a%20b.grib2        -> a b.grib2

    Raises:
        URLValidationError: If the URL is not a fetchable http(s) URL
        UnsafeFilenameError: If no safe filename can be derived
    """
    validate_download_url(url)

    path = urlparse(url).path
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        raise UnsafeFilenameError(f"URL has no path segment to name the file: {url}")

    filename = unquote(segments[-1])

    if filename in (".", ".."):
        raise UnsafeFilenameError(f"Refusing relative path segment as filename: {filename!r}")
    if any(char in filename for char in _FORBIDDEN_CHARS):
        raise UnsafeFilenameError(f"Filename contains a path separator or NUL: {filename!r}")
    if not filename.strip():
        raise UnsafeFilenameError("Filename is blank")
    if len(filename.encode("utf-8")) > MAX_FILENAME_BYTES:
        raise UnsafeFilenameError(f"Filename exceeds {MAX_FILENAME_BYTES} bytes")

    return filename


def resolve_download_target(url: str, download_dir: Path) -> Path:
    """
    Compute the canonical path a link will be written to.

    The joined path is resolved and must sit directly inside the resolved
    download directory, so symlinked or odd names cannot escape it.

    Raises:
        URLValidationError: If the URL is not a fetchable http(s) URL
        UnsafeFilenameError: If the resolved path escapes download_dir
    """
    filename = extract_filename(url)

    base = Path(download_dir).resolve()
    target = (base / filename).resolve()

    if target.parent != base:
        raise UnsafeFilenameError(
            f"Resolved path {target} escapes download directory {base}"
        )

    return target


__all__ = [
    "MAX_FILENAME_BYTES",
    "extract_filename",
    "resolve_download_target",
]
