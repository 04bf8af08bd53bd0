"""
Data models for file fetch operations.

Defines the output model of the FileFetcher interface. Failures are
raised as FetchError rather than returned, so an outcome always
describes a file that is on disk.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class FetchOutcome:
    """
    Result of a successful fetch.

    Attributes:
        url: Link that was fetched
        file_path: Final path of the downloaded file
        bytes_downloaded: Number of bytes written to disk
        content_type: MIME type from Content-Type header
        status_code: HTTP status code (always 200)
        duration_ms: Wall time of the fetch in milliseconds
    """

    url: str
    file_path: Path
    bytes_downloaded: int
    content_type: Optional[str] = None
    status_code: int = 200
    duration_ms: float = 0.0


__all__ = ["FetchOutcome"]
