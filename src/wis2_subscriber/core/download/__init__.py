"""
Async download module with clean interface.

Provides:
    - FileFetcher: High-level interface (url -> FetchOutcome | FetchError)
    - Streaming HTTP download with aiohttp into a temp file + atomic rename
    - Pooled session creation

Components:
    - downloader: FileFetcher class
    - models: FetchOutcome data model
    - http_client: aiohttp session factory
    - streaming: chunked download to file

Example usage:
    from wis2_subscriber.core.download import FileFetcher

    async with FileFetcher(Path("downloads")) as fetcher:
        try:
            outcome = await fetcher.fetch("https://example.org/data/a.bufr4")
            print(f"Downloaded {outcome.bytes_downloaded} bytes")
        except FetchError as e:
            print(f"Failed: {e}")
"""

from wis2_subscriber.core.download.downloader import FileFetcher
from wis2_subscriber.core.download.http_client import create_session
from wis2_subscriber.core.download.models import FetchOutcome
from wis2_subscriber.core.download.streaming import (
    CHUNK_SIZE,
    PART_SUFFIX,
    DownloadToFileResult,
    StreamDownloadError,
    StreamDownloadResponse,
    download_to_file,
    stream_download_url,
)

__all__ = [
    # High-level interface
    "FileFetcher",
    "FetchOutcome",
    # HTTP client
    "create_session",
    # Streaming
    "stream_download_url",
    "download_to_file",
    "StreamDownloadResponse",
    "StreamDownloadError",
    "DownloadToFileResult",
    "CHUNK_SIZE",
    "PART_SUFFIX",
]
