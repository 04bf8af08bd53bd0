"""
Streaming download to the local filesystem.

The response body is streamed in chunks into a temporary file next to the
target and renamed into place only once the whole body has arrived, so
an interrupted download never leaves a truncated file under the final
name.
"""

import asyncio
import contextlib
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional

import aiohttp

from wis2_subscriber.core.errors.exceptions import classify_http_status, classify_os_error
from wis2_subscriber.core.security.url_validation import sanitize_error_message
from wis2_subscriber.core.types import ErrorCategory

# Download configuration constants
CHUNK_SIZE = 1024 * 1024  # 1MB chunks for streaming
PART_SUFFIX = ".part"
# Bytes of the target name kept in a part file name; names may be 255 bytes
PART_NAME_MAX_BYTES = 64


@dataclass
class StreamDownloadResponse:
    """
    Response from streaming HTTP download operation.

    Attributes:
        status_code: HTTP status code
        content_length: Size in bytes (from Content-Length header)
        content_type: MIME type (from Content-Type header)
        chunk_iterator: Async iterator yielding byte chunks
        close: Releases the connection; safe to call more than once
    """

    status_code: int
    content_length: Optional[int]
    content_type: Optional[str]
    chunk_iterator: AsyncIterator[bytes]
    close: Optional[Callable[[], Awaitable[None]]] = None


@dataclass
class StreamDownloadError:
    """
    Error result from failed streaming download.

    Attributes:
        status_code: HTTP status code if received
        error_message: Error description
        error_category: Classification of the failure
        cause: Underlying transport or filesystem exception, if any
    """

    status_code: Optional[int]
    error_message: str
    error_category: ErrorCategory
    cause: Optional[BaseException] = None


async def stream_download_url(
    url: str,
    session: aiohttp.ClientSession,
    timeout: int = 300,
    chunk_size: int = CHUNK_SIZE,
    allow_redirects: bool = True,
    sock_read_timeout: int = 60,
) -> tuple[Optional[StreamDownloadResponse], Optional[StreamDownloadError]]:
    """
    Stream download content from URL using async HTTP with chunked reading.

    The returned iterator MUST be consumed (or closed with aclose()) so
    that the underlying connection is released.

    Does NOT perform:
    - URL validation (caller's responsibility)
    - Retry logic (no fetch is retried)
    - Temp file management (see download_to_file)

    Args:
        url: URL to download
        session: aiohttp ClientSession (caller manages lifecycle)
        timeout: Total timeout in seconds
        chunk_size: Size of chunks in bytes
        allow_redirects: Whether to follow redirects
        sock_read_timeout: Timeout for individual socket reads, so a server
            that stops sending mid-stream does not hang the fetch

    Returns:
        Tuple of (StreamDownloadResponse, None) on success
        or (None, StreamDownloadError) on failure. Only status 200 counts
        as success.
    """
    try:
        response_ctx = session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=timeout, sock_read=sock_read_timeout),
            allow_redirects=allow_redirects,
        )

        response = await response_ctx.__aenter__()

        if response.status != 200:
            await response_ctx.__aexit__(None, None, None)

            return None, StreamDownloadError(
                status_code=response.status,
                error_message=f"HTTP {response.status}",
                error_category=classify_http_status(response.status),
            )

        content_length = response.content_length
        content_type = response.headers.get("Content-Type")
        released = False

        async def close_response() -> None:
            nonlocal released
            if not released:
                released = True
                await response_ctx.__aexit__(None, None, None)

        async def chunk_iterator() -> AsyncIterator[bytes]:
            """
            Yield chunks from the response.

            The response is released when iteration ends or the
            iterator is closed.
            """
            try:
                async for chunk in response.content.iter_chunked(chunk_size):
                    yield chunk
            finally:
                await close_response()

        return (
            StreamDownloadResponse(
                status_code=response.status,
                content_length=content_length,
                content_type=content_type,
                chunk_iterator=chunk_iterator(),
                close=close_response,
            ),
            None,
        )

    except asyncio.TimeoutError as e:
        return None, StreamDownloadError(
            status_code=None,
            error_message=f"Download timeout after {timeout}s",
            error_category=ErrorCategory.TRANSIENT,
            cause=e,
        )

    except aiohttp.ClientError as e:
        # Connection errors, DNS failures, TLS failures, etc.
        return None, StreamDownloadError(
            status_code=None,
            error_message=f"Connection error: {sanitize_error_message(str(e))}",
            error_category=ErrorCategory.TRANSIENT,
            cause=e,
        )


@dataclass
class DownloadToFileResult:
    """
    Result from download_to_file operation.

    Attributes:
        bytes_written: Number of bytes written to file
        content_type: MIME type from Content-Type header
        status_code: HTTP status code of the response
    """

    bytes_written: int
    content_type: Optional[str]
    status_code: int = 200


def _part_prefix(name: str) -> str:
    stem = name.encode("utf-8")[:PART_NAME_MAX_BYTES].decode("utf-8", errors="ignore")
    return f".{stem}."


def _open_part_file(output_path: Path) -> tuple[int, Path]:
    fd, part_name = tempfile.mkstemp(
        dir=output_path.parent,
        prefix=_part_prefix(output_path.name),
        suffix=PART_SUFFIX,
    )
    return fd, Path(part_name)


async def download_to_file(
    url: str,
    output_path: Path,
    session: aiohttp.ClientSession,
    timeout: int = 300,
    chunk_size: int = CHUNK_SIZE,
    sock_read_timeout: int = 60,
) -> tuple[Optional[DownloadToFileResult], Optional[StreamDownloadError]]:
    """
    Download URL content to output_path via a temporary file.

    Nothing is created when the server answers with a non-200 status or
    the connection fails before the body starts. Once the body starts it
    is written to ``.<name>.<random>.part`` in the same directory (name
    cut to PART_NAME_MAX_BYTES) and moved over output_path with os.replace; any existing file at
    output_path is overwritten. On failure or cancellation the part file
    is removed and output_path is left untouched.

    Returns:
        Tuple of (DownloadToFileResult, None) on success
        or (None, StreamDownloadError) on failure
    """
    response, error = await stream_download_url(
        url=url,
        session=session,
        timeout=timeout,
        chunk_size=chunk_size,
        sock_read_timeout=sock_read_timeout,
    )

    if error:
        return None, error

    chunk_iterator = response.chunk_iterator
    part_path: Optional[Path] = None

    try:
        fd, part_path = await asyncio.to_thread(_open_part_file, output_path)
        bytes_written = 0
        with os.fdopen(fd, "wb") as f:
            async for chunk in chunk_iterator:
                # Use asyncio.to_thread for disk I/O to avoid blocking event loop
                await asyncio.to_thread(f.write, chunk)
                bytes_written += len(chunk)

        await asyncio.to_thread(os.replace, part_path, output_path)
        part_path = None

        return DownloadToFileResult(
            bytes_written=bytes_written,
            content_type=response.content_type,
            status_code=response.status_code,
        ), None

    except OSError as e:
        return None, StreamDownloadError(
            status_code=None,
            error_message=f"File write error: {sanitize_error_message(str(e))}",
            error_category=classify_os_error(e),
            cause=e,
        )

    except asyncio.TimeoutError as e:
        return None, StreamDownloadError(
            status_code=response.status_code,
            error_message=f"Download timeout after {timeout}s",
            error_category=ErrorCategory.TRANSIENT,
            cause=e,
        )

    except aiohttp.ClientError as e:
        # Connection dropped or payload truncated mid-stream
        return None, StreamDownloadError(
            status_code=response.status_code,
            error_message=f"Connection error during transfer: {sanitize_error_message(str(e))}",
            error_category=ErrorCategory.TRANSIENT,
            cause=e,
        )

    finally:
        # Release the HTTP connection even when iteration was interrupted
        await chunk_iterator.aclose()
        if response.close is not None:
            await response.close()
        if part_path is not None:
            with contextlib.suppress(FileNotFoundError):
                part_path.unlink()


__all__ = [
    "CHUNK_SIZE",
    "PART_SUFFIX",
    "StreamDownloadResponse",
    "StreamDownloadError",
    "DownloadToFileResult",
    "stream_download_url",
    "download_to_file",
]
