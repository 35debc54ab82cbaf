"""
Range-seekable delivery of finished slideshow videos.

Serves the whole artifact (200) or one byte range (206) straight from
storage in chunks. Every response, including errors, carries permissive
CORS headers so browser media elements on other origins can seek.
"""

import asyncio
import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from fastapi.responses import StreamingResponse

from slideshow.exceptions import (
    AssetNotFoundError,
    JobNotReadyError,
    RangeNotSatisfiableError,
    SlideshowError,
)
from slideshow.models.render_job import JobStatus, RenderJob
from slideshow.services.storage_service import StorageService

logger = logging.getLogger(__name__)

VIDEO_CONTENT_TYPE = "video/mp4"

STREAMING_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "Range, Content-Type, Authorization",
    "Access-Control-Expose-Headers": "Content-Range, Accept-Ranges, Content-Length",
}

PREFLIGHT_MAX_AGE = "86400"

# Offsets beyond 18 digits exceed any real artifact and are treated as malformed
_RANGE_RE = re.compile(r"^bytes=(\d{1,18})-(\d{0,18})$")


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int  # inclusive

    @property
    def length(self) -> int:
        return self.end - self.start + 1


def parse_range_header(header: str | None, size: int) -> ByteRange | None:
    """Parse a single ``bytes=start-end`` range against an artifact of ``size`` bytes.

    Returns None when there is no header. An omitted or oversized end is
    clamped to the last byte. Multi-range and suffix (``bytes=-N``) forms
    are not supported.

    Raises:
        RangeNotSatisfiableError: malformed header, start past the end, or end < start
    """
    if header is None:
        return None
    match = _RANGE_RE.match(header.strip())
    if not match:
        raise RangeNotSatisfiableError(size, f"Unsupported range: {header}")

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else size - 1
    if start >= size or end < start:
        raise RangeNotSatisfiableError(size)
    return ByteRange(start=start, end=min(end, size - 1))


def preflight_headers() -> dict[str, str]:
    return {**STREAMING_CORS_HEADERS, "Access-Control-Max-Age": PREFLIGHT_MAX_AGE}


@contextmanager
def cors_on_error() -> Iterator[None]:
    """Attach the streaming CORS headers to any SlideshowError raised inside."""
    try:
        yield
    except SlideshowError as e:
        e.headers = {**STREAMING_CORS_HEADERS, **e.headers}
        raise


class StreamingDelivery:
    def __init__(self, storage: StorageService) -> None:
        self.storage = storage

    async def serve(self, job: RenderJob, range_header: str | None = None) -> StreamingResponse:
        """Stream a completed job's artifact, honouring an optional Range header."""
        with cors_on_error():
            return await self._serve(job, range_header)

    async def _serve(self, job: RenderJob, range_header: str | None) -> StreamingResponse:
        if job.status != JobStatus.COMPLETED.value or not job.output_path:
            raise JobNotReadyError()

        key = job.output_path
        size = await asyncio.to_thread(self.storage.size, key)
        if size == 0:
            raise AssetNotFoundError(key)
        byte_range = parse_range_header(range_header, size)

        headers = {
            **STREAMING_CORS_HEADERS,
            "Accept-Ranges": "bytes",
            "Cache-Control": "no-cache",
        }
        if byte_range is None:
            start, end, status_code = 0, size - 1, 200
            headers["Content-Length"] = str(size)
        else:
            start, end, status_code = byte_range.start, byte_range.end, 206
            headers["Content-Range"] = f"bytes {start}-{end}/{size}"
            headers["Content-Length"] = str(byte_range.length)

        logger.debug(f"Streaming {key} bytes {start}-{end}/{size} ({status_code})")
        return StreamingResponse(
            self.storage.iter_range(key, start, end),
            status_code=status_code,
            media_type=VIDEO_CONTENT_TYPE,
            headers=headers,
        )
