"""Tests for range parsing and streaming delivery."""

from uuid import uuid4

import pytest

from slideshow.exceptions import AssetNotFoundError, JobNotReadyError, RangeNotSatisfiableError
from slideshow.models.render_job import JobStatus, RenderJob
from slideshow.services.storage_service import LocalStorageService
from slideshow.services.streaming import (
    STREAMING_CORS_HEADERS,
    ByteRange,
    StreamingDelivery,
    parse_range_header,
    preflight_headers,
)

ARTIFACT = bytes(i % 251 for i in range(1000))
KEY = "slideshows/slideshow-test.mp4"


class TestParseRangeHeader:
    """Tests for parse_range_header."""

    def test_no_header(self):
        assert parse_range_header(None, 1000) is None

    def test_closed_range(self):
        assert parse_range_header("bytes=100-199", 1000) == ByteRange(100, 199)

    def test_open_ended_range(self):
        assert parse_range_header("bytes=900-", 1000) == ByteRange(900, 999)

    def test_end_is_clamped(self):
        byte_range = parse_range_header("bytes=990-5000", 1000)
        assert byte_range == ByteRange(990, 999)
        assert byte_range.length == 10

    @pytest.mark.parametrize(
        "header",
        [
            "bytes=1000-",
            "bytes=200-100",
            "bytes=-500",
            "bytes=0-1,5-9",
            "items=0-1",
            "bytes=abc",
            "bytes=" + "9" * 5000 + "-",
            "bytes=0-" + "1" * 5000,
        ],
    )
    def test_unsatisfiable(self, header):
        with pytest.raises(RangeNotSatisfiableError) as exc_info:
            parse_range_header(header, 1000)
        assert exc_info.value.status_code == 416
        assert exc_info.value.headers["Content-Range"] == "bytes */1000"


def test_preflight_headers_include_max_age():
    headers = preflight_headers()
    assert headers["Access-Control-Max-Age"] == "86400"
    assert headers["Access-Control-Allow-Headers"] == "Range, Content-Type, Authorization"


class TestStreamingDelivery:
    """Tests for StreamingDelivery.serve."""

    @pytest.fixture
    def storage(self, settings, tmp_path):
        storage = LocalStorageService(settings)
        source = tmp_path / "artifact.mp4"
        source.write_bytes(ARTIFACT)
        storage.put_file(source, KEY, "video/mp4")
        return storage

    @staticmethod
    def make_job(status=JobStatus.COMPLETED.value, output_path=KEY) -> RenderJob:
        return RenderJob(id=uuid4(), album_id=uuid4(), status=status, output_path=output_path)

    @staticmethod
    async def read_body(response) -> bytes:
        return b"".join([chunk async for chunk in response.body_iterator])

    @pytest.mark.asyncio
    async def test_full_artifact(self, storage):
        response = await StreamingDelivery(storage).serve(self.make_job())

        assert response.status_code == 200
        assert response.headers["content-length"] == "1000"
        assert response.headers["accept-ranges"] == "bytes"
        assert response.headers["content-type"] == "video/mp4"
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["access-control-allow-origin"] == "*"
        assert await self.read_body(response) == ARTIFACT

    @pytest.mark.asyncio
    async def test_partial_content(self, storage):
        response = await StreamingDelivery(storage).serve(self.make_job(), "bytes=100-199")

        assert response.status_code == 206
        assert response.headers["content-range"] == "bytes 100-199/1000"
        assert response.headers["content-length"] == "100"
        assert await self.read_body(response) == ARTIFACT[100:200]

    @pytest.mark.asyncio
    async def test_processing_job_is_not_ready(self, storage):
        job = self.make_job(status=JobStatus.PROCESSING.value, output_path=None)
        with pytest.raises(JobNotReadyError) as exc_info:
            await StreamingDelivery(storage).serve(job)
        assert exc_info.value.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_bad_range_keeps_cors_and_content_range(self, storage):
        with pytest.raises(RangeNotSatisfiableError) as exc_info:
            await StreamingDelivery(storage).serve(self.make_job(), "bytes=5000-")
        headers = exc_info.value.headers
        assert headers["Content-Range"] == "bytes */1000"
        for name, value in STREAMING_CORS_HEADERS.items():
            assert headers[name] == value

    @pytest.mark.asyncio
    async def test_missing_artifact_is_not_found(self, storage):
        storage.get_file_path(KEY).unlink()

        with pytest.raises(AssetNotFoundError) as exc_info:
            await StreamingDelivery(storage).serve(self.make_job())

        assert exc_info.value.status_code == 404
        assert exc_info.value.headers["Access-Control-Allow-Origin"] == "*"
