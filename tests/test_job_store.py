"""Tests for JobStore and AlbumRepository against SQLite."""

from uuid import uuid4

import pytest

from slideshow.exceptions import AlbumNotFoundError, InvalidTransitionError, JobNotFoundError
from slideshow.models.render_job import JobStatus
from slideshow.services.album_repository import SourceImage
from tests.conftest import seed_album, seed_user

COMPLETED_ARTIFACT = dict(
    output_filename="slideshow-x.mp4",
    output_path="slideshows/slideshow-x.mp4",
    output_url="/api/storage/files/slideshows/slideshow-x.mp4",
    output_size=1000,
    duration_seconds=6,
)


class TestAlbumRepository:
    """Tests for ownership-scoped album reads."""

    @pytest.mark.asyncio
    async def test_images_in_display_order(self, context):
        user = await seed_user(context)
        album = await seed_album(context, user.id, image_count=3, rotations=[0, 90, 0])

        images = await context.albums.list_images(album.id)

        assert [image.display_order for image in images] == [0, 1, 2]
        assert images[1].rotation == 90

    @pytest.mark.asyncio
    async def test_foreign_album_is_not_found(self, context):
        owner = await seed_user(context)
        other = await seed_user(context, name="Bob")
        album = await seed_album(context, owner.id, image_count=1)

        assert (await context.albums.get_owned_album(album.id, owner.id)).id == album.id
        with pytest.raises(AlbumNotFoundError):
            await context.albums.get_owned_album(album.id, other.id)


class TestJobStore:
    """Tests for job records and the terminal-state guard."""

    @pytest.fixture
    def images(self):
        return [SourceImage("albums/a/1.jpg", 0, 0), SourceImage("albums/a/2.jpg", 1, 90)]

    @pytest.mark.asyncio
    async def test_create_starts_processing(self, context, images):
        user = await seed_user(context)
        album = await seed_album(context, user.id, image_count=1)

        job = await context.job_store.create(album.id, images)

        assert job.status == JobStatus.PROCESSING.value
        assert job.output_path is None
        assert job.source_images[1] == {"storage_key": "albums/a/2.jpg", "display_order": 1, "rotation": 90}

    @pytest.mark.asyncio
    async def test_completed_exactly_once(self, context, images):
        user = await seed_user(context)
        album = await seed_album(context, user.id, image_count=1)
        job = await context.job_store.create(album.id, images)

        done = await context.job_store.mark_completed(job.id, **COMPLETED_ARTIFACT)
        assert done.status == JobStatus.COMPLETED.value
        assert done.output_size == 1000

        with pytest.raises(InvalidTransitionError):
            await context.job_store.mark_failed(job.id, "render_failed")
        with pytest.raises(InvalidTransitionError):
            await context.job_store.mark_completed(job.id, **COMPLETED_ARTIFACT)

        assert (await context.job_store.get(job.id)).status == JobStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_failed_has_no_artifact(self, context, images):
        user = await seed_user(context)
        album = await seed_album(context, user.id, image_count=1)
        job = await context.job_store.create(album.id, images)

        failed = await context.job_store.mark_failed(job.id, "render_failed")

        assert failed.status == JobStatus.FAILED.value
        assert failed.failure_reason == "render_failed"
        assert failed.output_path is None
        assert failed.output_url is None

    @pytest.mark.asyncio
    async def test_get_for_user_scopes_by_album_owner(self, context, images):
        owner = await seed_user(context)
        other = await seed_user(context, name="Bob")
        album = await seed_album(context, owner.id, image_count=1)
        job = await context.job_store.create(album.id, images)

        assert (await context.job_store.get_for_user(job.id, owner.id)).id == job.id
        with pytest.raises(JobNotFoundError):
            await context.job_store.get_for_user(job.id, other.id)
        with pytest.raises(JobNotFoundError):
            await context.job_store.get(uuid4())

    @pytest.mark.asyncio
    async def test_listing(self, context, images):
        owner = await seed_user(context)
        first = await seed_album(context, owner.id, image_count=1)
        second = await seed_album(context, owner.id, image_count=1)
        a = await context.job_store.create(first.id, images)
        b = await context.job_store.create(second.id, images)

        assert {j.id for j in await context.job_store.list_for_user(owner.id)} == {a.id, b.id}
        assert [j.id for j in await context.job_store.list_for_album(first.id)] == [a.id]

    @pytest.mark.asyncio
    async def test_delete(self, context, images):
        user = await seed_user(context)
        album = await seed_album(context, user.id, image_count=1)
        job = await context.job_store.create(album.id, images)

        assert await context.job_store.delete(job.id) is True
        assert await context.job_store.delete(job.id) is False
        with pytest.raises(JobNotFoundError):
            await context.job_store.get(job.id)
