"""
Render job orchestration.

Submission validates the album synchronously, records the job as processing
and hands the render to the worker pool. The background stages
(materialise sources, build the program, run ffmpeg, store the artifact)
report their outcome only through the job's terminal status.
"""

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any
from uuid import UUID

from slideshow.config import Settings
from slideshow.exceptions import (
    AssetNotFoundError,
    EmptyAlbumError,
    InvalidTransitionError,
    JobNotFoundError,
    MissingSourceError,
    RenderFailureError,
    StorageUnavailableError,
    ValidationError,
)
from slideshow.models.render_job import JobStatus, RenderJob
from slideshow.render.filter_graph import RenderOptions, SlideInput, build_slideshow_program
from slideshow.render.renderer import FFmpegRenderer
from slideshow.services.album_repository import AlbumRepository, SourceImage
from slideshow.services.job_store import JobStore
from slideshow.services.storage_service import StorageService
from slideshow.services.worker_pool import RenderWorkerPool

logger = logging.getLogger(__name__)

ARTIFACT_NAMESPACE = "slideshows"
ARTIFACT_CONTENT_TYPE = "video/mp4"

# Coarse failure categories exposed on the job
REASON_MISSING_SOURCE = "missing_source"
REASON_RENDER_FAILED = "render_failed"
REASON_STORAGE_UNAVAILABLE = "storage_unavailable"
REASON_INTERNAL_ERROR = "internal_error"


def artifact_filename(job_id: UUID) -> str:
    return f"slideshow-{job_id}.mp4"


def artifact_key(job_id: UUID) -> str:
    return f"{ARTIFACT_NAMESPACE}/{artifact_filename(job_id)}"


class JobManager:
    def __init__(
        self,
        job_store: JobStore,
        albums: AlbumRepository,
        storage: StorageService,
        renderer: FFmpegRenderer,
        pool: RenderWorkerPool,
        settings: Settings,
    ) -> None:
        self.job_store = job_store
        self.albums = albums
        self.storage = storage
        self.renderer = renderer
        self.pool = pool
        self.settings = settings
        self.render_options = RenderOptions(
            width=settings.render_output_width,
            height=settings.render_output_height,
            fps=settings.render_fps,
            image_duration_seconds=settings.render_image_duration_seconds,
        )

    async def submit(
        self,
        album_id: UUID,
        user_id: UUID,
        options: dict[str, Any] | None = None,
    ) -> RenderJob:
        """Start a slideshow render for an owned, non-empty album.

        Returns the new job in processing; the render itself runs later.

        Raises:
            AlbumNotFoundError: album missing or owned by someone else
            EmptyAlbumError: album has no images (no job is recorded)
        """
        await self.albums.get_owned_album(album_id, user_id)
        images = await self.albums.list_images(album_id)
        if not images:
            raise EmptyAlbumError()

        if options:
            # Music and transitions are accepted for compatibility but not rendered
            logger.debug(f"Ignoring render options for album {album_id}: {sorted(options)}")

        job = await self.job_store.create(album_id, images)
        await self.pool.submit(job.id, lambda: self.run_job(job.id))
        logger.info(f"Submitted render job {job.id} for album {album_id}")
        return job

    async def get_status(self, job_id: UUID, user_id: UUID) -> RenderJob:
        return await self.job_store.get_for_user(job_id, user_id)

    async def list_jobs(self, user_id: UUID) -> list[RenderJob]:
        return await self.job_store.list_for_user(user_id)

    async def list_album_jobs(self, album_id: UUID, user_id: UUID) -> list[RenderJob]:
        await self.albums.get_owned_album(album_id, user_id)
        return await self.job_store.list_for_album(album_id)

    async def _materialize(self, images: list[SourceImage], work_dir: Path) -> list[SlideInput]:
        slides = []
        for image in images:
            try:
                local_path = await asyncio.to_thread(
                    self.storage.fetch_to_local, image.storage_key, work_dir
                )
            except AssetNotFoundError:
                raise MissingSourceError(image.storage_key)
            slides.append(SlideInput(path=str(local_path), rotation=image.rotation))
        return slides

    async def run_job(self, job_id: UUID) -> RenderJob | None:
        """Render the image snapshot recorded on the job and record its terminal state."""
        try:
            job = await self.job_store.get(job_id)
        except JobNotFoundError:
            logger.warning(f"[JOB] Render job {job_id} was deleted before it started")
            return None
        if job.status != JobStatus.PROCESSING.value:
            logger.warning(f"[JOB] Render job {job_id} is already {job.status}, skipping")
            return None
        images = [SourceImage(**image) for image in job.source_images]

        work_dir = Path(tempfile.mkdtemp(prefix=f"slideshow-{job_id}-", dir=self.settings.render_work_dir))
        logger.info(f"[JOB] Render started: {job_id} ({len(images)} images)")
        try:
            slides = await self._materialize(images, work_dir)
            program = build_slideshow_program(slides, self.render_options)
            artifact = await self.renderer.render(program, work_dir / artifact_filename(job_id))

            key = artifact_key(job_id)
            stored = await asyncio.to_thread(
                self.storage.put_file, artifact.path, key, ARTIFACT_CONTENT_TYPE
            )
        except MissingSourceError as e:
            logger.error(f"[JOB] Render {job_id} missing source: {e.path}")
            return await self._fail(job_id, REASON_MISSING_SOURCE)
        except RenderFailureError as e:
            logger.error(f"[JOB] Render {job_id} failed: {e.message}\n{e.diagnostic}")
            return await self._fail(job_id, REASON_RENDER_FAILED)
        except StorageUnavailableError as e:
            logger.error(f"[JOB] Render {job_id} storage unavailable: {e.message}")
            return await self._fail(job_id, REASON_STORAGE_UNAVAILABLE)
        except ValidationError as e:
            logger.error(f"[JOB] Render {job_id} rejected: {e.message}")
            return await self._fail(job_id, REASON_RENDER_FAILED)
        except Exception:
            logger.exception(f"[JOB] Render {job_id} crashed")
            return await self._fail(job_id, REASON_INTERNAL_ERROR)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

        try:
            job = await self.job_store.mark_completed(
                job_id,
                output_filename=artifact_filename(job_id),
                output_path=stored.key,
                output_url=stored.url,
                output_size=stored.size,
                duration_seconds=artifact.duration_seconds,
            )
        except InvalidTransitionError:
            # The job was deleted or finished elsewhere while rendering
            logger.warning(f"[JOB] Render {job_id} finished but job is no longer processing")
            await asyncio.to_thread(self.storage.delete, stored.key)
            return None
        logger.info(f"[JOB] Render completed: {job_id} ({stored.size} bytes)")
        return job

    async def _fail(self, job_id: UUID, reason: str) -> RenderJob | None:
        try:
            return await self.job_store.mark_failed(job_id, reason)
        except InvalidTransitionError:
            logger.warning(f"[JOB] Render {job_id} failed but job is no longer processing")
            return None

    async def delete(self, job_id: UUID, user_id: UUID) -> None:
        """Remove a job record and its artifact, if any."""
        job = await self.job_store.get_for_user(job_id, user_id)
        if job.output_path:
            await asyncio.to_thread(self.storage.delete, job.output_path)
        await self.job_store.delete(job_id)
        logger.info(f"Deleted render job {job_id}")
