"""Persistence for render jobs.

Terminal writes are conditional updates guarded by ``status = 'processing'``,
so a job reaches completed or failed exactly once even if two writers race.
"""

import logging
from dataclasses import asdict
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from slideshow.exceptions import InvalidTransitionError, JobNotFoundError
from slideshow.models.album import Album
from slideshow.models.base import utcnow
from slideshow.models.render_job import JobStatus, RenderJob
from slideshow.services.album_repository import SourceImage

logger = logging.getLogger(__name__)


class JobStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def create(self, album_id: UUID, images: list[SourceImage]) -> RenderJob:
        """Insert a new job in processing with an ordered snapshot of its images."""
        job = RenderJob(
            album_id=album_id,
            status=JobStatus.PROCESSING.value,
            source_images=[asdict(image) for image in images],
        )
        async with self.session_maker() as session:
            session.add(job)
            await session.commit()
            await session.refresh(job)
        logger.info(f"Created render job {job.id} for album {album_id} ({len(images)} images)")
        return job

    async def get(self, job_id: UUID) -> RenderJob:
        async with self.session_maker() as session:
            job = await session.get(RenderJob, job_id)
        if job is None:
            raise JobNotFoundError(str(job_id))
        return job

    async def get_for_user(self, job_id: UUID, user_id: UUID) -> RenderJob:
        """Get a job whose album belongs to ``user_id``.

        Unknown and foreign jobs are indistinguishable to the caller.
        """
        async with self.session_maker() as session:
            result = await session.execute(
                select(RenderJob)
                .join(Album, RenderJob.album_id == Album.id)
                .where(RenderJob.id == job_id, Album.user_id == user_id)
            )
            job = result.scalar_one_or_none()
        if job is None:
            raise JobNotFoundError(str(job_id))
        return job

    async def list_for_user(self, user_id: UUID) -> list[RenderJob]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(RenderJob)
                .join(Album, RenderJob.album_id == Album.id)
                .where(Album.user_id == user_id)
                .order_by(RenderJob.created_at.desc())
            )
            return list(result.scalars().all())

    async def list_for_album(self, album_id: UUID) -> list[RenderJob]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(RenderJob)
                .where(RenderJob.album_id == album_id)
                .order_by(RenderJob.created_at.desc())
            )
            return list(result.scalars().all())

    async def _finish(self, job_id: UUID, target: JobStatus, **values) -> RenderJob:
        async with self.session_maker() as session:
            result = await session.execute(
                update(RenderJob)
                .where(
                    RenderJob.id == job_id,
                    RenderJob.status == JobStatus.PROCESSING.value,
                )
                .values(status=target.value, updated_at=utcnow(), **values)
            )
            await session.commit()
        if result.rowcount == 0:
            raise InvalidTransitionError(str(job_id), target.value)
        return await self.get(job_id)

    async def mark_completed(
        self,
        job_id: UUID,
        *,
        output_filename: str,
        output_path: str,
        output_url: str,
        output_size: int,
        duration_seconds: float,
    ) -> RenderJob:
        """processing -> completed, recording the artifact descriptor."""
        job = await self._finish(
            job_id,
            JobStatus.COMPLETED,
            output_filename=output_filename,
            output_path=output_path,
            output_url=output_url,
            output_size=output_size,
            duration_seconds=duration_seconds,
        )
        logger.info(f"Render job {job_id} completed: {output_path}")
        return job

    async def mark_failed(self, job_id: UUID, reason: str) -> RenderJob:
        """processing -> failed. The artifact descriptor stays empty."""
        job = await self._finish(job_id, JobStatus.FAILED, failure_reason=reason)
        logger.info(f"Render job {job_id} failed: {reason}")
        return job

    async def delete(self, job_id: UUID) -> bool:
        async with self.session_maker() as session:
            result = await session.execute(delete(RenderJob).where(RenderJob.id == job_id))
            await session.commit()
        return result.rowcount > 0
