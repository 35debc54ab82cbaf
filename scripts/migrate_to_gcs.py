#!/usr/bin/env python3
"""Copy locally stored images and slideshow videos into Google Cloud Storage.

Every image (with its thumbnail) and every completed slideshow artifact is
uploaded under the same key to the configured bucket, and the stored URLs
are rewritten to the GCS public URLs.

Usage:
    python scripts/migrate_to_gcs.py [--dry-run]

Reads the usual settings from the environment / .env (DATABASE_URL,
LOCAL_STORAGE_PATH, GCS_BUCKET_NAME, GCS_PROJECT_ID).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy import select

from slideshow.config import get_settings
from slideshow.exceptions import SlideshowError
from slideshow.models.album import Image
from slideshow.models.database import create_engine, create_session_maker
from slideshow.models.render_job import JobStatus, RenderJob
from slideshow.services.storage_service import GCSStorageService, LocalStorageService

logger = logging.getLogger("migrate_to_gcs")


@dataclass
class MigrationReport:
    migrated: int = 0
    skipped: int = 0
    failed: list[str] = field(default_factory=list)

    def summary(self) -> str:
        lines = [
            "=" * 50,
            "Migration summary",
            f"  migrated: {self.migrated}",
            f"  skipped (missing locally): {self.skipped}",
            f"  failed: {len(self.failed)}",
        ]
        lines.extend(f"    - {key}" for key in self.failed)
        return "\n".join(lines)


def _copy(local: LocalStorageService, gcs: GCSStorageService, key: str, content_type: str) -> str:
    gcs.put_file(local.get_file_path(key), key, content_type)
    return gcs.locate(key)


async def migrate(dry_run: bool = False) -> MigrationReport:
    settings = get_settings()
    local = LocalStorageService(settings.model_copy(update={"use_local_storage": True}))
    gcs = GCSStorageService(settings.model_copy(update={"use_local_storage": False}))
    engine = create_engine(settings.database_url)
    session_maker = create_session_maker(engine)
    report = MigrationReport()

    try:
        async with session_maker() as session:
            images = (await session.execute(select(Image))).scalars().all()
            for image in images:
                if not local.exists(image.storage_key):
                    logger.warning(f"Skipping image {image.id}: {image.storage_key} not found locally")
                    report.skipped += 1
                    continue
                if dry_run:
                    logger.info(f"[dry-run] would upload {image.storage_key}")
                    report.migrated += 1
                    continue
                try:
                    image.url = await asyncio.to_thread(
                        _copy, local, gcs, image.storage_key, image.mime_type
                    )
                    thumb_key = local.companion_key(image.storage_key)
                    if local.exists(thumb_key):
                        await asyncio.to_thread(_copy, local, gcs, thumb_key, "image/jpeg")
                    report.migrated += 1
                except SlideshowError as e:
                    logger.error(f"Failed to migrate {image.storage_key}: {e.message}")
                    report.failed.append(image.storage_key)

            jobs = (
                await session.execute(
                    select(RenderJob).where(RenderJob.status == JobStatus.COMPLETED.value)
                )
            ).scalars().all()
            for job in jobs:
                if not job.output_path or not local.exists(job.output_path):
                    report.skipped += 1
                    continue
                if dry_run:
                    logger.info(f"[dry-run] would upload {job.output_path}")
                    report.migrated += 1
                    continue
                try:
                    job.output_url = await asyncio.to_thread(
                        _copy, local, gcs, job.output_path, "video/mp4"
                    )
                    report.migrated += 1
                except SlideshowError as e:
                    logger.error(f"Failed to migrate {job.output_path}: {e.message}")
                    report.failed.append(job.output_path)

            if not dry_run:
                await session.commit()
    finally:
        await engine.dispose()

    return report


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--dry-run", action="store_true", help="List what would be uploaded")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    report = asyncio.run(migrate(dry_run=args.dry_run))
    print(report.summary())


if __name__ == "__main__":
    main()
