"""Application wiring: builds every service from one Settings instance."""

import logging

from slideshow.config import Settings
from slideshow.models.database import create_engine, create_session_maker, init_db
from slideshow.render.renderer import CommandRunner, FFmpegRenderer, run_subprocess
from slideshow.services.access_token import SessionTokenService, TemporaryAccessTokenService
from slideshow.services.album_repository import AlbumRepository
from slideshow.services.job_manager import JobManager
from slideshow.services.job_store import JobStore
from slideshow.services.storage_service import StorageService, create_storage_service
from slideshow.services.streaming import StreamingDelivery
from slideshow.services.worker_pool import RenderWorkerPool

logger = logging.getLogger(__name__)


class AppContext:
    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner = run_subprocess,
        storage: StorageService | None = None,
    ) -> None:
        self.settings = settings
        self.engine = create_engine(settings.database_url, echo=settings.database_echo)
        self.session_maker = create_session_maker(self.engine)

        self.storage = storage or create_storage_service(settings)
        self.albums = AlbumRepository(self.session_maker)
        self.job_store = JobStore(self.session_maker)
        self.renderer = FFmpegRenderer(settings, runner=runner)
        self.pool = RenderWorkerPool(settings.render_max_workers)
        self.jobs = JobManager(
            self.job_store,
            self.albums,
            self.storage,
            self.renderer,
            self.pool,
            settings,
        )
        self.temp_tokens = TemporaryAccessTokenService(
            settings.token_secret, ttl_seconds=settings.temp_token_ttl_seconds
        )
        self.session_tokens = SessionTokenService(
            settings.token_secret, max_age_seconds=settings.session_token_max_age_seconds
        )
        self.streaming = StreamingDelivery(self.storage)

    async def open(self) -> None:
        await init_db(self.engine)
        self.pool.start()
        logger.info(f"{self.settings.app_name} ready ({self.settings.environment})")

    async def close(self) -> None:
        await self.pool.stop()
        await self.engine.dispose()
