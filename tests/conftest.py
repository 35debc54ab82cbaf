"""
Pytest fixtures for slideshow backend tests.

The database is a throwaway SQLite file (aiosqlite), storage is a local
directory under tmp_path, and ffmpeg is replaced by FakeRunner, which writes
a fixed-size output file instead of encoding video.
"""

import io
from pathlib import Path
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from PIL import Image as PILImage

from slideshow.config import Settings
from slideshow.context import AppContext
from slideshow.models.album import Album, Image
from slideshow.models.database import init_db
from slideshow.models.user import User
from slideshow.render.renderer import CommandResult

ARTIFACT_SIZE = 1000


class FakeRunner:
    """Stands in for ffmpeg: records commands and writes the output file."""

    def __init__(self, returncode: int = 0, stderr: str = "", payload: bytes = b"\x00" * ARTIFACT_SIZE):
        self.returncode = returncode
        self.stderr = stderr
        self.payload = payload
        self.commands: list[list[str]] = []

    async def __call__(self, cmd: list[str], timeout: float) -> CommandResult:
        self.commands.append(cmd)
        if self.returncode == 0 and self.payload:
            Path(cmd[-1]).write_bytes(self.payload)
        return CommandResult(returncode=self.returncode, stderr=self.stderr)


def make_jpeg(width: int = 640, height: int = 480, color: str = "red") -> bytes:
    out = io.BytesIO()
    PILImage.new("RGB", (width, height), color).save(out, format="JPEG")
    return out.getvalue()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        use_local_storage=True,
        local_storage_path=str(tmp_path / "storage"),
        render_work_dir=str(work_dir),
        render_max_workers=2,
        token_secret="test-secret",
        public_api_url="http://testserver",
        dev_mode=True,
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest_asyncio.fixture
async def context(settings: Settings, fake_runner: FakeRunner):
    """AppContext with tables created; the worker pool is NOT started."""
    ctx = AppContext(settings, runner=fake_runner)
    await init_db(ctx.engine)
    yield ctx
    await ctx.pool.stop()
    await ctx.engine.dispose()


async def seed_user(ctx: AppContext, user_id: UUID | None = None, name: str = "Alice") -> User:
    user = User(id=user_id or uuid4(), display_name=name)
    async with ctx.session_maker() as session:
        session.add(user)
        await session.commit()
    return user


async def seed_album(ctx: AppContext, user_id: UUID, image_count: int = 3, rotations=None) -> Album:
    """Create an album with ``image_count`` real JPEGs in storage."""
    album = Album(id=uuid4(), user_id=user_id, title="Holiday")
    rotations = rotations or [0] * image_count
    async with ctx.session_maker() as session:
        session.add(album)
        for order in range(image_count):
            stored = ctx.storage.put(f"albums/{album.id}", make_jpeg(), "image/jpeg")
            session.add(
                Image(
                    album_id=album.id,
                    storage_key=stored.key,
                    url=stored.url,
                    file_size=stored.size,
                    mime_type=stored.content_type,
                    display_order=order,
                    rotation=rotations[order],
                )
            )
        await session.commit()
    return album
