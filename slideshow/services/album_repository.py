"""Read-only access to albums and their images, scoped by owner."""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from slideshow.exceptions import AlbumNotFoundError
from slideshow.models.album import Album, Image


@dataclass(frozen=True)
class SourceImage:
    """One image as captured for a render job."""

    storage_key: str
    display_order: int = 0
    rotation: int = 0


class AlbumRepository:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def get_owned_album(self, album_id: UUID, user_id: UUID) -> Album:
        """Raises AlbumNotFoundError if the album is missing or owned by someone else."""
        async with self.session_maker() as session:
            result = await session.execute(
                select(Album).where(Album.id == album_id, Album.user_id == user_id)
            )
            album = result.scalar_one_or_none()
        if album is None:
            raise AlbumNotFoundError(str(album_id))
        return album

    async def list_images(self, album_id: UUID) -> list[SourceImage]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(Image)
                .where(Image.album_id == album_id)
                .order_by(Image.display_order, Image.created_at)
            )
            images = result.scalars().all()
        return [
            SourceImage(
                storage_key=image.storage_key,
                display_order=image.display_order,
                rotation=image.rotation,
            )
            for image in images
        ]
