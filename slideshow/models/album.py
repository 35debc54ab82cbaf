import uuid

from sqlalchemy import ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from slideshow.models.base import Base, TimestampMixin, UUIDMixin


class Album(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "albums"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="albums")  # noqa: F821
    images: Mapped[list["Image"]] = relationship(
        "Image", back_populates="album", cascade="all, delete-orphan"
    )
    render_jobs: Mapped[list["RenderJob"]] = relationship(  # noqa: F821
        "RenderJob", back_populates="album", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Album {self.title}>"


class Image(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "images"

    album_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("albums.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Storage
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(String(1000), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False, default="image/jpeg")

    # Slideshow ordering and orientation (degrees clockwise: 0, 90, 180, 270)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rotation: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    album: Mapped["Album"] = relationship("Album", back_populates="images")

    def __repr__(self) -> str:
        return f"<Image {self.storage_key} (#{self.display_order})>"
