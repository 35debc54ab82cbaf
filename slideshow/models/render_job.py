import uuid
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from slideshow.models.base import Base, TimestampMixin, UUIDMixin


class JobStatus(str, Enum):
    """Render job status.

    Only two transitions exist: processing -> completed and processing -> failed.
    """

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RenderJob(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "slideshows"

    album_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("albums.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(String(50), default=JobStatus.PROCESSING.value, index=True)

    # Ordered snapshot of the images taken at submission:
    # [{"storage_key": ..., "display_order": ..., "rotation": ...}]
    source_images: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    # Output (populated only on completion)
    output_filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    output_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    output_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    output_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Coarse failure category; diagnostics stay in the logs
    failure_reason: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Relationships
    album: Mapped["Album"] = relationship("Album", back_populates="render_jobs")  # noqa: F821

    def __repr__(self) -> str:
        return f"<RenderJob {self.id} ({self.status})>"
