from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from slideshow.models.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "users"

    display_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relationships
    albums: Mapped[list["Album"]] = relationship(  # noqa: F821
        "Album", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User {self.display_name}>"
