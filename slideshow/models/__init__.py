from slideshow.models.album import Album, Image
from slideshow.models.base import Base
from slideshow.models.render_job import JobStatus, RenderJob
from slideshow.models.user import User

__all__ = [
    "Base",
    "User",
    "Album",
    "Image",
    "RenderJob",
    "JobStatus",
]
