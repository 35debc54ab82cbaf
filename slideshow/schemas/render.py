from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from slideshow.models.render_job import JobStatus, RenderJob


class RenderRequest(BaseModel):
    album_id: UUID
    music: str | None = None  # Accepted, not rendered
    transition: str | None = None  # Accepted, not rendered

    def options(self) -> dict[str, str]:
        return {k: v for k, v in {"music": self.music, "transition": self.transition}.items() if v}


class ArtifactResponse(BaseModel):
    filename: str | None
    url: str | None
    size: int | None
    duration_seconds: float | None


class SubmitResponse(BaseModel):
    job_id: UUID
    status: str
    poll_interval_seconds: int


class JobStatusResponse(BaseModel):
    job_id: UUID
    status: str
    artifact: ArtifactResponse | None = None
    failure_reason: str | None = None
    poll_interval_seconds: int

    @classmethod
    def from_job(cls, job: RenderJob, poll_interval_seconds: int) -> "JobStatusResponse":
        artifact = None
        if job.status == JobStatus.COMPLETED.value:
            artifact = ArtifactResponse(
                filename=job.output_filename,
                url=job.output_url,
                size=job.output_size,
                duration_seconds=job.duration_seconds,
            )
        return cls(
            job_id=job.id,
            status=job.status,
            artifact=artifact,
            failure_reason=job.failure_reason,
            poll_interval_seconds=poll_interval_seconds,
        )


class RenderJobResponse(BaseModel):
    id: UUID
    album_id: UUID
    status: str
    output_filename: str | None
    output_url: str | None
    output_size: int | None
    duration_seconds: float | None
    failure_reason: str | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TempUrlResponse(BaseModel):
    url: str
    expires_in_seconds: int
