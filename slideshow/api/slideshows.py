"""Slideshow API endpoints: submit renders, poll status, play back videos."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Header, Query, Response, status
from fastapi.responses import StreamingResponse

from slideshow.api.deps import Context, CurrentUser, StreamingUser
from slideshow.exceptions import InvalidTokenError, JobNotReadyError
from slideshow.models.render_job import JobStatus
from slideshow.schemas.render import (
    JobStatusResponse,
    RenderJobResponse,
    RenderRequest,
    SubmitResponse,
    TempUrlResponse,
)
from slideshow.services.streaming import cors_on_error, preflight_headers

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/generate",
    response_model=SubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def generate_slideshow(
    render_request: RenderRequest,
    current_user: CurrentUser,
    context: Context,
) -> SubmitResponse:
    """
    Start rendering a slideshow for an album.

    Returns immediately with the job in processing; poll the status endpoint
    until it is completed or failed.
    """
    job = await context.jobs.submit(render_request.album_id, current_user.id, render_request.options())
    return SubmitResponse(
        job_id=job.id,
        status=job.status,
        poll_interval_seconds=context.settings.render_poll_interval_seconds,
    )


@router.get("/status/{job_id}", response_model=JobStatusResponse)
async def get_slideshow_status(
    job_id: UUID,
    current_user: CurrentUser,
    context: Context,
) -> JobStatusResponse:
    job = await context.jobs.get_status(job_id, current_user.id)
    return JobStatusResponse.from_job(job, context.settings.render_poll_interval_seconds)


@router.get("", response_model=list[RenderJobResponse])
async def list_slideshows(
    current_user: CurrentUser,
    context: Context,
) -> list[RenderJobResponse]:
    jobs = await context.jobs.list_jobs(current_user.id)
    return [RenderJobResponse.model_validate(job) for job in jobs]


@router.get("/album/{album_id}", response_model=list[RenderJobResponse])
async def list_album_slideshows(
    album_id: UUID,
    current_user: CurrentUser,
    context: Context,
) -> list[RenderJobResponse]:
    jobs = await context.jobs.list_album_jobs(album_id, current_user.id)
    return [RenderJobResponse.model_validate(job) for job in jobs]


@router.post("/play/{job_id}/temp-url", response_model=TempUrlResponse)
async def create_temp_url(
    job_id: UUID,
    current_user: CurrentUser,
    context: Context,
) -> TempUrlResponse:
    """Issue a short-lived playback URL that works without an Authorization header."""
    job = await context.jobs.get_status(job_id, current_user.id)
    if job.status != JobStatus.COMPLETED.value:
        raise JobNotReadyError()

    issued = context.temp_tokens.issue(job.id, current_user.id)
    logger.info(f"Issued temporary playback URL for slideshow {job.id}")
    base_url = context.settings.public_api_url.rstrip("/")
    return TempUrlResponse(
        url=f"{base_url}/api/slideshows/play-temp/{job.id}?token={issued.token}",
        expires_in_seconds=issued.expires_in,
    )


@router.options("/play-temp/{job_id}")
@router.options("/play/{job_id}")
async def play_preflight(job_id: UUID) -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=preflight_headers())


@router.get("/play-temp/{job_id}")
async def play_with_temp_token(
    job_id: UUID,
    context: Context,
    token: Annotated[str | None, Query()] = None,
    range_header: Annotated[str | None, Header(alias="Range")] = None,
) -> StreamingResponse:
    """Stream a slideshow authorised by a temporary token in the query string."""
    with cors_on_error():
        if not token:
            raise InvalidTokenError("Missing playback token")
        claims = context.temp_tokens.verify(token)
        if claims.job_id != job_id:
            raise InvalidTokenError("Token does not grant access to this slideshow")
        job = await context.job_store.get_for_user(job_id, claims.user_id)
    return await context.streaming.serve(job, range_header)


@router.get("/play/{job_id}")
async def play_with_session(
    job_id: UUID,
    current_user: StreamingUser,
    context: Context,
    range_header: Annotated[str | None, Header(alias="Range")] = None,
) -> StreamingResponse:
    """Stream a slideshow with regular bearer authentication."""
    with cors_on_error():
        job = await context.jobs.get_status(job_id, current_user.id)
    return await context.streaming.serve(job, range_header)


@router.get("/{job_id}", response_model=RenderJobResponse)
async def get_slideshow(
    job_id: UUID,
    current_user: CurrentUser,
    context: Context,
) -> RenderJobResponse:
    job = await context.jobs.get_status(job_id, current_user.id)
    return RenderJobResponse.model_validate(job)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slideshow(
    job_id: UUID,
    current_user: CurrentUser,
    context: Context,
) -> None:
    await context.jobs.delete(job_id, current_user.id)
