"""Video API router.

Ownership is checked before the request body is read, so a caller who
doesn't own the video never gets as far as buffering an upload.
"""

import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tubely.core.config import settings
from tubely.core.database import get_db
from tubely.core.storage import get_storage
from tubely.modules.auth.jwt import get_current_user_id
from tubely.modules.ingestion.ffmpeg import FFmpegFastStartRemuxer, FFprobeProber
from tubely.modules.ingestion.pipeline import IngestionPipeline
from tubely.modules.ingestion.tempfiles import TempArtifactStore
from tubely.modules.video.repository import VideoRepository
from tubely.modules.video.schemas import ErrorResponse, VideoResponse
from tubely.modules.video.service import VideoService

router = APIRouter(
    prefix="/videos",
    tags=["videos"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def get_video_service(db: AsyncSession = Depends(get_db)) -> VideoService:
    return VideoService(db)


def get_ingestion_pipeline(db: AsyncSession = Depends(get_db)) -> IngestionPipeline:
    """Build a pipeline wired to the configured tools and storage."""
    return IngestionPipeline(
        temp_store=TempArtifactStore(settings.SCRATCH_DIR),
        prober=FFprobeProber(settings.FFPROBE_PATH, timeout=settings.MEDIA_TOOL_TIMEOUT_SECONDS),
        remuxer=FFmpegFastStartRemuxer(settings.FFMPEG_PATH, timeout=settings.MEDIA_TOOL_TIMEOUT_SECONDS),
        storage=get_storage(),
        record_store=VideoRepository(db),
    )


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(
    video_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: VideoService = Depends(get_video_service),
):
    """Get a video the caller owns."""
    video = await service.get_owned_video(video_id, user_id)
    return VideoResponse.model_validate(video)


@router.post("/{video_id}/video", response_model=VideoResponse)
async def upload_video(
    video_id: uuid.UUID,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: VideoService = Depends(get_video_service),
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
):
    """Upload an MP4 for a video.

    The file is probed for orientation, remuxed for fast start, and stored
    at ``https://<cdn>/<orientation>/<video_id>.mp4``.
    """
    video = await service.get_owned_video(video_id, user_id)

    form = await request.form()
    try:
        updated = await pipeline.ingest(video, form.get("video"))
    finally:
        await form.close()
    return VideoResponse.model_validate(updated)


@router.post("/{video_id}/thumbnail", response_model=VideoResponse)
async def upload_thumbnail(
    video_id: uuid.UUID,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: VideoService = Depends(get_video_service),
):
    """Upload a thumbnail image for a video."""
    video = await service.get_owned_video(video_id, user_id)

    form = await request.form()
    try:
        updated = await service.upload_thumbnail(video, form.get("thumbnail"))
    finally:
        await form.close()
    return VideoResponse.model_validate(updated)
