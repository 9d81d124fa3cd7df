"""Video service for business logic.

Implements ownership checks and thumbnail storage. Video ingestion itself
lives in ``tubely.modules.ingestion.pipeline``.
"""

import asyncio
import logging
import shutil
import uuid
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from tubely.core.config import settings
from tubely.core.errors import BufferingError, ForbiddenError, VideoNotFoundError
from tubely.modules.video.models import Video
from tubely.modules.video.repository import VideoRepository
from tubely.modules.video.schemas import validate_thumbnail_upload

logger = logging.getLogger(__name__)


class VideoService:
    """Service for video management operations."""

    def __init__(self, session: AsyncSession):
        """Initialize service with database session."""
        self.session = session
        self.video_repo = VideoRepository(session)

    async def get_video(self, video_id: uuid.UUID) -> Video:
        """Get video by ID.

        Raises:
            VideoNotFoundError: If video not found
        """
        video = await self.video_repo.get_by_id(video_id)
        if not video:
            raise VideoNotFoundError("Couldn't find video")
        return video

    async def get_owned_video(self, video_id: uuid.UUID, user_id: uuid.UUID) -> Video:
        """Get a video the caller owns.

        Args:
            video_id: Video UUID
            user_id: Authenticated caller

        Returns:
            Video: The caller's video

        Raises:
            VideoNotFoundError: If video not found
            ForbiddenError: If the video belongs to someone else
        """
        video = await self.get_video(video_id)
        if video.user_id != user_id:
            logger.warning(
                f"Ownership check failed: video_id={video_id} user_id={user_id}"
            )
            raise ForbiddenError("This is not your video!")
        return video

    async def upload_thumbnail(self, video: Video, upload: Any) -> Video:
        """Store a thumbnail under the assets root and record its URL.

        The file is named after the video, so a new upload replaces the old one.

        Raises:
            InvalidInputError: If the upload is missing, too large, or not an image
            BufferingError: If the asset can't be written
        """
        intake = validate_thumbnail_upload(upload)

        assets_root = Path(settings.ASSETS_ROOT)
        filename = f"{video.id}.{intake.extension}"
        dest = assets_root / filename

        def _write() -> None:
            assets_root.mkdir(parents=True, exist_ok=True)
            with open(dest, "wb") as f:
                shutil.copyfileobj(intake.stream, f)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            dest.unlink(missing_ok=True)
            raise BufferingError(f"Couldn't write thumbnail to {dest}: {e}") from e

        url = f"http://localhost:{settings.PORT}/assets/{filename}"
        return await self.video_repo.update_thumbnail_url(video, url)
