"""Video repository for database operations."""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tubely.modules.video.models import Video


class VideoRepository:
    """Repository for Video reads and URL updates."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, video_id: uuid.UUID) -> Optional[Video]:
        """Get video by ID.

        Args:
            video_id: Video UUID

        Returns:
            Optional[Video]: Video if found, None otherwise
        """
        result = await self.session.execute(select(Video).where(Video.id == video_id))
        return result.scalar_one_or_none()

    async def update(self, video: Video, **kwargs) -> Video:
        """Update video attributes and commit.

        The change is durable when this returns; on failure the session is
        rolled back and the error propagates.

        Args:
            video: Video instance to update
            **kwargs: Attributes to update

        Returns:
            Video: Updated video instance
        """
        for key, value in kwargs.items():
            if hasattr(video, key):
                setattr(video, key, value)
        try:
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        await self.session.refresh(video)
        return video

    async def update_video_url(self, video: Video, video_url: str) -> Video:
        return await self.update(video, video_url=video_url)

    async def update_thumbnail_url(self, video: Video, thumbnail_url: str) -> Video:
        return await self.update(video, thumbnail_url=thumbnail_url)
