"""Video management module."""

from tubely.modules.video.models import Video
from tubely.modules.video.repository import VideoRepository
from tubely.modules.video.service import VideoService

__all__ = [
    "Video",
    "VideoRepository",
    "VideoService",
]
