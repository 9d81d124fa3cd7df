"""Coarse orientation classification of a video frame."""

from enum import Enum


class Orientation(str, Enum):
    """Orientation category used as the storage key prefix."""

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


def classify_orientation(width: int, height: int) -> Orientation:
    """Classify frame geometry as exact 16:9, exact 9:16, or neither.

    The match is exact on integers: 1920x1080 is landscape, 1921x1080 is
    ``other``.

    Args:
        width: Frame width in pixels
        height: Frame height in pixels

    Returns:
        Orientation of the frame
    """
    if width == (16 * height) // 9:
        return Orientation.LANDSCAPE
    if height == (16 * width) // 9:
        return Orientation.PORTRAIT
    return Orientation.OTHER
