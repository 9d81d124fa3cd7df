"""Pydantic schemas and upload validation for the video module."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, BinaryIO, Optional

from pydantic import BaseModel, ConfigDict
from starlette.datastructures import UploadFile

from tubely.core.errors import InvalidInputError


# Upload limits
ALLOWED_VIDEO_MIME_TYPES = {"video/mp4"}
MAX_VIDEO_UPLOAD_SIZE = 1 << 30  # 1 GB
MAX_THUMBNAIL_UPLOAD_SIZE = 10 << 20  # 10 MB


class VideoResponse(BaseModel):
    """Response schema for a video record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    error_code: str
    message: str


@dataclass
class UploadIntake:
    """A validated upload, ready to be buffered to disk."""
    stream: BinaryIO
    content_type: str
    size: int
    extension: str


def _declared_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    stream = upload.file
    position = stream.tell()
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(position)
    return size


def _extension_for(content_type: str) -> str:
    return content_type.split("/", 1)[1].split(";", 1)[0].strip().lower()


def _validate_upload(
    upload: Any,
    field_name: str,
    max_size: int,
    max_size_label: str,
) -> UploadIntake:
    label = field_name.capitalize()
    if not isinstance(upload, UploadFile):
        raise InvalidInputError(f"{label} missing")

    size = _declared_size(upload)
    if size > max_size:
        raise InvalidInputError(
            f"{label} file exceeds the maximum allowed size of {max_size_label}"
        )

    content_type = (upload.content_type or "").strip()
    if not content_type:
        raise InvalidInputError(f"Missing Content-Type for {field_name}")

    return UploadIntake(
        stream=upload.file,
        content_type=content_type,
        size=size,
        extension="",
    )


def validate_video_upload(upload: Any) -> UploadIntake:
    """Validate the ``video`` form field.

    Nothing is written to disk here, so a rejected upload leaves no
    scratch files behind.

    MIME type and subtype are case-insensitive (RFC 2045), so ``Video/MP4``
    is accepted and normalized to ``video/mp4``. Parameters such as
    ``; codecs=...`` are not accepted.

    Args:
        upload: Value of the form field (``None`` when absent)

    Returns:
        UploadIntake with the extension derived from the MIME subtype

    Raises:
        InvalidInputError: If the field is missing, too large, or not an MP4
    """
    intake = _validate_upload(upload, "video", MAX_VIDEO_UPLOAD_SIZE, "1GB")
    if intake.content_type.lower() not in ALLOWED_VIDEO_MIME_TYPES:
        raise InvalidInputError("Unsupported media type")
    intake.content_type = intake.content_type.lower()
    intake.extension = _extension_for(intake.content_type)
    return intake


def validate_thumbnail_upload(upload: Any) -> UploadIntake:
    """Validate the ``thumbnail`` form field.

    Raises:
        InvalidInputError: If the field is missing, too large, or not an image
    """
    intake = _validate_upload(upload, "thumbnail", MAX_THUMBNAIL_UPLOAD_SIZE, "10MB")
    content_type = intake.content_type.lower()
    if not content_type.startswith("image/") or not _extension_for(content_type):
        raise InvalidInputError("Unsupported media type")
    intake.content_type = content_type
    intake.extension = _extension_for(content_type)
    return intake
