"""Error taxonomy shared by the video API and the ingestion pipeline.

Each error carries a stable ``kind`` (reported to clients as
``error_code``) and the HTTP status it maps to. ``public_message`` is what a
client sees; server-side failures keep their diagnostic detail in ``str(e)``
for the logs only.
"""


class TubelyError(Exception):
    """Base error for Tubely."""

    kind = "InternalError"
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.public_message)

    @property
    def client_message(self) -> str:
        """Message safe to return to the caller."""
        if self.status_code >= 500:
            return self.public_message
        return str(self)


class InvalidInputError(TubelyError):
    """Client supplied a missing, oversized, or unsupported upload."""

    kind = "InvalidInput"
    status_code = 400
    public_message = "Invalid input"


class UnauthorizedError(TubelyError):
    """Missing or invalid bearer token."""

    kind = "Unauthorized"
    status_code = 401
    public_message = "Couldn't validate JWT"


class ForbiddenError(TubelyError):
    """Caller does not own the target video."""

    kind = "Forbidden"
    status_code = 403
    public_message = "This is not your video!"


class VideoNotFoundError(TubelyError):
    """No video record exists for the given id."""

    kind = "NotFound"
    status_code = 404
    public_message = "Couldn't find video"


class IngestionError(TubelyError):
    """Base for server-side failures inside the ingestion pipeline."""

    kind = "IngestionError"
    public_message = "Video processing failed"


class BufferingError(IngestionError):
    """The upload stream could not be written to scratch storage."""

    kind = "IOError"
    public_message = "Couldn't buffer uploaded video"


class ProbeFailedError(IngestionError):
    """ffprobe failed or reported no usable video stream."""

    kind = "ProbeFailed"
    public_message = "Couldn't read video metadata"


class RemuxFailedError(IngestionError):
    """ffmpeg failed to produce the fast-start copy."""

    kind = "RemuxFailed"
    public_message = "Couldn't process video for streaming"


class UploadFailedError(IngestionError):
    """Object storage rejected or failed the write."""

    kind = "UploadFailed"
    public_message = "Couldn't upload video"


class PersistError(IngestionError):
    """The video record could not be updated after a successful upload."""

    kind = "PersistError"
    public_message = "Couldn't update video"
