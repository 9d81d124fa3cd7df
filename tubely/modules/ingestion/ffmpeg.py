"""FFmpeg tool wrappers used by the ingestion pipeline.

``FFprobeProber`` reads the geometry of the first video stream and
``FFmpegFastStartRemuxer`` rewrites an MP4 so its index atoms precede the
media data, copying streams without re-encoding. Both block until the
external process exits; the pipeline runs them in worker threads.
"""

import json
import logging
import subprocess
from dataclasses import dataclass
from typing import Optional, Protocol

from tubely.core.errors import ProbeFailedError, RemuxFailedError

logger = logging.getLogger(__name__)

PROCESSED_SUFFIX = ".processed.mp4"


@dataclass(frozen=True)
class ProbeResult:
    """Geometry of the primary video stream."""
    width: int
    height: int


class MediaProber(Protocol):
    def probe(self, path: str) -> ProbeResult: ...


class Remuxer(Protocol):
    def output_path_for(self, path: str) -> str: ...

    def remux(self, path: str) -> str: ...


def _run_tool(cmd: list[str], timeout: Optional[float]) -> subprocess.CompletedProcess:
    """Run an external tool with stdout and stderr captured.

    Raises:
        FileNotFoundError: If the binary is missing
        subprocess.TimeoutExpired: If ``timeout`` elapses
    """
    logger.debug(f"Running media tool: {' '.join(cmd)}")
    return subprocess.run(
        cmd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=False,
        timeout=timeout,
    )


class FFprobeProber:
    """Media prober backed by ffprobe."""

    def __init__(self, ffprobe_path: str = "ffprobe", timeout: Optional[float] = None):
        """Initialize prober.

        Args:
            ffprobe_path: Path to ffprobe binary
            timeout: Optional limit in seconds for one invocation
        """
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    def build_command(self, input_path: str) -> list[str]:
        return [
            self.ffprobe_path,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height",
            "-of", "json",
            input_path,
        ]

    def probe(self, path: str) -> ProbeResult:
        """Get width and height of the first video stream.

        Args:
            path: Path to a fully written local media file

        Returns:
            ProbeResult with positive width and height

        Raises:
            ProbeFailedError: If ffprobe fails or reports no usable stream
        """
        try:
            result = _run_tool(self.build_command(path), self.timeout)
        except FileNotFoundError as e:
            raise ProbeFailedError(f"ffprobe not found: {self.ffprobe_path}") from e
        except subprocess.TimeoutExpired as e:
            raise ProbeFailedError(f"ffprobe timed out after {self.timeout}s") from e

        if result.returncode != 0:
            raise ProbeFailedError(f"ffprobe error: {result.stderr.strip()}")

        try:
            output = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ProbeFailedError(f"Couldn't parse ffprobe output: {e}") from e

        streams = output.get("streams") if isinstance(output, dict) else None
        if not streams:
            raise ProbeFailedError("No video streams found")

        stream = streams[0]
        width = stream.get("width")
        height = stream.get("height")
        if not isinstance(width, int) or not isinstance(height, int) or width <= 0 or height <= 0:
            raise ProbeFailedError(f"Invalid stream dimensions: width={width!r} height={height!r}")

        return ProbeResult(width=width, height=height)


class FFmpegFastStartRemuxer:
    """Fast-start remuxer backed by ffmpeg stream copy."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", timeout: Optional[float] = None):
        """Initialize remuxer.

        Args:
            ffmpeg_path: Path to ffmpeg binary
            timeout: Optional limit in seconds for one invocation
        """
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    def output_path_for(self, input_path: str) -> str:
        """Output path written for ``input_path``."""
        return f"{input_path}{PROCESSED_SUFFIX}"

    def build_command(self, input_path: str, output_path: str) -> list[str]:
        return [
            self.ffmpeg_path,
            "-i", input_path,
            "-movflags", "faststart",
            "-map_metadata", "0",
            "-codec", "copy",
            "-f", "mp4",
            output_path,
        ]

    def remux(self, path: str) -> str:
        """Write a fast-start copy of ``path`` beside it.

        Args:
            path: Path to the source MP4

        Returns:
            Path of the processed copy

        Raises:
            RemuxFailedError: If ffmpeg exits non-zero
        """
        output_path = self.output_path_for(path)

        try:
            result = _run_tool(self.build_command(path, output_path), self.timeout)
        except FileNotFoundError as e:
            raise RemuxFailedError(f"ffmpeg not found: {self.ffmpeg_path}") from e
        except subprocess.TimeoutExpired as e:
            raise RemuxFailedError(f"ffmpeg timed out after {self.timeout}s") from e

        if result.returncode != 0:
            raise RemuxFailedError(f"FFmpeg error: {result.stderr.strip()}")

        return output_path
