"""Scratch files owned by a single ingestion run.

Names come from 32 random bytes, so concurrent uploads never collide.
``TempArtifactStore.scoped()`` guarantees that every artifact registered in
the scope is deleted when the scope exits, whatever the exit path.
"""

import logging
import secrets
import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Union

from tubely.core.errors import BufferingError
from tubely.core.metrics import CLEANUP_ERRORS_TOTAL, TEMP_ARTIFACTS_RELEASED_TOTAL

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MB


@dataclass(frozen=True)
class TempArtifact:
    """A scratch file on local disk."""
    path: Path

    def __str__(self) -> str:
        return str(self.path)


class TempArtifactStore:
    """Allocates, fills, and deletes scratch files under one directory."""

    def __init__(self, scratch_dir: Union[str, Path]):
        self.scratch_dir = Path(scratch_dir)
        self.scratch_dir.mkdir(parents=True, exist_ok=True)

    def create(self, extension: str) -> TempArtifact:
        """Allocate a unique path. No file is created yet."""
        name = secrets.token_urlsafe(32)
        return TempArtifact(path=self.scratch_dir / f"{name}.{extension}")

    def adopt(self, path: Union[str, Path]) -> TempArtifact:
        """Wrap a file produced by someone else so it can be released."""
        return TempArtifact(path=Path(path))

    def write(self, artifact: TempArtifact, stream: BinaryIO) -> int:
        """Copy ``stream`` fully into ``artifact``.

        A partially written file is removed before the error propagates.

        Returns:
            Number of bytes written

        Raises:
            BufferingError: If reading the stream or writing the file fails
        """
        try:
            with open(artifact.path, "wb") as f:
                shutil.copyfileobj(stream, f, CHUNK_SIZE)
                f.flush()
                size = f.tell()
        except OSError as e:
            self.release(artifact)
            raise BufferingError(f"Couldn't write upload to {artifact.path}: {e}") from e
        return size

    def materialize(self, stream: BinaryIO, extension: str) -> TempArtifact:
        """Persist a whole stream to a new scratch file."""
        artifact = self.create(extension)
        self.write(artifact, stream)
        return artifact

    def release(self, artifact: TempArtifact) -> None:
        """Delete the artifact's file. Missing files are ignored.

        Raises:
            OSError: If the file exists but can't be deleted
        """
        artifact.path.unlink(missing_ok=True)

    @contextmanager
    def scoped(self) -> Iterator["ArtifactScope"]:
        """Yield a scope whose artifacts are all released on exit."""
        scope = ArtifactScope(self)
        try:
            yield scope
        finally:
            scope.release_all()


class ArtifactScope:
    """Tracks the artifacts of one run and releases them together."""

    def __init__(self, store: TempArtifactStore):
        self.store = store
        self.artifacts: list[TempArtifact] = []
        self.cleanup_errors: list[str] = []

    def register(self, artifact: TempArtifact) -> TempArtifact:
        self.artifacts.append(artifact)
        return artifact

    def create(self, extension: str) -> TempArtifact:
        return self.register(self.store.create(extension))

    def adopt(self, path: Union[str, Path]) -> TempArtifact:
        return self.register(self.store.adopt(path))

    def materialize(self, stream: BinaryIO, extension: str) -> TempArtifact:
        artifact = self.create(extension)
        self.store.write(artifact, stream)
        return artifact

    def release_all(self) -> None:
        """Release every registered artifact, logging failures instead of raising."""
        while self.artifacts:
            artifact = self.artifacts.pop()
            try:
                self.store.release(artifact)
                TEMP_ARTIFACTS_RELEASED_TOTAL.inc()
            except OSError as e:
                CLEANUP_ERRORS_TOTAL.inc()
                self.cleanup_errors.append(str(artifact.path))
                logger.error(
                    f"Failed to delete temp artifact: path='{artifact.path}' error={repr(e)}"
                )
