"""Video ingestion pipeline.

Takes the raw ``video`` form field for a video the caller already owns and
runs it through::

    VALIDATING -> BUFFERING -> PROBING -> REMUXING -> UPLOADING -> PERSISTING
        -> CLEANING_UP -> DONE

Any stage may fail, which records ``(kind, detail)`` on the run, skips the
remaining stages, and still passes through CLEANING_UP before ending in
FAILED. Every scratch file the run creates is deleted on every exit path.

Concurrent runs for the same video are not serialized: each writes its own
object and the record keeps whichever URL was persisted last.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Protocol, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from tubely.core.errors import PersistError, TubelyError
from tubely.core.logging import log_error, log_info, log_warning
from tubely.core.metrics import INGESTION_RUNS_IN_PROGRESS, record_run_outcome, record_stage_duration
from tubely.core.storage import Storage, derive_storage_key
from tubely.modules.ingestion.ffmpeg import MediaProber, Remuxer
from tubely.modules.ingestion.orientation import Orientation, classify_orientation
from tubely.modules.ingestion.tempfiles import ArtifactScope, TempArtifactStore
from tubely.modules.video.models import Video
from tubely.modules.video.schemas import validate_video_upload

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _run_blocking(func: Callable[..., T], *args: Any) -> T:
    """Run a blocking stage in a worker thread.

    Cancelling the caller does not stop the thread, so on cancellation the
    call is still awaited to completion before ``CancelledError`` propagates.
    Scratch files are therefore never released while a tool is writing them.
    """
    call = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(call)
    except asyncio.CancelledError:
        await asyncio.wait({call})
        if not call.cancelled() and call.exception() is not None:
            logger.debug(f"Stage abandoned by cancellation also failed: {call.exception()!r}")
        raise


class PipelineState(str, Enum):
    VALIDATING = "validating"
    BUFFERING = "buffering"
    PROBING = "probing"
    REMUXING = "remuxing"
    UPLOADING = "uploading"
    PERSISTING = "persisting"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


class VideoRecordStore(Protocol):
    async def update_video_url(self, video: Video, video_url: str) -> Video: ...


@dataclass
class PipelineFailure:
    """Why a run failed and in which stage."""
    kind: str
    detail: str
    stage: PipelineState
    error: TubelyError


@dataclass
class PipelineRun:
    """Audit record of one pipeline execution."""
    video_id: str
    states: list[PipelineState] = field(default_factory=list)
    orientation: Optional[Orientation] = None
    storage_key: Optional[str] = None
    video_url: Optional[str] = None
    video: Optional[Video] = None
    failure: Optional[PipelineFailure] = None
    cleanup_errors: list[str] = field(default_factory=list)

    @property
    def state(self) -> Optional[PipelineState]:
        return self.states[-1] if self.states else None

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.DONE

    def enter(self, state: PipelineState) -> None:
        self.states.append(state)

    def fail(self, error: TubelyError) -> None:
        self.failure = PipelineFailure(
            kind=error.kind,
            detail=str(error),
            stage=self.state,
            error=error,
        )


class IngestionPipeline:
    """Turns an uploaded MP4 into a fast-start object in storage."""

    def __init__(
        self,
        temp_store: TempArtifactStore,
        prober: MediaProber,
        remuxer: Remuxer,
        storage: Storage,
        record_store: VideoRecordStore,
    ):
        self.temp_store = temp_store
        self.prober = prober
        self.remuxer = remuxer
        self.storage = storage
        self.record_store = record_store

    async def run(self, video: Video, upload: Any) -> PipelineRun:
        """Execute the pipeline and record its outcome.

        Stage failures are captured on the returned run rather than raised.
        Unexpected exceptions propagate after the scratch files are released.
        If the calling task is cancelled, a stage already running in a worker
        thread finishes first; cleanup then runs and the cancellation propagates.

        Args:
            video: Record the caller has already been authorized for
            upload: Value of the ``video`` form field

        Returns:
            PipelineRun ending in DONE or FAILED
        """
        run = PipelineRun(video_id=str(video.id))
        INGESTION_RUNS_IN_PROGRESS.inc()
        try:
            with self.temp_store.scoped() as scope:
                try:
                    await self._execute(run, video, upload, scope)
                except TubelyError as e:
                    run.fail(e)
                    log_warning(
                        logger,
                        f"Ingestion failed in {run.state.value}: {e}",
                        video_id=run.video_id,
                        kind=e.kind,
                    )
                finally:
                    run.enter(PipelineState.CLEANING_UP)
            run.cleanup_errors.extend(scope.cleanup_errors)
        except asyncio.CancelledError:
            record_run_outcome("cancelled")
            log_warning(
                logger,
                f"Ingestion cancelled during {run.states[-2].value}",
                video_id=run.video_id,
            )
            raise
        except Exception as e:
            record_run_outcome("unexpected_error")
            log_error(logger, "Ingestion aborted by unexpected error", e, video_id=run.video_id)
            raise
        finally:
            INGESTION_RUNS_IN_PROGRESS.dec()

        if run.failure is None:
            run.enter(PipelineState.DONE)
            record_run_outcome(PipelineState.DONE.value)
        else:
            run.enter(PipelineState.FAILED)
            record_run_outcome(run.failure.kind)
        return run

    async def ingest(self, video: Video, upload: Any) -> Video:
        """Run the pipeline and return the updated record.

        Raises:
            TubelyError: The failure recorded by the run
        """
        run = await self.run(video, upload)
        if run.failure is not None:
            raise run.failure.error
        return run.video

    async def _execute(
        self,
        run: PipelineRun,
        video: Video,
        upload: Any,
        scope: ArtifactScope,
    ) -> None:
        video_id = str(video.id)

        self._transition(run, PipelineState.VALIDATING)
        intake = validate_video_upload(upload)

        started = self._transition(run, PipelineState.BUFFERING)
        source = await _run_blocking(scope.materialize, intake.stream, intake.extension)
        record_stage_duration(PipelineState.BUFFERING.value, time.perf_counter() - started)

        started = self._transition(run, PipelineState.PROBING)
        probe = await _run_blocking(self.prober.probe, str(source.path))
        run.orientation = classify_orientation(probe.width, probe.height)
        record_stage_duration(PipelineState.PROBING.value, time.perf_counter() - started)
        log_info(
            logger,
            f"Probed {probe.width}x{probe.height} as {run.orientation.value}",
            video_id=video_id,
        )

        started = self._transition(run, PipelineState.REMUXING)
        expected_output = scope.adopt(self.remuxer.output_path_for(str(source.path)))
        processed_path = await _run_blocking(self.remuxer.remux, str(source.path))
        if processed_path != str(expected_output.path):
            scope.adopt(processed_path)
        record_stage_duration(PipelineState.REMUXING.value, time.perf_counter() - started)

        started = self._transition(run, PipelineState.UPLOADING)
        run.storage_key = derive_storage_key(run.orientation.value, video_id)
        result = await _run_blocking(
            self.storage.upload, processed_path, run.storage_key, intake.content_type
        )
        run.video_url = result.url
        record_stage_duration(PipelineState.UPLOADING.value, time.perf_counter() - started)
        log_info(
            logger,
            f"Uploaded '{result.key}' ({result.file_size} bytes)",
            video_id=video_id,
            etag=result.etag,
        )

        started = self._transition(run, PipelineState.PERSISTING)
        try:
            run.video = await self.record_store.update_video_url(video, run.video_url)
        except SQLAlchemyError as e:
            log_error(
                logger,
                f"Uploaded object left unreferenced: key='{run.storage_key}'",
                e,
                video_id=video_id,
            )
            raise PersistError(f"Couldn't update video {video_id}: {e}") from e
        record_stage_duration(PipelineState.PERSISTING.value, time.perf_counter() - started)

    def _transition(self, run: PipelineRun, state: PipelineState) -> float:
        run.enter(state)
        logger.debug(f"Ingestion {run.video_id} entering {state.value}")
        return time.perf_counter()
