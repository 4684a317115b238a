"""Fetch, hash and relocate pipeline for remote URL downloads."""

import asyncio
import functools
from collections.abc import Coroutine
from typing import Any

import httpx

from uploader.content_store import ContentStore, StoredObject, escape_url
from uploader.core.config import Settings
from uploader.core.logging import get_job_logger, get_logger
from uploader.core.metrics import DOWNLOADS, DOWNLOADS_ACTIVE
from uploader.downloads.jobs import FileJobStore, JobStore
from uploader.downloads.models import (
    DownloadJob,
    JobFailure,
    JobOutcome,
    JobState,
    Stage,
)
from uploader.errors import (
    ContentStoreError,
    FilesystemError,
    NetworkFetchError,
    PipelineError,
)

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 65536


class PipelineHandle:
    """Completion signal of one job.

    HTTP callers never wait on it; the CLI and tests do.
    """

    def __init__(self, job: DownloadJob, outcome: "asyncio.Future[JobOutcome]"):
        self.job = job
        self.outcome = outcome

    @property
    def done(self) -> bool:
        return self.outcome.done()

    async def wait(self) -> JobOutcome:
        """Wait until the job is done or failed."""
        return await asyncio.shield(self.outcome)


class DownloadPipeline:
    """Drives download jobs through Fetch, Hash and Relocate.

    Every stage runs as its own task and, on success, spawns the next one
    and returns without waiting for it. A failing stage logs the error to
    the job log and the process log, writes the ``failed`` marker and ends
    the chain. There is no retry, no cancellation and no admission control.
    """

    def __init__(
        self,
        store: ContentStore,
        jobs: JobStore,
        verify_tls: bool = True,
        timeout: float = 30.0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """Initialize pipeline.

        Args:
            store: Content store finished payloads are moved into
            jobs: Store for job logs and status markers
            verify_tls: Validate certificates of fetched URLs
            timeout: Network timeout in seconds for fetches
            chunk_size: Bytes per chunk when streaming and hashing
        """
        self.store = store
        self.jobs = jobs
        self.verify_tls = verify_tls
        self.timeout = timeout
        self.chunk_size = chunk_size

        self._tasks: set[asyncio.Task[None]] = set()
        self._handles: dict[str, PipelineHandle] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "DownloadPipeline":
        store = ContentStore(settings.FILES_DIR, algorithm=settings.HASH_ALGORITHM)
        jobs = FileJobStore(settings.jobs_dir)
        return cls(
            store,
            jobs,
            verify_tls=settings.DOWNLOAD_VERIFY_TLS,
            timeout=settings.DOWNLOAD_TIMEOUT,
            chunk_size=settings.DOWNLOAD_CHUNK_SIZE,
        )

    @property
    def in_flight(self) -> int:
        """Number of jobs that have not reached a terminal state."""
        return len(self._handles)

    async def submit(self, url: str) -> PipelineHandle:
        """Accept a URL and start downloading it in the background.

        Returns once the submission line is in the job log. The URL is not
        checked for reachability; the job log is the only place a bad URL
        shows up.

        Args:
            url: Remote resource to fetch

        Returns:
            Handle of the started job
        """
        job = DownloadJob.new(url)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, self.jobs.append_log, job.id, f"Downloading: {url}"
        )
        get_job_logger(job.id).info("download_submitted", url=url)

        DOWNLOADS.inc()
        DOWNLOADS_ACTIVE.inc()

        return self._start(job)

    def _start(self, job: DownloadJob) -> PipelineHandle:
        """Spawn the Fetch stage of a job. Must run inside an event loop."""
        loop = asyncio.get_running_loop()
        handle = PipelineHandle(job, loop.create_future())
        self._handles[job.id] = handle
        self._spawn(handle, Stage.FETCH, self._fetch(handle))
        return handle

    async def run(self, url: str) -> JobOutcome:
        """Submit a URL and wait for its outcome."""
        handle = await self.submit(url)
        return await handle.wait()

    async def drain(self) -> None:
        """Wait for every job in flight, including ones submitted meanwhile."""
        logger.info("draining_downloads", in_flight=self.in_flight)
        while self._handles:
            await asyncio.gather(
                *(handle.wait() for handle in list(self._handles.values()))
            )

    def _spawn(
        self,
        handle: PipelineHandle,
        stage: Stage,
        coro: Coroutine[Any, Any, None],
    ) -> None:
        task = asyncio.create_task(
            coro, name=f"download-{stage.value}-{handle.job.id}"
        )
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._supervise, handle, stage))

    def _supervise(
        self, handle: PipelineHandle, stage: Stage, task: "asyncio.Task[None]"
    ) -> None:
        """Fail the job if a stage task ended without handling its own error."""
        self._tasks.discard(task)
        if task.cancelled():
            error: BaseException = PipelineError(stage.value, "stage cancelled")
        else:
            exc = task.exception()
            if exc is None:
                return
            get_job_logger(handle.job.id, stage.value).error(
                "stage_crashed", exc_info=exc
            )
            error = exc

        failing = asyncio.get_running_loop().create_task(
            self._fail(handle, stage, error),
            name=f"download-{stage.value}-failed-{handle.job.id}",
        )
        self._tasks.add(failing)
        failing.add_done_callback(self._tasks.discard)

    async def _fetch(self, handle: PipelineHandle) -> None:
        job = handle.job
        get_job_logger(job.id, Stage.FETCH.value).info("fetch_started", url=job.url)

        try:
            await self._download(job)
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            await self._fail(handle, Stage.FETCH, e)
            return

        await self._record(job, Stage.FETCH, f"Finished loading {job.url}")
        self._spawn(handle, Stage.HASH, self._hash(handle))

    async def _download(self, job: DownloadJob) -> None:
        """Stream the response body of the job's URL into its payload file.

        Opening, writing and closing the payload run in the executor so a
        slow disk only holds up this job.
        """
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.jobs.ensure_dir, job.id)
        payload = self.jobs.payload_path(job.id)

        out = await loop.run_in_executor(None, open, payload, "wb")
        try:
            async with httpx.AsyncClient(
                verify=self.verify_tls,
                timeout=self.timeout,
                follow_redirects=True,
            ) as client:
                async with client.stream("GET", job.url) as response:
                    response.raise_for_status()
                    async for chunk in response.aiter_bytes(self.chunk_size):
                        await loop.run_in_executor(None, out.write, chunk)
        finally:
            await loop.run_in_executor(None, out.close)

    async def _hash(self, handle: PipelineHandle) -> None:
        job = handle.job
        await self._record(job, Stage.HASH, f"Hashing {job.url}")

        loop = asyncio.get_running_loop()
        try:
            digest = await loop.run_in_executor(
                None,
                self.store.hash_file,
                self.jobs.payload_path(job.id),
                self.chunk_size,
            )
        except OSError as e:
            await self._fail(handle, Stage.HASH, e)
            return

        await self._record(job, Stage.HASH, f"Finished hashing, hash is {digest}")
        self._spawn(handle, Stage.RELOCATE, self._relocate(handle, digest))

    async def _relocate(self, handle: PipelineHandle, digest: str) -> None:
        job = handle.job
        filename = escape_url(job.url)
        await self._record(
            job, Stage.RELOCATE, f"Moving to {self.store.root / digest / filename}"
        )

        loop = asyncio.get_running_loop()
        try:
            stored: StoredObject = await loop.run_in_executor(
                None,
                self.store.adopt,
                self.jobs.payload_path(job.id),
                digest,
                filename,
            )
            await loop.run_in_executor(
                None, self.jobs.mark_done, job.id, stored.relative_path
            )
        except (OSError, ContentStoreError) as e:
            await self._fail(handle, Stage.RELOCATE, e)
            return

        await self._record(job, Stage.RELOCATE, "Finished")
        self._complete(
            handle,
            JobOutcome(
                job_id=job.id, state=JobState.DONE, location=stored.relative_path
            ),
        )

    async def _record(self, job: DownloadJob, stage: Stage, message: str) -> None:
        get_job_logger(job.id, stage.value).info(message)
        await asyncio.get_running_loop().run_in_executor(
            None, self.jobs.append_log, job.id, message
        )

    async def _fail(
        self, handle: PipelineHandle, stage: Stage, exc: BaseException
    ) -> None:
        if handle.done:
            return

        error = _as_pipeline_error(stage, exc)
        failure = JobFailure(
            stage=stage.value, error=type(error).__name__, message=error.message
        )
        log = get_job_logger(handle.job.id, stage.value)
        log.error("stage_failed", error_type=failure.error, error=failure.message)

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                self.jobs.append_log,
                handle.job.id,
                f"{stage.value} failed: {failure.error}: {failure.message}",
            )
            try:
                await loop.run_in_executor(
                    None, self.jobs.mark_failed, handle.job.id, failure
                )
            except OSError as e:
                log.warning("failure_marker_write_failed", error=str(e))
        finally:
            self._complete(
                handle,
                JobOutcome(
                    job_id=handle.job.id, state=JobState.FAILED, failure=failure
                ),
            )

    def _complete(self, handle: PipelineHandle, outcome: JobOutcome) -> None:
        if handle.done:
            return
        # Both terminal states release the active gauge, not only success.
        DOWNLOADS_ACTIVE.dec()
        self._handles.pop(handle.job.id, None)
        handle.outcome.set_result(outcome)


def _as_pipeline_error(stage: Stage, exc: BaseException) -> PipelineError:
    """Map an exception raised inside a stage to the pipeline taxonomy."""
    if isinstance(exc, PipelineError):
        return exc
    description = f"{type(exc).__name__}: {exc}".rstrip(": ")
    if isinstance(exc, (httpx.HTTPError, httpx.InvalidURL)):
        return NetworkFetchError(stage.value, description)
    if isinstance(exc, (OSError, ContentStoreError)):
        return FilesystemError(stage.value, description)
    return PipelineError(stage.value, description)
