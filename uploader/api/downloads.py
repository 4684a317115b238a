"""Remote URL submissions and job status."""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Form
from fastapi.responses import PlainTextResponse, RedirectResponse
from pydantic import BaseModel
from starlette import status

from uploader.api.deps import get_job_store, get_pipeline, require_auth
from uploader.core.logging import get_logger
from uploader.downloads import DownloadPipeline, JobFailure, JobStore, query_job
from uploader.downloads.models import JobReport, JobState
from uploader.errors import InvalidJobIdError, JobNotFoundError

router = APIRouter(tags=["downloads"])

logger = get_logger(__name__)

JOB_STATE_HEADER = "X-Job-State"


class JobFailureResponse(BaseModel):
    stage: str
    error: str
    message: str
    failed_at: str

    @classmethod
    def from_failure(cls, failure: JobFailure) -> "JobFailureResponse":
        return cls(**failure.to_dict())


class JobStatusResponse(BaseModel):
    """Machine-readable job status."""

    job_id: str
    state: JobState
    location: str | None = None
    failure: JobFailureResponse | None = None
    log: str

    @classmethod
    def from_report(cls, report: JobReport) -> "JobStatusResponse":
        return cls(
            job_id=report.job_id,
            state=report.state,
            location=report.location,
            failure=(
                JobFailureResponse.from_failure(report.failure)
                if report.failure
                else None
            ),
            log=report.log.decode("utf-8", errors="replace"),
        )


@router.post("/download", dependencies=[Depends(require_auth)])
@router.post("/download/", dependencies=[Depends(require_auth)], include_in_schema=False)
async def submit_download(
    url: str = Form(...),
    pipeline: DownloadPipeline = Depends(get_pipeline),
) -> RedirectResponse:
    """Start downloading ``url`` and redirect to its progress page.

    Nothing about the URL is checked here; fetch problems only show up in
    the job log.
    """
    handle = await pipeline.submit(url.strip())
    return RedirectResponse(
        url=f"/loading/{handle.job.id}", status_code=status.HTTP_303_SEE_OTHER
    )


@router.get("/loading/{job_id}", response_model=None)
@router.get("/loading/{job_id}/", response_model=None, include_in_schema=False)
async def download_status(
    job_id: str,
    jobs: JobStore = Depends(get_job_store),
) -> RedirectResponse | PlainTextResponse:
    """Redirect to the stored file once done, otherwise show the job log.

    An unknown job is reported inline with a 200, like an unreadable log.
    """
    try:
        report = query_job(jobs, job_id)
    except (JobNotFoundError, InvalidJobIdError) as e:
        logger.warning("can_not_open_logfile", job_id=job_id, error=str(e))
        return PlainTextResponse(f"can not open logfile: {e}\n")

    if report.state is JobState.DONE:
        return RedirectResponse(
            url="/" + quote(report.location),
            status_code=status.HTTP_301_MOVED_PERMANENTLY,
        )

    return PlainTextResponse(
        report.log, headers={JOB_STATE_HEADER: report.state.value}
    )


@router.get("/loading/{job_id}/status", response_model=JobStatusResponse)
async def download_status_json(
    job_id: str,
    jobs: JobStore = Depends(get_job_store),
) -> JobStatusResponse:
    """Report the job state as JSON, including the failure if there is one."""
    return JobStatusResponse.from_report(query_job(jobs, job_id))
