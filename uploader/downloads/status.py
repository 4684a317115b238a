"""Read-only view of a job's progress."""

from uploader.downloads.jobs import JobStore
from uploader.downloads.models import JobReport, JobState
from uploader.errors import JobNotFoundError


def query_job(jobs: JobStore, job_id: str) -> JobReport:
    """Report the current state of a job.

    A ``done`` marker wins over everything else. Without one, the log is the
    progress report, and a ``failed`` marker turns it into a failure report.

    Args:
        jobs: Store holding job logs and markers
        job_id: Job identifier

    Returns:
        Report with state, log and location or failure

    Raises:
        InvalidJobIdError: If the id is malformed
        JobNotFoundError: If neither a done marker nor a log exists
    """
    location = jobs.read_done(job_id)
    log = jobs.read_log(job_id)

    if location is not None:
        return JobReport(
            job_id=job_id, state=JobState.DONE, log=log or b"", location=location
        )

    if log is None:
        raise JobNotFoundError(f"No log for job {job_id}")

    failure = jobs.read_failure(job_id)
    if failure is not None:
        return JobReport(
            job_id=job_id, state=JobState.FAILED, log=log, failure=failure
        )

    return JobReport(job_id=job_id, state=JobState.RUNNING, log=log)
