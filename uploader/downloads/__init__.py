"""Remote URL downloads: job bookkeeping, pipeline and status queries."""

from uploader.downloads.jobs import FileJobStore, JobStore
from uploader.downloads.models import (
    DownloadJob,
    JobFailure,
    JobOutcome,
    JobReport,
    JobState,
    Stage,
)
from uploader.downloads.pipeline import DownloadPipeline, PipelineHandle
from uploader.downloads.status import query_job

__all__ = [
    "DownloadJob",
    "DownloadPipeline",
    "FileJobStore",
    "JobFailure",
    "JobOutcome",
    "JobReport",
    "JobState",
    "JobStore",
    "PipelineHandle",
    "Stage",
    "query_job",
]
