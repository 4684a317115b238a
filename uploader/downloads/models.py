"""Data models for download jobs."""

import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Stage(str, Enum):
    """Sequential steps of the download pipeline."""

    FETCH = "fetch"
    HASH = "hash"
    RELOCATE = "relocate"


class JobState(str, Enum):
    """Externally visible state of a job."""

    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


def new_job_id() -> str:
    """Job ids are the submission time in nanoseconds since the epoch."""
    return str(time.time_ns())


@dataclass(frozen=True)
class DownloadJob:
    """One remote-download request."""

    id: str
    url: str

    @classmethod
    def new(cls, url: str) -> "DownloadJob":
        return cls(id=new_job_id(), url=url)


@dataclass(frozen=True)
class JobFailure:
    """Terminal failure of a job, persisted next to the job log."""

    stage: str
    error: str
    message: str
    failed_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobFailure":
        return cls(
            stage=str(data["stage"]),
            error=str(data["error"]),
            message=str(data["message"]),
            failed_at=str(data.get("failed_at", "")),
        )


@dataclass(frozen=True)
class JobOutcome:
    """Result of a finished pipeline run."""

    job_id: str
    state: JobState
    location: str | None = None
    failure: JobFailure | None = None


@dataclass(frozen=True)
class JobReport:
    """Snapshot of a job as seen through its status marker and log."""

    job_id: str
    state: JobState
    log: bytes = b""
    location: str | None = None
    failure: JobFailure | None = None
