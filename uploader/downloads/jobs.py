"""Durable job log and status markers."""

import json
import os
import re
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from uploader.core.logging import get_logger
from uploader.downloads.models import JobFailure
from uploader.errors import InvalidJobIdError

logger = get_logger(__name__)

PAYLOAD_NAME = "file"
LOG_NAME = "log"
DONE_NAME = "done"
FAILED_NAME = "failed"

_JOB_ID_PATTERN = re.compile(r"^[0-9]+$")


def validate_job_id(job_id: str) -> None:
    """Job ids double as path segments, so only decimal digits are allowed.

    Raises:
        InvalidJobIdError: If the id is not a decimal string
    """
    if not _JOB_ID_PATTERN.match(job_id):
        raise InvalidJobIdError(f"Invalid job id: {job_id!r}")


class JobStore(ABC):
    """Where job progress and terminal status are kept.

    The pipeline and the status query only talk to this interface, so the
    backing store can change without touching either of them.
    """

    @abstractmethod
    def ensure_dir(self, job_id: str) -> Path:
        """Create the working directory of a job and return it."""

    @abstractmethod
    def payload_path(self, job_id: str) -> Path:
        """Path the fetched payload is streamed into."""

    @abstractmethod
    def append_log(self, job_id: str, message: str) -> None:
        """Append a timestamped progress line. Must never raise."""

    @abstractmethod
    def read_log(self, job_id: str) -> bytes | None:
        """Return the raw log, or None when there is no log."""

    @abstractmethod
    def mark_done(self, job_id: str, location: str) -> None:
        """Record where the job's output landed."""

    @abstractmethod
    def read_done(self, job_id: str) -> str | None:
        """Return the recorded location, or None while not done."""

    @abstractmethod
    def mark_failed(self, job_id: str, failure: JobFailure) -> None:
        """Record a terminal failure."""

    @abstractmethod
    def read_failure(self, job_id: str) -> JobFailure | None:
        """Return the recorded failure, or None."""

    @abstractmethod
    def exists(self, job_id: str) -> bool:
        """Whether anything is known about a job."""


class FileJobStore(JobStore):
    """Keeps each job in ``<root>/<job_id>/{file,log,done,failed}``."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def job_dir(self, job_id: str) -> Path:
        validate_job_id(job_id)
        return self.root / job_id

    def ensure_dir(self, job_id: str) -> Path:
        path = self.job_dir(job_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def payload_path(self, job_id: str) -> Path:
        return self.job_dir(job_id) / PAYLOAD_NAME

    def append_log(self, job_id: str, message: str) -> None:
        """Append one line to the job log.

        Each call opens, appends and closes the file so concurrent stages of
        the same job never share a handle. The line is a single write, so
        lines may interleave but are never torn.
        """
        line = f"{datetime.now().astimezone().isoformat()} -- {message}\n"
        try:
            path = self.ensure_dir(job_id) / LOG_NAME
            with open(path, "a", encoding="utf-8") as log_file:
                log_file.write(line)
        except OSError as e:
            logger.error("job_log_write_failed", job_id=job_id, error=str(e))

    def read_log(self, job_id: str) -> bytes | None:
        try:
            return (self.job_dir(job_id) / LOG_NAME).read_bytes()
        except FileNotFoundError:
            return None

    def mark_done(self, job_id: str, location: str) -> None:
        path = self.job_dir(job_id) / DONE_NAME
        if path.exists():
            raise FileExistsError(f"Job {job_id} is already done")
        self._write_atomic(path, location)

    def read_done(self, job_id: str) -> str | None:
        try:
            return (self.job_dir(job_id) / DONE_NAME).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def mark_failed(self, job_id: str, failure: JobFailure) -> None:
        path = self.job_dir(job_id) / FAILED_NAME
        self._write_atomic(path, json.dumps(failure.to_dict()))

    def read_failure(self, job_id: str) -> JobFailure | None:
        try:
            raw = (self.job_dir(job_id) / FAILED_NAME).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return JobFailure.from_dict(json.loads(raw))

    def exists(self, job_id: str) -> bool:
        path = self.job_dir(job_id)
        return (path / DONE_NAME).exists() or (path / LOG_NAME).exists()

    def _write_atomic(self, path: Path, content: str) -> None:
        """Write to a sibling temp file and rename it over ``path``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, path)
