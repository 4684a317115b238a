"""Exception hierarchy for the uploader service."""


class UploaderError(Exception):
    """Base class for all uploader errors."""


class ContentStoreError(UploaderError):
    """Raised for content store failures."""


class InvalidDigestError(ContentStoreError, ValueError):
    """Raised when a digest does not match the configured algorithm."""


class InvalidFilenameError(ContentStoreError, ValueError):
    """Raised when a filename is empty or would escape its digest directory."""


class ContentNotFoundError(ContentStoreError, KeyError):
    """Raised when no payload exists for a digest and filename."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "content not found"


class JobError(UploaderError):
    """Base class for download job errors."""


class InvalidJobIdError(JobError, ValueError):
    """Raised when a job id is not a decimal timestamp."""


class JobNotFoundError(JobError, KeyError):
    """Raised when neither a status marker nor a log exists for a job."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "job not found"


class PipelineError(UploaderError):
    """Raised when a download pipeline stage fails.

    Args:
        stage: Name of the stage that failed
        message: Human readable description of the failure
    """

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage
        self.message = message


class NetworkFetchError(PipelineError):
    """Raised when the remote resource cannot be fetched."""


class FilesystemError(PipelineError):
    """Raised when a stage cannot create, read, write or move a file."""
