"""Data models for content store."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class StoredObject:
    """A payload stored under its digest directory."""

    digest: str
    filename: str
    path: Path

    @property
    def relative_path(self) -> str:
        """Public path of the payload, ``files/<digest>/<filename>``."""
        return f"files/{self.digest}/{self.filename}"
