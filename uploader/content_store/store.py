"""Content store implementation keyed by payload digest."""

import hashlib
import os
import re
from pathlib import Path
from typing import BinaryIO

from uploader.content_store.models import StoredObject
from uploader.core.logging import get_logger
from uploader.errors import (
    ContentNotFoundError,
    InvalidDigestError,
    InvalidFilenameError,
)

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 65536


class ContentStore:
    """Stores payloads under ``<root>/<digest>/<filename>``.

    Payloads with identical content share a digest directory. Directory
    creation is idempotent and there is no locking: two writers using the
    same digest and filename race, and the last one wins.
    """

    def __init__(self, root: Path, algorithm: str = "sha1"):
        """Initialize content store.

        Args:
            root: Base path for stored payloads (e.g. ``files``)
            algorithm: Name of the hashlib algorithm used for digests
        """
        self.root = Path(root)
        self.algorithm = algorithm.lower()
        digest_size = hashlib.new(self.algorithm).digest_size
        self._digest_pattern = re.compile(rf"^[a-f0-9]{{{digest_size * 2}}}$")

        self.root.mkdir(parents=True, exist_ok=True)

    def hash_bytes(self, data: bytes) -> str:
        """Generate the hex digest of a byte string.

        Args:
            data: Content to hash

        Returns:
            Lowercase hex digest
        """
        return hashlib.new(self.algorithm, data).hexdigest()

    def hash_file(self, path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
        """Generate the hex digest of a file, streaming it in chunks.

        Args:
            path: File to hash
            chunk_size: Number of bytes read per chunk

        Returns:
            Lowercase hex digest
        """
        hasher = hashlib.new(self.algorithm)
        with open(path, "rb") as stream:
            for chunk in iter(lambda: stream.read(chunk_size), b""):
                hasher.update(chunk)
        return hasher.hexdigest()

    def put(self, data: bytes, filename: str) -> StoredObject:
        """Store uploaded content under its digest.

        Args:
            data: Raw payload
            filename: Name to store the payload under

        Returns:
            The stored object
        """
        self._validate_filename(filename)
        digest = self.hash_bytes(data)
        destination = self.ensure_digest_dir(digest) / filename

        destination.write_bytes(data)
        logger.info("content_stored", digest=digest, filename=filename)

        return StoredObject(digest=digest, filename=filename, path=destination)

    def adopt(self, source: Path, digest: str, filename: str) -> StoredObject:
        """Move an already hashed file into the store.

        The move is a rename, so ``source`` must live on the same volume as
        the store root.

        Args:
            source: File to move
            digest: Digest previously computed for ``source``
            filename: Name to store the payload under

        Returns:
            The stored object
        """
        self._validate_filename(filename)
        destination = self.ensure_digest_dir(digest) / filename

        os.replace(source, destination)
        logger.info("content_adopted", digest=digest, filename=filename)

        return StoredObject(digest=digest, filename=filename, path=destination)

    def ensure_digest_dir(self, digest: str) -> Path:
        """Create the directory for a digest if it does not exist yet.

        Args:
            digest: Hex digest

        Returns:
            Path to the digest directory

        Raises:
            InvalidDigestError: If digest format is invalid
        """
        path = self._get_digest_dir(digest)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def path_for(self, digest: str, filename: str) -> Path:
        """Get path of a stored payload.

        Args:
            digest: Hex digest
            filename: Stored filename

        Returns:
            Path to the payload

        Raises:
            InvalidDigestError: If digest format is invalid
            InvalidFilenameError: If filename is unsafe
            ContentNotFoundError: If no such payload exists
        """
        self._validate_filename(filename)
        path = self._get_digest_dir(digest) / filename
        if not path.is_file():
            raise ContentNotFoundError(f"No content stored at {digest}/{filename}")
        return path

    def open(self, digest: str, filename: str) -> BinaryIO:
        """Open a stored payload for reading."""
        return open(self.path_for(digest, filename), "rb")

    def exists(self, digest: str, filename: str) -> bool:
        """Check if a payload is stored."""
        try:
            self.path_for(digest, filename)
        except ContentNotFoundError:
            return False
        return True

    def _validate_digest(self, digest: str) -> None:
        """Validate digest format for security.

        Args:
            digest: Digest to validate

        Raises:
            InvalidDigestError: If digest format is invalid
        """
        if not self._digest_pattern.match(digest):
            raise InvalidDigestError(
                f"Invalid {self.algorithm} digest: {digest!r}"
            )

    def _validate_filename(self, filename: str) -> None:
        """Reject names that are empty or would leave the digest directory."""
        if (
            not filename
            or filename in (".", "..")
            or "/" in filename
            or "\\" in filename
            or "\x00" in filename
        ):
            raise InvalidFilenameError(f"Invalid filename: {filename!r}")

    def _get_digest_dir(self, digest: str) -> Path:
        self._validate_digest(digest)
        return self.root / digest
