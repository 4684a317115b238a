"""Serving stored payloads by digest and filename."""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from uploader.api.deps import get_content_store
from uploader.content_store import ContentStore
from uploader.core.logging import get_logger
from uploader.core.metrics import SENT

router = APIRouter(tags=["files"])

logger = get_logger(__name__)


@router.get("/files/{digest}/{filename}")
@router.get("/files/{digest}/{filename}/", include_in_schema=False)
async def get_file(
    digest: str,
    filename: str,
    store: ContentStore = Depends(get_content_store),
) -> FileResponse:
    """Return a stored payload.

    Unknown digests or filenames surface as ``ContentNotFoundError`` and are
    turned into a 404 by the error middleware.
    """
    path = store.path_for(digest, filename)
    logger.info("serving_file", digest=digest, filename=filename)

    SENT.inc()
    return FileResponse(path)
