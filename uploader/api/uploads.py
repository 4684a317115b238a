"""Direct file uploads."""

from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile
from fastapi.responses import PlainTextResponse
from starlette import status

from uploader.api.deps import get_content_store, require_auth
from uploader.content_store import ContentStore
from uploader.core.logging import get_logger
from uploader.core.metrics import UPLOADS, UPLOADS_ACTIVE
from uploader.errors import InvalidFilenameError

router = APIRouter(tags=["uploads"], dependencies=[Depends(require_auth)])

logger = get_logger(__name__)


def public_url(request: Request, path: str) -> str:
    """Absolute URL of a path, honouring ``X-Forwarded-Proto``."""
    proto = request.headers.get("X-Forwarded-Proto") or request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}/{quote(path)}"


@router.post("/upload", response_class=PlainTextResponse)
@router.post("/upload/", response_class=PlainTextResponse, include_in_schema=False)
async def upload(
    request: Request,
    file: UploadFile,
    store: ContentStore = Depends(get_content_store),
) -> PlainTextResponse:
    """Store an uploaded file and return its public URL."""
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Problem when getting file: no filename",
        )

    logger.info("receiving_file", filename=file.filename)
    UPLOADS_ACTIVE.inc()
    try:
        data = await file.read()
        try:
            stored = store.put(data, file.filename)
        except InvalidFilenameError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)
            ) from e
    finally:
        UPLOADS_ACTIVE.dec()

    UPLOADS.inc()
    logger.info("saved_file", path=stored.relative_path)
    return PlainTextResponse(public_url(request, stored.relative_path) + "\n")
