"""HTML form for uploads and URL downloads."""

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from uploader.api.deps import require_auth

router = APIRouter(tags=["pages"])

INDEX_PAGE = """<html><title>Uploader</title><body>
  <h1>Upload a file</h1>
  <form action="/upload" method="post" enctype="multipart/form-data">
    <input name="file" type="file" size="50">
    <br><br>
    <input type="submit" value="Upload" />
  </form>

  <hr>

  <h1>Download from an URL</h1>
  <form action="/download" method="post" novalidate>
    <input name="url" type="text" size="50">
    <br><br>
    <input type="submit" value="Download" />
  </form>
  </body></html>"""


@router.get("/", response_class=HTMLResponse, dependencies=[Depends(require_auth)])
async def index() -> HTMLResponse:
    """Serve the upload and download forms."""
    return HTMLResponse(INDEX_PAGE)
