"""API router module."""

from fastapi import APIRouter

from uploader.api.downloads import router as downloads_router
from uploader.api.files import router as files_router
from uploader.api.pages import router as pages_router
from uploader.api.uploads import router as uploads_router

router = APIRouter()

router.include_router(pages_router)
router.include_router(uploads_router)
router.include_router(files_router)
router.include_router(downloads_router)
