"""Request dependencies shared by the API routes."""

import secrets

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette import status

from uploader.content_store import ContentStore
from uploader.core.config import Settings
from uploader.core.logging import get_logger
from uploader.downloads import DownloadPipeline, JobStore

logger = get_logger(__name__)

AUTH_REALM = "Please authenticate for uploading"

basic_auth = HTTPBasic(realm=AUTH_REALM, auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_pipeline(request: Request) -> DownloadPipeline:
    return request.app.state.pipeline


def get_content_store(
    pipeline: DownloadPipeline = Depends(get_pipeline),
) -> ContentStore:
    return pipeline.store


def get_job_store(pipeline: DownloadPipeline = Depends(get_pipeline)) -> JobStore:
    return pipeline.jobs


def require_auth(
    credentials: HTTPBasicCredentials | None = Depends(basic_auth),
    settings: Settings = Depends(get_settings),
) -> None:
    """Gate a route behind basic auth when credentials are configured."""
    if not settings.auth_enabled:
        return

    authorized = credentials is not None and (
        secrets.compare_digest(
            credentials.username.encode(), str(settings.SECRET_USER).encode()
        )
        & secrets.compare_digest(
            credentials.password.encode(), str(settings.SECRET_PASSWORD).encode()
        )
    )
    if not authorized:
        logger.error("authorization_failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="authorization failed",
            headers={"WWW-Authenticate": f'Basic realm="{AUTH_REALM}"'},
        )
