"""Tests for URL submissions and the loading page."""

import asyncio
import hashlib

import httpx
import pytest
import respx
from fastapi import FastAPI
from httpx import AsyncClient

from uploader.downloads import DownloadPipeline

URL = "http://example.com/a.bin"
ESCAPED = "http-__example.com_a.bin"
ABC_SHA1 = hashlib.sha1(b"ABC").hexdigest()


def pipeline_of(app: FastAPI) -> DownloadPipeline:
    return app.state.pipeline


async def submit(client: AsyncClient, url: str) -> str:
    response = await client.post("/download", data={"url": url})
    assert response.status_code == 303
    location = response.headers["location"]
    assert location.startswith("/loading/")
    return location.rsplit("/", 1)[1]


@pytest.mark.asyncio
@respx.mock
async def test_submit_redirects_to_loading_page(
    test_app: FastAPI, test_app_async_client: AsyncClient
) -> None:
    """While the fetch is in progress the page shows the submission line."""
    release = asyncio.Event()

    async def held_response(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return httpx.Response(200, content=b"ABC")

    respx.get(URL).mock(side_effect=held_response)

    job_id = await submit(test_app_async_client, URL)

    assert job_id.isdigit()
    response = await test_app_async_client.get(f"/loading/{job_id}")
    assert response.status_code == 200
    assert response.headers["X-Job-State"] == "running"
    assert response.text.splitlines()[0].endswith(f" -- Downloading: {URL}")

    release.set()
    await pipeline_of(test_app).drain()

    response = await test_app_async_client.get(f"/loading/{job_id}")
    assert response.status_code == 301


@pytest.mark.asyncio
@respx.mock
async def test_finished_job_redirects_to_stored_file(
    test_app: FastAPI, test_app_async_client: AsyncClient
) -> None:
    respx.get(URL).mock(return_value=httpx.Response(200, content=b"ABC"))

    job_id = await submit(test_app_async_client, URL)
    await pipeline_of(test_app).drain()

    response = await test_app_async_client.get(f"/loading/{job_id}")
    assert response.status_code == 301
    assert response.headers["location"] == f"/files/{ABC_SHA1}/{ESCAPED}"

    stored = await test_app_async_client.get(response.headers["location"])
    assert stored.status_code == 200
    assert stored.content == b"ABC"


@pytest.mark.asyncio
@respx.mock
async def test_redirect_keeps_escaped_query_in_filename(
    test_app: FastAPI, test_app_async_client: AsyncClient
) -> None:
    """Percent signs in the stored name survive the redirect."""
    url = "http://example.com/get?id=1&x=y"
    escaped = "http-__example.com_get%3Fid%3D1%26x%3Dy"
    respx.get(url).mock(return_value=httpx.Response(200, content=b"ABC"))

    job_id = await submit(test_app_async_client, url)
    await pipeline_of(test_app).drain()

    response = await test_app_async_client.get(f"/loading/{job_id}")
    assert response.status_code == 301
    assert response.headers["location"] == (
        f"/files/{ABC_SHA1}/http-__example.com_get%253Fid%253D1%2526x%253Dy"
    )

    stored = await test_app_async_client.get(response.headers["location"])
    assert stored.status_code == 200
    assert stored.content == b"ABC"
    assert (pipeline_of(test_app).store.root / ABC_SHA1 / escaped).exists()


@pytest.mark.asyncio
@respx.mock
async def test_failed_job_shows_log_with_failed_state(
    test_app: FastAPI, test_app_async_client: AsyncClient
) -> None:
    respx.get(URL).mock(side_effect=httpx.ConnectTimeout("timed out"))

    job_id = await submit(test_app_async_client, URL)
    await pipeline_of(test_app).drain()

    response = await test_app_async_client.get(f"/loading/{job_id}")
    assert response.status_code == 200
    assert response.headers["X-Job-State"] == "failed"
    assert "fetch failed: NetworkFetchError" in response.text

    status = await test_app_async_client.get(f"/loading/{job_id}/status")
    assert status.status_code == 200
    body = status.json()
    assert body["state"] == "failed"
    assert body["failure"]["stage"] == "fetch"
    assert body["location"] is None


@pytest.mark.asyncio
@respx.mock
async def test_status_json_for_finished_job(
    test_app: FastAPI, test_app_async_client: AsyncClient
) -> None:
    respx.get(URL).mock(return_value=httpx.Response(200, content=b"ABC"))

    job_id = await submit(test_app_async_client, URL)
    await pipeline_of(test_app).drain()

    body = (await test_app_async_client.get(f"/loading/{job_id}/status")).json()
    assert body["state"] == "done"
    assert body["location"] == f"files/{ABC_SHA1}/{ESCAPED}"
    assert "Finished" in body["log"]


@pytest.mark.asyncio
@pytest.mark.parametrize("job_id", ["1", "not-a-job"])
async def test_unknown_job_is_reported_inline(
    test_app_async_client: AsyncClient, job_id: str
) -> None:
    response = await test_app_async_client.get(f"/loading/{job_id}")

    assert response.status_code == 200
    assert response.text.startswith("can not open logfile")


@pytest.mark.asyncio
async def test_unknown_job_status_json_is_not_found(
    test_app_async_client: AsyncClient,
) -> None:
    response = await test_app_async_client.get("/loading/1/status")

    assert response.status_code == 404
    assert response.json()["error"] == "JobNotFoundError"


@pytest.mark.asyncio
async def test_metrics_endpoint_exposes_download_counters(
    test_app_async_client: AsyncClient,
) -> None:
    response = await test_app_async_client.get("/metrics")

    assert response.status_code == 200
    assert "uploader_newfiles_downloads_total" in response.text
    assert "uploader_newfiles_downloads_active" in response.text
