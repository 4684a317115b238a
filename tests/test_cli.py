"""Tests for the command line interface."""

import hashlib
from pathlib import Path

import httpx
import pytest
import respx
from click.testing import CliRunner

from uploader.cli import cli
from uploader.downloads import FileJobStore, JobFailure

URL = "http://example.com/a.bin"


@pytest.fixture
def runner(files_dir: Path, monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    monkeypatch.setenv("FILES_DIR", str(files_dir))
    monkeypatch.setenv("JSON_LOGS", "false")
    monkeypatch.delenv("SECRET_USER", raising=False)
    monkeypatch.delenv("SECRET_PASSWORD", raising=False)
    return CliRunner()


@respx.mock
def test_fetch_prints_stored_location(runner: CliRunner, files_dir: Path) -> None:
    respx.get(URL).mock(return_value=httpx.Response(200, content=b"ABC"))
    digest = hashlib.sha1(b"ABC").hexdigest()

    result = runner.invoke(cli, ["fetch", URL])

    assert result.exit_code == 0, result.output
    assert f"files/{digest}/http-__example.com_a.bin" in result.output
    assert (files_dir / digest / "http-__example.com_a.bin").read_bytes() == b"ABC"


@respx.mock
def test_fetch_exits_non_zero_on_failure(runner: CliRunner) -> None:
    respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))

    result = runner.invoke(cli, ["fetch", URL])

    assert result.exit_code == 1
    assert "failed during fetch" in result.output


def test_status_shows_running_job(runner: CliRunner, files_dir: Path) -> None:
    FileJobStore(files_dir / "tmp").append_log("7", f"Downloading: {URL}")

    result = runner.invoke(cli, ["status", "7"])

    assert result.exit_code == 0
    assert "Job 7: running" in result.output
    assert f"Downloading: {URL}" in result.output


def test_status_shows_failure(runner: CliRunner, files_dir: Path) -> None:
    jobs = FileJobStore(files_dir / "tmp")
    jobs.append_log("8", "fetch failed: NetworkFetchError: refused")
    jobs.mark_failed(
        "8", JobFailure(stage="fetch", error="NetworkFetchError", message="refused")
    )

    result = runner.invoke(cli, ["status", "8"])

    assert "Job 8: failed" in result.output
    assert "Failed during fetch: refused" in result.output


@pytest.mark.parametrize("job_id", ["9", "nope"])
def test_status_of_unknown_job_fails(runner: CliRunner, job_id: str) -> None:
    result = runner.invoke(cli, ["status", job_id])

    assert result.exit_code == 1
    assert "Error:" in result.output
