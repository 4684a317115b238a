#!/usr/bin/env python3
"""CLI commands for the uploader service."""

import asyncio

import click

from uploader.core.config import Settings
from uploader.core.logging import configure_logging
from uploader.downloads import DownloadPipeline, JobState, query_job
from uploader.errors import InvalidJobIdError, JobNotFoundError


@click.group()
@click.pass_context
def cli(ctx):
    """Content-addressed uploader."""
    ctx.obj = Settings()


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.pass_obj
def serve(settings, host, port):
    """Run the HTTP server."""
    import uvicorn

    from uploader.main import create_app

    uvicorn.run(
        create_app(settings),
        host=host or settings.HOST,
        port=port or settings.PORT,
        log_config=None,
    )


@cli.command()
@click.argument("url")
@click.pass_obj
def fetch(settings, url):
    """Download URL into the store and wait for it to finish."""
    configure_logging(level=settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
    pipeline = DownloadPipeline.from_settings(settings)

    outcome = asyncio.run(pipeline.run(url))

    if outcome.state is JobState.DONE:
        click.echo(outcome.location)
        return

    failure = outcome.failure
    click.echo(
        f"Job {outcome.job_id} failed during {failure.stage}: {failure.message}",
        err=True,
    )
    raise SystemExit(1)


@cli.command()
@click.argument("job_id")
@click.pass_obj
def status(settings, job_id):
    """Show the state and log of a download job."""
    pipeline = DownloadPipeline.from_settings(settings)

    try:
        report = query_job(pipeline.jobs, job_id)
    except (JobNotFoundError, InvalidJobIdError) as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Job {report.job_id}: {report.state.value}")
    if report.location:
        click.echo(f"  Location: {report.location}")
    if report.failure:
        click.echo(f"  Failed during {report.failure.stage}: {report.failure.message}")
    click.echo(report.log.decode("utf-8", errors="replace"), nl=False)


if __name__ == "__main__":
    cli()
