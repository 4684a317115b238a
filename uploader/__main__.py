"""Entry point for ``python -m uploader``."""

from uploader.cli import cli

if __name__ == "__main__":
    cli()
