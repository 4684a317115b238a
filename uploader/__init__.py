"""Content-addressed file uploader with remote URL downloads."""

__version__ = "0.1.0"
