"""Filesystem-safe filenames derived from source URLs."""

from urllib.parse import quote_plus, unquote_plus


def escape_url(url: str) -> str:
    """Turn a source URL into a single path segment.

    ``:`` becomes ``-`` and ``/`` becomes ``_`` before the result is
    query-escaped, so ``http://example.com/a.bin`` is stored as
    ``http-__example.com_a.bin``.
    """
    escaped = url.replace(":", "-").replace("/", "_")
    return quote_plus(escaped)


def unescape_filename(filename: str) -> str:
    """Undo the percent-encoding applied by :func:`escape_url`.

    The ``:`` and ``/`` substitutions are not reversible and are left as is.
    """
    return unquote_plus(filename)
