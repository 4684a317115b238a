"""Content-addressed storage keyed by payload digest."""

from uploader.content_store.escaping import escape_url, unescape_filename
from uploader.content_store.models import StoredObject
from uploader.content_store.store import ContentStore

__all__ = ["ContentStore", "StoredObject", "escape_url", "unescape_filename"]
