"""Services package for the marketplace API."""

from .file_store import file_store, FileStore, StoredFile

__all__ = [
    "file_store",
    "FileStore",
    "StoredFile",
]
