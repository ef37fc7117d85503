"""Content-addressed physical storage for uploaded files."""

from .content_store import ContentAddressedStore, compute_hash, path_for

__all__ = [
    "ContentAddressedStore",
    "compute_hash",
    "path_for",
]
