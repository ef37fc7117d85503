"""Content-addressed blob storage.

Blobs are stored once per distinct content hash, in a three-level sharded
directory tree:

    <storage_root>/<h[0:2]>/<h[2:4]>/<h[4:6]>/<h>

The layout must stay byte-for-byte compatible with existing stores, so
``path_for`` is deliberately trivial and pure. Whether a blob may be removed
is decided by the caller, who knows how many file records still reference
the hash.
"""
import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from ..errors import StorageIOError

logger = logging.getLogger(__name__)

_SHARD_WIDTH = 2
_SHARD_LEVELS = 3


def compute_hash(content: bytes) -> str:
    """Return the SHA-1 hex digest of *content*."""
    return hashlib.sha1(content).hexdigest()


def path_for(content_hash: str) -> str:
    """Relative storage path for *content_hash*.

    Example:
        >>> path_for("abcdef1234")
        'ab/cd/ef/abcdef1234'
    """
    if len(content_hash) < _SHARD_WIDTH * _SHARD_LEVELS:
        raise ValueError(f"Content hash too short for sharding: {content_hash!r}")
    shards = [
        content_hash[i * _SHARD_WIDTH:(i + 1) * _SHARD_WIDTH]
        for i in range(_SHARD_LEVELS)
    ]
    return "/".join(shards + [content_hash])


class ContentAddressedStore:
    """Reads, writes and deletes blobs under a storage root."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Cannot create storage root {self.root}: {e}") from e

    def path_for(self, content_hash: str) -> str:
        return path_for(content_hash)

    def full_path(self, content_hash: str) -> Path:
        return self.root / path_for(content_hash)

    def exists(self, content_hash: str) -> bool:
        if not content_hash:
            return False
        return self.full_path(content_hash).is_file()

    def write(self, content: bytes) -> str:
        """Store *content* and return its hash.

        The bytes go to a temporary file in the target directory which then
        replaces the final path, so a concurrent writer of the same hash never
        exposes a half-written blob.
        """
        content_hash = compute_hash(content)
        target = self.full_path(content_hash)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(content)
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageIOError(f"Failed to store file content: {e}") from e

        logger.debug("Stored blob %s (%d bytes)", content_hash, len(content))
        return content_hash

    def read(self, content_hash: str) -> bytes:
        try:
            return self.full_path(content_hash).read_bytes()
        except OSError as e:
            raise StorageIOError(f"Failed to read blob {content_hash}: {e}") from e

    def delete_if_unreferenced(self, content_hash: str, reference_count: int) -> bool:
        """Remove the blob when no other record references it.

        Args:
            content_hash: Hash of the blob.
            reference_count: Records still using the hash, excluding the one
                being deleted.

        Returns:
            True if a file was removed from disk.
        """
        if reference_count > 0 or not content_hash:
            return False

        path = self.full_path(content_hash)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageIOError(f"Failed to delete blob {content_hash}: {e}") from e

        logger.info("Deleted unreferenced blob %s", content_hash)
        return True
