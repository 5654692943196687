"""Image storage access."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from .errors import StorageError

logger = logging.getLogger(__name__)


class ImageStore(ABC):
    @abstractmethod
    async def fetch(self, image_ref: str) -> bytes:
        """Return the bytes behind ``image_ref``.

        Raises:
            StorageError: If the image cannot be read.
        """


class FileSystemImageStore(ImageStore):
    """Images stored as files under a root directory.

    ``image_ref`` is a path relative to the root; references that resolve
    outside it are rejected.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, image_ref: str) -> Path:
        path = (self._root / image_ref).resolve()
        if not path.is_relative_to(self._root):
            raise StorageError(f"Image reference escapes the store: {image_ref!r}")
        return path

    async def fetch(self, image_ref: str) -> bytes:
        path = self._resolve(image_ref)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise StorageError(f"Failed to read image {image_ref!r}: {e}") from e
        logger.debug("Fetched %s (%d bytes)", path, len(data))
        return data
