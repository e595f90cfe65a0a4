"""Local-disk FileStore: one file per file id under a root directory."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO

from leaselogic.core.logging import get_logger
from leaselogic.pipeline.errors import NotFoundError
from leaselogic.processing.base import FileStore

logger = get_logger(__name__)


class LocalFileStore(FileStore):
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, file_id: str) -> Path | None:
        # ids are opaque names, never paths
        if not file_id or "/" in file_id or "\\" in file_id or file_id in (".", ".."):
            return None
        return self.root / file_id

    def exists(self, file_id: str) -> bool:
        path = self._path(file_id)
        return path is not None and path.is_file()

    def open_stream(self, file_id: str) -> BinaryIO:
        path = self._path(file_id)
        if path is None or not path.is_file():
            raise NotFoundError(f"File {file_id} not found", details={"fileId": file_id})
        return path.open("rb")

    def save(self, file_id: str, data: bytes) -> Path:
        """Store `data` under `file_id` (used by scripts and tests)."""
        path = self._path(file_id)
        if path is None:
            raise ValueError(f"Invalid file id: {file_id!r}")
        self.root.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("File stored", file_id=file_id, size=len(data))
        return path
