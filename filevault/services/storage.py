"""Local disk storage for uploaded file bytes."""

import os
import uuid
from pathlib import Path
from typing import BinaryIO

COPY_CHUNK_BYTES = 1024 * 1024


class UploadTooLargeError(Exception):
    """Raised when an upload exceeds the configured byte limit."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Upload exceeds {limit} bytes")


class FileStorage:
    """Writes, opens and removes file bytes under a single root directory."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)

    def _new_path(self, original_name: str) -> Path:
        suffix = Path(original_name).suffix[:16]
        return self.root / f"{uuid.uuid4().hex}{suffix}"

    def save(self, stream: BinaryIO, original_name: str, max_bytes: int) -> tuple[str, int]:
        """
        Copy stream to a new file and fsync it. Returns (path, size).

        A partial file is removed if the limit is exceeded or the copy fails.
        """
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._new_path(original_name)
        size = 0
        try:
            with open(path, "xb") as out:
                while True:
                    chunk = stream.read(COPY_CHUNK_BYTES)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > max_bytes:
                        raise UploadTooLargeError(max_bytes)
                    out.write(chunk)
                out.flush()
                os.fsync(out.fileno())
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        return str(path), size

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    def delete(self, path: str) -> None:
        """Remove stored bytes. Raises OSError on failure; a missing file is not an error."""
        Path(path).unlink(missing_ok=True)

