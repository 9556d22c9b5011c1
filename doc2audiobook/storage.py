"""Object storage for documents, voice samples and finished audio.

Object paths are namespaced by the owning user: ``"{user_id}/{name}"``.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath

from doc2audiobook.errors import StorageError

logger = logging.getLogger(__name__)

AUDIOBOOKS_BUCKET = "audiobooks"
VOICE_SAMPLES_BUCKET = "voice-samples"


def user_path(user_id: str, name: str) -> str:
    """Build an object path inside ``user_id``'s namespace."""
    return f"{user_id}/{name}"


def owner_of(path: str) -> str:
    """Return the user id prefix of an object path."""
    return PurePosixPath(path).parts[0] if path else ""


class ObjectStorage(ABC):
    """Minimal blob store interface."""

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        ...

    @abstractmethod
    def download(self, path: str) -> bytes:
        ...

    @abstractmethod
    def exists(self, path: str) -> bool:
        ...


class LocalObjectStorage(ObjectStorage):
    """Stores objects as files below ``root``."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        parts = PurePosixPath(path).parts
        if not parts or PurePosixPath(path).is_absolute() or ".." in parts:
            raise StorageError(f"Invalid object path: {path!r}")
        return self.root.joinpath(*parts)

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = target.with_name(target.name + ".part")
            tmp.write_bytes(data)
            tmp.replace(target)
        except OSError as e:
            raise StorageError(f"Upload failed for {path}: {e}") from e
        logger.debug("Stored %s (%s, %d bytes)", path, content_type, len(data))

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError as e:
            raise StorageError(f"Object not found: {path}") from e
        except OSError as e:
            raise StorageError(f"Download failed for {path}: {e}") from e

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()
