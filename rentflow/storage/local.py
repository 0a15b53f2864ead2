import logging
from pathlib import Path

from rentflow.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class LocalStorage(StorageBackend):
    name = "local"

    def __init__(self, base_dir: str) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return (self.base_dir / key).resolve()

    def save(self, key: str, data: bytes, content_type: str = "application/pdf") -> str:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug("Saved %s (%d bytes) to %s", key, len(data), path)
        return key

    def get_url(self, key: str, expires_in: int | None = None) -> str:
        return str(self.path_for(key))

    def public_url(self, key: str) -> str | None:
        return self.path_for(key).as_uri()
