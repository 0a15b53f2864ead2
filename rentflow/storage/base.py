from abc import ABC, abstractmethod


class StorageBackend(ABC):
    name = "storage"

    @abstractmethod
    def save(self, key: str, data: bytes, content_type: str = "application/pdf") -> str:
        """Save data under key, overwriting any previous object. Returns the key."""
        ...

    @abstractmethod
    def get_url(self, key: str, expires_in: int | None = None) -> str:
        """Return a presigned URL (S3) or absolute file path (local)."""
        ...

    def public_url(self, key: str) -> str | None:
        """Best-effort unsigned URL for a key, None when the backend has none."""
        return None
