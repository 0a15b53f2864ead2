import logging

from rentflow.settings import Settings, settings as default_settings
from rentflow.storage.base import StorageBackend
from rentflow.storage.local import LocalStorage

logger = logging.getLogger(__name__)


def get_storage(settings: Settings | None = None) -> StorageBackend:
    settings = settings or default_settings
    backend = settings.storage_backend

    if backend == "local":
        logger.info("Using storage backend: local")
        return LocalStorage(settings.storage_local_path)

    if backend == "s3":
        from rentflow.storage.s3 import S3Storage

        logger.info("Using storage backend: s3 bucket=%s", settings.s3_bucket)
        return S3Storage(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            endpoint_url=settings.resolved_s3_endpoint,
            presigned_expiry=settings.s3_presigned_expiry,
            timeout=settings.storage_timeout,
        )

    raise ValueError(f"Unsupported storage backend: {backend}")


def get_fallback_storage(settings: Settings | None = None) -> LocalStorage | None:
    """Local scratch storage used when the primary backend rejects an upload.

    None when the primary backend is already local.
    """
    settings = settings or default_settings
    if settings.storage_backend == "local":
        return None
    return LocalStorage(settings.storage_local_path)
