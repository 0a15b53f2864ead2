from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from pydantic import BaseModel

from rentflow.exceptions import PdfStorageError
from rentflow.http import fetch_bytes
from rentflow.models.bill import Bill
from rentflow.pdf.invoice import InvoicePDF
from rentflow.settings import Settings
from rentflow.storage.base import StorageBackend
from rentflow.storage.local import LocalStorage
from rentflow.upi import generate_upi_qrcode_png, generate_upi_uri

logger = logging.getLogger(__name__)


def storage_key(bill_id: str, prefix: str = "bills") -> str:
    if prefix:
        return f"{prefix}/bill_{bill_id}.pdf"
    return f"bill_{bill_id}.pdf"


class PdfLocator(BaseModel):
    key: str
    url: str | None = None
    local_path: str | None = None  # set when only the local fallback holds the document
    content: bytes | None = None

    @property
    def is_fallback(self) -> bool:
        return self.local_path is not None


class PdfService:
    """Generates invoice PDFs and keeps them in object storage.

    Uploads go to the primary backend. When it rejects the upload the document
    is written to the local fallback directory so the bill still has a PDF.
    """

    def __init__(
        self,
        storage: StorageBackend,
        settings: Settings,
        fallback: LocalStorage | None = None,
        generator: InvoicePDF | None = None,
        fetcher: Callable[..., bytes] = fetch_bytes,
    ) -> None:
        self.storage = storage
        self.settings = settings
        self.fallback = fallback
        self.generator = generator or InvoicePDF()
        self._fetch = fetcher
        self._logo: bytes | None = None
        self._logo_loaded = False

    def storage_key(self, bill_id: str) -> str:
        return storage_key(bill_id, self.settings.storage_prefix)

    def public_url(self, key: str) -> str | None:
        base = self.settings.public_pdf_base_url.strip().rstrip("/")
        if base:
            return f"{base}/{key}"
        return self.storage.public_url(key)

    def _company_logo(self) -> bytes | None:
        if self._logo_loaded:
            return self._logo
        self._logo_loaded = True
        url = self.settings.company_logo_url
        if not url:
            return None
        try:
            self._logo = self._fetch(
                url,
                max_bytes=self.settings.max_download_bytes,
                timeout=self.settings.storage_timeout,
            )
        except Exception:
            logger.warning("Could not fetch company logo from %s", url, exc_info=True)
        return self._logo

    def render(self, bill: Bill) -> bytes:
        """Render the invoice for a joined bill. Blocking."""
        qrcode_png = None
        upi_uri = ""
        if self.settings.upi_id and not bill.is_paid and bill.total_amount > 0:
            upi_uri = generate_upi_uri(
                vpa=self.settings.upi_id,
                payee_name=self.settings.upi_payee_name or self.settings.company_name,
                amount=bill.total_amount,
                note=f"Rent bill {bill.id}",
                transaction_ref=bill.id,
                currency=self.settings.currency_code,
            )
            qrcode_png = generate_upi_qrcode_png(uri=upi_uri)

        return self.generator.generate(
            bill,
            self.settings,
            logo_png=self._company_logo(),
            upi_qrcode_png=qrcode_png,
            upi_uri=upi_uri,
        )

    async def materialize(self, bill: Bill) -> PdfLocator:
        """Render the bill's PDF and store it under its deterministic key.

        Re-running overwrites the same object. Raises PdfStorageError when the
        document cannot be rendered, or when neither the primary backend nor
        the local fallback accepts it.
        """
        key = self.storage_key(bill.id)
        try:
            content = await asyncio.to_thread(self.render, bill)
        except Exception as exc:
            logger.exception("PDF rendering failed for bill %s", bill.id)
            raise PdfStorageError(f"Could not render PDF for bill {bill.id}") from exc

        try:
            await asyncio.to_thread(self.storage.save, key, content)
        except Exception as exc:
            logger.exception("Upload of %s to %s storage failed", key, self.storage.name)
            if self.fallback is None:
                raise PdfStorageError(f"Could not store PDF for bill {bill.id}") from exc
            try:
                await asyncio.to_thread(self.fallback.save, key, content)
            except OSError as fallback_exc:
                logger.error("Local fallback also failed for %s: %s", key, fallback_exc)
                raise PdfStorageError(f"Could not store PDF for bill {bill.id}") from fallback_exc
            local_path = self.fallback.get_url(key)
            logger.warning("PDF for bill %s kept locally at %s", bill.id, local_path)
            return PdfLocator(key=key, url=None, local_path=local_path, content=content)

        logger.info("PDF stored: bill=%s key=%s size=%d", bill.id, key, len(content))
        self._discard_local_copy(key)
        return PdfLocator(key=key, url=self.public_url(key), content=content)

    def _discard_local_copy(self, key: str) -> None:
        """Remove an older fallback copy once the primary backend holds the document."""
        if self.fallback is None:
            return
        path = self.fallback.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove stale local copy %s", path)

    async def signed_url(self, key: str, expires_in: int | None = None) -> str:
        """Short-lived download URL for a stored key (absolute path for local storage)."""
        return await asyncio.to_thread(
            self.storage.get_url,
            key,
            expires_in or self.settings.s3_presigned_expiry,
        )

    def local_path(self, key: str) -> str | None:
        """Path of a document kept by the local fallback, if one exists."""
        if self.fallback is None:
            return None
        path = self.fallback.path_for(key)
        return str(path) if path.exists() else None


def build_pdf_service(settings: Settings) -> PdfService:
    from rentflow.storage.factory import get_fallback_storage, get_storage

    return PdfService(get_storage(settings), settings, fallback=get_fallback_storage(settings))
