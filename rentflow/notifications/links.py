from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict

from rentflow.models.bill import Bill
from rentflow.services.pdf_service import storage_key
from rentflow.settings import Settings


class BillLinks(BaseModel):
    model_config = ConfigDict(frozen=True)

    download_link: str
    payment_link: str | None = None
    stamp: int


def bill_stamp(bill: Bill) -> int:
    """Cache-busting version for a bill: updated_at in epoch ms, else now."""
    if bill.updated_at is not None:
        return int(bill.updated_at.timestamp() * 1000)
    return int(time.time() * 1000)


def compute_links(bill: Bill, settings: Settings, stamp: int | None = None) -> BillLinks:
    """Build the download and payment links embedded in notifications.

    Pure: the same bill, settings and stamp always give the same links.
    """
    if stamp is None:
        stamp = bill_stamp(bill)

    public_base = settings.public_pdf_base_url.strip().rstrip("/")
    if public_base:
        download_link = f"{public_base}/{storage_key(bill.id, settings.storage_prefix)}?v={stamp}"
    else:
        download_link = f"{settings.backend_base}/api/bills/{bill.id}/pdf?v={stamp}"

    payment_link = None
    if not bill.is_paid:
        payment_link = f"{settings.frontend_base}/payment/public/{bill.id}?v={stamp}"

    return BillLinks(download_link=download_link, payment_link=payment_link, stamp=stamp)
