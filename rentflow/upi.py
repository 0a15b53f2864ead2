"""UPI payment link and QR code generation.

Builds a ``upi://pay`` deep link as understood by Indian UPI apps and
renders it as a PNG QR code for the invoice.
"""

from __future__ import annotations

from io import BytesIO
from urllib.parse import quote, urlencode

import qrcode
from qrcode.image.pil import PilImage


def generate_upi_uri(
    *,
    vpa: str,
    payee_name: str,
    amount: int | None = None,
    note: str = "",
    transaction_ref: str = "",
    currency: str = "INR",
) -> str:
    """Generate a UPI deep link.

    Args:
        vpa: Payee virtual payment address, e.g. 'landlord@okbank'.
        payee_name: Name shown to the payer.
        amount: Amount in paise. None or zero leaves the amount open.
        note: Transaction note (bill reference).
        transaction_ref: Merchant reference id.

    Returns:
        The ``upi://pay?...`` URI.
    """
    params = {"pa": vpa.strip(), "pn": payee_name.strip()}
    if amount:
        params["am"] = f"{amount / 100:.2f}"
    params["cu"] = currency
    if note:
        params["tn"] = note[:80]
    if transaction_ref:
        params["tr"] = transaction_ref
    return "upi://pay?" + urlencode(params, quote_via=quote)


def generate_upi_qrcode_png(
    *,
    vpa: str = "",
    payee_name: str = "",
    amount: int | None = None,
    note: str = "",
    box_size: int = 10,
    border: int = 2,
    uri: str = "",
) -> bytes:
    """Generate a UPI QR code as PNG bytes.

    Args:
        uri: Pre-computed UPI URI. If empty, generates one from the other args.
    """
    if not uri:
        uri = generate_upi_uri(vpa=vpa, payee_name=payee_name, amount=amount, note=note)

    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(uri)
    qr.make(fit=True)

    img: PilImage = qr.make_image(fill_color="black", back_color="white")

    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
