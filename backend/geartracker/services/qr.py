"""QR references pointing at an equipment detail page."""

from __future__ import annotations

import base64
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M


def equipment_detail_url(base_url: str, equipment_id: str) -> str:
    return f"{base_url.rstrip('/')}/equipment/{equipment_id}"


def qr_data_url(payload: str) -> str:
    """Encode ``payload`` as a PNG QR code wrapped in a ``data:`` URL.

    Rendering is deterministic: the same payload yields the same bytes.
    """

    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=10, border=4)
    qr.add_data(payload)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


__all__ = ["equipment_detail_url", "qr_data_url"]
