"""
QR rendering for the signature display card.

The payload is a presentation aid only. It is not signed and must never be
accepted as proof of a signature.
"""

import base64
import io
import json

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from utils.logger import get_logger

log = get_logger(__name__)

# 1x1 transparent PNG shown when rendering fails
PLACEHOLDER_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8/5+hHgAHggJ/PchI7wAAAABJRU5ErkJggg=="
)


def render_qr_data_url(payload: dict, box_size: int = 8, border: int = 1) -> str:
    """PNG data URL encoding ``payload`` as JSON, or the placeholder on failure."""
    try:
        qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=box_size, border=border)
        qr.add_data(json.dumps(payload, separators=(",", ":")))
        qr.make(fit=True)
        image = qr.make_image(fill_color="black", back_color="white")

        buf = io.BytesIO()
        image.save(buf, format="PNG")
    except Exception:
        log.exception("qr_render_failed", lease_id=payload.get("leaseId"))
        return PLACEHOLDER_DATA_URL

    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
