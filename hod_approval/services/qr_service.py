# hod_approval/services/qr_service.py

import base64
from io import BytesIO

import qrcode

DATA_URL_PREFIX = "data:image/png;base64,"


def encode(payload: str) -> str:
    """Render `payload` as a QR code PNG and return it as a data URL."""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=2,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    image.save(buffer, format="PNG")
    buffer.seek(0)

    return DATA_URL_PREFIX + base64.b64encode(buffer.read()).decode("utf-8")


def decode_data_url(data_url: str) -> bytes:
    """PNG bytes of a data URL produced by `encode` (used for inline email images)."""
    if data_url.startswith(DATA_URL_PREFIX):
        data_url = data_url[len(DATA_URL_PREFIX):]
    return base64.b64decode(data_url)
