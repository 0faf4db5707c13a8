"""
Pairing code rendering.

The handshake hands us a raw pairing string; the viewer needs something a
phone can scan, so each code is rendered as a standalone SVG QR code.
"""

import io

import qrcode
import qrcode.image.svg
from qrcode.constants import ERROR_CORRECT_M

PAIRING_MEDIA_TYPE = "image/svg+xml"


def encode_pairing_code(code: str) -> bytes:
    """Render *code* as an SVG QR code and return the document bytes."""
    if not code:
        raise ValueError("pairing code is empty")

    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=10, border=4)
    qr.add_data(code)
    qr.make(fit=True)
    img = qr.make_image(image_factory=qrcode.image.svg.SvgImage)

    buf = io.BytesIO()
    img.save(buf)
    return buf.getvalue()
