from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from shortlink_app.config import settings


def generate_qr_png(data: str) -> bytes:
    qr = qrcode.QRCode(
        version=None, box_size=settings.qr_box_size, border=settings.qr_border,
        error_correction=ERROR_CORRECT_M
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color=settings.qr_fill_color, back_color="white")

    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
