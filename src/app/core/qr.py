"""QR code rendering for verification links."""

import base64
import io

import qrcode


def qr_png_bytes(data: str, box_size: int = 10, border: int = 1) -> bytes:
    qr = qrcode.QRCode(box_size=box_size, border=border)
    qr.add_data(data)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def qr_data_url(data: str) -> str:
    """Render ``data`` as a QR code PNG wrapped in a data URL."""
    encoded = base64.b64encode(qr_png_bytes(data)).decode()
    return f"data:image/png;base64,{encoded}"
