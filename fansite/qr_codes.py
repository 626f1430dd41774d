"""
QR codes pointing at the YouTube channel or a single video, as PNG data URIs.
"""

from __future__ import annotations

import base64
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_H

YOUTUBE_CHANNEL_URL = "https://www.youtube.com/channel/{channel_id}"
YOUTUBE_VIDEO_URL = "https://www.youtube.com/watch?v={video_id}"


def generate_qr_code(url: str) -> str:
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_H, border=1)
    qr.add_data(url)
    qr.make(fit=True)
    image = qr.make_image(fill_color="#000000", back_color="#ffffff")

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def generate_channel_qr_code(channel_id: str) -> str:
    return generate_qr_code(YOUTUBE_CHANNEL_URL.format(channel_id=channel_id))


def generate_video_qr_code(video_id: str) -> str:
    return generate_qr_code(YOUTUBE_VIDEO_URL.format(video_id=video_id))
