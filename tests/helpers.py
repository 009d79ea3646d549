import base64
import io

from PIL import Image


def make_png(size=(4, 3), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_frame_url(payload: bytes = b"frame-bytes") -> str:
    return "data:image/jpeg;base64," + base64.b64encode(payload).decode("ascii")
