from __future__ import annotations

import base64
import binascii
import io
import re
import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError
from pillow_heif import register_heif_opener

from assistant.core.errors import (
    FrameCaptureError,
    ImageProcessingError,
    InvalidImage,
    UnsupportedMedia,
    UploadTooLarge,
)


# iPhone uploads arrive as image/heic or image/heif.
register_heif_opener()


FRAME_MIME_TYPE = "image/jpeg"

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class UploadedImage:
    data: bytes
    mime_type: str
    filename: Optional[str] = None
    width: int = 0
    height: int = 0

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class CapturedFrame:
    id: int
    timestamp: str
    base64: str
    mime_type: str = FRAME_MIME_TYPE


def ensure_image_mime(mime_type: Optional[str]) -> str:
    mime = (mime_type or "").strip().lower()
    if not mime.startswith("image/"):
        raise UnsupportedMedia()
    return mime


def verify_image(data: bytes) -> Tuple[int, int]:
    """Check that ``data`` decodes as an image and return its size."""
    if not data:
        raise InvalidImage()
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("error", Image.DecompressionBombWarning)
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
                return img.size
    except (Image.DecompressionBombError, Image.DecompressionBombWarning) as exc:
        raise UploadTooLarge("The uploaded image dimensions are too large.") from exc
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise InvalidImage() from exc


def load_upload(data: bytes, mime_type: Optional[str], filename: Optional[str] = None) -> UploadedImage:
    mime = ensure_image_mime(mime_type)
    width, height = verify_image(data)
    return UploadedImage(data=data, mime_type=mime, filename=filename, width=width, height=height)


def encode_base64(data: bytes) -> str:
    try:
        return base64.b64encode(data).decode("ascii")
    except (TypeError, ValueError) as exc:
        raise ImageProcessingError() from exc


def decode_data_url(data_url: str) -> Tuple[str, str]:
    """Split a canvas ``data:`` URL into (mime type, base64 payload)."""
    match = _DATA_URL_RE.match((data_url or "").strip())
    if not match or not match.group("b64"):
        raise FrameCaptureError()
    payload = match.group("data")
    if not payload:
        raise FrameCaptureError()
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FrameCaptureError() from exc
    return (match.group("mime") or FRAME_MIME_TYPE), payload


def to_data_url(mime_type: str, b64: str) -> str:
    return f"data:{mime_type};base64,{b64}"


def preview_data_url(image: UploadedImage) -> str:
    return to_data_url(image.mime_type, encode_base64(image.data))
