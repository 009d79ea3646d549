import base64
import io

import pytest
from PIL import Image

from assistant.core.errors import FrameCaptureError, InvalidImage, UnsupportedMedia, UploadTooLarge
from assistant.core.media import (
    decode_data_url,
    ensure_image_mime,
    load_upload,
    preview_data_url,
    verify_image,
)
from tests.helpers import make_frame_url, make_png


class TestUploads:
    def test_load_upload_reads_dimensions(self, png_bytes) -> None:
        image = load_upload(png_bytes, "image/png", "cat.png")
        assert (image.width, image.height) == (4, 3)
        assert image.mime_type == "image/png"
        assert image.size_bytes == len(png_bytes)

    @pytest.mark.parametrize("mime", ["text/plain", "application/pdf", "", None])
    def test_non_image_mime_is_rejected(self, mime) -> None:
        with pytest.raises(UnsupportedMedia):
            ensure_image_mime(mime)

    def test_mime_is_normalised(self) -> None:
        assert ensure_image_mime(" IMAGE/JPEG ") == "image/jpeg"

    def test_garbage_bytes_are_not_an_image(self) -> None:
        with pytest.raises(InvalidImage):
            verify_image(b"definitely not a png")

    def test_empty_upload(self) -> None:
        with pytest.raises(InvalidImage):
            verify_image(b"")

    def test_oversized_dimensions_are_rejected(self, monkeypatch) -> None:
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
        with pytest.raises(UploadTooLarge):
            verify_image(make_png(size=(10, 10)))

    def test_dimensions_over_the_warning_limit_are_rejected(self, monkeypatch) -> None:
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
        with pytest.raises(UploadTooLarge):
            verify_image(make_png(size=(4, 4)))

    def test_heic_upload_is_accepted(self) -> None:
        buffer = io.BytesIO()
        Image.new("RGB", (16, 16), (10, 120, 200)).save(buffer, format="HEIF")
        image = load_upload(buffer.getvalue(), "image/heic", "IMG_0001.HEIC")
        assert image.mime_type == "image/heic"
        assert (image.width, image.height) == (16, 16)

    def test_preview_is_a_data_url(self, uploaded_image) -> None:
        url = preview_data_url(uploaded_image)
        assert url.startswith("data:image/png;base64,")
        assert base64.b64decode(url.split(",", 1)[1]) == make_png()


class TestDataUrls:
    def test_decode_canvas_capture(self) -> None:
        mime, payload = decode_data_url(make_frame_url(b"abc"))
        assert mime == "image/jpeg"
        assert base64.b64decode(payload) == b"abc"

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "not a data url",
            "data:image/jpeg;base64,",
            "data:image/jpeg,plain-text",
            "data:image/jpeg;base64,***",
        ],
    )
    def test_malformed_captures_fail(self, value) -> None:
        with pytest.raises(FrameCaptureError):
            decode_data_url(value)
