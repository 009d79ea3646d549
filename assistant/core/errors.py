from __future__ import annotations

from typing import Optional


GENERIC_ERROR = "Sorry, I encountered an error while processing your request."
EMPTY_MEDIA_ERROR = (
    "No image or video data was provided. "
    "Please upload an image or start video streaming first."
)
API_KEY_ERROR = "Please check your API key and try again."


class TalkToPicError(Exception):
    """Base error. ``message`` is safe to show to the user."""

    status_code: int = 400
    default_message: str = GENERIC_ERROR

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidApiKey(TalkToPicError):
    default_message = "Please enter your Gemini API key."


class MissingApiKey(TalkToPicError):
    status_code = 401
    default_message = "Set your Gemini API key before asking questions."


class NoMediaSelected(TalkToPicError):
    default_message = "Please upload an image or start video mode first."


class UnsupportedMedia(TalkToPicError):
    status_code = 415
    default_message = "Only image files can be uploaded."


class InvalidImage(TalkToPicError):
    default_message = "The uploaded file could not be read as an image."


class UploadTooLarge(TalkToPicError):
    status_code = 413
    default_message = "The uploaded image is too large."


class VideoNotActive(TalkToPicError):
    status_code = 409
    default_message = "Start video mode before capturing frames."


class FrameCaptureError(TalkToPicError):
    default_message = "Failed to capture video frame. Please try again."


class ImageProcessingError(TalkToPicError):
    default_message = "Failed to process uploaded image. Please try uploading again."


class RequestInProgress(TalkToPicError):
    status_code = 409
    default_message = "Still answering your previous question. Please wait."


class SessionNotFound(TalkToPicError):
    status_code = 404
    default_message = "Session not found. Reload the page to start again."


class TokenExchangeError(TalkToPicError):
    status_code = 502
    default_message = "Failed to generate ephemeral token"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.details = details


def user_message(exc: BaseException) -> str:
    """Map a failed model turn to the text shown in the chat."""
    if isinstance(exc, (FrameCaptureError, ImageProcessingError)):
        return exc.message
    text = str(exc)
    if "empty inlineData" in text:
        return EMPTY_MEDIA_ERROR
    if "Failed to capture" in text or "Failed to process" in text:
        return text
    if "API key" in text or "API_KEY" in text:
        return API_KEY_ERROR
    return GENERIC_ERROR
