"""
Pytest configuration and shared fixtures.

No test talks to Gemini or to Google's token endpoint: the chat model is a
MagicMock and upstream HTTP goes through ``httpx.MockTransport``.
"""

import logging
from unittest.mock import MagicMock

import pytest
from langchain_core.messages import AIMessage
from assistant.core.media import UploadedImage
from assistant.core.session import ChatSession
from tests.helpers import make_png


logging.getLogger("talktopic").setLevel(logging.CRITICAL)


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def uploaded_image(png_bytes) -> UploadedImage:
    return UploadedImage(data=png_bytes, mime_type="image/png", filename="cat.png", width=4, height=3)


@pytest.fixture
def session() -> ChatSession:
    s = ChatSession(session_id="test-session")
    s.set_api_key("test-key")
    return s


@pytest.fixture
def fake_llm() -> MagicMock:
    llm = MagicMock()
    llm.invoke.return_value = AIMessage(content="A red square.")
    return llm
