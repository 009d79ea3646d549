"""
Unit tests for request assembly and the chat turn.

The chat model is a MagicMock; assertions look at the langchain messages it
receives and at what ends up in the session history.
"""

from unittest.mock import MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from assistant.assistant import ask, build_llm, build_messages, to_lc_messages
from assistant.core.errors import (
    EMPTY_MEDIA_ERROR,
    GENERIC_ERROR,
    FrameCaptureError,
    MissingApiKey,
    NoMediaSelected,
    RequestInProgress,
    TalkToPicError,
)
from assistant.core.session import ChatMessage, ChatSession
from tests.helpers import make_frame_url


def _parts(messages):
    last = messages[-1]
    assert isinstance(last, HumanMessage)
    return last.content


class TestBuildMessages:
    def test_image_turn(self, session, uploaded_image) -> None:
        session.set_image(uploaded_image)

        messages = build_messages(session, "What is this?")

        assert isinstance(messages[0], SystemMessage)
        parts = _parts(messages)
        assert parts[0]["type"] == "image_url"
        assert parts[0]["image_url"].startswith("data:image/png;base64,")
        assert parts[-1] == {"type": "text", "text": "What is this?"}
        assert len(parts) == 2

    def test_video_turn_without_previous_frames(self, session) -> None:
        session.start_video()
        frame = session.capture_frame(make_frame_url(), "10:00:03 AM")

        parts = _parts(build_messages(session, "Who is there?", frame, previous_frames=[]))

        assert parts[0]["image_url"].startswith("data:image/jpeg;base64,")
        assert len(parts) == 2

    def test_video_turn_adds_timestamp_context(self, session) -> None:
        session.start_video()
        for ts in ("10:00:00 AM", "10:00:01 AM", "10:00:02 AM"):
            session.capture_frame(make_frame_url(), ts)
        previous = list(session.frames)
        frame = session.capture_frame(make_frame_url(), "10:00:03 AM")

        parts = _parts(build_messages(session, "Who is there?", frame, previous))

        assert len(parts) == 3
        assert "captured at 10:00:03 AM" in parts[1]["text"]
        assert "Previous frames were captured at: 10:00:00 AM, 10:00:01 AM." in parts[1]["text"]
        assert parts[2]["text"] == "Who is there?"

    def test_video_turn_without_frame_fails(self, session) -> None:
        session.start_video()
        with pytest.raises(FrameCaptureError):
            build_messages(session, "hello")

    def test_no_media(self, session) -> None:
        with pytest.raises(NoMediaSelected):
            build_messages(session, "hello")

    def test_image_used_when_video_tab_selected_but_not_streaming(self, session, uploaded_image) -> None:
        session.set_image(uploaded_image)
        session.select_source("video")
        parts = _parts(build_messages(session, "hi"))
        assert parts[0]["image_url"].startswith("data:image/png")

    def test_history_is_off_by_default(self, session, uploaded_image) -> None:
        session.set_image(uploaded_image)
        history = [ChatMessage("user", "first"), ChatMessage("assistant", "answer")]
        messages = build_messages(session, "second", history=history)
        assert len(messages) == 2

    def test_history_turns_setting(self, session, uploaded_image) -> None:
        session.set_image(uploaded_image)
        history = [
            ChatMessage("user", "first"),
            ChatMessage("assistant", "answer"),
            ChatMessage("user", "broken"),
            ChatMessage("assistant", GENERIC_ERROR, is_error=True),
        ]
        with patch("assistant.assistant.get_settings") as mock_settings:
            mock_settings.return_value = MagicMock(history_turns=5)
            messages = build_messages(session, "second", history=history)

        assert [type(m) for m in messages] == [SystemMessage, HumanMessage, AIMessage, HumanMessage, HumanMessage]
        assert messages[1].content == "first"
        assert messages[3].content == "broken"


class TestToLcMessages:
    def test_keeps_only_last_turns(self) -> None:
        history = [ChatMessage("user", str(i)) for i in range(10)]
        result = to_lc_messages(history, 3)
        assert [m.content for m in result] == ["7", "8", "9"]

    def test_zero_turns(self) -> None:
        assert to_lc_messages([ChatMessage("user", "x")], 0) == []


class TestBuildLlm:
    def test_requires_key(self) -> None:
        with pytest.raises(MissingApiKey):
            build_llm("")

    def test_uses_session_key(self) -> None:
        with patch("assistant.assistant.ChatGoogleGenerativeAI") as MockChat:
            build_llm("user-key")
        kwargs = MockChat.call_args.kwargs
        assert kwargs["google_api_key"] == "user-key"
        assert kwargs["model"]


class TestAsk:
    def test_image_turn_appends_both_messages(self, session, uploaded_image, fake_llm) -> None:
        session.set_image(uploaded_image)

        result = ask(session, "  What is this?  ", llm=fake_llm)

        assert result.message.content == "A red square."
        assert result.speak is False
        assert [(m.role, m.content) for m in session.messages] == [
            ("user", "What is this?"),
            ("assistant", "A red square."),
        ]
        assert session.is_loading is False
        fake_llm.invoke.assert_called_once()

    def test_voice_mode_marks_reply_for_speech(self, session, uploaded_image, fake_llm) -> None:
        session.set_image(uploaded_image)
        session.voice_mode = True
        assert ask(session, "hi", llm=fake_llm).speak is True

    def test_video_turn_captures_frame(self, session, fake_llm) -> None:
        session.start_video()
        session.capture_frame(make_frame_url(), "t1")
        session.capture_frame(make_frame_url(), "t2")

        ask(session, "What now?", frame_data_url=make_frame_url(b"now"), frame_timestamp="t3", llm=fake_llm)

        assert len(session.frames) == 3
        parts = _parts(fake_llm.invoke.call_args.args[0])
        assert "captured at t3" in parts[1]["text"]
        assert "Previous frames were captured at: t1." in parts[1]["text"]

    def test_video_turn_without_capture_becomes_error_message(self, session, fake_llm) -> None:
        session.start_video()

        result = ask(session, "What now?", llm=fake_llm)

        assert result.message.is_error is True
        assert result.message.content == "Failed to capture video frame. Please try again."
        fake_llm.invoke.assert_not_called()

    def test_model_failure_becomes_error_message(self, session, uploaded_image, fake_llm) -> None:
        session.set_image(uploaded_image)
        session.voice_mode = True
        fake_llm.invoke.side_effect = RuntimeError("empty inlineData parameter")

        result = ask(session, "hi", llm=fake_llm)

        assert result.message.role == "assistant"
        assert result.message.content == EMPTY_MEDIA_ERROR
        assert result.speak is True
        assert session.is_loading is False
        assert len(session.messages) == 2

    def test_empty_model_answer_is_an_error(self, session, uploaded_image, fake_llm) -> None:
        session.set_image(uploaded_image)
        fake_llm.invoke.return_value = AIMessage(content="   ")
        assert ask(session, "hi", llm=fake_llm).message.content == GENERIC_ERROR

    def test_list_content_is_joined(self, session, uploaded_image, fake_llm) -> None:
        session.set_image(uploaded_image)
        fake_llm.invoke.return_value = AIMessage(content=[{"type": "text", "text": "A "}, "cat"])
        assert ask(session, "hi", llm=fake_llm).message.content == "A cat"

    def test_image_tab_without_upload_while_streaming_is_generic_error(self, session, fake_llm) -> None:
        session.start_video()
        session.select_source("image")

        result = ask(session, "What is this?", llm=fake_llm)

        assert result.message.is_error is True
        assert result.message.content == GENERIC_ERROR
        assert session.is_loading is False
        fake_llm.invoke.assert_not_called()

    def test_rejects_blank_question(self, session, uploaded_image, fake_llm) -> None:
        session.set_image(uploaded_image)
        with pytest.raises(TalkToPicError):
            ask(session, "   ", llm=fake_llm)
        assert session.messages == []

    def test_rejects_missing_key(self, uploaded_image, fake_llm) -> None:
        s = ChatSession()
        s.set_image(uploaded_image)
        with pytest.raises(MissingApiKey):
            ask(s, "hi", llm=fake_llm)

    def test_rejects_missing_media(self, session, fake_llm) -> None:
        with pytest.raises(NoMediaSelected):
            ask(session, "hi", llm=fake_llm)
        assert session.messages == []

    def test_rejects_while_loading(self, session, uploaded_image, fake_llm) -> None:
        session.set_image(uploaded_image)
        session.begin_request()
        with pytest.raises(RequestInProgress):
            ask(session, "hi", llm=fake_llm)
        assert session.messages == []

    def test_builds_llm_from_session_key(self, session, uploaded_image, fake_llm) -> None:
        session.set_image(uploaded_image)
        with patch("assistant.assistant.build_llm", return_value=fake_llm) as mock_build:
            ask(session, "hi")
        mock_build.assert_called_once_with("test-key")
