from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from assistant.core.errors import (
    FrameCaptureError,
    ImageProcessingError,
    MissingApiKey,
    NoMediaSelected,
    TalkToPicError,
    user_message,
)
from assistant.core.media import CapturedFrame, encode_base64, to_data_url
from assistant.core.prompt import SYSTEM_PROMPT, frame_context
from assistant.core.session import ChatMessage, ChatSession
from config.settings import get_settings


logger = logging.getLogger("talktopic")


@dataclass(frozen=True)
class TurnResult:
    message: ChatMessage
    speak: bool


def build_llm(api_key: str) -> BaseChatModel:
    settings = get_settings()
    if not api_key:
        raise MissingApiKey()

    return ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=api_key,
        temperature=settings.temperature,
        top_p=settings.top_p,
    )


def to_lc_messages(history: List[ChatMessage], turns: int) -> List[BaseMessage]:
    messages: List[BaseMessage] = []
    if turns <= 0:
        return messages
    usable = [m for m in history if not m.is_error and m.content]
    for item in usable[-turns:]:
        if item.role == "user":
            messages.append(HumanMessage(content=item.content))
        else:
            messages.append(AIMessage(content=item.content))
    return messages


def _media_part(session: ChatSession, frame: Optional[CapturedFrame]) -> Dict[str, Any]:
    if session.uses_video:
        if frame is None or not frame.base64:
            raise FrameCaptureError()
        return {"type": "image_url", "image_url": to_data_url(frame.mime_type, frame.base64)}

    if session.image is not None:
        data = encode_base64(session.image.data)
        if not data:
            raise ImageProcessingError()
        return {"type": "image_url", "image_url": to_data_url(session.image.mime_type, data)}

    raise NoMediaSelected(
        "No valid image or video data available. Please upload an image or start video mode."
    )


def build_messages(
    session: ChatSession,
    question: str,
    frame: Optional[CapturedFrame] = None,
    previous_frames: Optional[List[CapturedFrame]] = None,
    history: Optional[List[ChatMessage]] = None,
) -> List[BaseMessage]:
    """Assemble the model request for one turn.

    ``history`` holds the turns before this question; ``previous_frames`` is
    the frame buffer before ``frame`` was captured.
    """
    settings = get_settings()
    content: List[Union[str, Dict[str, Any]]] = [_media_part(session, frame)]

    if session.uses_video and frame is not None:
        context = frame_context(frame, previous_frames or [])
        if context:
            content.append({"type": "text", "text": context})

    content.append({"type": "text", "text": question})

    messages: List[BaseMessage] = [SystemMessage(content=SYSTEM_PROMPT)]
    messages.extend(to_lc_messages(history or [], settings.history_turns))
    messages.append(HumanMessage(content=content))
    return messages


def _response_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        content = "".join(parts)
    return (content or "").strip()


def ask(
    session: ChatSession,
    question: str,
    frame_data_url: Optional[str] = None,
    frame_timestamp: Optional[str] = None,
    llm: Optional[BaseChatModel] = None,
) -> TurnResult:
    """Run one chat turn and append both sides of it to the session.

    Model and media failures never propagate: they become an assistant
    message holding a user-facing error string.
    """
    text = (question or "").strip()
    if not text:
        raise TalkToPicError("Type a question first.")
    if not session.has_api_key:
        raise MissingApiKey()
    if not session.has_media:
        raise NoMediaSelected()

    session.begin_request()
    try:
        history = session.messages
        session.append("user", text)
        logger.info(
            "Chat turn: session=%s source=%s question_len=%s history=%s",
            session.session_id,
            session.source,
            len(text),
            len(history),
        )
        try:
            frame: Optional[CapturedFrame] = None
            previous = list(session.frames)
            if session.uses_video:
                if not frame_data_url:
                    raise FrameCaptureError()
                frame = session.capture_frame(frame_data_url, frame_timestamp)

            messages = build_messages(session, text, frame, previous, history)
            model = llm or build_llm(session.api_key or "")
            response = model.invoke(messages)
            answer = _response_text(response)
            if not answer:
                raise RuntimeError("Model returned an empty response")
            reply = session.append("assistant", answer)
            logger.info("Model responded: %s chars", len(answer))
        except Exception as exc:
            logger.exception("Error generating response: %s", exc)
            reply = session.append("assistant", user_message(exc), is_error=True)
        return TurnResult(message=reply, speak=session.voice_mode)
    finally:
        session.end_request()
