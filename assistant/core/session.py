"""In-memory chat sessions.

One ``ChatSession`` per open page. It holds the user's API key, the active
media source, the webcam frame buffer and the append-only conversation.
Nothing here is persisted: discarding the session is the page reload.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Deque, Dict, List, Literal, Optional, Tuple

from assistant.core.errors import (
    InvalidApiKey,
    RequestInProgress,
    SessionNotFound,
    TalkToPicError,
    VideoNotActive,
)
from assistant.core.media import CapturedFrame, UploadedImage, decode_data_url


Role = Literal["user", "assistant"]
MediaSource = Literal["image", "video"]
MEDIA_SOURCES: Tuple[str, ...] = ("image", "video")


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str
    is_error: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {"role": self.role, "content": self.content, "is_error": self.is_error}


class ChatSession:
    def __init__(self, session_id: Optional[str] = None, frame_buffer_size: int = 5) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self._api_key: Optional[str] = None
        self.token_expires_at: Optional[str] = None
        self.voice_mode = False
        self.source: MediaSource = "image"
        self.image: Optional[UploadedImage] = None
        self.video_active = False
        self.frames: Deque[CapturedFrame] = deque(maxlen=frame_buffer_size)
        self._messages: List[ChatMessage] = []
        self._loading = False
        self._lock = threading.RLock()
        self.last_seen = 0.0

    # credentials

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    def set_api_key(self, key: Optional[str]) -> None:
        cleaned = (key or "").strip()
        if not cleaned:
            raise InvalidApiKey()
        self._api_key = cleaned

    # media

    @property
    def has_media(self) -> bool:
        return self.image is not None or self.video_active

    @property
    def uses_video(self) -> bool:
        return self.source == "video" and self.video_active

    def select_source(self, source: str) -> None:
        if source not in MEDIA_SOURCES:
            raise TalkToPicError(f"Unknown media source: {source}")
        with self._lock:
            self.source = source  # type: ignore[assignment]

    def set_image(self, image: UploadedImage) -> None:
        with self._lock:
            self.stop_video()
            self.image = image
            self.source = "image"

    def start_video(self) -> None:
        with self._lock:
            self.image = None
            self.video_active = True
            self.source = "video"

    def stop_video(self) -> None:
        with self._lock:
            if not self.video_active:
                return
            self.video_active = False
            self.frames.clear()

    def capture_frame(self, data_url: str, timestamp: Optional[str] = None) -> CapturedFrame:
        mime_type, payload = decode_data_url(data_url)
        frame = CapturedFrame(
            id=int(time.time() * 1000),
            timestamp=timestamp or datetime.now().strftime("%I:%M:%S %p").lstrip("0"),
            base64=payload,
            mime_type=mime_type,
        )
        with self._lock:
            if not self.video_active:
                raise VideoNotActive()
            self.frames.append(frame)
        return frame

    # conversation

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    def append(self, role: Role, content: str, is_error: bool = False) -> ChatMessage:
        message = ChatMessage(role=role, content=content, is_error=is_error)
        with self._lock:
            self._messages.append(message)
        return message

    @property
    def is_loading(self) -> bool:
        return self._loading

    def begin_request(self) -> None:
        with self._lock:
            if self._loading:
                raise RequestInProgress()
            self._loading = True

    def end_request(self) -> None:
        with self._lock:
            self._loading = False

    # UI strings

    def placeholder_text(self) -> str:
        if self.uses_video:
            return "Ask something about the live video..."
        if self.image is not None:
            return "Ask something about the image..."
        return "Upload an image or start video mode first"

    def empty_chat_hint(self) -> str:
        if not self.has_media:
            return "Upload an image or start video mode to begin the conversation."
        if self.voice_mode:
            return "Start asking questions using voice or text!"
        return "Start asking questions!"

    def loading_label(self) -> str:
        return "Analyzing video frame..." if self.source == "video" else "Analyzing image..."

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            return {
                "session_id": self.session_id,
                "has_api_key": self.has_api_key,
                "token_expires_at": self.token_expires_at,
                "voice_mode": self.voice_mode,
                "source": self.source,
                "has_image": self.image is not None,
                "video_active": self.video_active,
                "frames_captured": len(self.frames),
                "is_loading": self.is_loading,
                "ready": self.has_media,
                "placeholder": self.placeholder_text(),
                "hint": self.empty_chat_hint(),
                "loading_label": self.loading_label(),
                "messages": [m.to_dict() for m in self._messages],
            }


class SessionStore:
    """Open sessions keyed by id.

    Sessions idle for longer than ``ttl_seconds`` are evicted on the next
    ``create()`` or when looked up, unless a model request is in flight.
    """

    def __init__(
        self,
        frame_buffer_size: int = 5,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._frame_buffer_size = frame_buffer_size
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, ChatSession] = {}
        self._lock = threading.Lock()

    def _expired(self, session: ChatSession, now: float) -> bool:
        return not session.is_loading and now - session.last_seen > self._ttl_seconds

    def _evict_idle(self, now: float) -> List[ChatSession]:
        idle = [s for s in self._sessions.values() if self._expired(s, now)]
        for session in idle:
            del self._sessions[session.session_id]
        return idle

    def create(self) -> ChatSession:
        session = ChatSession(frame_buffer_size=self._frame_buffer_size)
        now = self._clock()
        session.last_seen = now
        with self._lock:
            evicted = self._evict_idle(now)
            self._sessions[session.session_id] = session
        for old in evicted:
            old.stop_video()
        return session

    def get(self, session_id: str) -> ChatSession:
        now = self._clock()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and self._expired(session, now):
                del self._sessions[session_id]
                session = None
            elif session is not None:
                session.last_seen = now
        if session is None:
            raise SessionNotFound()
        return session

    def discard(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound()
        session.stop_video()

    def __len__(self) -> int:
        return len(self._sessions)
