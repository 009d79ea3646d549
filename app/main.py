from __future__ import annotations

from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
import logging
from pydantic import BaseModel, Field

from app.ui import render_page
from assistant.assistant import ask
from assistant.core.errors import TalkToPicError, UploadTooLarge
from assistant.core.media import load_upload, preview_data_url
from assistant.core.prompt import PREDEFINED_PROMPTS
from assistant.core.session import ChatSession, SessionStore
from config.settings import get_settings
from token_service.client import TokenServiceClient


settings = get_settings()

logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("talktopic")

app = FastAPI(title="TalkToPic", version="1.0.0")

# CORS: allow local frontend during development
if settings.app_env.lower() in {"dev", "development", "local"}:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

sessions = SessionStore(
    frame_buffer_size=settings.frame_buffer_size,
    ttl_seconds=settings.session_ttl_seconds,
)


class ApiKeyRequest(BaseModel):
    api_key: str = Field(..., description="User's Gemini API key, kept in memory only")


class VoiceRequest(BaseModel):
    enabled: bool


class SourceRequest(BaseModel):
    source: str = Field(..., description="'image' or 'video'")


class FrameRequest(BaseModel):
    data_url: str = Field(..., description="Canvas capture as a base64 data URL")
    timestamp: Optional[str] = Field(default=None, description="Capture time shown to the model")


class ChatRequest(BaseModel):
    message: str = Field(..., description="User's question")
    frame: Optional[FrameRequest] = Field(
        default=None, description="Frame captured for this turn when the live video is the source"
    )


class ChatReply(BaseModel):
    role: str
    content: str
    is_error: bool = False
    speak: bool = False


def _session(session_id: str) -> ChatSession:
    try:
        return sessions.get(session_id)
    except TalkToPicError as exc:
        raise _http_error(exc)


def _http_error(exc: TalkToPicError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return render_page(settings)


@app.get("/api/prompts")
def prompts() -> List[Dict[str, str]]:
    return [{"value": value, "label": label} for value, label in PREDEFINED_PROMPTS]


@app.post("/api/session")
def create_session() -> Dict[str, Any]:
    session = sessions.create()
    logger.info("Session created: %s (open sessions=%s)", session.session_id, len(sessions))
    return session.snapshot()


@app.get("/api/session/{session_id}")
def get_session(session_id: str) -> Dict[str, Any]:
    return _session(session_id).snapshot()


@app.delete("/api/session/{session_id}")
def delete_session(session_id: str) -> Dict[str, Any]:
    try:
        sessions.discard(session_id)
    except TalkToPicError as exc:
        raise _http_error(exc)
    logger.info("Session discarded: %s", session_id)
    return {"status": "ok"}


@app.post("/api/session/{session_id}/api-key")
def set_api_key(session_id: str, req: ApiKeyRequest) -> Dict[str, Any]:
    session = _session(session_id)
    api_key = req.api_key.strip()
    try:
        expires_at = None
        if api_key and settings.token_service_url:
            grant = TokenServiceClient(settings.token_service_url).generate_token(api_key)
            expires_at = grant.expires_at
            logger.info("Token exchanged for session %s, expires %s", session_id, expires_at)
        session.set_api_key(api_key)
        session.token_expires_at = expires_at
    except TalkToPicError as exc:
        logger.warning("API key rejected for session %s: %s", session_id, exc.message)
        raise _http_error(exc)
    return session.snapshot()


@app.put("/api/session/{session_id}/voice")
def set_voice(session_id: str, req: VoiceRequest) -> Dict[str, Any]:
    session = _session(session_id)
    session.voice_mode = req.enabled
    return session.snapshot()


@app.put("/api/session/{session_id}/source")
def set_source(session_id: str, req: SourceRequest) -> Dict[str, Any]:
    session = _session(session_id)
    try:
        session.select_source(req.source)
    except TalkToPicError as exc:
        raise _http_error(exc)
    return session.snapshot()


@app.post("/api/session/{session_id}/image")
def upload_image(session_id: str, file: UploadFile = File(...)) -> Dict[str, Any]:
    session = _session(session_id)
    data = file.file.read(settings.max_upload_bytes + 1)
    try:
        if len(data) > settings.max_upload_bytes:
            raise UploadTooLarge()
        image = load_upload(data, file.content_type, file.filename)
    except TalkToPicError as exc:
        logger.warning("Upload rejected for session %s: %s", session_id, exc.message)
        raise _http_error(exc)

    session.set_image(image)
    logger.info(
        "Image uploaded: session=%s mime=%s bytes=%s size=%sx%s",
        session_id,
        image.mime_type,
        image.size_bytes,
        image.width,
        image.height,
    )
    state = session.snapshot()
    state["preview"] = preview_data_url(image)
    return state


@app.post("/api/session/{session_id}/video/start")
def start_video(session_id: str) -> Dict[str, Any]:
    session = _session(session_id)
    session.start_video()
    return session.snapshot()


@app.post("/api/session/{session_id}/video/stop")
def stop_video(session_id: str) -> Dict[str, Any]:
    session = _session(session_id)
    session.stop_video()
    return session.snapshot()


@app.post("/api/session/{session_id}/video/frame")
def capture_frame(session_id: str, req: FrameRequest) -> Dict[str, Any]:
    session = _session(session_id)
    try:
        frame = session.capture_frame(req.data_url, req.timestamp)
    except TalkToPicError as exc:
        raise _http_error(exc)
    return {"id": frame.id, "timestamp": frame.timestamp, "frames_captured": len(session.frames)}


@app.post("/api/session/{session_id}/chat", response_model=ChatReply)
def chat(session_id: str, req: ChatRequest) -> ChatReply:
    session = _session(session_id)
    try:
        result = ask(
            session,
            req.message,
            frame_data_url=req.frame.data_url if req.frame else None,
            frame_timestamp=req.frame.timestamp if req.frame else None,
        )
    except TalkToPicError as exc:
        raise _http_error(exc)
    except Exception as e:
        logger.exception("Chat processing failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    return ChatReply(
        role=result.message.role,
        content=result.message.content,
        is_error=result.message.is_error,
        speak=result.speak,
    )


@app.get("/health")
def health():
    return {"status": "ok"}


def run() -> None:
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
