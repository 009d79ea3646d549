from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from assistant.core.errors import TokenExchangeError
from config.settings import get_settings
from token_service.google_tokens import create_ephemeral_token


settings = get_settings()

logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("talktopic.token")

SERVICE_NAME = "TalkToPic Token Service"

app = FastAPI(title=SERVICE_NAME, version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "x-goog-api-key"],
)


class TokenRequest(BaseModel):
    apiKey: Optional[str] = Field(default=None, description="User's Gemini API key")


@app.get("/health")
def health() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


@app.post("/generate-token")
def generate_token(req: TokenRequest):
    api_key = (req.apiKey or "").strip()
    if not api_key:
        return JSONResponse(
            status_code=400,
            content={
                "error": "API key is required",
                "details": "Please provide your Gemini API key",
            },
        )

    try:
        token = create_ephemeral_token(api_key)
    except TokenExchangeError as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "details": exc.details, "status": exc.status_code},
        )
    except Exception as exc:
        logger.exception("Error generating ephemeral token: %s", exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "details": "Failed to generate token due to server error",
            },
        )

    logger.info("Issued ephemeral token expiring at %s", token["expiresAt"])
    return {"success": True, "token": token["token"], "expiresAt": token["expiresAt"]}


def run() -> None:
    logger.info("%s running on port %s", SERVICE_NAME, settings.token_service_port)
    logger.info("Health check: http://localhost:%s/health", settings.token_service_port)
    logger.info("Token endpoint: http://localhost:%s/generate-token", settings.token_service_port)
    uvicorn.run(app, host="0.0.0.0", port=settings.token_service_port)


if __name__ == "__main__":
    run()
