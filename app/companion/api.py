"""
HTTP transport for the companion. Nothing is wired at import time; serve it
through the factory:

    uvicorn --factory companion.api:create_app --app-dir app
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from .config import get_settings
from .controller import ConversationController
from .errors import InvalidInput, StorageFailure


logger = logging.getLogger("companion.api")


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = Field(None, description="User's latest message")
    session_id: Optional[str] = Field(
        None,
        alias="sessionId",
        description="Opaque conversation key; assigned by the server when missing",
    )


class SynthesizeRequest(BaseModel):
    text: Optional[str] = Field(None, description="Text to read out loud")


def create_app(controller: Optional[ConversationController] = None) -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level, format="[%(asctime)s] %(levelname)s - %(message)s"
    )
    controller = controller or ConversationController.from_settings(settings)

    app = FastAPI(title="Voice Chat Companion", version="1.0.0")
    app.state.controller = controller

    # CORS: allow local frontend during development
    if settings.is_dev:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(InvalidInput)
    def _invalid_input(request: Request, exc: InvalidInput):
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})

    @app.exception_handler(StorageFailure)
    def _storage_failure(request: Request, exc: StorageFailure):
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Conversation storage is unavailable."},
        )

    @app.post("/api/chat")
    def chat(req: ChatRequest) -> Dict[str, Any]:
        session_id = req.session_id or uuid.uuid4().hex
        logger.info(
            "Incoming chat: session=%s message_len=%s",
            session_id,
            len(req.message or ""),
        )
        result = controller.send_message(session_id, req.message)
        return {
            "success": True,
            "response": result.reply,
            "sessionId": result.session_id,
            "fallback": result.fallback,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/api/transcribe")
    def transcribe(audio: Optional[UploadFile] = File(None)) -> Dict[str, Any]:
        if audio is None:
            raise InvalidInput("No audio file provided")
        data = audio.file.read()
        text = controller.transcribe(data)
        return {"success": True, "text": text}

    @app.post("/api/synthesize")
    def synthesize(req: SynthesizeRequest):
        audio = controller.speak(req.text)
        if not audio:
            return Response(status_code=204)
        return Response(content=audio, media_type="audio/mpeg")

    @app.get("/api/sessions/{session_id}/messages")
    def messages(session_id: str) -> Dict[str, Any]:
        return {"messages": controller.history(session_id)}

    @app.get("/api/sessions/{session_id}/context")
    def get_context(session_id: str) -> Dict[str, Any]:
        return {"context": controller.get_context(session_id)}

    @app.put("/api/sessions/{session_id}/context")
    def update_context(
        session_id: str, updates: Dict[str, Any] = Body(...)
    ) -> Dict[str, Any]:
        context = controller.update_context(session_id, updates)
        return {"success": True, "context": context}

    @app.get("/health")
    def health():
        return {"status": "ok", "model_ready": controller.is_ready()}

    return app

