from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend.core.llm import ALTERNATIVE_MODELS, UpstreamError
from backend.core.session_store import SessionStore
from backend.event_log import add_event
from backend.services.attachments import StoredUpload, cleanup, save_upload
from backend.services.chat import ChatRequest, ChatService, RequestCancelled, new_request_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


class CancelRequest(BaseModel):
    request_id: Optional[str] = Field(default=None, alias="requestId")


class CancelResponse(BaseModel):
    success: bool
    message: str


def get_store(request: Request) -> SessionStore:
    return request.app.state.store


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def _store_uploads(request: Request, files: List[UploadFile]) -> List[StoredUpload]:
    settings = request.app.state.settings
    if len(files) > settings.max_files:
        raise ValueError(f"At most {settings.max_files} files per message.")
    upload_dir: Path = request.app.state.upload_dir
    stored: List[StoredUpload] = []
    try:
        for f in files:
            stored.append(save_upload(upload_dir, f.filename or "", f.content_type, f.file, settings.max_upload_bytes))
    except ValueError:
        cleanup(stored)
        raise
    return stored


def _upstream_failure(exc: UpstreamError, rid: str) -> JSONResponse:
    add_event("chat.error", {"request_id": rid, "status": exc.status, "error": str(exc)[:240]})
    if exc.rate_limited:
        logger.error("Rate limit exceeded (429) for request %s", rid)
        return JSONResponse(
            status_code=429,
            content={
                "error": "Rate limit exceeded",
                "message": "Too many requests. Please wait a moment and try again. "
                "The free tier has limits on requests per minute.",
                "retryAfter": 60,
            },
        )
    if "not found" in str(exc).lower():
        logger.error("Model not found. Try one of: %s", ", ".join(ALTERNATIVE_MODELS))
    status = exc.status if 400 <= exc.status < 600 else 500
    return JSONResponse(status_code=status, content={"error": "Failed to process request", "message": str(exc)})


@router.post("")
def chat(
    request: Request,
    message: str = Form(""),
    session_id: str = Form("", alias="sessionId"),
    request_id: Optional[str] = Form(None, alias="requestId"),
    auto_analyze: str = Form("false", alias="autoAnalyze"),
    language: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    service: ChatService = Depends(get_chat_service),
) -> Any:
    rid = request_id or new_request_id()
    sid = session_id.strip() or "default"
    try:
        uploads = _store_uploads(request, files or [])
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        result = service.handle(
            ChatRequest(
                session_id=sid,
                message=message,
                request_id=rid,
                language=language,
                auto_analyze=auto_analyze.lower() == "true",
                uploads=uploads,
            )
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RequestCancelled:
        add_event("chat.cancelled", {"sid": sid, "request_id": rid})
        return JSONResponse(status_code=499, content={"error": "Request cancelled"})
    except UpstreamError as exc:
        return _upstream_failure(exc, rid)
    except Exception as exc:  # pragma: no cover - unexpected failures propagated
        logger.exception("Chat request %s failed", rid)
        add_event("chat.error", {"request_id": rid, "error": str(exc)[:240]})
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process request", "message": str(exc) or "An unexpected error occurred"},
        )
    finally:
        cleanup(uploads)

    add_event(
        "chat.success",
        {
            "sid": sid,
            "request_id": rid,
            "files": len(uploads),
            "suggestions": len(result.suggestions),
            "reply_preview": result.response[:160],
        },
    )
    return {"response": result.response, "suggestions": result.suggestions, "sessionId": result.session_id}


@router.post("/cancel", response_model=CancelResponse)
def cancel(payload: CancelRequest, store: SessionStore = Depends(get_store)) -> CancelResponse:
    if payload.request_id and store.cancel_request(payload.request_id):
        add_event("chat.cancel_signal", {"request_id": payload.request_id, "found": True})
        return CancelResponse(success=True, message="Request cancelled")
    add_event("chat.cancel_signal", {"request_id": payload.request_id, "found": False})
    return CancelResponse(success=False, message="Request not found")


__all__ = ["router", "get_store", "get_chat_service"]
