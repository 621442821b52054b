from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from backend.event_log import add_event
from backend.services.archive import ChatArchive, ChatNotFound

router = APIRouter(prefix="/api/chat", tags=["archive"])


class SaveRequest(BaseModel):
    session_id: str = Field(..., alias="sessionId")
    chat_name: Optional[str] = Field(default=None, alias="chatName")


def get_archive(request: Request) -> ChatArchive:
    return request.app.state.archive


@router.post("/save")
def save_chat(payload: SaveRequest, archive: ChatArchive = Depends(get_archive)) -> Dict[str, Any]:
    try:
        filename = archive.save(payload.session_id, payload.chat_name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ChatNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except OSError as exc:
        raise HTTPException(status_code=500, detail=f"Failed to save chat: {exc}") from exc
    add_event("archive.saved", {"sid": payload.session_id, "filename": filename})
    return {"success": True, "filename": filename, "message": "Chat saved successfully"}


@router.get("/load/{filename}")
def load_chat(filename: str, archive: ChatArchive = Depends(get_archive)) -> Dict[str, Any]:
    try:
        return archive.load(filename)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ChatNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/saved")
def list_saved(archive: ChatArchive = Depends(get_archive)) -> List[Dict[str, Any]]:
    try:
        return archive.list()
    except OSError as exc:
        raise HTTPException(status_code=500, detail=f"Failed to list chats: {exc}") from exc


__all__ = ["router"]
