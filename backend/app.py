from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.api import archive_router, chat_router
from backend.core.config import Settings, settings as default_settings
from backend.core.llm import load_llm_config
from backend.core.session_store import SessionStore
from backend.event_log import events as event_log
from backend.services import ChatArchive, ChatService

logger = logging.getLogger(__name__)


def create_app(
    store: Optional[SessionStore] = None,
    chat_service: Optional[ChatService] = None,
    archive: Optional[ChatArchive] = None,
    upload_dir: Optional[Path] = None,
    settings: Settings = default_settings,
) -> FastAPI:
    """Build the API with its own session store; tests pass isolated pieces."""
    if store is None:
        store = chat_service.store if chat_service else SessionStore(max_turns=settings.max_history_turns)
    if chat_service is None:
        llm_cfg = load_llm_config()
        chat_service = ChatService(store, llm_cfg)
        if not llm_cfg.api_key and llm_cfg.provider == "gemini":
            logger.warning("GEMINI_API_KEY not set in environment variables")

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.store = store
    app.state.chat_service = chat_service
    app.state.archive = archive or ChatArchive(store, settings.saved_chats_dir)
    app.state.upload_dir = upload_dir or settings.upload_dir

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(chat_router)
    app.include_router(archive_router)

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "message": "Server is running"}

    @app.get("/logs")
    def get_logs(limit: int = 100, kind: Optional[str] = None) -> dict:
        safe_limit = max(1, min(limit, event_log.capacity))
        entries = event_log.recent(safe_limit, kind)
        return {"count": len(entries), "totals": event_log.totals(), "logs": entries}

    return app


app = create_app()

if __name__ == "__main__":
    import os

    import uvicorn

    logging.basicConfig(level=default_settings.log_level, format="[%(asctime)s] %(levelname)s %(name)s - %(message)s")
    uvicorn.run("backend.app:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
