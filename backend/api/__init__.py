"""API package that assembles FastAPI routers."""

from .routers.archive import router as archive_router
from .routers.chat import router as chat_router

__all__ = ["archive_router", "chat_router"]
