"""Service layer modules for polyglot-chat."""

from .archive import ChatArchive, ChatNotFound
from .chat import ChatRequest, ChatResult, ChatService, RequestCancelled

__all__ = ["ChatArchive", "ChatNotFound", "ChatRequest", "ChatResult", "ChatService", "RequestCancelled"]
