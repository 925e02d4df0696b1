from urllib.parse import urlsplit

from fastapi import Header, Request

from chat_widget.conversation import ChatSession, Conversation
from chat_widget.exceptions import CrossOriginException
from chat_widget.preferences import PreferenceStore
from chat_widget.view import ChatView


def get_store(request: Request) -> PreferenceStore:
    return request.app.state.store


def get_conversation(request: Request) -> Conversation:
    return request.app.state.conversation


def get_chat(request: Request) -> ChatSession:
    return request.app.state.chat


def get_view(request: Request) -> ChatView:
    return request.app.state.view


def require_same_origin(request: Request, origin: str = Header(None)):
    """
    Refuses state-changing requests sent by another site's page. Browsers
    attach Origin to cross-site posts; requests without it (curl, tests) pass.
    """
    if origin is None:
        return
    if origin in request.app.state.allowed_origins:
        return
    if urlsplit(origin).netloc != request.headers.get("host"):
        raise CrossOriginException(origin)
