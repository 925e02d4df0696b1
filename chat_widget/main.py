"""
Chat Widget
Single-page chat that relays the conversation to Anthropic or OpenAI.
Port: 8000

- Provider and API key are kept in a local SQLite file (two entries, nothing else)
- The conversation lives in memory for as long as the process runs
- Provider failures show up as assistant messages, never as HTTP errors
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Form, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from chat_widget.conversation import ChatSession, Conversation, greeting
from chat_widget.database import init_db
from chat_widget.dependencies import get_chat, get_conversation, get_store, get_view, require_same_origin
from chat_widget.exceptions import UnknownProviderException
from chat_widget.log_setup import configure_logging
from chat_widget.models import (
    DEFAULT_PROVIDER,
    PROVIDER_NAMES,
    ChatRequest,
    ChatResponse,
    HealthResponse,
    MessagesResponse,
    Preferences,
    SettingsResponse,
)
from chat_widget.preferences import PreferenceStore
from chat_widget.view import ChatView

load_dotenv()

# ── Config ────────────────────────────────────────────────────────────────────
AGENT_DESCRIPTION = os.getenv("AGENT_DESCRIPTION", "A sarcastic cooking assistant")
CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))

THIS_DIR = Path(__file__).parent
templates = Jinja2Templates(directory=str(THIS_DIR / "templates"))

logger = logging.getLogger(__name__)


def attach_widget(app: FastAPI, store: PreferenceStore, providers=None):
    """Wire a fresh conversation, turn handler and view onto the app, sharing one preference store."""
    conversation = Conversation(greeting(AGENT_DESCRIPTION))
    app.state.store = store
    app.state.conversation = conversation
    app.state.chat = ChatSession(conversation, store, providers)
    app.state.view = ChatView(conversation, title=AGENT_DESCRIPTION)


# ── App ───────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(LOG_LEVEL)
    init_db()
    logger.info("Chat widget started (agent=%r)", AGENT_DESCRIPTION)
    yield


app = FastAPI(title="Chat Widget", version="1.0.0", lifespan=lifespan)

# Cross-origin access is off unless origins are listed explicitly.
if CORS_ALLOW_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.state.allowed_origins = set(CORS_ALLOW_ORIGINS)
app.mount("/static", StaticFiles(directory=str(THIS_DIR / "static")), name="static")

attach_widget(app, PreferenceStore())


# ── Page ──────────────────────────────────────────────────────────────────────

@app.get("/")
async def index(
    request: Request,
    store: PreferenceStore = Depends(get_store),
    view: ChatView = Depends(get_view),
):
    state = view.snapshot(store.load())
    return templates.TemplateResponse(request, "index.html", {"state": state})


@app.post("/chat", dependencies=[Depends(require_same_origin)])
async def post_chat(message: str = Form(""), chat: ChatSession = Depends(get_chat)):
    await chat.submit(message)
    return RedirectResponse("/#messages-end", status_code=303)


@app.post("/settings", dependencies=[Depends(require_same_origin)])
async def save_settings(
    provider: str = Form(DEFAULT_PROVIDER),
    api_key: str = Form(""),
    store: PreferenceStore = Depends(get_store),
    view: ChatView = Depends(get_view),
):
    if provider not in PROVIDER_NAMES:
        raise UnknownProviderException(provider)
    saved = store.load()
    if not api_key.strip() and saved is not None:
        api_key = saved.api_key  # blank field keeps the stored key
    if store.save(Preferences(provider=provider, api_key=api_key)):
        view.close_settings(store.load())
        logger.info("Settings saved (provider=%s)", provider)
    return RedirectResponse("/", status_code=303)


@app.post("/settings/open", dependencies=[Depends(require_same_origin)])
async def open_settings(view: ChatView = Depends(get_view)):
    view.open_settings()
    return RedirectResponse("/", status_code=303)


@app.post("/settings/cancel", dependencies=[Depends(require_same_origin)])
async def cancel_settings(store: PreferenceStore = Depends(get_store), view: ChatView = Depends(get_view)):
    view.close_settings(store.load())
    return RedirectResponse("/", status_code=303)


@app.post("/settings/clear", dependencies=[Depends(require_same_origin)])
async def clear_settings(store: PreferenceStore = Depends(get_store), view: ChatView = Depends(get_view)):
    store.clear()
    view.open_settings()
    logger.info("Settings cleared")
    return RedirectResponse("/", status_code=303)


# ── JSON API ──────────────────────────────────────────────────────────────────

@app.get("/api/messages", response_model=MessagesResponse)
async def list_messages(conversation: Conversation = Depends(get_conversation)):
    return MessagesResponse(
        messages=list(conversation.messages),
        awaiting_response=conversation.awaiting_response,
    )


@app.post("/api/chat", response_model=ChatResponse, dependencies=[Depends(require_same_origin)])
async def api_chat(
    body: ChatRequest,
    chat: ChatSession = Depends(get_chat),
    conversation: Conversation = Depends(get_conversation),
):
    accepted = await chat.submit(body.message)
    return ChatResponse(accepted=accepted, messages=list(conversation.messages))


@app.get("/api/settings", response_model=SettingsResponse)
async def get_settings(store: PreferenceStore = Depends(get_store)):
    prefs = store.load()
    if prefs is None:
        return SettingsResponse(provider=DEFAULT_PROVIDER, has_api_key=False)
    return SettingsResponse(provider=prefs.provider, has_api_key=True)


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", service="chat-widget")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("chat_widget.main:app", host=HOST, port=PORT, reload=True)
