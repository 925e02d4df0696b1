"""
Chat view: turns conversation state and preferences into what the page shows.

ChatView subscribes to the Conversation and keeps a rendered copy of the
message list. Messages never change or move once appended, so only new ones
are rendered on each notification.
"""

from typing import List, Optional

from markdown_it import MarkdownIt
from pydantic import BaseModel

from chat_widget.conversation import Conversation
from chat_widget.models import DEFAULT_PROVIDER, Preferences, Role
from chat_widget.providers import PROVIDERS

INPUT_PLACEHOLDER = "Type your message..."
INPUT_PLACEHOLDER_NO_KEY = "Configure API key in settings first..."
KEY_SAVED_PLACEHOLDER = "Key saved. Leave blank to keep it"

# Raw HTML in message content is shown as text, not injected into the page.
_markdown = MarkdownIt("commonmark", {"html": False}).enable(["table", "strikethrough"])


def render_markdown(text: str) -> str:
    return _markdown.render(text)


class RenderedMessage(BaseModel):
    role: Role
    html: str


class ProviderOption(BaseModel):
    name: str
    label: str
    vendor: str
    key_placeholder: str


class ViewState(BaseModel):
    title: str
    messages: List[RenderedMessage]
    loading: bool
    has_api_key: bool
    show_settings: bool
    input_enabled: bool
    can_cancel_settings: bool
    save_enabled: bool
    provider: str
    vendor: str
    input_placeholder: str
    key_placeholder: str
    provider_options: List[ProviderOption]


def submit_enabled(state: ViewState, text: str) -> bool:
    return state.input_enabled and bool(text and text.strip())


def save_enabled(api_key: str, has_saved_key: bool = False) -> bool:
    """A blank field is only accepted when it means 'keep the saved key'."""
    return has_saved_key or bool(api_key and api_key.strip())


class ChatView:
    def __init__(self, conversation: Conversation, title: str = ""):
        self.title = title
        self.settings_requested = False
        self._rendered: List[RenderedMessage] = []
        self._loading = False
        self._unsubscribe = conversation.subscribe(self.refresh)
        self.refresh(conversation)

    def refresh(self, conversation: Conversation):
        messages = conversation.messages
        for message in messages[len(self._rendered):]:
            self._rendered.append(RenderedMessage(role=message.role, html=render_markdown(message.content)))
        self._loading = conversation.awaiting_response

    def close(self):
        self._unsubscribe()

    def open_settings(self):
        self.settings_requested = True

    def close_settings(self, prefs: Optional[Preferences]) -> bool:
        """The modal can only be dismissed once a key is saved."""
        if prefs is None:
            return False
        self.settings_requested = False
        return True

    def snapshot(self, prefs: Optional[Preferences]) -> ViewState:
        has_key = prefs is not None
        provider_name = prefs.provider if has_key else DEFAULT_PROVIDER
        provider = PROVIDERS[provider_name]
        return ViewState(
            title=self.title,
            messages=list(self._rendered),
            loading=self._loading,
            has_api_key=has_key,
            show_settings=not has_key or self.settings_requested,
            input_enabled=has_key and not self._loading,
            can_cancel_settings=has_key,
            save_enabled=save_enabled("", has_saved_key=has_key),
            provider=provider_name,
            vendor=provider.vendor,
            input_placeholder=INPUT_PLACEHOLDER if has_key else INPUT_PLACEHOLDER_NO_KEY,
            key_placeholder=KEY_SAVED_PLACEHOLDER if has_key else provider.key_placeholder,
            provider_options=[
                ProviderOption(name=name, label=cls.label, vendor=cls.vendor, key_placeholder=cls.key_placeholder)
                for name, cls in PROVIDERS.items()
            ],
        )
