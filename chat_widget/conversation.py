"""
Conversation state and the turn protocol.

A turn appends the user's message, calls the selected provider with the whole
history, and appends the reply. Provider failures become an assistant message
instead of an exception. The awaiting_response flag is the only guard against
overlapping turns; it is checked and set without an await in between, so on a
single event loop no lock is needed.

History is never trimmed: every turn resends everything, so long sessions grow
the request size without bound.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from chat_widget.exceptions import ProviderError, UnknownProviderError
from chat_widget.models import Message
from chat_widget.preferences import PreferenceStore
from chat_widget.providers import BaseProvider, build_providers

logger = logging.getLogger(__name__)

ERROR_TEMPLATE = "Error: {error}. Please check your API key in settings."


def greeting(agent_description: str) -> str:
    return f"Hello! I'm {agent_description}. How can I help you today?"


class Conversation:
    """Append-only list of messages plus the in-flight flag. Notifies subscribers on every change."""

    def __init__(self, greeting_text: str):
        self._messages: List[Message] = [Message(role="assistant", content=greeting_text)]
        self._awaiting_response = False
        self._subscribers: List[Callable[["Conversation"], None]] = []

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def awaiting_response(self) -> bool:
        return self._awaiting_response

    def subscribe(self, callback: Callable[["Conversation"], None]) -> Callable[[], None]:
        """Register callback for change notifications. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def append(self, message: Message):
        self._messages.append(message)
        self._notify()

    def set_awaiting_response(self, value: bool):
        if self._awaiting_response != value:
            self._awaiting_response = value
            self._notify()

    def _notify(self):
        for callback in list(self._subscribers):
            callback(self)


class ChatSession:
    def __init__(
        self,
        conversation: Conversation,
        store: PreferenceStore,
        providers: Optional[Dict[str, BaseProvider]] = None,
    ):
        self.conversation = conversation
        self.store = store
        self.providers = providers if providers is not None else build_providers()

    def can_submit(self, text: str) -> bool:
        if not text or not text.strip():
            return False
        if self.conversation.awaiting_response:
            return False
        return self.store.load() is not None

    async def submit(self, text: str) -> bool:
        """
        Run one turn. Returns False without touching the conversation when
        the text is blank, a turn is already in flight, or no key is saved.
        """
        if not text or not text.strip() or self.conversation.awaiting_response:
            return False
        prefs = self.store.load()
        if prefs is None:
            return False
        provider = self.providers.get(prefs.provider)
        if provider is None:
            raise UnknownProviderError(prefs.provider)

        self.conversation.append(Message(role="user", content=text))
        self.conversation.set_awaiting_response(True)
        try:
            try:
                reply = await provider.send(prefs.api_key, self.conversation.messages)
            except ProviderError as e:
                logger.warning("%s request failed: %s", prefs.provider, e)
                reply = ERROR_TEMPLATE.format(error=e)
            self.conversation.append(Message(role="assistant", content=reply))
        finally:
            self.conversation.set_awaiting_response(False)
        return True
