"""
LLM provider adapters.

Each provider turns the conversation into its own HTTP request shape and pulls
the reply text back out of its own response shape. One POST per call: no
retries, no streaming, no client-side timeout.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import httpx

from chat_widget.exceptions import ProviderError, UnknownProviderError
from chat_widget.models import Message

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "API request failed"
UNEXPECTED_FORMAT = "Unexpected response format"

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_MODEL = "claude-3-5-sonnet-20241022"
ANTHROPIC_MAX_TOKENS = 2048

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_MODEL = "gpt-4"


def _error_message(response: httpx.Response) -> str:
    """Pull error.message out of a failed response body, if it has one."""
    try:
        data = response.json()
    except ValueError:
        return GENERIC_FAILURE
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return GENERIC_FAILURE


class BaseProvider(ABC):
    """Common request/response handling; subclasses supply the wire format."""

    name = ""
    label = ""
    vendor = ""
    key_placeholder = ""
    url = ""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    @abstractmethod
    def build_headers(self, api_key: str) -> Dict[str, str]:
        ...

    @abstractmethod
    def build_body(self, history: List[Dict[str, str]]) -> dict:
        ...

    @abstractmethod
    def extract_reply(self, data: dict) -> str:
        ...

    async def send(self, api_key: str, messages: Sequence[Message]) -> str:
        """
        Send the full history and return the reply text.

        Raises ProviderError on a non-2xx status, a transport failure, or a
        success body that doesn't have the expected shape.
        """
        if not api_key:
            raise ValueError("api_key must not be empty")
        if not messages:
            raise ValueError("messages must not be empty")

        history = [{"role": m.role, "content": m.content} for m in messages]
        logger.info("Calling %s with %d messages", self.name, len(history))

        try:
            async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    headers=self.build_headers(api_key),
                    json=self.build_body(history),
                )
        except httpx.HTTPError as e:
            raise ProviderError(str(e) or type(e).__name__) from e
        except UnicodeEncodeError as e:
            # header values must be ASCII
            raise ProviderError("API key contains characters that cannot be sent in a request header") from e

        if not response.is_success:
            raise ProviderError(_error_message(response))

        try:
            reply = self.extract_reply(response.json())
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(UNEXPECTED_FORMAT) from e
        if not isinstance(reply, str):
            raise ProviderError(UNEXPECTED_FORMAT)
        return reply


class AnthropicProvider(BaseProvider):
    name = "anthropic"
    label = "Anthropic (Claude)"
    vendor = "Anthropic"
    key_placeholder = "sk-ant-..."
    url = ANTHROPIC_API_URL

    def build_headers(self, api_key):
        return {
            "Content-Type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def build_body(self, history):
        return {
            "model": ANTHROPIC_MODEL,
            "max_tokens": ANTHROPIC_MAX_TOKENS,
            "messages": history,
        }

    def extract_reply(self, data):
        return data["content"][0]["text"]


class OpenAIProvider(BaseProvider):
    name = "openai"
    label = "OpenAI (GPT-4)"
    vendor = "OpenAI"
    key_placeholder = "sk-..."
    url = OPENAI_API_URL

    def build_headers(self, api_key):
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    def build_body(self, history):
        return {
            "model": OPENAI_MODEL,
            "messages": history,
        }

    def extract_reply(self, data):
        return data["choices"][0]["message"]["content"]


# ── Registry ──────────────────────────────────────────────────────────────────

PROVIDERS = {
    AnthropicProvider.name: AnthropicProvider,
    OpenAIProvider.name: OpenAIProvider,
}


def get_provider(name: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> BaseProvider:
    cls = PROVIDERS.get(name)
    if cls is None:
        raise UnknownProviderError(name)
    return cls(transport=transport)


def build_providers(transport: Optional[httpx.AsyncBaseTransport] = None) -> Dict[str, BaseProvider]:
    """One instance of every registered provider, keyed by name."""
    return {name: cls(transport=transport) for name, cls in PROVIDERS.items()}


async def send(provider: str, api_key: str, messages: Sequence[Message], transport=None) -> str:
    return await get_provider(provider, transport).send(api_key, messages)
