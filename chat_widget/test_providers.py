"""
Tests for the provider adapters. HTTP is served by httpx.MockTransport; nothing
leaves the process.
"""

import asyncio
import json

import httpx
import pytest

from chat_widget.exceptions import ProviderError, UnknownProviderError
from chat_widget.models import Message
from chat_widget.providers import (
    ANTHROPIC_API_URL,
    OPENAI_API_URL,
    AnthropicProvider,
    OpenAIProvider,
    build_providers,
    get_provider,
    send,
)

HISTORY = [
    Message(role="assistant", content="Hello! How can I help you today?"),
    Message(role="user", content="hello"),
]
HISTORY_JSON = [
    {"role": "assistant", "content": "Hello! How can I help you today?"},
    {"role": "user", "content": "hello"},
]


def _transport(status=200, body=None, raw=None, captured=None):
    def handler(request: httpx.Request):
        if captured is not None:
            captured.append(request)
        if raw is not None:
            return httpx.Response(status, content=raw)
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler)


def _send(provider, api_key="sk-test", messages=HISTORY):
    return asyncio.run(provider.send(api_key, messages))


# ── Anthropic ─────────────────────────────────────────────────

class TestAnthropicProvider:
    def test_request_shape(self):
        captured = []
        provider = AnthropicProvider(_transport(body={"content": [{"type": "text", "text": "hi"}]}, captured=captured))
        _send(provider, api_key="sk-ant-x")

        assert len(captured) == 1
        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == ANTHROPIC_API_URL
        assert request.headers["x-api-key"] == "sk-ant-x"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert request.headers["content-type"] == "application/json"
        assert "authorization" not in request.headers
        assert json.loads(request.content) == {
            "model": "claude-3-5-sonnet-20241022",
            "max_tokens": 2048,
            "messages": HISTORY_JSON,
        }

    def test_reply_is_first_content_block(self):
        body = {"content": [{"type": "text", "text": "hi there"}, {"type": "text", "text": "ignored"}]}
        assert _send(AnthropicProvider(_transport(body=body))) == "hi there"

    def test_error_message_from_body(self):
        provider = AnthropicProvider(_transport(401, body={"type": "error", "error": {"message": "bad key"}}))
        with pytest.raises(ProviderError, match="^bad key$"):
            _send(provider)

    def test_empty_content_is_unexpected_format(self):
        with pytest.raises(ProviderError, match="Unexpected response format"):
            _send(AnthropicProvider(_transport(body={"content": []})))


# ── OpenAI ────────────────────────────────────────────────────

class TestOpenAIProvider:
    def test_request_shape(self):
        captured = []
        body = {"choices": [{"message": {"role": "assistant", "content": "hi"}}]}
        _send(OpenAIProvider(_transport(body=body, captured=captured)), api_key="sk-123")

        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == OPENAI_API_URL
        assert request.headers["authorization"] == "Bearer sk-123"
        assert "x-api-key" not in request.headers
        assert json.loads(request.content) == {"model": "gpt-4", "messages": HISTORY_JSON}

    def test_reply_is_first_choice(self):
        body = {"choices": [{"message": {"content": "first"}}, {"message": {"content": "second"}}]}
        assert _send(OpenAIProvider(_transport(body=body))) == "first"

    def test_null_content_is_unexpected_format(self):
        body = {"choices": [{"message": {"content": None}}]}
        with pytest.raises(ProviderError, match="Unexpected response format"):
            _send(OpenAIProvider(_transport(body=body)))

    def test_error_message_from_body(self):
        body = {"error": {"message": "Incorrect API key provided", "type": "invalid_request_error"}}
        with pytest.raises(ProviderError, match="Incorrect API key provided"):
            _send(OpenAIProvider(_transport(401, body=body)))


# ── Failures shared by both ───────────────────────────────────

@pytest.mark.parametrize("cls", [AnthropicProvider, OpenAIProvider])
class TestFailures:
    def test_error_without_message_is_generic(self, cls):
        with pytest.raises(ProviderError, match="^API request failed$"):
            _send(cls(_transport(500, body={"error": "boom"})))

    def test_non_json_error_body_is_generic(self, cls):
        with pytest.raises(ProviderError, match="^API request failed$"):
            _send(cls(_transport(502, raw=b"<html>Bad Gateway</html>")))

    def test_non_json_success_body(self, cls):
        with pytest.raises(ProviderError, match="Unexpected response format"):
            _send(cls(_transport(200, raw=b"not json")))

    def test_transport_failure_carries_its_message(self, cls):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(ProviderError, match="Connection refused"):
            _send(cls(httpx.MockTransport(handler)))

    def test_non_ascii_key_is_provider_error(self, cls):
        with pytest.raises(ProviderError, match="API key contains characters"):
            _send(cls(_transport(body={})), api_key="sk-\u2011x")

    def test_empty_key_rejected(self, cls):
        with pytest.raises(ValueError):
            _send(cls(_transport(body={})), api_key="")

    def test_empty_history_rejected(self, cls):
        with pytest.raises(ValueError):
            _send(cls(_transport(body={})), messages=[])


# ── Registry ──────────────────────────────────────────────────

def test_get_provider_by_name():
    assert isinstance(get_provider("anthropic"), AnthropicProvider)
    assert isinstance(get_provider("openai"), OpenAIProvider)


def test_get_provider_unknown():
    with pytest.raises(UnknownProviderError):
        get_provider("gemini")


def test_build_providers_has_both():
    providers = build_providers()
    assert set(providers) == {"anthropic", "openai"}


def test_module_send_dispatches_by_name():
    body = {"choices": [{"message": {"content": "via openai"}}]}
    reply = asyncio.run(send("openai", "sk-1", HISTORY, transport=_transport(body=body)))
    assert reply == "via openai"
