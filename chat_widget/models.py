"""Chat Widget: conversation, preference and request/response models."""

from typing import List, Literal, get_args

from pydantic import BaseModel, ConfigDict

Role = Literal["user", "assistant"]
ProviderName = Literal["anthropic", "openai"]

PROVIDER_NAMES = get_args(ProviderName)
DEFAULT_PROVIDER: ProviderName = "anthropic"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class Preferences(BaseModel):
    provider: ProviderName = DEFAULT_PROVIDER
    api_key: str = ""


# ── API payloads ──────────────────────────────────────────────────────────────

class ChatRequest(BaseModel):
    message: str


class ChatResponse(BaseModel):
    accepted: bool
    messages: List[Message]


class MessagesResponse(BaseModel):
    messages: List[Message]
    awaiting_response: bool


class SettingsResponse(BaseModel):
    provider: ProviderName
    has_api_key: bool


class HealthResponse(BaseModel):
    status: str
    service: str
