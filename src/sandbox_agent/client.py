# client.py
# Model client: sends the conversation and tool catalog, returns a ModelReply.
#
# The harness only depends on the ModelClient protocol. OpenAIModelClient
# speaks the Chat Completions API to any OpenAI-compatible endpoint; tools
# are declared by name and description only, with no parameter schema.

import json
import logging
import uuid
from typing import Any, Protocol, Sequence

import openai
from openai import OpenAI
from pydantic import ValidationError

from sandbox_agent.config import BASE_URLS, Settings, api_key_for
from sandbox_agent.errors import ConfigError, ModelInvocationError
from sandbox_agent.models import (
    AssistantMessage,
    CatalogEntry,
    ConversationMessage,
    ModelReply,
    SystemMessage,
    ToolCallRequest,
    ToolResultMessage,
    UserMessage,
)

logger = logging.getLogger(__name__)


class ModelClient(Protocol):
    def generate(
        self,
        messages: Sequence[ConversationMessage],
        catalog: Sequence[CatalogEntry],
    ) -> ModelReply: ...


# ---------------------------------------------------------------------------
# Wire conversion
# ---------------------------------------------------------------------------


def to_wire_messages(messages: Sequence[ConversationMessage]) -> list[dict[str, Any]]:
    """Render the conversation log in Chat Completions format."""
    wire: list[dict[str, Any]] = []
    for message in messages:
        if isinstance(message, (SystemMessage, UserMessage)):
            wire.append({"role": message.role, "content": message.content})
        elif isinstance(message, AssistantMessage):
            entry: dict[str, Any] = {"role": "assistant", "content": message.content}
            if message.tool_calls:
                entry["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": json.dumps(call.arguments, ensure_ascii=False),
                        },
                    }
                    for call in message.tool_calls
                ]
            wire.append(entry)
        elif isinstance(message, ToolResultMessage):
            wire.append({"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content})
    return wire


def to_wire_tools(catalog: Sequence[CatalogEntry]) -> list[dict[str, Any]]:
    return [
        {"type": "function", "function": {"name": entry.name, "description": entry.description}}
        for entry in catalog
    ]


def parse_arguments(raw: str | None) -> tuple[dict[str, Any], str | None]:
    """
    Decode tool-call argument text into a mapping.

    Returns (arguments, error). Malformed text yields ({}, reason) so the
    request can still be answered with a failure instead of crashing.
    """
    if raw is None or not raw.strip():
        return {}, None
    try:
        # strict=False tolerates literal newlines inside strings
        value = json.loads(raw, strict=False)
    except json.JSONDecodeError as exc:
        return {}, f"Arguments are not valid JSON: {exc}"
    if not isinstance(value, dict):
        return {}, f"Arguments must be a JSON object, got {type(value).__name__}"
    return value, None


# ---------------------------------------------------------------------------
# OpenAI-compatible client
# ---------------------------------------------------------------------------


class OpenAIModelClient:
    """
    ModelClient backed by the openai SDK.

    Example:
        client = OpenAIModelClient(settings)
        reply = client.generate(conversation.messages, catalog(registry))
    """

    def __init__(self, settings: Settings) -> None:
        self.provider = settings.provider
        self.model = settings.model
        self.temperature = settings.temperature
        self.max_tokens = settings.max_tokens
        self.base_url = settings.resolved_base_url
        self._api_key = settings.api_key
        try:
            self._client = OpenAI(base_url=self.base_url, api_key=self._api_key)
        except openai.OpenAIError as exc:
            raise ConfigError(f"Cannot create a client for {self.provider}: {exc}") from exc
        logger.info("Initialised %s model %s", self.provider, self.model)

    def generate(
        self,
        messages: Sequence[ConversationMessage],
        catalog: Sequence[CatalogEntry],
    ) -> ModelReply:
        request: dict[str, Any] = {
            "model": self.model,
            "messages": to_wire_messages(messages),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if catalog:
            request["tools"] = to_wire_tools(catalog)

        try:
            response = self._client.chat.completions.create(**request)
        except openai.OpenAIError as exc:
            logger.error("Model call failed: %s", exc)
            raise ModelInvocationError(str(exc)) from exc

        if not response.choices:
            raise ModelInvocationError("Model returned no choices.")
        message = response.choices[0].message

        tool_calls: list[ToolCallRequest] = []
        seen: set[str] = set()
        try:
            for call in message.tool_calls or []:
                call_id = call.id
                if not call_id or call_id in seen:
                    # the wire format needs ids unique within one message
                    call_id = f"call_{uuid.uuid4().hex[:24]}"
                    logger.debug("Assigned id %s to tool call %r", call_id, call.function.name)
                seen.add(call_id)
                arguments, error = parse_arguments(call.function.arguments)
                tool_calls.append(
                    ToolCallRequest(id=call_id, name=call.function.name, arguments=arguments, argument_error=error)
                )
            return ModelReply(text=message.content, tool_calls=tool_calls)
        except (AttributeError, ValidationError) as exc:
            logger.error("Malformed model reply: %s", exc)
            raise ModelInvocationError(f"Model returned a malformed reply: {exc}") from exc

    def reconfigured(
        self,
        provider: str | None = None,
        model: str | None = None,
        api_key: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> "OpenAIModelClient":
        """A new client with some settings replaced; this one is left untouched."""
        new_provider = (provider or self.provider).lower()
        if new_provider == self.provider:
            base_url = self.base_url
            api_key = api_key or self._api_key
        else:
            base_url = BASE_URLS.get(new_provider)
            api_key = api_key or api_key_for(new_provider)
        settings = Settings(
            provider=new_provider,
            model=model or self.model,
            api_key=api_key,
            base_url=base_url,
            temperature=self.temperature if temperature is None else temperature,
            max_tokens=self.max_tokens if max_tokens is None else max_tokens,
        )
        return OpenAIModelClient(settings)

    def info(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
