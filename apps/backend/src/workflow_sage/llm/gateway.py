"""Language-model gateway over the OpenAI chat-completions API.

Translates role-tagged :class:`Message` transcripts into chat-completion
requests and folds the response into either :class:`FinalText` or a
:class:`ToolCallRequest`. The gateway never retries; transport-level retry
and timeout policy live in the SDK client it builds from settings.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional

import openai
from openai import AsyncOpenAI

from ..errors import ConfigurationError, LLMGatewayError
from .schema import FinalText, GenerationResult, Message, ToolCall, ToolCallRequest

if TYPE_CHECKING:
    from ..config import Settings
    from ..tools.base import ToolSpec

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7


def to_openai_message(message: Message) -> dict[str, Any]:
    """Render a transcript message in chat-completions wire format."""
    if message.role == "tool":
        return {
            "role": "tool",
            "tool_call_id": message.tool_call_id,
            "content": message.content,
        }

    payload: dict[str, Any] = {"role": message.role, "content": message.content}
    if message.role == "assistant" and message.tool_calls:
        payload["content"] = message.content or None
        payload["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": call.arguments},
            }
            for call in message.tool_calls
        ]
    return payload


def to_openai_tool(tool: ToolSpec) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters,
        },
    }


class LLMGateway:
    """Uniform ``generate(messages, tools?)`` call against a chat model."""

    def __init__(
        self,
        *,
        api_key: Optional[str],
        model: str,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        max_retries: int = 2,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> LLMGateway:
        return cls(
            api_key=settings.llm_api_key,
            model=settings.openai_model,
            base_url=settings.llm_base_url,
            timeout=settings.llm_timeout_seconds,
            max_retries=settings.llm_max_retries,
        )

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError(
                    "No model API key configured (set OPENAI_API_KEY or OPENROUTER_API_KEY)"
                )
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        return self._client

    async def generate(
        self,
        messages: Sequence[Message],
        tools: Optional[Sequence[ToolSpec]] = None,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: Optional[int] = None,
    ) -> GenerationResult:
        """Call the model once and return its final text or its tool request."""
        client = self._get_client()

        params: dict[str, Any] = {
            "model": self.model,
            "messages": [to_openai_message(m) for m in messages],
            "temperature": temperature,
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if tools:
            params["tools"] = [to_openai_tool(t) for t in tools]

        logger.debug(
            "Calling model with %d messages, %d tools",
            len(messages),
            len(tools or []),
            extra={"model": self.model},
        )

        try:
            response = await client.chat.completions.create(**params)
        except openai.OpenAIError as exc:
            logger.error("Model call failed: %s", exc, extra={"model": self.model})
            raise LLMGatewayError(f"Model call failed: {exc}") from exc

        if not response.choices:
            raise LLMGatewayError("Model returned no choices")

        return parse_completion_message(response.choices[0].message)


def parse_completion_message(message: Any) -> GenerationResult:
    """Fold an SDK completion message into the gateway's result types."""
    raw_calls = getattr(message, "tool_calls", None) or []
    if not raw_calls:
        return FinalText(text=message.content or "")

    calls: list[ToolCall] = []
    for raw in raw_calls:
        function = getattr(raw, "function", None)
        if function is None:
            raise LLMGatewayError(f"Unsupported tool call type: {getattr(raw, 'type', None)}")
        calls.append(
            ToolCall(id=raw.id, name=function.name, arguments=function.arguments or "")
        )

    assistant = Message(role="assistant", content=message.content or "", tool_calls=calls)
    return ToolCallRequest(message=assistant, calls=calls)
