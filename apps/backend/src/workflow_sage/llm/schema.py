"""Role-tagged messages and the two possible outcomes of a model call."""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel

Role = Literal["system", "user", "assistant", "tool"]


class ToolCall(BaseModel):
    """A single tool invocation requested by the model."""

    id: str
    name: str
    arguments: str  # raw JSON text, exactly as the model produced it


class Message(BaseModel):
    """One transcript entry. Insertion order is the turn order."""

    role: Role
    content: str = ""
    tool_call_id: Optional[str] = None
    tool_calls: list[ToolCall] = []

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role="assistant", content=content)

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> Message:
        return cls(role="tool", content=content, tool_call_id=tool_call_id)


class FinalText(BaseModel):
    """The model answered directly."""

    kind: Literal["final_text"] = "final_text"
    text: str


class ToolCallRequest(BaseModel):
    """The model asked for one or more tool calls instead of answering."""

    kind: Literal["tool_calls"] = "tool_calls"
    message: Message  # the assistant message carrying the calls, replayed verbatim
    calls: list[ToolCall]


GenerationResult = Union[FinalText, ToolCallRequest]
