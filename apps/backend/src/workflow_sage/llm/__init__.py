"""Language-model gateway and transcript message types."""

from .gateway import LLMGateway
from .schema import FinalText, GenerationResult, Message, ToolCall, ToolCallRequest

__all__ = [
    "FinalText",
    "GenerationResult",
    "LLMGateway",
    "Message",
    "ToolCall",
    "ToolCallRequest",
]
