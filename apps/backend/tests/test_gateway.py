import sys
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import openai

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from workflow_sage.errors import ConfigurationError, LLMGatewayError
from workflow_sage.llm.gateway import LLMGateway, parse_completion_message, to_openai_message
from workflow_sage.llm.schema import FinalText, Message, ToolCall, ToolCallRequest
from workflow_sage.tools.base import ToolSpec


async def _noop(tool_call_id, params):
    return ""


SEARCH_SPEC = ToolSpec(
    name="web_search",
    description="Search",
    parameters={"type": "object", "properties": {"query": {"type": "string"}}, "required": ["query"]},
    execute=_noop,
)


def _completion(message) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class MessageTranslationTests(unittest.TestCase):
    def test_plain_roles(self) -> None:
        self.assertEqual(
            to_openai_message(Message.user("hi")), {"role": "user", "content": "hi"}
        )

    def test_tool_result_carries_call_id(self) -> None:
        payload = to_openai_message(Message.tool("call_9", "- result"))
        self.assertEqual(payload, {"role": "tool", "tool_call_id": "call_9", "content": "- result"})

    def test_assistant_tool_calls(self) -> None:
        call = ToolCall(id="call_9", name="web_search", arguments='{"query": "x"}')
        payload = to_openai_message(Message(role="assistant", tool_calls=[call]))

        self.assertIsNone(payload["content"])
        self.assertEqual(payload["tool_calls"][0]["id"], "call_9")
        self.assertEqual(payload["tool_calls"][0]["type"], "function")
        self.assertEqual(payload["tool_calls"][0]["function"]["arguments"], '{"query": "x"}')


class ParseCompletionTests(unittest.TestCase):
    def test_text_reply(self) -> None:
        result = parse_completion_message(SimpleNamespace(content="Hello", tool_calls=None))
        self.assertIsInstance(result, FinalText)
        self.assertEqual(result.text, "Hello")

    def test_tool_call_reply_keeps_raw_arguments(self) -> None:
        raw = SimpleNamespace(
            id="call_1",
            type="function",
            function=SimpleNamespace(name="web_search", arguments='{"query": "rpa"}'),
        )
        result = parse_completion_message(SimpleNamespace(content=None, tool_calls=[raw]))

        self.assertIsInstance(result, ToolCallRequest)
        self.assertEqual(result.calls[0].arguments, '{"query": "rpa"}')
        self.assertEqual(result.message.role, "assistant")
        self.assertEqual(result.message.tool_calls[0].id, "call_1")


class GatewayGenerateTests(unittest.IsolatedAsyncioTestCase):
    def _gateway(self, create: AsyncMock) -> LLMGateway:
        client = MagicMock()
        client.chat.completions.create = create
        return LLMGateway(api_key="test-key", model="gpt-4.1", client=client)

    async def test_request_shape(self) -> None:
        create = AsyncMock(return_value=_completion(SimpleNamespace(content="ok", tool_calls=None)))

        result = await self._gateway(create).generate(
            [Message.system("sys"), Message.user("hi")], [SEARCH_SPEC], max_tokens=2000
        )

        self.assertEqual(result.text, "ok")
        kwargs = create.await_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4.1")
        self.assertEqual(kwargs["temperature"], 0.7)
        self.assertEqual(kwargs["max_tokens"], 2000)
        self.assertEqual(kwargs["tools"][0]["function"]["name"], "web_search")

    async def test_no_tools_omits_declarations(self) -> None:
        create = AsyncMock(return_value=_completion(SimpleNamespace(content="ok", tool_calls=None)))
        await self._gateway(create).generate([Message.user("hi")])
        self.assertNotIn("tools", create.await_args.kwargs)

    async def test_sdk_error_becomes_gateway_error(self) -> None:
        create = AsyncMock(side_effect=openai.OpenAIError("boom"))
        with self.assertRaises(LLMGatewayError):
            await self._gateway(create).generate([Message.user("hi")])

    async def test_empty_choices(self) -> None:
        create = AsyncMock(return_value=SimpleNamespace(choices=[]))
        with self.assertRaises(LLMGatewayError):
            await self._gateway(create).generate([Message.user("hi")])

    async def test_missing_key(self) -> None:
        with self.assertRaises(ConfigurationError):
            await LLMGateway(api_key=None, model="gpt-4.1").generate([Message.user("hi")])


if __name__ == "__main__":
    unittest.main()
