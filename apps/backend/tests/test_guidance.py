import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from workflow_sage.errors import BadRequestError, LLMGatewayError
from workflow_sage.guidance.expander import GuidanceExpander, load_workflow_context
from workflow_sage.llm.schema import FinalText
from workflow_sage.prompts import PromptSet
from workflow_sage.storage.store import WorkflowStore
from workflow_sage.workflow.diagram import compile_diagram
from workflow_sage.workflow.schema import WorkflowRecord

PROMPTS = PromptSet(
    discovery="discovery protocol",
    opportunities="opportunity protocol",
    guidance_prompt_generator="prompt generator",
    implementation_consultant="consultant",
)


class GuidanceExpanderTests(unittest.IsolatedAsyncioTestCase):
    async def test_two_calls_with_first_output_passed_verbatim(self) -> None:
        gateway = AsyncMock()
        gateway.generate.side_effect = [
            FinalText(text="  Explain how to automate invoice OCR.\n"),
            FinalText(text="1. Pick an OCR vendor"),
        ]

        guidance = await GuidanceExpander(gateway, PROMPTS).expand("Invoice OCR")

        self.assertEqual(guidance, "1. Pick an OCR vendor")
        self.assertEqual(gateway.generate.await_count, 2)

        first_messages = gateway.generate.await_args_list[0].args[0]
        self.assertEqual([m.role for m in first_messages], ["system", "user"])
        self.assertEqual(first_messages[0].content, "prompt generator")
        self.assertEqual(first_messages[1].content, "Invoice OCR")
        self.assertEqual(gateway.generate.await_args_list[0].kwargs["max_tokens"], 500)

        second_messages = gateway.generate.await_args_list[1].args[0]
        self.assertEqual(second_messages[0].content, "consultant")
        self.assertEqual(second_messages[1].content, "  Explain how to automate invoice OCR.\n")
        self.assertEqual(gateway.generate.await_args_list[1].kwargs["max_tokens"], 1500)

    async def test_workflow_context_appended_to_consultant_prompt(self) -> None:
        gateway = AsyncMock()
        gateway.generate.side_effect = [FinalText(text="prompt"), FinalText(text="guidance")]

        await GuidanceExpander(gateway, PROMPTS).expand("Invoice OCR", "\nContext block\n")

        system = gateway.generate.await_args_list[1].args[0][0].content
        self.assertEqual(system, "consultant\n\n\nContext block\n")

    async def test_first_failure_aborts_without_second_call(self) -> None:
        gateway = AsyncMock()
        gateway.generate.side_effect = LLMGatewayError("upstream down")

        with self.assertRaises(LLMGatewayError):
            await GuidanceExpander(gateway, PROMPTS).expand("Invoice OCR")
        self.assertEqual(gateway.generate.await_count, 1)

    async def test_empty_opportunity_rejected(self) -> None:
        gateway = AsyncMock()
        with self.assertRaises(BadRequestError):
            await GuidanceExpander(gateway, PROMPTS).expand("   ")
        gateway.generate.assert_not_awaited()


class WorkflowContextTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp_dir = Path(tempfile.mkdtemp(prefix="guidance-tests-"))
        self.store = WorkflowStore(self.tmp_dir / "test.db")

    def tearDown(self) -> None:
        self.store.close()
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_context_for_known_workflow(self) -> None:
        workflow = self.store.create_workflow("user-1")
        record = WorkflowRecord(
            title="Invoice Approval",
            start_event="Invoice received",
            end_event="Invoice paid",
            steps=[{"id": "s1", "description": "Log invoice"}],
            people=[],
            systems=[],
            pain_points=["Slow"],
        )
        self.store.save_workflow_record(workflow.id, record, compile_diagram(record))

        context = load_workflow_context(self.store, workflow.id)

        self.assertTrue(context.startswith('\nThis opportunity is for the workflow: "Invoice Approval"\n'))
        self.assertIn('"pain_points": [', context)

    def test_missing_workflow_adds_no_context(self) -> None:
        self.assertIsNone(load_workflow_context(self.store, "nope"))
        self.assertIsNone(load_workflow_context(self.store, None))


if __name__ == "__main__":
    unittest.main()
