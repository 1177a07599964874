"""Opportunity generation: a bounded tool-mediation loop around the model.

States::

    INIT -> AWAIT_MODEL -> DONE
                        -> AWAIT_TOOL -> AWAIT_MODEL ... -> DONE

Tools are declared on the model call only while tool rounds remain
(``max_tool_rounds``, default 1). The call after the last round carries no
tool declarations, so the model must answer; a tool request at that point is
a protocol violation. Every call of a round is validated before any is
executed, so a bad request never reaches the search backend.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..errors import NotFoundError, StorageError, ToolProtocolError
from ..llm.gateway import LLMGateway
from ..llm.schema import FinalText, Message, ToolCallRequest
from ..prompts import PromptSet
from ..storage.store import WorkflowStore
from ..tools.base import ToolRegistry, ToolSpec
from ..workflow.schema import StoredWorkflow

logger = logging.getLogger(__name__)

OPPORTUNITIES_TEMPERATURE = 0.7
OPPORTUNITIES_MAX_TOKENS = 2000


class LoopState(str, Enum):
    INIT = "init"
    AWAIT_MODEL = "await_model"
    AWAIT_TOOL = "await_tool"
    DONE = "done"


@dataclass
class OpportunityRun:
    """Outcome of one loop invocation."""

    text: str
    messages: list[Message]
    model_calls: int = 0
    tool_calls: int = 0
    rounds: int = 0
    states: list[LoopState] = field(default_factory=list)


def render_workflow_summary(workflow: StoredWorkflow) -> str:
    data = workflow.workflow_data.model_dump(mode="json") if workflow.workflow_data else None
    return (
        f"Workflow: {workflow.title or 'Untitled Workflow'}\n"
        f"Start Event: {workflow.start_event or 'Not specified'}\n"
        f"End Event: {workflow.end_event or 'Not specified'}\n"
        "\n"
        f"{json.dumps(data, indent=2, ensure_ascii=False)}"
    )


def render_suggestion_request(workflow: StoredWorkflow) -> str:
    return (
        "Based on our discussion and the workflow summary below, please identify "
        f"automation opportunities:\n\n{render_workflow_summary(workflow)}"
    )


def render_analysis_request(workflow_data: dict[str, Any]) -> str:
    return (
        "Please analyze the following workflow and identify AI and automation "
        f"opportunities:\n\n{json.dumps(workflow_data, indent=2, ensure_ascii=False)}"
    )


class OpportunityGenerator:
    """Produces the opportunities table for a workflow."""

    def __init__(
        self,
        gateway: LLMGateway,
        tools: ToolRegistry,
        prompts: PromptSet,
        *,
        max_tool_rounds: int = 1,
    ):
        self.gateway = gateway
        self.tools = tools
        self.prompts = prompts
        self.max_tool_rounds = max(0, max_tool_rounds)

    def build_messages(
        self, request: str, transcript: Optional[list[Message]] = None
    ) -> list[Message]:
        return [
            Message.system(self.prompts.opportunities),
            *(transcript or []),
            Message.user(request),
        ]

    async def run(self, messages: list[Message]) -> OpportunityRun:
        """Drive the model to a final answer, mediating tool calls in between."""
        run = OpportunityRun(text="", messages=list(messages), states=[LoopState.INIT])
        state = LoopState.AWAIT_MODEL
        pending: Optional[ToolCallRequest] = None

        while state is not LoopState.DONE:
            run.states.append(state)

            if state is LoopState.AWAIT_MODEL:
                declared = self._declared_tools(run.rounds)
                result = await self.gateway.generate(
                    run.messages,
                    declared,
                    temperature=OPPORTUNITIES_TEMPERATURE,
                    max_tokens=OPPORTUNITIES_MAX_TOKENS,
                )
                run.model_calls += 1

                if isinstance(result, FinalText):
                    run.text = result.text
                    state = LoopState.DONE
                elif declared is None:
                    raise ToolProtocolError(
                        "Model requested a tool after the final tool round: "
                        + ", ".join(call.name for call in result.calls)
                    )
                else:
                    pending = result
                    state = LoopState.AWAIT_TOOL

            elif state is LoopState.AWAIT_TOOL:
                if pending is None:
                    raise ToolProtocolError("No tool request pending")
                await self._run_tool_round(run, pending)
                pending = None
                state = LoopState.AWAIT_MODEL

        run.states.append(LoopState.DONE)
        return run

    def _declared_tools(self, rounds_done: int) -> Optional[list[ToolSpec]]:
        if rounds_done >= self.max_tool_rounds or not len(self.tools):
            return None
        return self.tools.specs()

    async def _run_tool_round(self, run: OpportunityRun, request: ToolCallRequest) -> None:
        # Resolve and validate every call before executing any of them.
        resolved = []
        for call in request.calls:
            spec = self.tools.get(call.name)
            resolved.append((spec, call, spec.parse_arguments(call.arguments)))

        run.rounds += 1
        run.messages.append(request.message)
        for spec, call, params in resolved:
            logger.info(
                "Executing tool %s",
                spec.name,
                extra={"tool": spec.name, "tool_call_id": call.id, "round": run.rounds},
            )
            output = await spec.execute(call.id, params)
            run.tool_calls += 1
            run.messages.append(Message.tool(call.id, output))

    async def suggest_for_workflow(
        self, store: WorkflowStore, workflow_id: str, conversation_id: str
    ) -> str:
        """Generate suggestions from the discovery transcript and persist them."""
        workflow = store.load_workflow(workflow_id)
        if workflow is None:
            raise NotFoundError("Workflow", workflow_id)
        transcript = store.list_messages(conversation_id)

        run = await self.run(
            self.build_messages(render_suggestion_request(workflow), transcript)
        )
        logger.info(
            "Generated opportunities with %d model calls and %d tool calls",
            run.model_calls,
            run.tool_calls,
            extra={"workflow_id": workflow_id, "conversation_id": conversation_id},
        )

        try:
            store.save_opportunities(workflow_id, run.text)
        except StorageError:
            logger.exception(
                "Opportunities not persisted", extra={"workflow_id": workflow_id}
            )
        return run.text

    async def identify(self, workflow_data: dict[str, Any]) -> str:
        """Generate opportunities for ad-hoc workflow data, without persistence."""
        run = await self.run(self.build_messages(render_analysis_request(workflow_data)))
        return run.text
