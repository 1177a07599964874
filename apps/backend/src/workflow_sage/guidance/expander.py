"""Two-stage implementation guidance: opportunity -> directed prompt -> guidance."""

from __future__ import annotations

import json
import logging
from typing import Optional

from ..errors import BadRequestError, StorageError, ToolProtocolError
from ..llm.gateway import LLMGateway
from ..llm.schema import FinalText, Message
from ..prompts import PromptSet
from ..storage.store import WorkflowStore

logger = logging.getLogger(__name__)

GUIDANCE_TEMPERATURE = 0.7
PROMPT_MAX_TOKENS = 500
GUIDANCE_MAX_TOKENS = 1500


def render_workflow_context(title: str, workflow_data: Optional[dict]) -> str:
    return (
        f'\nThis opportunity is for the workflow: "{title}"\n'
        f"Workflow details: {json.dumps(workflow_data, indent=2, ensure_ascii=False)}\n"
    )


class GuidanceExpander:
    """Turns one opportunity description into actionable implementation guidance."""

    def __init__(self, gateway: LLMGateway, prompts: PromptSet):
        self.gateway = gateway
        self.prompts = prompts

    async def generate_prompt(self, opportunity: str) -> str:
        return await self._complete(
            [
                Message.system(self.prompts.guidance_prompt_generator),
                Message.user(opportunity),
            ],
            max_tokens=PROMPT_MAX_TOKENS,
        )

    async def generate_guidance(
        self, guidance_prompt: str, workflow_context: Optional[str] = None
    ) -> str:
        system = self.prompts.implementation_consultant
        if workflow_context:
            system += "\n\n" + workflow_context
        return await self._complete(
            [Message.system(system), Message.user(guidance_prompt)],
            max_tokens=GUIDANCE_MAX_TOKENS,
        )

    async def expand(self, opportunity: str, workflow_context: Optional[str] = None) -> str:
        """Run both stages; a failure in either aborts with no partial result."""
        if not opportunity or not opportunity.strip():
            raise BadRequestError("Opportunity description is required")
        guidance_prompt = await self.generate_prompt(opportunity)
        return await self.generate_guidance(guidance_prompt, workflow_context)

    async def _complete(self, messages: list[Message], *, max_tokens: int) -> str:
        result = await self.gateway.generate(
            messages, temperature=GUIDANCE_TEMPERATURE, max_tokens=max_tokens
        )
        if not isinstance(result, FinalText):
            raise ToolProtocolError("Model requested a tool during guidance generation")
        return result.text


def load_workflow_context(store: WorkflowStore, workflow_id: Optional[str]) -> Optional[str]:
    """Context block for a known workflow; missing or unreadable workflows add none."""
    if not workflow_id:
        return None
    try:
        workflow = store.load_workflow(workflow_id)
    except StorageError:
        logger.exception("Workflow context unavailable", extra={"workflow_id": workflow_id})
        return None
    if workflow is None:
        return None
    data = workflow.workflow_data.model_dump(mode="json") if workflow.workflow_data else None
    return render_workflow_context(workflow.title, data)
