"""Discovery turn: user message -> model reply -> extraction -> diagram."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel

from ..errors import BadRequestError, StorageError, ToolProtocolError
from ..llm.gateway import LLMGateway
from ..llm.schema import FinalText
from ..workflow.diagram import compile_diagram
from ..workflow.extraction import extract, is_complete
from ..workflow.schema import Conversation, WorkflowRecord
from .session import DialogueSessionManager

logger = logging.getLogger(__name__)

DISCOVERY_TEMPERATURE = 0.7
DISCOVERY_MAX_TOKENS = 1000


class DiscoveryTurnResult(BaseModel):
    message: str
    conversation_id: str
    workflow_id: Optional[str] = None
    is_complete: bool = False
    workflow_data: Optional[WorkflowRecord] = None


async def run_discovery_turn(
    *,
    sessions: DialogueSessionManager,
    gateway: LLMGateway,
    message: str,
    conversation_id: Optional[str] = None,
    workflow_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> DiscoveryTurnResult:
    """Run one user turn of the discovery dialogue.

    Without ``conversation_id`` a new session is started for ``user_id``.
    """
    if not message or not message.strip():
        raise BadRequestError("Message is required")

    if conversation_id:
        conversation = sessions.resume_session(conversation_id)
        workflow_id = workflow_id or conversation.workflow_id
    else:
        if not user_id:
            raise BadRequestError("User ID is required for new conversations")
        conversation, workflow = sessions.start_session(user_id)
        workflow_id = workflow.id

    async with sessions.lock(conversation.id):
        if conversation_id:
            # Another turn may have landed while we waited for the lock.
            conversation = sessions.resume_session(conversation.id)

        sessions.append_user_turn(conversation, message)

        result = await gateway.generate(
            conversation.messages,
            temperature=DISCOVERY_TEMPERATURE,
            max_tokens=DISCOVERY_MAX_TOKENS,
        )
        if not isinstance(result, FinalText):
            raise ToolProtocolError("Model requested a tool during discovery")
        reply = result.text

        sessions.append_assistant_turn(conversation, reply)

        # The substring gate only decides whether parsing is worth trying;
        # the turn is complete only once a record was extracted.
        markers_present = is_complete(reply)
        record = extract(reply) if markers_present else None
        if record is not None:
            _apply_record(sessions, conversation, workflow_id, record)
        elif markers_present:
            logger.info(
                "Reply has all field markers but no extractable record yet",
                extra={"conversation_id": conversation.id, "workflow_id": workflow_id},
            )

    return DiscoveryTurnResult(
        message=reply,
        conversation_id=conversation.id,
        workflow_id=workflow_id,
        is_complete=record is not None,
        workflow_data=record,
    )


def _apply_record(
    sessions: DialogueSessionManager,
    conversation: Conversation,
    workflow_id: str,
    record: WorkflowRecord,
) -> None:
    """Persist a newly confirmed record, its diagram and the conversation title.

    The reply has already been generated, so a storage failure here is
    logged and the turn still succeeds.
    """
    diagram = compile_diagram(record)
    try:
        sessions.store.save_workflow_record(workflow_id, record, diagram)
        sessions.rename(conversation, record.title)
    except StorageError:
        logger.exception(
            "Extracted workflow not persisted",
            extra={"conversation_id": conversation.id, "workflow_id": workflow_id},
        )
        return

    logger.info(
        "Workflow record confirmed with %d steps",
        len(record.steps),
        extra={"conversation_id": conversation.id, "workflow_id": workflow_id},
    )
