"""Dialogue session manager: owns discovery transcripts and their persistence."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from ..errors import NotFoundError, StorageError
from ..llm.schema import Message
from ..prompts import PromptSet
from ..storage.store import WorkflowStore
from ..workflow.schema import Conversation, StoredWorkflow

logger = logging.getLogger(__name__)


class DialogueSessionManager:
    """Starts discovery sessions and appends turns in durable order.

    A user turn is written before the model is called. An assistant turn is
    added to the in-memory transcript first and then written; if that write
    fails the transcript is still returned so the reply is not lost.
    """

    def __init__(self, store: WorkflowStore, prompts: PromptSet):
        self.store = store
        self.prompts = prompts
        # conversation id -> (lock, number of turns holding or waiting on it)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def lock(self, conversation_id: str) -> AsyncIterator[None]:
        """Serialize turns on one conversation.

        The entry is dropped once no turn holds or waits on it.
        """
        lock, users = self._locks.get(conversation_id) or (asyncio.Lock(), 0)
        self._locks[conversation_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[conversation_id]
            if users <= 1:
                del self._locks[conversation_id]
            else:
                self._locks[conversation_id] = (lock, users - 1)

    def active_locks(self) -> int:
        return len(self._locks)

    def start_session(self, user_id: str) -> tuple[Conversation, StoredWorkflow]:
        """Create the placeholder workflow and a conversation seeded with the protocol."""
        workflow = self.store.create_workflow(user_id, title="New Workflow")
        conversation = self.store.create_conversation(
            workflow.id, user_id, title="New Workflow Conversation"
        )

        system = Message.system(self.prompts.discovery)
        self.store.append_message(conversation.id, system)
        conversation.messages.append(system)

        logger.info(
            "Started discovery session",
            extra={"conversation_id": conversation.id, "workflow_id": workflow.id},
        )
        return conversation, workflow

    def resume_session(self, conversation_id: str) -> Conversation:
        conversation = self.store.load_conversation(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)
        return conversation

    def append_user_turn(self, conversation: Conversation, text: str) -> list[Message]:
        message = Message.user(text)
        self.store.append_message(conversation.id, message)
        conversation.messages.append(message)
        return conversation.messages

    def append_assistant_turn(self, conversation: Conversation, text: str) -> list[Message]:
        message = Message.assistant(text)
        conversation.messages.append(message)
        try:
            self.store.append_message(conversation.id, message)
        except StorageError:
            logger.exception(
                "Assistant turn not persisted; transcript and store are out of sync",
                extra={"conversation_id": conversation.id},
            )
        return conversation.messages

    def rename(self, conversation: Conversation, title: str) -> Optional[Conversation]:
        if self.store.rename_conversation(conversation.id, title):
            conversation.title = title
            return conversation
        return None
