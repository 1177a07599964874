"""SQLite-backed persistence for workflows, conversations and messages."""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..errors import StorageError
from ..llm.schema import Message, ToolCall
from ..workflow.schema import Conversation, DiagramGraph, StoredWorkflow, WorkflowRecord
from .database import init_db


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class WorkflowStore:
    """Stores workflow rows and discovery transcripts in one SQLite file.

    Calls are synchronous and short. One connection is shared across threads
    and serialized by a lock, so the store can be used from the async flows
    directly on the event loop and from FastAPI's threadpool for plain
    ``def`` routes. Each call blocks the loop for the duration of one
    SQLite statement batch.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn = init_db(db_path)
        self._lock = threading.Lock()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def _guard(self, action: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise StorageError(f"Failed to {action}: {exc}") from exc

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def create_workflow(self, user_id: Optional[str], title: str = "New Workflow") -> StoredWorkflow:
        workflow = StoredWorkflow(user_id=user_id, title=title)
        with self._guard("create workflow") as conn:
            conn.execute(
                """INSERT INTO workflows
                   (id, user_id, title, diagram_data, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    workflow.id,
                    workflow.user_id,
                    workflow.title,
                    workflow.diagram_data.model_dump_json(),
                    workflow.created_at.isoformat(),
                    workflow.updated_at.isoformat(),
                ),
            )
        return workflow

    def load_workflow(self, workflow_id: str) -> Optional[StoredWorkflow]:
        with self._guard("load workflow") as conn:
            row = conn.execute("SELECT * FROM workflows WHERE id = ?", (workflow_id,)).fetchone()
        if row is None:
            return None
        return _row_to_workflow(row)

    def list_workflows(self, user_id: str) -> list[StoredWorkflow]:
        """List a user's workflows, most recent first."""
        with self._guard("list workflows") as conn:
            rows = conn.execute(
                "SELECT * FROM workflows WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        return [_row_to_workflow(row) for row in rows]

    def save_workflow_record(
        self, workflow_id: str, record: WorkflowRecord, diagram: DiagramGraph
    ) -> bool:
        """Replace the structured record and its diagram in one statement."""
        with self._guard("save workflow record") as conn:
            cursor = conn.execute(
                """UPDATE workflows
                   SET title = ?, start_event = ?, end_event = ?,
                       workflow_data = ?, diagram_data = ?, updated_at = ?
                   WHERE id = ?""",
                (
                    record.title,
                    record.start_event,
                    record.end_event,
                    record.model_dump_json(),
                    diagram.model_dump_json(),
                    _now_iso(),
                    workflow_id,
                ),
            )
        return cursor.rowcount > 0

    def save_opportunities(self, workflow_id: str, opportunities: str) -> bool:
        with self._guard("save opportunities") as conn:
            cursor = conn.execute(
                "UPDATE workflows SET opportunities = ?, updated_at = ? WHERE id = ?",
                (opportunities, _now_iso(), workflow_id),
            )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def create_conversation(
        self,
        workflow_id: str,
        user_id: Optional[str],
        title: str = "New Workflow Conversation",
    ) -> Conversation:
        conversation = Conversation(workflow_id=workflow_id, user_id=user_id, title=title)
        with self._guard("create conversation") as conn:
            conn.execute(
                """INSERT INTO conversations
                   (id, workflow_id, user_id, title, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    conversation.id,
                    conversation.workflow_id,
                    conversation.user_id,
                    conversation.title,
                    conversation.created_at.isoformat(),
                    conversation.updated_at.isoformat(),
                ),
            )
        return conversation

    def load_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Load a conversation together with its full transcript."""
        with self._guard("load conversation") as conn:
            row = conn.execute(
                "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone()
            if row is None:
                return None
            message_rows = conn.execute(
                "SELECT * FROM messages WHERE conversation_id = ? ORDER BY seq",
                (conversation_id,),
            ).fetchall()
        return Conversation(
            id=row["id"],
            workflow_id=row["workflow_id"],
            user_id=row["user_id"],
            title=row["title"],
            messages=[_row_to_message(r) for r in message_rows],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def rename_conversation(self, conversation_id: str, title: str) -> bool:
        with self._guard("rename conversation") as conn:
            cursor = conn.execute(
                "UPDATE conversations SET title = ?, updated_at = ? WHERE id = ?",
                (title, _now_iso(), conversation_id),
            )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def append_message(self, conversation_id: str, message: Message) -> None:
        now = _now_iso()
        tool_calls = (
            json.dumps([call.model_dump() for call in message.tool_calls])
            if message.tool_calls
            else None
        )
        with self._guard("append message") as conn:
            conn.execute(
                """INSERT INTO messages
                   (conversation_id, role, content, tool_call_id, tool_calls, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    conversation_id,
                    message.role,
                    message.content,
                    message.tool_call_id,
                    tool_calls,
                    now,
                ),
            )
            conn.execute(
                "UPDATE conversations SET updated_at = ? WHERE id = ?",
                (now, conversation_id),
            )

    def list_messages(self, conversation_id: str) -> list[Message]:
        """Return the transcript in exact insertion order."""
        with self._guard("list messages") as conn:
            rows = conn.execute(
                "SELECT * FROM messages WHERE conversation_id = ? ORDER BY seq",
                (conversation_id,),
            ).fetchall()
        return [_row_to_message(row) for row in rows]


def _row_to_workflow(row: sqlite3.Row) -> StoredWorkflow:
    workflow_data = json.loads(row["workflow_data"]) if row["workflow_data"] else None
    return StoredWorkflow(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        start_event=row["start_event"],
        end_event=row["end_event"],
        workflow_data=workflow_data,
        diagram_data=json.loads(row["diagram_data"]),
        opportunities=row["opportunities"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    tool_calls = json.loads(row["tool_calls"]) if row["tool_calls"] else []
    return Message(
        role=row["role"],
        content=row["content"],
        tool_call_id=row["tool_call_id"],
        tool_calls=[ToolCall.model_validate(call) for call in tool_calls],
    )
