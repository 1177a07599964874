"""Pydantic models for workflow records, their diagrams, and persisted rows."""

from datetime import datetime, timezone
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from ..llm.schema import Message

PartyType = Literal["internal", "external"]


def _new_id() -> str:
    return uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _id_as_text(value):
    # Models sometimes emit numeric ids.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class Step(BaseModel):
    """A single activity; list position in the record is execution order."""

    id: Optional[str] = None
    description: str = ""
    actor: Optional[str] = None  # Person id
    system: Optional[str] = None  # SystemRef id

    @field_validator("id", "actor", "system", mode="before")
    @classmethod
    def ids_as_text(cls, value):
        return _id_as_text(value)


class _Party(BaseModel):
    id: str
    name: str
    # None when the model left the type unresolved, e.g. "internal/external".
    type: Optional[PartyType] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, value):
        return _id_as_text(value)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        if not isinstance(value, str):
            return None
        value = value.strip().lower()
        if value in ("internal", "external"):
            return value
        mentioned = [kind for kind in ("internal", "external") if kind in value]
        return mentioned[0] if len(mentioned) == 1 else None


class Person(_Party):
    """A role taking part in the workflow."""


class SystemRef(_Party):
    """A tool or platform the workflow touches."""


class WorkflowRecord(BaseModel):
    """The confirmed, structured description of one business workflow."""

    title: str
    start_event: str
    end_event: str
    steps: list[Step]
    people: list[Person]
    systems: list[SystemRef]
    pain_points: list[str]


class Position(BaseModel):
    x: float
    y: float


class NodeData(BaseModel):
    label: str
    actor: Optional[str] = None
    system: Optional[str] = None


class DiagramNode(BaseModel):
    """A diagram node, shaped for React Flow."""

    id: str
    type: str = "default"
    position: Position
    data: NodeData


class DiagramEdge(BaseModel):
    id: str
    source: str
    target: str
    type: str = "default"


class DiagramGraph(BaseModel):
    nodes: list[DiagramNode] = []
    edges: list[DiagramEdge] = []


class StoredWorkflow(BaseModel):
    """A workflow row as kept by the store."""

    id: str = Field(default_factory=_new_id)
    user_id: Optional[str] = None
    title: str = "New Workflow"
    start_event: Optional[str] = None
    end_event: Optional[str] = None
    workflow_data: Optional[WorkflowRecord] = None
    diagram_data: DiagramGraph = Field(default_factory=DiagramGraph)
    opportunities: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Conversation(BaseModel):
    """A discovery conversation and its ordered transcript."""

    id: str = Field(default_factory=_new_id)
    workflow_id: str
    user_id: Optional[str] = None
    title: str = "New Workflow Conversation"
    messages: list[Message] = []
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
