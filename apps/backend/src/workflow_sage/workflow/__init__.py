from .diagram import compile_diagram
from .extraction import REQUIRED_FIELDS, extract, is_complete
from .schema import (
    Conversation,
    DiagramEdge,
    DiagramGraph,
    DiagramNode,
    Person,
    Step,
    StoredWorkflow,
    SystemRef,
    WorkflowRecord,
)

__all__ = [
    "Conversation",
    "DiagramEdge",
    "DiagramGraph",
    "DiagramNode",
    "Person",
    "REQUIRED_FIELDS",
    "Step",
    "StoredWorkflow",
    "SystemRef",
    "WorkflowRecord",
    "compile_diagram",
    "extract",
    "is_complete",
]
