"""Compile a workflow record into a linear node/edge diagram."""

from __future__ import annotations

from .schema import DiagramEdge, DiagramGraph, DiagramNode, NodeData, Position, Step, WorkflowRecord

COLUMN_X = 250
ROW_START_Y = 100
ROW_SPACING = 100


def node_id_for(step: Step, index: int) -> str:
    return step.id or f"step-{index}"


def compile_diagram(record: WorkflowRecord | None) -> DiagramGraph:
    """Build one node per step and one edge between each consecutive pair.

    Deterministic: the same record always yields the same node and edge ids.
    """
    graph = DiagramGraph()
    if record is None or not record.steps:
        return graph

    previous_id: str | None = None
    for index, step in enumerate(record.steps):
        current_id = node_id_for(step, index)
        graph.nodes.append(
            DiagramNode(
                id=current_id,
                position=Position(x=COLUMN_X, y=ROW_START_Y + index * ROW_SPACING),
                data=NodeData(
                    label=step.description or f"Step {index + 1}",
                    actor=step.actor,
                    system=step.system,
                ),
            )
        )
        if previous_id is not None:
            graph.edges.append(
                DiagramEdge(id=f"edge-{index}", source=previous_id, target=current_id)
            )
        previous_id = current_id

    return graph
