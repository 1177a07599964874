"""Workflow-Sage: workflow discovery, diagramming and automation-opportunity generation."""

__version__ = "0.1.0"
