from .expander import GuidanceExpander, load_workflow_context

__all__ = ["GuidanceExpander", "load_workflow_context"]
