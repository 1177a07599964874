from .database import init_db
from .store import WorkflowStore

__all__ = ["WorkflowStore", "init_db"]
