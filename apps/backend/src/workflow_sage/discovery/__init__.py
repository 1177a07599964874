from .pipeline import DiscoveryTurnResult, run_discovery_turn
from .session import DialogueSessionManager

__all__ = ["DialogueSessionManager", "DiscoveryTurnResult", "run_discovery_turn"]
