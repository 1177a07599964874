from .pipeline import LoopState, OpportunityGenerator, OpportunityRun

__all__ = ["LoopState", "OpportunityGenerator", "OpportunityRun"]
