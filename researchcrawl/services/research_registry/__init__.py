from .models import ActiveResearch, ResearchHandle
from .registry import InMemoryResearchRegistry

__all__ = ["ActiveResearch", "ResearchHandle", "InMemoryResearchRegistry"]
