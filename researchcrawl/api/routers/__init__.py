"""API router factory functions."""
from .research import create_research_router
from .systems import create_systems_router

__all__ = [
    "create_research_router",
    "create_systems_router",
]
