from fastapi import FastAPI

from researchcrawl.api.routers import create_research_router, create_systems_router


def create_app(container) -> FastAPI:
    """Build the FastAPI app from a wired `Container`."""
    app = FastAPI(title="ResearchCrawl", version="0.1.0")
    app.include_router(create_systems_router(container.config()))
    app.include_router(create_research_router(container.research_service()))
    return app
