import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException
from pydantic import BaseModel, Field

from researchcrawl.exceptions import InvalidRequestError, ResearchNotFoundError

logger = logging.getLogger(__name__)


class CrawlRequest(BaseModel):
    url: str
    topic: Optional[str] = None
    max_depth: Optional[int] = Field(default=None, alias="maxDepth")
    max_pages: Optional[int] = Field(default=None, alias="maxPages")
    relevance_threshold: Optional[float] = Field(default=None, alias="relevanceThreshold")
    summarize: bool = False
    force_refresh: bool = Field(default=False, alias="forceRefresh")

    model_config = {"populate_by_name": True}


def create_research_router(research_service):
    router = APIRouter(prefix="/research", tags=["Research"])

    def _config_from(req: CrawlRequest):
        try:
            return research_service.validate(
                req.url,
                topic=req.topic,
                max_depth=req.max_depth,
                max_pages=req.max_pages,
                relevance_threshold=req.relevance_threshold,
                force_refresh=req.force_refresh,
                summarize=req.summarize,
            )
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @router.post("/crawl")
    def crawl(req: CrawlRequest):
        cfg = _config_from(req)
        try:
            return research_service.crawl(cfg)
        except Exception:
            logger.exception("Research crawl failed for %s", cfg.seed_url)
            raise HTTPException(status_code=500, detail="research crawl failed")

    @router.post("/start", status_code=202)
    def start(req: CrawlRequest, background_tasks: BackgroundTasks):
        cfg = _config_from(req)
        handle = research_service.begin(cfg)
        background_tasks.add_task(research_service.run, handle, cfg)
        return {"status": "started", "researchId": handle.research_id}

    @router.get("/active")
    def list_active():
        return {"active": research_service.list_active()}

    @router.get("/{research_id}/progress")
    def progress(research_id: int):
        try:
            return research_service.progress(research_id)
        except ResearchNotFoundError:
            raise HTTPException(status_code=404, detail="research not found")

    @router.get("/{research_id}/results")
    def results(research_id: int):
        try:
            return research_service.results(research_id)
        except ResearchNotFoundError:
            raise HTTPException(status_code=404, detail="research not found")

    @router.post("/{research_id}/cancel")
    def cancel(research_id: int):
        try:
            cancelled = research_service.cancel(research_id)
        except ResearchNotFoundError:
            raise HTTPException(status_code=404, detail="research not found")
        if not cancelled:
            raise HTTPException(status_code=404, detail="research not active")
        return {"status": "cancelled", "researchId": research_id}

    return router
