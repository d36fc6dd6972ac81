"""
Knowledge Base Controllers
==========================

Search over published articles with the same ranking triage uses.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from helpdesk.triage.application import KnowledgeBaseService
from helpdesk.triage.application.dto import ArticleSearchResult, KBSearchResponse, TicketCategoryStr
from helpdesk.triage.interfaces.dependencies import get_kb_service

router = APIRouter(prefix="/kb", tags=["Knowledge Base"])


@router.get(
    "/search",
    response_model=KBSearchResponse,
    summary="Search knowledge-base articles",
    description="""
    Rank published articles against the query. Title matches weigh most,
    then tags, then body. Articles without any match are not returned.
    """
)
async def search_articles(
    q: str = Query(..., min_length=1, max_length=500, description="Search text"),
    limit: int = Query(default=3, ge=1, le=20, description="Maximum results"),
    category: Optional[TicketCategoryStr] = Query(default=None, description="Restrict to a category"),
    service: KnowledgeBaseService = Depends(get_kb_service)
):
    ranked = await service.search(q, limit=limit, category=category)
    return KBSearchResponse(
        query=q,
        count=len(ranked),
        results=[ArticleSearchResult.from_domain(article, score) for article, score in ranked]
    )


kb_router = router
