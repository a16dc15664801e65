"""Keyword-driven sync endpoints."""

from fastapi import APIRouter, Depends
from starlette.requests import Request
import structlog

from src.api.auth import verify_api_key
from src.api.dependencies import get_sync_orchestrator
from src.api.models import Envelope, KeywordSyncRequest, ok
from src.api.rate_limit import admin_limit, limiter
from src.keywords.schemas import KeywordScope
from src.sync.orchestrator import SyncOrchestrator

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/admin/sync")


async def _run_keyword_sync(
    orchestrator: SyncOrchestrator,
    source_name: str,
    scope: KeywordScope,
    body: KeywordSyncRequest,
) -> dict:
    result = await orchestrator.sync_by_keywords(
        source_name,
        scope,
        source_type=body.source_type,
        days=body.days,
        max_results_per_keyword=body.max_results_per_keyword,
    )
    data = {
        "synced": result.synced,
        "keywords": result.keywords or 0,
        "errors": result.errors,
        "status": result.status,
        "duration_ms": result.duration_ms,
        "error_message": result.error_message,
    }
    logger.info(
        "Keyword sync finished",
        source=source_name,
        synced=result.synced,
        keywords=result.keywords,
        errors=result.errors,
    )
    return ok(data, message=result.error_message or result.status)


@router.post(
    "/videos-by-keywords",
    response_model=Envelope,
    summary="Sync Bilibili videos for every active video keyword",
)
@limiter.limit(admin_limit)
async def sync_videos_by_keywords(
    request: Request,
    body: KeywordSyncRequest | None = None,
    api_key: str = Depends(verify_api_key),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> dict:
    return await _run_keyword_sync(
        orchestrator, "bilibili", KeywordScope.VIDEO, body or KeywordSyncRequest()
    )


@router.post(
    "/papers-by-keywords",
    response_model=Envelope,
    summary="Sync arXiv papers for every active paper keyword",
)
@limiter.limit(admin_limit)
async def sync_papers_by_keywords(
    request: Request,
    body: KeywordSyncRequest | None = None,
    api_key: str = Depends(verify_api_key),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> dict:
    return await _run_keyword_sync(
        orchestrator, "arxiv", KeywordScope.PAPER, body or KeywordSyncRequest()
    )


@router.post(
    "/news-by-keywords",
    response_model=Envelope,
    summary="Filter hot-list news by every active news keyword",
)
@limiter.limit(admin_limit)
async def sync_news_by_keywords(
    request: Request,
    body: KeywordSyncRequest | None = None,
    api_key: str = Depends(verify_api_key),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> dict:
    return await _run_keyword_sync(
        orchestrator, "hot_news", KeywordScope.NEWS, body or KeywordSyncRequest()
    )
