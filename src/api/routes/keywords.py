"""Keyword subscription CRUD endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from starlette.requests import Request
import structlog

from src.api.auth import verify_api_key
from src.api.dependencies import get_keyword_repository
from src.api.models import (
    BatchCreateKeywordsRequest,
    CreateKeywordRequest,
    Envelope,
    UpdateKeywordRequest,
    ok,
)
from src.api.rate_limit import admin_limit, default_limit, limiter
from src.keywords.repository import KeywordRepository
from src.keywords.schemas import Keyword, KeywordScope, KeywordSourceType
from src.sync.errors import NotFoundError

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/admin/keywords")


def _keyword_to_dict(k: Keyword) -> dict:
    return {
        "id": k.id,
        "keyword": k.keyword,
        "scope": k.scope.value,
        "category": k.category,
        "source_type": k.source_type.value,
        "is_active": k.is_active,
        "priority": k.priority,
        "description": k.description,
        "tags": k.tags,
        "last_synced_at": k.last_synced_at.isoformat() if k.last_synced_at else None,
        "created_at": k.created_at.isoformat() if k.created_at else None,
        "updated_at": k.updated_at.isoformat() if k.updated_at else None,
    }


def _request_to_keyword(body: CreateKeywordRequest) -> Keyword:
    return Keyword(
        id=uuid.uuid4().hex,
        keyword=body.keyword.strip(),
        scope=KeywordScope(body.scope),
        category=body.category,
        source_type=KeywordSourceType(body.source_type),
        is_active=body.is_active,
        priority=body.priority,
        description=body.description,
        tags=body.tags,
    )


async def _require(repo: KeywordRepository, keyword_id: str) -> Keyword:
    keyword = await repo.get(keyword_id)
    if keyword is None:
        raise NotFoundError(f"Keyword not found: {keyword_id}")
    return keyword


@router.get("", response_model=Envelope, summary="List keywords with filters")
@limiter.limit(default_limit)
async def list_keywords(
    request: Request,
    scope: KeywordScope | None = Query(default=None),
    is_active: bool | None = Query(default=None, alias="isActive"),
    category: str | None = Query(default=None),
    source_type: KeywordSourceType | None = Query(default=None, alias="sourceType"),
    search: str | None = Query(default=None, description="Search keyword/description"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    api_key: str = Depends(verify_api_key),
    repo: KeywordRepository = Depends(get_keyword_repository),
) -> dict:
    keywords, total = await repo.list_keywords(
        scope=scope,
        is_active=is_active,
        category=category,
        source_type=source_type,
        search=search,
        limit=limit,
        offset=offset,
    )
    return ok(
        {
            "items": [_keyword_to_dict(k) for k in keywords],
            "total": total,
            "has_more": (offset + limit) < total,
        }
    )


@router.post(
    "",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a keyword",
)
@limiter.limit(admin_limit)
async def create_keyword(
    request: Request,
    body: CreateKeywordRequest,
    api_key: str = Depends(verify_api_key),
    repo: KeywordRepository = Depends(get_keyword_repository),
) -> dict:
    created = await repo.create(_request_to_keyword(body))
    logger.info("Keyword created", keyword=created.keyword, scope=created.scope.value)
    return ok(_keyword_to_dict(created), message="created")


@router.post("/batch", response_model=Envelope, summary="Create many keywords, skipping duplicates")
@limiter.limit(admin_limit)
async def batch_create_keywords(
    request: Request,
    body: BatchCreateKeywordsRequest,
    api_key: str = Depends(verify_api_key),
    repo: KeywordRepository = Depends(get_keyword_repository),
) -> dict:
    created, skipped = await repo.batch_create([_request_to_keyword(k) for k in body.keywords])
    return ok(
        {
            "created": len(created),
            "skipped": len(skipped),
            "skipped_keywords": skipped,
            "items": [_keyword_to_dict(k) for k in created],
        }
    )


@router.get("/{keyword_id}", response_model=Envelope, summary="Keyword detail")
@limiter.limit(default_limit)
async def get_keyword(
    request: Request,
    keyword_id: str,
    api_key: str = Depends(verify_api_key),
    repo: KeywordRepository = Depends(get_keyword_repository),
) -> dict:
    return ok(_keyword_to_dict(await _require(repo, keyword_id)))


@router.put("/{keyword_id}", response_model=Envelope, summary="Update a keyword")
@limiter.limit(admin_limit)
async def update_keyword(
    request: Request,
    keyword_id: str,
    body: UpdateKeywordRequest,
    api_key: str = Depends(verify_api_key),
    repo: KeywordRepository = Depends(get_keyword_repository),
) -> dict:
    fields = body.model_dump(exclude_none=True)
    if "keyword" in fields:
        fields["keyword"] = fields["keyword"].strip()
    updated = await repo.update(keyword_id, **fields)
    if updated is None:
        raise NotFoundError(f"Keyword not found: {keyword_id}")
    return ok(_keyword_to_dict(updated), message="updated")


@router.delete("/{keyword_id}", response_model=Envelope, summary="Delete a keyword")
@limiter.limit(admin_limit)
async def delete_keyword(
    request: Request,
    keyword_id: str,
    api_key: str = Depends(verify_api_key),
    repo: KeywordRepository = Depends(get_keyword_repository),
) -> dict:
    if not await repo.delete(keyword_id):
        raise NotFoundError(f"Keyword not found: {keyword_id}")
    logger.info("Keyword deleted", keyword_id=keyword_id)
    return ok({"id": keyword_id}, message="deleted")


@router.get(
    "/{keyword_id}/content",
    response_model=Envelope,
    summary="Stored content whose title or body contains the keyword",
)
@limiter.limit(default_limit)
async def keyword_content(
    request: Request,
    keyword_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    api_key: str = Depends(verify_api_key),
    repo: KeywordRepository = Depends(get_keyword_repository),
) -> dict:
    keyword = await _require(repo, keyword_id)
    items, total = await repo.content_for_keyword(keyword, limit=limit, offset=offset)
    return ok(
        {
            "keyword": keyword.keyword,
            "items": [item.model_dump(mode="json") for item in items],
            "total": total,
            "has_more": (offset + limit) < total,
        }
    )
