"""Data source admin endpoints: listing, config, sync, health and logs."""

from fastapi import APIRouter, Depends, Query
from starlette.requests import Request
import structlog

from src.api.auth import verify_api_key
from src.api.dependencies import (
    get_data_source_service,
    get_health_checker,
    get_sync_log_repository,
    get_sync_orchestrator,
)
from src.api.models import (
    Envelope,
    SyncSourceRequest,
    ToggleDataSourceRequest,
    UpdateDataSourceRequest,
    ok,
)
from src.api.rate_limit import admin_limit, default_limit, limiter
from src.sources.schemas import DataSource
from src.sources.service import DataSourceService
from src.sync.health import HealthChecker
from src.sync.orchestrator import SyncOrchestrator
from src.sync_log.repository import SyncLogRepository
from src.sync_log.schemas import LogType

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/admin/data-sources")


def _mask(value: str | None) -> str | None:
    if not value:
        return None
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}{'*' * 8}{value[-4:]}"


def _source_to_dict(source: DataSource, running: bool = False) -> dict:
    return {
        "id": source.id,
        "name": source.name,
        "display_name": source.display_name,
        "enabled": source.enabled,
        "api_base_url": source.api_base_url,
        "api_key": _mask(source.api_key),
        "tags": source.tags,
        "config": source.config,
        "health_status": source.health_status.value,
        "health_error": source.health_error,
        "last_health_check": (
            source.last_health_check.isoformat() if source.last_health_check else None
        ),
        "last_sync_at": source.last_sync_at.isoformat() if source.last_sync_at else None,
        "last_sync_status": source.last_sync_status.value,
        "last_sync_result": source.last_sync_result,
        "running": running,
        "created_at": source.created_at.isoformat() if source.created_at else None,
        "updated_at": source.updated_at.isoformat() if source.updated_at else None,
    }


@router.get("", response_model=Envelope, summary="List data sources with health and sync summary")
@limiter.limit(default_limit)
async def list_data_sources(
    request: Request,
    enabled_only: bool = Query(default=False, description="Only enabled sources"),
    api_key: str = Depends(verify_api_key),
    service: DataSourceService = Depends(get_data_source_service),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> dict:
    sources = await service.repository.list_sources(enabled_only=enabled_only)
    items = [_source_to_dict(s, orchestrator.is_running(s.id)) for s in sources]
    return ok({"items": items, "total": len(items)})


@router.post(
    "/health/check-all",
    response_model=Envelope,
    summary="Probe every enabled data source",
)
@limiter.limit(admin_limit)
async def check_all_health(
    request: Request,
    api_key: str = Depends(verify_api_key),
    checker: HealthChecker = Depends(get_health_checker),
) -> dict:
    summary = await checker.check_all_health()
    data = summary.to_dict()
    logger.info(
        "Health check-all finished",
        healthy=data["healthy"],
        unhealthy=data["unhealthy"],
        unknown=data["unknown"],
    )
    return ok(data)


@router.get("/{source_id}", response_model=Envelope, summary="Data source detail")
@limiter.limit(default_limit)
async def get_data_source(
    request: Request,
    source_id: str,
    api_key: str = Depends(verify_api_key),
    service: DataSourceService = Depends(get_data_source_service),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> dict:
    source = await service.get(source_id)
    return ok(_source_to_dict(source, orchestrator.is_running(source.id)))


@router.put("/{source_id}", response_model=Envelope, summary="Update data source config")
@limiter.limit(admin_limit)
async def update_data_source(
    request: Request,
    source_id: str,
    body: UpdateDataSourceRequest,
    api_key: str = Depends(verify_api_key),
    service: DataSourceService = Depends(get_data_source_service),
) -> dict:
    source = await service.update_config(
        source_id,
        display_name=body.display_name,
        api_base_url=body.api_base_url,
        api_key=body.api_key,
        tags=body.tags,
        config=body.config,
    )
    logger.info("Data source updated", source=source.name)
    return ok(_source_to_dict(source), message="updated")


@router.post("/{source_id}/toggle", response_model=Envelope, summary="Enable or disable")
@limiter.limit(admin_limit)
async def toggle_data_source(
    request: Request,
    source_id: str,
    body: ToggleDataSourceRequest | None = None,
    api_key: str = Depends(verify_api_key),
    service: DataSourceService = Depends(get_data_source_service),
) -> dict:
    source = await service.toggle(source_id, body.enabled if body else None)
    return ok(_source_to_dict(source), message="enabled" if source.enabled else "disabled")


@router.post("/{source_id}/sync", response_model=Envelope, summary="Sync one data source")
@limiter.limit(admin_limit)
async def sync_data_source(
    request: Request,
    source_id: str,
    body: SyncSourceRequest | None = None,
    api_key: str = Depends(verify_api_key),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> dict:
    body = body or SyncSourceRequest()
    result = await orchestrator.sync_source(
        source_id,
        override_config=body.overrides() or None,
        force=body.force,
    )
    message = (
        f"synced {result.synced} item(s)"
        if result.status == "success"
        else result.error_message or result.status
    )
    return ok(result.to_dict(), message=message)


@router.post("/{source_id}/health", response_model=Envelope, summary="Probe one data source")
@limiter.limit(admin_limit)
async def check_data_source_health(
    request: Request,
    source_id: str,
    api_key: str = Depends(verify_api_key),
    checker: HealthChecker = Depends(get_health_checker),
) -> dict:
    result = await checker.check_health(source_id)
    return ok(result.to_dict(), message=result.status.value)


@router.get("/{source_id}/logs", response_model=Envelope, summary="Sync log of a data source")
@limiter.limit(default_limit)
async def list_data_source_logs(
    request: Request,
    source_id: str,
    limit: int = Query(default=20, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    log_type: LogType | None = Query(default=None, alias="type"),
    api_key: str = Depends(verify_api_key),
    logs: SyncLogRepository = Depends(get_sync_log_repository),
) -> dict:
    entries, total = await logs.list_for_source(
        source_id, limit=limit, offset=offset, log_type=log_type
    )
    return ok(
        {
            "items": [e.to_dict() for e in entries],
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": (offset + limit) < total,
        }
    )
