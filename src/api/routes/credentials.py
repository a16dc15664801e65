"""Credential pool admin endpoints. Secrets are always masked in responses."""

from fastapi import APIRouter, Depends, Query, status
from starlette.requests import Request
import structlog

from src.api.auth import verify_api_key
from src.api.dependencies import get_credential_pool, get_fetch_client, get_registry
from src.api.models import CreateCredentialRequest, Envelope, ok
from src.api.rate_limit import admin_limit, default_limit, limiter
from src.credentials.pool import CredentialPool
from src.credentials.schemas import Credential
from src.ingestion.fetch_client import FetchClient
from src.ingestion.registry import AdapterRegistry

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/admin/credentials")


def _credential_to_dict(credential: Credential, max_error_count: int) -> dict:
    return {
        "id": credential.id,
        "provider": credential.provider,
        "name": credential.name,
        "secret_value": credential.masked_secret(),
        "error_count": credential.error_count,
        "last_error": credential.last_error,
        "last_used": credential.last_used.isoformat() if credential.last_used else None,
        "is_active": credential.is_active,
        "usable": credential.is_active and credential.error_count < max_error_count,
        "created_at": credential.created_at.isoformat() if credential.created_at else None,
        "last_check_at": (
            credential.last_check_at.isoformat() if credential.last_check_at else None
        ),
        "check_result": credential.check_result,
    }


@router.get("", response_model=Envelope, summary="List credentials")
@limiter.limit(default_limit)
async def list_credentials(
    request: Request,
    provider: str | None = Query(default=None, description="Filter by provider"),
    api_key: str = Depends(verify_api_key),
    pool: CredentialPool = Depends(get_credential_pool),
) -> dict:
    credentials = await pool.list_credentials(provider)
    items = [_credential_to_dict(c, pool.max_error_count) for c in credentials]
    return ok({"items": items, "total": len(items)})


@router.get("/health", response_model=Envelope, summary="Aggregate pool health per provider")
@limiter.limit(default_limit)
async def credentials_health(
    request: Request,
    provider: str | None = Query(default=None),
    api_key: str = Depends(verify_api_key),
    pool: CredentialPool = Depends(get_credential_pool),
) -> dict:
    summaries = await pool.status(provider)
    return ok([s.to_dict() for s in summaries])


@router.post(
    "",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    summary="Add a credential",
)
@limiter.limit(admin_limit)
async def add_credential(
    request: Request,
    body: CreateCredentialRequest,
    api_key: str = Depends(verify_api_key),
    pool: CredentialPool = Depends(get_credential_pool),
) -> dict:
    credential = await pool.add(body.provider, body.name, body.secret_value)
    logger.info("Credential added", provider=credential.provider, name=credential.name)
    return ok(_credential_to_dict(credential, pool.max_error_count), message="created")


@router.post("/{credential_id}/disable", response_model=Envelope, summary="Disable a credential")
@limiter.limit(admin_limit)
async def disable_credential(
    request: Request,
    credential_id: str,
    api_key: str = Depends(verify_api_key),
    pool: CredentialPool = Depends(get_credential_pool),
) -> dict:
    credential = await pool.disable(credential_id)
    return ok(_credential_to_dict(credential, pool.max_error_count), message="disabled")


@router.post("/{credential_id}/enable", response_model=Envelope, summary="Enable a credential")
@limiter.limit(admin_limit)
async def enable_credential(
    request: Request,
    credential_id: str,
    api_key: str = Depends(verify_api_key),
    pool: CredentialPool = Depends(get_credential_pool),
) -> dict:
    credential = await pool.enable(credential_id)
    return ok(_credential_to_dict(credential, pool.max_error_count), message="enabled")


@router.post(
    "/{credential_id}/reset",
    response_model=Envelope,
    summary="Reset the error count of a credential",
)
@limiter.limit(admin_limit)
async def reset_credential(
    request: Request,
    credential_id: str,
    api_key: str = Depends(verify_api_key),
    pool: CredentialPool = Depends(get_credential_pool),
) -> dict:
    credential = await pool.reset(credential_id)
    return ok(_credential_to_dict(credential, pool.max_error_count), message="reset")


@router.post(
    "/{credential_id}/check",
    response_model=Envelope,
    summary="Validate a credential against its provider",
)
@limiter.limit(admin_limit)
async def check_credential(
    request: Request,
    credential_id: str,
    api_key: str = Depends(verify_api_key),
    pool: CredentialPool = Depends(get_credential_pool),
    registry: AdapterRegistry = Depends(get_registry),
    fetch_client: FetchClient = Depends(get_fetch_client),
) -> dict:
    check = await pool.check(credential_id, registry, fetch_client)
    logger.info("Credential checked", credential_id=credential_id, valid=check.valid)
    data = _credential_to_dict(check.credential, pool.max_error_count)
    data["valid"] = check.valid
    return ok(data, message="valid" if check.valid else "invalid")


@router.delete("/{credential_id}", response_model=Envelope, summary="Remove a credential")
@limiter.limit(admin_limit)
async def remove_credential(
    request: Request,
    credential_id: str,
    api_key: str = Depends(verify_api_key),
    pool: CredentialPool = Depends(get_credential_pool),
) -> dict:
    await pool.remove(credential_id)
    return ok({"id": credential_id}, message="deleted")
