"""
Credential pool for providers that need an authenticated session.

Selection prefers the healthiest credential: among active entries below
the error threshold, the lowest error_count wins, then the least
recently used, then the oldest. Credentials that reach the threshold
stay listed so an operator can reset or replace them, but are never
selected.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from src.credentials.config import CredentialsConfig
from src.credentials.repository import CredentialRepository
from src.credentials.schemas import Credential, PoolHealth
from src.observability.metrics import get_metrics
from src.sync.errors import (
    CredentialError,
    DuplicateError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)

if TYPE_CHECKING:
    from src.ingestion.fetch_client import FetchClient
    from src.ingestion.registry import AdapterRegistry

logger = logging.getLogger(__name__)

CHECK_VALID = "valid"

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def choose_credential(
    credentials: list[Credential], max_error_count: int = 3
) -> Credential | None:
    """Apply the selection policy to a provider's credentials."""
    usable = [
        c for c in credentials if c.is_active and c.error_count < max_error_count
    ]
    if not usable:
        return None
    return min(
        usable,
        key=lambda c: (
            c.error_count,
            c.last_used or _NEVER,
            c.created_at or _NEVER,
        ),
    )


def aggregate_health(
    credentials: list[Credential], max_error_count: int = 3
) -> PoolHealth:
    """
    Dashboard health of a credential pool.

    none configured -> unconfigured; no active entry -> all_failed; any
    active entry at the threshold -> degraded; any active entry with
    some failures -> unstable; otherwise healthy.
    """
    if not credentials:
        return PoolHealth.UNCONFIGURED

    active = [c for c in credentials if c.is_active]
    if not active:
        return PoolHealth.ALL_FAILED
    if any(c.error_count >= max_error_count for c in active):
        return PoolHealth.DEGRADED
    if any(0 < c.error_count < max_error_count for c in active):
        return PoolHealth.UNSTABLE
    return PoolHealth.HEALTHY


@dataclass
class PoolStatus:
    """Summary of one provider's pool for the admin console."""

    provider: str
    health: PoolHealth
    total: int
    active: int
    usable: int

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "status": self.health.value,
            "label": self.health.label,
            "total": self.total,
            "active": self.active,
            "usable": self.usable,
        }


@dataclass
class CredentialCheck:
    """Result of an operator check of one credential."""

    credential: Credential
    valid: bool


class CredentialPool:
    """
    Injected store of rotating session credentials.

    Usage:
        pool = CredentialPool(CredentialRepository(db))
        credential = await pool.select("bilibili")
        ...
        await pool.report_failure(credential, "HTTP 412")
    """

    def __init__(
        self,
        repository: CredentialRepository,
        config: CredentialsConfig | None = None,
    ) -> None:
        self._repo = repository
        self._config = config or CredentialsConfig()

    @property
    def repository(self) -> CredentialRepository:
        return self._repo

    @property
    def max_error_count(self) -> int:
        return self._config.max_error_count

    # ── Selection ──────────────────────────────────────────────

    async def select(self, provider: str) -> Credential:
        """
        Pick a credential for one outbound call and stamp last_used.

        Raises:
            CredentialError: No active credential below the error threshold
        """
        credentials = await self._repo.list_for_provider(provider)
        chosen = choose_credential(credentials, self.max_error_count)
        if chosen is None:
            get_metrics().set_credentials_usable(provider, 0)
            raise CredentialError(
                f"No usable {provider} credential "
                f"({len(credentials)} configured, all disabled or failing)",
                provider=provider,
            )

        await self._repo.touch(chosen.id)
        chosen.last_used = datetime.now(timezone.utc)
        return chosen

    async def report_failure(self, credential: Credential, message: str | None = None) -> int:
        """Record a failed call made with `credential`. Returns the new error count."""
        count = await self._repo.increment_error(credential.id, message)
        if count is None:
            logger.warning("Failure reported for unknown credential %s", credential.id)
            return credential.error_count

        credential.error_count = count
        if count >= self.max_error_count:
            logger.warning(
                "Credential %s/%s reached %d errors and is excluded until reset",
                credential.provider,
                credential.name,
                count,
            )
        else:
            logger.info(
                "Credential %s/%s error count now %d", credential.provider, credential.name, count
            )
        return count

    # ── Operator actions ───────────────────────────────────────

    async def add(self, provider: str, name: str, secret_value: str) -> Credential:
        if not provider or not name or not secret_value.strip():
            raise ValidationError("provider, name and secret_value are required")
        created = await self._repo.create(provider, name, secret_value.strip())
        if created is None:
            raise DuplicateError(f"Credential already exists: {provider}/{name}")
        logger.info("Credential added: %s/%s", provider, name)
        return created

    async def list_credentials(self, provider: str | None = None) -> list[Credential]:
        return await self._repo.list_for_provider(provider)

    async def disable(self, credential_id: str) -> Credential:
        return self._require(await self._repo.set_active(credential_id, False), credential_id)

    async def enable(self, credential_id: str) -> Credential:
        return self._require(await self._repo.set_active(credential_id, True), credential_id)

    async def reset(self, credential_id: str) -> Credential:
        """Clear the error count so the credential becomes selectable again."""
        return self._require(await self._repo.reset(credential_id), credential_id)

    async def remove(self, credential_id: str) -> None:
        if not await self._repo.delete(credential_id):
            raise NotFoundError(f"Credential not found: {credential_id}")
        logger.info("Credential removed: %s", credential_id)

    async def register_env(self, provider: str, secret_value: str | None) -> Credential | None:
        """Mirror an environment-provided secret into the pool as "env-<provider>"."""
        if not secret_value:
            return None
        return await self._repo.upsert_env(f"env-{provider}", provider, secret_value.strip())

    async def check(
        self,
        credential_id: str,
        registry: "AdapterRegistry",
        fetch_client: "FetchClient",
    ) -> CredentialCheck:
        """
        Validate one credential with a single probe made as that credential.

        The outcome is stored as last_check_at and check_result, which holds
        "valid" or the reason the check failed. A failed check does not count
        toward error_count; only pooled calls do.

        Raises:
            NotFoundError: Unknown credential, or no adapter for its provider
        """
        credential = self._require(await self._repo.get(credential_id), credential_id)
        adapter = registry.get(credential.provider)

        try:
            result = await fetch_client.check_credential(adapter, credential)
        except UpstreamError as e:
            valid, outcome = False, str(e)
        else:
            valid = result.warning is None
            outcome = CHECK_VALID if valid else result.warning

        checked = self._require(
            await self._repo.record_check(credential.id, outcome), credential_id
        )
        logger.info(
            "Credential %s/%s checked: %s", checked.provider, checked.name, outcome
        )
        return CredentialCheck(credential=checked, valid=valid)

    # ── Reporting ──────────────────────────────────────────────

    async def status(self, provider: str | None = None) -> list[PoolStatus]:
        """Per-provider pool summaries."""
        credentials = await self._repo.list_for_provider(provider)
        by_provider: dict[str, list[Credential]] = {}
        for credential in credentials:
            by_provider.setdefault(credential.provider, []).append(credential)
        if provider and provider not in by_provider:
            by_provider[provider] = []

        metrics = get_metrics()
        summaries = []
        for name, creds in sorted(by_provider.items()):
            usable = sum(
                1 for c in creds if c.is_active and c.error_count < self.max_error_count
            )
            metrics.set_credentials_usable(name, usable)
            summaries.append(
                PoolStatus(
                    provider=name,
                    health=aggregate_health(creds, self.max_error_count),
                    total=len(creds),
                    active=sum(1 for c in creds if c.is_active),
                    usable=usable,
                )
            )
        return summaries

    @staticmethod
    def _require(credential: Credential | None, credential_id: str) -> Credential:
        if credential is None:
            raise NotFoundError(f"Credential not found: {credential_id}")
        return credential
