"""Data models for the credential pool."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass
class Credential:
    """A session credential (for example a logged-in Bilibili cookie).

    Mutated only through the pool: selection stamps `last_used`, a failed
    call increments `error_count`, an operator check stamps `last_check_at`
    and `check_result` ("valid" or the failure), and operators add, disable,
    reset or remove entries.
    """

    id: str
    provider: str
    name: str
    secret_value: str
    error_count: int = 0
    last_error: str | None = None
    last_used: datetime | None = None
    is_active: bool = True
    created_at: datetime | None = None
    last_check_at: datetime | None = None
    check_result: str | None = None

    def masked_secret(self) -> str:
        """Secret with everything but the edges hidden, for API output."""
        value = self.secret_value
        if len(value) <= 8:
            return "*" * len(value)
        return f"{value[:4]}{'*' * 8}{value[-4:]}"


class PoolHealth(str, Enum):
    """Aggregate health of a provider's credential pool."""

    UNCONFIGURED = "unconfigured"
    ALL_FAILED = "all_failed"
    DEGRADED = "degraded"
    UNSTABLE = "unstable"
    HEALTHY = "healthy"

    @property
    def label(self) -> str:
        """Console label shown by the admin dashboard."""
        return _POOL_HEALTH_LABELS[self]


_POOL_HEALTH_LABELS = {
    PoolHealth.UNCONFIGURED: "未配置",
    PoolHealth.ALL_FAILED: "全部失效",
    PoolHealth.DEGRADED: "部分失效",
    PoolHealth.UNSTABLE: "不稳定",
    PoolHealth.HEALTHY: "正常",
}
