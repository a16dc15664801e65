"""Configuration for sync runs, retries and provider timeouts."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncConfig(BaseSettings):
    """Settings for the fetch client, keyword flows and run bookkeeping.

    Retry and timeout values are operational defaults, tune them against
    the providers' published rate limits.
    """

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        case_sensitive=False,
        extra="ignore",
    )

    # Fetch client
    default_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Per-attempt timeout for fast providers",
    )
    slow_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Per-attempt timeout for slow providers such as model-hub search",
    )
    provider_timeouts: dict[str, float] = Field(
        default_factory=dict,
        description='Per-provider overrides, e.g. SYNC_PROVIDER_TIMEOUTS=\'{"github": 30}\'',
    )
    max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retries after the first attempt for retryable failures",
    )
    retry_base_delay: float = Field(
        default=3.0,
        ge=0,
        description="Delay before retry n is n * retry_base_delay seconds",
    )

    # Keyword flows
    default_days: int = Field(
        default=7,
        ge=1,
        le=365,
        description="Look-back window for keyword syncs",
    )
    default_max_results_per_keyword: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Results requested per keyword",
    )

    # Plain sync
    default_max_results: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Results requested when a source config omits maxResults",
    )

    # Single-flight
    stale_run_minutes: int = Field(
        default=30,
        ge=1,
        description="A 'running' claim older than this is treated as abandoned",
    )

    def timeout_for(self, provider: str, slow: bool = False) -> float:
        """Resolve the per-attempt timeout for a provider."""
        if provider in self.provider_timeouts:
            return self.provider_timeouts[provider]
        return self.slow_timeout_seconds if slow else self.default_timeout_seconds
