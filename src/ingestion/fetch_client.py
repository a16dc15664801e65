"""
Rate-limited fetch client wrapping every adapter call.

Provides:
- RetryPolicy: Bounded retry budget with linearly escalating delays
- FetchClient: Per-attempt timeout, retry of retryable UpstreamErrors,
  cooperative cancellation and credential rotation for adapters that
  need a session

This layer keeps transport concerns (deadlines, retries, credentials)
out of the adapters, which only translate provider responses.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from src.credentials.schemas import Credential
from src.ingestion.base_adapter import BaseAdapter
from src.ingestion.schemas import ContentItem, ProbeResult
from src.observability.metrics import get_metrics
from src.sync.config import SyncConfig
from src.sync.errors import SyncCancelledError, SyncError, UpstreamError

if TYPE_CHECKING:
    from src.credentials.pool import CredentialPool

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that count against the credential that made the call
CREDENTIAL_FAILURE_KINDS = frozenset({"auth", "rate_limited"})


@dataclass
class RetryPolicy:
    """
    Bounded retry configuration.

    At most `max_retries` retries follow the first attempt. The delay
    before retry n (1-based) is n * base_delay, so the defaults wait
    3s then 6s.
    """

    max_retries: int = 2
    base_delay: float = 3.0

    @classmethod
    def from_config(cls, config: SyncConfig) -> "RetryPolicy":
        return cls(max_retries=config.max_retries, base_delay=config.retry_base_delay)

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        return cls(max_retries=0, base_delay=0.0)

    @property
    def max_attempts(self) -> int:
        return 1 + self.max_retries

    def delay_for(self, retry: int) -> float:
        """Delay in seconds before the given retry (1-based)."""
        return retry * self.base_delay


class FetchClient:
    """
    Executes adapter calls under a deadline with bounded retries.

    Features:
    - Each attempt runs under asyncio.wait_for with the provider timeout
    - Only UpstreamErrors marked retryable are retried
    - The final error is re-raised unchanged apart from `attempts`
    - Any other adapter exception becomes a non-retryable "parse" UpstreamError
    - asyncio.CancelledError is never swallowed and skips remaining retries
    - An optional cancel_event stops new attempts and interrupts backoff
    - Credentials are selected per attempt; auth and throttling failures
      are reported back to the pool

    Example:
        client = FetchClient(RetryPolicy(max_retries=2, base_delay=3.0), pool)
        items = await client.search(adapter, "humanoid", 20, since_days=7)
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        credential_pool: "CredentialPool | None" = None,
        config: SyncConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize fetch client.

        Args:
            policy: Retry policy. Derived from config when omitted.
            credential_pool: Pool used for adapters with needs_credential
            config: Sync settings (timeouts, retry defaults)
            sleep: Backoff sleep, replaceable in tests
        """
        self._config = config or SyncConfig()
        self.policy = policy or RetryPolicy.from_config(self._config)
        self._pool = credential_pool
        self._sleep = sleep

    def timeout_for(self, adapter: BaseAdapter) -> float:
        """Per-attempt deadline for an adapter."""
        return self._config.timeout_for(adapter.name, slow=adapter.slow)

    async def call(
        self,
        adapter: BaseAdapter,
        operation: str,
        fn: Callable[[], Awaitable[T]],
        timeout: float | None = None,
        policy: RetryPolicy | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> T:
        """
        Run `fn` with deadline and retry handling.

        Args:
            adapter: Adapter the call belongs to (for naming and timeouts)
            operation: Label for logs and metrics ("search", "probe")
            fn: Zero-argument coroutine factory, invoked once per attempt
            timeout: Per-attempt deadline override
            policy: Retry policy override
            cancel_event: Set by the caller to stop further attempts

        Raises:
            UpstreamError: Final failure, with `attempts` set
            SyncCancelledError: cancel_event was set before completion
        """
        policy = policy or self.policy
        timeout = timeout or self.timeout_for(adapter)
        metrics = get_metrics()
        attempt = 0

        while True:
            attempt += 1
            _raise_if_cancelled(cancel_event, adapter.name)

            started = time.monotonic()
            try:
                result = await asyncio.wait_for(fn(), timeout=timeout)
            except asyncio.TimeoutError:
                error = UpstreamError(
                    "timeout",
                    f"{adapter.name} {operation} timed out after {timeout:g}s",
                    retryable=True,
                    request_url=adapter.base_url,
                )
            except UpstreamError as e:
                error = e
            except SyncError:
                raise
            except Exception as e:
                # Adapter bug or malformed payload, never retried
                error = UpstreamError(
                    "parse",
                    f"{adapter.name} {operation} failed: {type(e).__name__}: {e}",
                    request_url=adapter.base_url,
                )
                error.__cause__ = e
            else:
                metrics.record_adapter_latency(adapter.name, operation, time.monotonic() - started)
                if attempt > 1:
                    logger.info(
                        f"{adapter.name} {operation} succeeded on attempt {attempt}/{policy.max_attempts}"
                    )
                return result

            metrics.record_adapter_latency(adapter.name, operation, time.monotonic() - started)
            error.attempts = attempt

            if not error.retryable or attempt >= policy.max_attempts:
                metrics.record_upstream_error(adapter.name, error.kind)
                logger.warning(
                    f"{adapter.name} {operation} failed after {attempt} attempt(s): {error}"
                )
                raise error

            delay = policy.delay_for(attempt)
            metrics.record_retry(adapter.name)
            logger.warning(
                f"Retryable {error.kind} from {adapter.name} {operation}, "
                f"attempt {attempt}/{policy.max_attempts}, backing off {delay:.1f}s"
            )
            await self._backoff(delay, cancel_event, adapter.name)

    async def search(
        self,
        adapter: BaseAdapter,
        query: str,
        limit: int,
        since_days: int | None = None,
        policy: RetryPolicy | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[ContentItem]:
        """Adapter search through the retry loop, rotating credentials per attempt."""

        async def attempt() -> list[ContentItem]:
            credential = await self._select_credential(adapter)
            try:
                return await adapter.search(
                    query, limit, since_days=since_days, credential=credential
                )
            except UpstreamError as e:
                await self._report_credential_failure(credential, e)
                raise

        return await self.call(
            adapter, "search", attempt, policy=policy, cancel_event=cancel_event
        )

    async def probe(
        self,
        adapter: BaseAdapter,
        policy: RetryPolicy | None = None,
    ) -> ProbeResult:
        """Adapter probe through the retry loop."""

        async def attempt() -> ProbeResult:
            credential = await self._select_credential(adapter)
            try:
                return await adapter.probe(credential=credential)
            except UpstreamError as e:
                await self._report_credential_failure(credential, e)
                raise

        return await self.call(adapter, "probe", attempt, policy=policy)

    async def check_credential(self, adapter: BaseAdapter, credential: Credential) -> ProbeResult:
        """One probe made as `credential`. Failures are not reported to the pool."""
        return await self.call(
            adapter,
            "check",
            lambda: adapter.probe(credential=credential),
            policy=RetryPolicy.no_retry(),
        )

    async def _select_credential(self, adapter: BaseAdapter) -> Credential | None:
        """Pick a pooled credential; raises CredentialError when none is usable."""
        if not adapter.needs_credential or self._pool is None:
            return None
        return await self._pool.select(adapter.name)

    async def _report_credential_failure(
        self, credential: Credential | None, error: UpstreamError
    ) -> None:
        if credential is None or self._pool is None:
            return
        if error.kind in CREDENTIAL_FAILURE_KINDS:
            await self._pool.report_failure(credential, error.message)

    async def _backoff(
        self, delay: float, cancel_event: asyncio.Event | None, name: str
    ) -> None:
        """Sleep between attempts, waking early if the caller cancels."""
        if cancel_event is None:
            await self._sleep(delay)
            return

        sleeper = asyncio.ensure_future(self._sleep(delay))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()

        if cancel_event.is_set():
            raise SyncCancelledError(f"{name} call cancelled during retry backoff")


def _raise_if_cancelled(cancel_event: asyncio.Event | None, name: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise SyncCancelledError(f"{name} call cancelled")
