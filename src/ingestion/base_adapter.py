"""
Base adapter interface and shared functionality for source adapters.

Each provider adapter implements search() which returns canonical
ContentItem records. The base class provides:
- Binding to a DataSource row (base URL, API key, provider config)
- HTTP helpers that translate httpx failures into typed UpstreamError
- A default health probe built on search()
- Common parsing utilities

Adapters hold no state besides configuration. Retries, timeouts and
credential rotation live in the FetchClient, not here.
"""

import copy
import hashlib
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import httpx

from src.credentials.schemas import Credential
from src.ingestion.schemas import ContentItem, ContentKind, ProbeResult
from src.sync.errors import UpstreamError

if TYPE_CHECKING:
    from src.sources.schemas import DataSource

logger = logging.getLogger(__name__)

USER_AGENT = "embodied-sync/0.1 (+https://github.com/embodied-sync)"

# Upstream error bodies can be whole HTML pages
_MAX_ERROR_DETAIL = 200


class BaseAdapter(ABC):
    """
    Abstract base class for source adapters.

    Subclasses must define:
        - name: Registry key, equal to the DataSource name
        - kind: ContentKind of produced items
        - default_base_url: Used when the DataSource row has no override
        - search(): Provider query -> list[ContentItem]

    Subclasses may set:
        - needs_credential: Fetch client selects a pooled credential per call
        - slow: Provider gets the slow timeout (model-hub search and the like)
        - default_query: Query for a plain sync when config has none
        - default_probe_query: Query used by the default probe()
    """

    name: str = ""
    kind: ContentKind = ContentKind.NEWS
    default_base_url: str = ""
    needs_credential: bool = False
    slow: bool = False
    default_query: str = "embodied AI"
    default_probe_query: str = "robot"

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        config: dict[str, Any] | None = None,
        timeout: float = 60.0,
    ):
        """
        Initialize adapter.

        Args:
            base_url: Provider API root (falls back to default_base_url)
            api_key: Provider API key or token, if the provider uses one
            config: Provider-specific options (query, maxResults, ...)
            timeout: Per-request timeout in seconds
        """
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.api_key = api_key
        self.config: dict[str, Any] = dict(config or {})
        self.timeout = timeout

    # ── Configuration ──────────────────────────────────────────

    def configure(self, source: "DataSource", overrides: dict[str, Any] | None = None) -> None:
        """Bind the adapter to a DataSource row and optional per-call overrides."""
        if source.api_base_url:
            self.base_url = source.api_base_url.rstrip("/")
        if source.api_key:
            self.api_key = source.api_key
        self.config = {**source.config, **(overrides or {})}

    def configured(
        self, source: "DataSource", overrides: dict[str, Any] | None = None
    ) -> "BaseAdapter":
        """Return a copy bound to `source`, leaving the registry instance untouched."""
        bound = copy.copy(self)
        bound.config = dict(self.config)
        bound.configure(source, overrides)
        return bound

    def missing_configuration(self) -> str | None:
        """Describe required configuration that is absent, or None when ready."""
        if not self.base_url:
            return "API base URL is not configured"
        return None

    # ── Contract ───────────────────────────────────────────────

    @abstractmethod
    async def search(
        self,
        query: str,
        limit: int,
        since_days: int | None = None,
        credential: Credential | None = None,
    ) -> list[ContentItem]:
        """
        Search the provider and return canonical items.

        Args:
            query: Free-text query or keyword
            limit: Maximum number of items to return
            since_days: Only return items published within this many days
            credential: Pooled credential when needs_credential is set

        Raises:
            UpstreamError: On any provider or network failure
        """
        ...

    async def probe(self, credential: Credential | None = None) -> ProbeResult:
        """
        Lightweight availability check.

        Default implementation runs a one-result search. Providers with a
        cheaper ping endpoint override this.
        """
        items = await self.search(self.default_probe_query, 1, credential=credential)
        return ProbeResult(items=len(items), request_url=self.base_url)

    # ── HTTP helpers ───────────────────────────────────────────

    def _url(self, path: str = "") -> str:
        if not path:
            return self.base_url
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform a GET and classify every failure as an UpstreamError.

        Retryable: timeouts, connection/read errors, 429 and 5xx.
        Not retryable: 401/403 (auth) and any other 4xx.
        """
        request_headers = {"User-Agent": USER_AGENT}
        if headers:
            request_headers.update(headers)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True
            ) as client:
                response = await client.get(url, params=params, headers=request_headers)
        except httpx.TimeoutException as e:
            raise UpstreamError(
                "timeout",
                f"{self.name} request timed out after {self.timeout:g}s",
                retryable=True,
                request_url=url,
            ) from e
        except httpx.TransportError as e:
            raise UpstreamError(
                "network",
                f"{self.name} network error: {type(e).__name__}: {e}",
                retryable=True,
                request_url=url,
            ) from e

        request_url = str(response.request.url)
        status = response.status_code

        if status == 429:
            retry_after = response.headers.get("Retry-After")
            message = f"{self.name} rate limited the request"
            if retry_after:
                message += f" (retry after {retry_after}s)"
            raise UpstreamError(
                "rate_limited",
                message,
                retryable=True,
                status_code=status,
                request_url=request_url,
            )

        if status >= 500:
            raise UpstreamError(
                "server_error",
                f"{self.name} returned HTTP {status}: {_detail(response)}",
                retryable=True,
                status_code=status,
                request_url=request_url,
            )

        if status in (401, 403):
            raise UpstreamError(
                "auth",
                f"{self.name} rejected the credentials (HTTP {status}): {_detail(response)}",
                retryable=False,
                status_code=status,
                request_url=request_url,
            )

        if status >= 400:
            raise UpstreamError(
                "client_error",
                f"{self.name} returned HTTP {status}: {_detail(response)}",
                retryable=False,
                status_code=status,
                request_url=request_url,
            )

        return response

    async def _get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET and decode a JSON body."""
        response = await self._request(url, params=params, headers=headers)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                "parse",
                f"{self.name} returned a non-JSON body",
                retryable=False,
                status_code=response.status_code,
                request_url=str(response.request.url),
            ) from e

    async def _get_text(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> str:
        """GET and return the body as text."""
        response = await self._request(url, params=params, headers=headers)
        return response.text

    def _parse_error(self, message: str, request_url: str | None = None) -> UpstreamError:
        return UpstreamError(
            "parse", f"{self.name}: {message}", retryable=False, request_url=request_url
        )


def _detail(response: httpx.Response) -> str:
    text = response.text.strip().replace("\n", " ")
    if len(text) > _MAX_ERROR_DETAIL:
        text = text[:_MAX_ERROR_DETAIL] + "..."
    return text or response.reason_phrase


# Common parsing utilities used across adapters


def since_datetime(days: int) -> datetime:
    """UTC cut-off for a look-back window of `days` days."""
    return datetime.now(timezone.utc) - timedelta(days=days)


def parse_iso_datetime(value: str | None) -> datetime | None:
    """Parse ISO-8601 timestamps as returned by JSON APIs ("Z" suffix included)."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_epoch(value: Any) -> datetime | None:
    """Parse a Unix timestamp in seconds or milliseconds."""
    if value in (None, ""):
        return None
    try:
        ts = float(value)
    except (TypeError, ValueError):
        return None
    if ts > 1e12:
        ts /= 1000
    return datetime.fromtimestamp(ts, tz=timezone.utc)


_TAG_PATTERN = re.compile(r"<[^>]+>")


def strip_tags(text: str) -> str:
    """Remove inline HTML tags such as search-highlight <em> markers."""
    return _TAG_PATTERN.sub("", text or "")


def stable_id(*parts: str) -> str:
    """Deterministic identifier for providers that do not return one."""
    digest = hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()
    return digest[:16]


def title_contains(title: str, query: str) -> bool:
    """Case-insensitive substring match used by hot-list providers."""
    return query.lower() in (title or "").lower()
