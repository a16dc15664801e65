"""
Canonical content schema shared by every source adapter.

All adapters must transform their provider-specific responses into
ContentItem, so the orchestrator and the content store never see
provider wire formats.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ContentKind(str, Enum):
    """Kind of content a provider produces."""

    PAPER = "paper"
    REPOSITORY = "repository"
    MODEL = "model"
    VIDEO = "video"
    NEWS = "news"


class ContentItem(BaseModel):
    """
    Canonical content record produced by adapters.

    The pair (source_name, external_id) is the content fingerprint: the
    content store upserts on it and the keyword matcher dedupes on it.
    """

    external_id: str = Field(
        ...,
        min_length=1,
        description="Provider-assigned identifier (arXiv id, repo full name, BV id, ...)",
    )
    source_name: str = Field(..., description="Name of the DataSource that produced it")
    kind: ContentKind = Field(..., description="Content kind")
    title: str = Field(..., description="Title or headline")
    body: str = Field(default="", description="Abstract, description or summary")
    url: str | None = Field(default=None, description="Canonical URL")
    published_at: datetime | None = Field(default=None, description="Publication time")
    authors: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Provider-specific fields kept for display (stars, downloads, views, ...)",
    )
    found_via: list[str] = Field(
        default_factory=list,
        description="Keywords whose search returned this item",
    )

    @field_validator("title", "body", mode="before")
    @classmethod
    def collapse_whitespace(cls, v: Any) -> str:
        """Providers (arXiv especially) wrap titles across lines."""
        if v is None:
            return ""
        return " ".join(str(v).split())

    @property
    def fingerprint(self) -> tuple[str, str]:
        return (self.source_name, self.external_id)

    def add_found_via(self, keyword: str) -> None:
        if keyword not in self.found_via:
            self.found_via.append(keyword)


@dataclass
class ProbeResult:
    """Outcome of a lightweight health probe that did not raise.

    A probe that fails raises UpstreamError instead; `warning` carries a
    degraded-but-working note that should not flip the health status.
    """

    items: int = 0
    warning: str | None = None
    request_url: str | None = None
    status_code: int | None = None
