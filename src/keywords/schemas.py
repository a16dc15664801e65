"""Data models for keyword subscriptions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from src.ingestion.schemas import ContentItem


class KeywordScope(str, Enum):
    """Logical keyword table a subscription belongs to."""

    PAPER = "paper"
    VIDEO = "video"
    NEWS = "news"

    @property
    def content_kinds(self) -> list[str]:
        return [self.value]


class KeywordSourceType(str, Enum):
    ADMIN = "admin"
    USER = "user"


@dataclass
class Keyword:
    """A search term driving keyword syncs.

    `keyword` is unique within its scope and compared case-sensitively.
    Higher priority is processed first; ties go to the newest entry.
    """

    id: str
    keyword: str
    scope: KeywordScope = KeywordScope.PAPER
    category: str | None = None
    source_type: KeywordSourceType = KeywordSourceType.ADMIN
    is_active: bool = True
    priority: int = 50
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    last_synced_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class KeywordSyncResult:
    """Aggregate outcome of one keyword flow.

    `keywords` counts keywords whose search was attempted, `errors`
    counts keywords whose search failed after retries, and `items` holds
    the merged, deduplicated results.
    """

    keywords: int = 0
    errors: int = 0
    items: list[ContentItem] = field(default_factory=list)
    processed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def synced(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict:
        return {"synced": self.synced, "keywords": self.keywords, "errors": self.errors}
