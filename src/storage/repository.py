"""
Content repository for the shared content store.

Every adapter result lands here. Upserts are keyed by the content
fingerprint (source_name, external_id), so re-running a sync against
identical upstream data never creates duplicate rows.
"""

import logging

import asyncpg

from src.ingestion.schemas import ContentItem, ContentKind
from src.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS content_items (
    id            BIGSERIAL PRIMARY KEY,
    source_name   TEXT NOT NULL,
    external_id   TEXT NOT NULL,
    kind          TEXT NOT NULL,
    title         TEXT NOT NULL,
    body          TEXT NOT NULL DEFAULT '',
    url           TEXT,
    published_at  TIMESTAMPTZ,
    authors       TEXT[] NOT NULL DEFAULT '{}',
    metadata      JSONB NOT NULL DEFAULT '{}',
    found_via     TEXT[] NOT NULL DEFAULT '{}',
    created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (source_name, external_id)
);

CREATE INDEX IF NOT EXISTS idx_content_items_source
    ON content_items(source_name);
CREATE INDEX IF NOT EXISTS idx_content_items_published
    ON content_items(published_at DESC);
CREATE INDEX IF NOT EXISTS idx_content_items_kind
    ON content_items(kind);
"""

# xmax = 0 only for rows created by this statement
_UPSERT_SQL = """
INSERT INTO content_items (
    source_name, external_id, kind, title, body, url,
    published_at, authors, metadata, found_via
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
ON CONFLICT (source_name, external_id) DO UPDATE SET
    kind = EXCLUDED.kind,
    title = EXCLUDED.title,
    body = EXCLUDED.body,
    url = COALESCE(EXCLUDED.url, content_items.url),
    published_at = COALESCE(EXCLUDED.published_at, content_items.published_at),
    authors = EXCLUDED.authors,
    metadata = content_items.metadata || EXCLUDED.metadata,
    found_via = ARRAY(
        SELECT DISTINCT unnest(content_items.found_via || EXCLUDED.found_via)
    ),
    updated_at = NOW()
RETURNING (xmax = 0) AS inserted
"""


def _record_to_item(record: asyncpg.Record) -> ContentItem:
    """Convert an asyncpg Record to a ContentItem."""
    return ContentItem(
        external_id=record["external_id"],
        source_name=record["source_name"],
        kind=ContentKind(record["kind"]),
        title=record["title"],
        body=record["body"],
        url=record["url"],
        published_at=record["published_at"],
        authors=list(record["authors"] or []),
        metadata=dict(record["metadata"] or {}),
        found_via=list(record["found_via"] or []),
    )


class ContentRepository:
    """
    Idempotent storage for canonical ContentItem records.

    Tables:
        - content_items: one row per (source_name, external_id)
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the content_items table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Content items table ensured")

    async def upsert(self, item: ContentItem) -> bool:
        """
        Insert or update a single item.

        Keyword provenance (found_via) and metadata are merged with what
        is already stored rather than replaced.

        Returns:
            True if a new row was created, False if an existing row was updated
        """
        row = await self._db.fetchrow(
            _UPSERT_SQL,
            item.source_name,
            item.external_id,
            item.kind.value,
            item.title,
            item.body,
            item.url,
            item.published_at,
            item.authors,
            item.metadata,
            item.found_via,
        )
        inserted = bool(row["inserted"]) if row else False
        logger.debug(
            "Upserted %s/%s (inserted=%s)", item.source_name, item.external_id, inserted
        )
        return inserted

    async def get(self, source_name: str, external_id: str) -> ContentItem | None:
        row = await self._db.fetchrow(
            "SELECT * FROM content_items WHERE source_name = $1 AND external_id = $2",
            source_name,
            external_id,
        )
        return _record_to_item(row) if row else None

    async def count(self, source_name: str | None = None) -> int:
        """Count stored items, optionally for one source."""
        if source_name:
            total = await self._db.fetchval(
                "SELECT COUNT(*) FROM content_items WHERE source_name = $1",
                source_name,
            )
        else:
            total = await self._db.fetchval("SELECT COUNT(*) FROM content_items")
        return total or 0

    async def search_text(
        self,
        term: str,
        kinds: list[str] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ContentItem], int]:
        """
        Case-insensitive substring search over title and body.

        Returns (items, total).
        """
        conditions = ["(title ILIKE $1 OR body ILIKE $1)"]
        params: list = [f"%{term}%"]
        idx = 2

        if kinds:
            conditions.append(f"kind = ANY(${idx}::text[])")
            params.append(kinds)
            idx += 1

        where_clause = " WHERE " + " AND ".join(conditions)

        total = await self._db.fetchval(
            f"SELECT COUNT(*) FROM content_items{where_clause}", *params
        )

        data_sql = f"""
            SELECT * FROM content_items{where_clause}
            ORDER BY published_at DESC NULLS LAST, id DESC
            LIMIT ${idx} OFFSET ${idx + 1}
        """
        params.extend([limit, offset])
        rows = await self._db.fetch(data_sql, *params)

        return [_record_to_item(r) for r in rows], total or 0
