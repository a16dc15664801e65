"""Database repository for the keywords table."""

import logging
import uuid

import asyncpg

from src.ingestion.schemas import ContentItem
from src.keywords.schemas import Keyword, KeywordScope, KeywordSourceType
from src.storage.database import Database
from src.storage.repository import ContentRepository
from src.sync.errors import DuplicateError

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS keywords (
    id              TEXT PRIMARY KEY,
    scope           TEXT NOT NULL,
    keyword         TEXT NOT NULL,
    category        TEXT,
    source_type     TEXT NOT NULL DEFAULT 'admin',
    is_active       BOOLEAN NOT NULL DEFAULT TRUE,
    priority        INTEGER NOT NULL DEFAULT 50 CHECK (priority BETWEEN 0 AND 100),
    description     TEXT,
    tags            TEXT[] NOT NULL DEFAULT '{}',
    last_synced_at  TIMESTAMPTZ,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (scope, keyword)
);

CREATE INDEX IF NOT EXISTS idx_keywords_scope_active
    ON keywords(scope, is_active, priority DESC, created_at DESC);
"""

_INSERT_SQL = """
INSERT INTO keywords (
    id, scope, keyword, category, source_type, is_active, priority, description, tags
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
ON CONFLICT (scope, keyword) DO NOTHING
RETURNING *
"""

_ORDER_BY = "ORDER BY priority DESC, created_at DESC, id"

_UPDATABLE = ("keyword", "category", "source_type", "is_active", "priority", "description", "tags")


def _record_to_keyword(record: asyncpg.Record) -> Keyword:
    """Convert an asyncpg Record to a Keyword dataclass."""
    return Keyword(
        id=record["id"],
        keyword=record["keyword"],
        scope=KeywordScope(record["scope"]),
        category=record["category"],
        source_type=KeywordSourceType(record["source_type"]),
        is_active=record["is_active"],
        priority=record["priority"],
        description=record["description"],
        tags=list(record["tags"] or []),
        last_synced_at=record["last_synced_at"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class KeywordRepository:
    """CRUD operations for keyword subscriptions."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the keywords table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Keywords table ensured")

    async def create(self, keyword: Keyword) -> Keyword:
        """
        Insert a keyword.

        Raises:
            DuplicateError: The keyword already exists in its scope
        """
        row = await self._db.fetchrow(
            _INSERT_SQL,
            keyword.id or uuid.uuid4().hex,
            keyword.scope.value,
            keyword.keyword,
            keyword.category,
            keyword.source_type.value,
            keyword.is_active,
            keyword.priority,
            keyword.description,
            keyword.tags,
        )
        if row is None:
            raise DuplicateError(
                f"Keyword already exists in {keyword.scope.value}: {keyword.keyword}"
            )
        return _record_to_keyword(row)

    async def batch_create(self, keywords: list[Keyword]) -> tuple[list[Keyword], list[str]]:
        """
        Insert many keywords, skipping ones that already exist.

        Returns (created, skipped_keyword_strings).
        """
        created: list[Keyword] = []
        skipped: list[str] = []
        seen: set[tuple[str, str]] = set()

        for keyword in keywords:
            key = (keyword.scope.value, keyword.keyword)
            if key in seen:
                skipped.append(keyword.keyword)
                continue
            seen.add(key)
            try:
                created.append(await self.create(keyword))
            except DuplicateError:
                skipped.append(keyword.keyword)

        logger.info("Batch created %d keywords, skipped %d", len(created), len(skipped))
        return created, skipped

    async def get(self, keyword_id: str) -> Keyword | None:
        row = await self._db.fetchrow("SELECT * FROM keywords WHERE id = $1", keyword_id)
        return _record_to_keyword(row) if row else None

    async def list_keywords(
        self,
        scope: KeywordScope | None = None,
        is_active: bool | None = None,
        category: str | None = None,
        source_type: KeywordSourceType | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Keyword], int]:
        """Paginated list with filters, highest priority first. Returns (keywords, total)."""
        conditions: list[str] = []
        params: list = []
        idx = 1

        if scope is not None:
            conditions.append(f"scope = ${idx}")
            params.append(scope.value)
            idx += 1

        if is_active is not None:
            conditions.append(f"is_active = ${idx}")
            params.append(is_active)
            idx += 1

        if category:
            conditions.append(f"category = ${idx}")
            params.append(category)
            idx += 1

        if source_type is not None:
            conditions.append(f"source_type = ${idx}")
            params.append(source_type.value)
            idx += 1

        if search:
            conditions.append(f"(keyword ILIKE ${idx} OR description ILIKE ${idx})")
            params.append(f"%{search}%")
            idx += 1

        where_clause = " WHERE " + " AND ".join(conditions) if conditions else ""

        total = await self._db.fetchval(f"SELECT COUNT(*) FROM keywords{where_clause}", *params)

        data_sql = f"""
            SELECT * FROM keywords{where_clause}
            {_ORDER_BY}
            LIMIT ${idx} OFFSET ${idx + 1}
        """
        params.extend([limit, offset])
        rows = await self._db.fetch(data_sql, *params)

        return [_record_to_keyword(r) for r in rows], total or 0

    async def get_active(
        self,
        scope: KeywordScope,
        source_type: KeywordSourceType | None = None,
    ) -> list[Keyword]:
        """Active keywords of a scope in processing order. source_type None means all."""
        if source_type is None:
            rows = await self._db.fetch(
                f"SELECT * FROM keywords WHERE scope = $1 AND is_active = TRUE {_ORDER_BY}",
                scope.value,
            )
        else:
            rows = await self._db.fetch(
                f"""
                SELECT * FROM keywords
                WHERE scope = $1 AND is_active = TRUE AND source_type = $2
                {_ORDER_BY}
                """,
                scope.value,
                source_type.value,
            )
        return [_record_to_keyword(r) for r in rows]

    async def update(self, keyword_id: str, **fields) -> Keyword | None:
        """
        Patch a keyword. Unknown field names are ignored.

        Raises:
            DuplicateError: The new keyword text collides within the scope
        """
        sets: list[str] = []
        params: list = [keyword_id]
        idx = 2

        for column in _UPDATABLE:
            if column not in fields or fields[column] is None:
                continue
            value = fields[column]
            if column == "source_type" and isinstance(value, KeywordSourceType):
                value = value.value
            sets.append(f"{column} = ${idx}")
            params.append(value)
            idx += 1

        if not sets:
            return await self.get(keyword_id)

        sql = f"""
            UPDATE keywords SET {", ".join(sets)}, updated_at = NOW()
            WHERE id = $1
            RETURNING *
        """
        try:
            row = await self._db.fetchrow(sql, *params)
        except asyncpg.UniqueViolationError as e:
            raise DuplicateError(f"Keyword already exists: {fields.get('keyword')}") from e
        return _record_to_keyword(row) if row else None

    async def delete(self, keyword_id: str) -> bool:
        result = await self._db.execute("DELETE FROM keywords WHERE id = $1", keyword_id)
        return result.endswith("1")

    async def mark_synced(self, keyword_ids: list[str]) -> None:
        """Stamp last_synced_at on keywords whose search succeeded."""
        if not keyword_ids:
            return
        await self._db.execute(
            "UPDATE keywords SET last_synced_at = NOW() WHERE id = ANY($1::text[])",
            keyword_ids,
        )

    async def content_for_keyword(
        self, keyword: Keyword, limit: int = 20, offset: int = 0
    ) -> tuple[list[ContentItem], int]:
        """Stored content of the keyword's scope whose title or body contains it."""
        content = ContentRepository(self._db)
        return await content.search_text(
            keyword.keyword,
            kinds=keyword.scope.content_kinds,
            limit=limit,
            offset=offset,
        )
