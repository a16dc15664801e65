"""Database repository for the credentials table."""

import logging
import uuid

import asyncpg

from src.credentials.schemas import Credential
from src.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS credentials (
    id            TEXT PRIMARY KEY,
    provider      TEXT NOT NULL,
    name          TEXT NOT NULL,
    secret_value  TEXT NOT NULL,
    error_count   INTEGER NOT NULL DEFAULT 0,
    last_error    TEXT,
    last_used     TIMESTAMPTZ,
    is_active     BOOLEAN NOT NULL DEFAULT TRUE,
    created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    last_check_at TIMESTAMPTZ,
    check_result  TEXT,
    UNIQUE (provider, name)
);

ALTER TABLE credentials ADD COLUMN IF NOT EXISTS last_check_at TIMESTAMPTZ;
ALTER TABLE credentials ADD COLUMN IF NOT EXISTS check_result TEXT;

CREATE INDEX IF NOT EXISTS idx_credentials_provider_active
    ON credentials(provider, is_active) WHERE is_active = TRUE;
"""

_INSERT_SQL = """
INSERT INTO credentials (id, provider, name, secret_value, is_active)
VALUES ($1, $2, $3, $4, $5)
ON CONFLICT (provider, name) DO NOTHING
RETURNING *
"""

# Environment credentials keep their id; the secret follows the env var
_UPSERT_ENV_SQL = """
INSERT INTO credentials (id, provider, name, secret_value)
VALUES ($1, $2, $3, $4)
ON CONFLICT (id) DO UPDATE SET
    secret_value = EXCLUDED.secret_value
RETURNING *
"""

# Single statement so concurrent failures never lose an increment
_INCREMENT_ERROR_SQL = """
UPDATE credentials
SET error_count = error_count + 1,
    last_error = $2
WHERE id = $1
RETURNING error_count
"""


def _record_to_credential(record: asyncpg.Record) -> Credential:
    """Convert an asyncpg Record to a Credential dataclass."""
    return Credential(
        id=record["id"],
        provider=record["provider"],
        name=record["name"],
        secret_value=record["secret_value"],
        error_count=record["error_count"],
        last_error=record["last_error"],
        last_used=record["last_used"],
        is_active=record["is_active"],
        created_at=record["created_at"],
        last_check_at=record.get("last_check_at"),
        check_result=record.get("check_result"),
    )


class CredentialRepository:
    """CRUD operations for the credentials table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the credentials table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Credentials table ensured")

    async def create(
        self, provider: str, name: str, secret_value: str, is_active: bool = True
    ) -> Credential | None:
        """Insert a credential. Returns None when (provider, name) already exists."""
        row = await self._db.fetchrow(
            _INSERT_SQL, uuid.uuid4().hex, provider, name, secret_value, is_active
        )
        return _record_to_credential(row) if row else None

    async def upsert_env(self, credential_id: str, provider: str, secret_value: str) -> Credential:
        row = await self._db.fetchrow(
            _UPSERT_ENV_SQL, credential_id, provider, "environment", secret_value
        )
        return _record_to_credential(row)

    async def get(self, credential_id: str) -> Credential | None:
        row = await self._db.fetchrow("SELECT * FROM credentials WHERE id = $1", credential_id)
        return _record_to_credential(row) if row else None

    async def list_for_provider(self, provider: str | None = None) -> list[Credential]:
        """All credentials (active or not), oldest first."""
        if provider:
            rows = await self._db.fetch(
                "SELECT * FROM credentials WHERE provider = $1 ORDER BY created_at, id",
                provider,
            )
        else:
            rows = await self._db.fetch(
                "SELECT * FROM credentials ORDER BY provider, created_at, id"
            )
        return [_record_to_credential(r) for r in rows]

    async def touch(self, credential_id: str) -> None:
        """Stamp last_used on selection."""
        await self._db.execute(
            "UPDATE credentials SET last_used = NOW() WHERE id = $1", credential_id
        )

    async def increment_error(self, credential_id: str, message: str | None) -> int | None:
        """Atomically add one failure. Returns the new count, None if the id is unknown."""
        return await self._db.fetchval(_INCREMENT_ERROR_SQL, credential_id, message)

    async def set_active(self, credential_id: str, is_active: bool) -> Credential | None:
        row = await self._db.fetchrow(
            "UPDATE credentials SET is_active = $2 WHERE id = $1 RETURNING *",
            credential_id,
            is_active,
        )
        return _record_to_credential(row) if row else None

    async def reset(self, credential_id: str) -> Credential | None:
        row = await self._db.fetchrow(
            """
            UPDATE credentials SET error_count = 0, last_error = NULL
            WHERE id = $1
            RETURNING *
            """,
            credential_id,
        )
        return _record_to_credential(row) if row else None

    async def delete(self, credential_id: str) -> bool:
        """Hard-delete a credential. Returns True if a row was removed."""
        result = await self._db.execute("DELETE FROM credentials WHERE id = $1", credential_id)
        return result.endswith("1")

    async def record_check(self, credential_id: str, result: str) -> Credential | None:
        """Stamp an operator check; error_count is left alone."""
        row = await self._db.fetchrow(
            """
            UPDATE credentials SET last_check_at = NOW(), check_result = $2
            WHERE id = $1
            RETURNING *
            """,
            credential_id,
            result,
        )
        return _record_to_credential(row) if row else None
