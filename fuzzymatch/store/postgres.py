"""PostgreSQL implementation of the n-gram store and document repository.

N-grams are stored as a ``text[]`` column with a GIN index so candidate
lookup is a single ``&&`` (overlap) query filtered by a btree index on
``(collection_name, field, n)``. Collection replacement runs in one
transaction, so concurrent searches see either the old or the new records.

Connection management
- A shared asyncpg pool is created on demand and reused across calls
- Queries are funneled through ``PgPool.execute`` for uniform error handling
"""

import re
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence

import asyncpg
from asyncpg import Pool
import structlog

from ..errors import StoreConnectionError, StoreQueryError
from ..models import NGramRecord
from .base import DocumentRepository, NGramStore

logger = structlog.get_logger("store.postgres")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


class PgPool:
    """Lazily created asyncpg pool shared by stores and repositories."""

    def __init__(
        self,
        dsn: str,
        pool_size: int = 10,
        command_timeout: int = 60,
    ):
        """Configure the pool.

        Parameters
        - dsn: PostgreSQL DSN including database and credentials
        - pool_size: Max size of the asyncpg connection pool
        - command_timeout: Seconds to allow per DB command
        """
        self.dsn = dsn
        self.pool_size = pool_size
        self.command_timeout = command_timeout
        self._pool: Optional[Pool] = None

    async def get_pool(self) -> Pool:
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=1,
                    max_size=self.pool_size,
                    command_timeout=self.command_timeout,
                )
                logger.info("Created PostgreSQL connection pool", pool_size=self.pool_size)
            except (OSError, asyncpg.PostgresError) as e:
                logger.error("Failed to create PostgreSQL connection pool", error=str(e))
                raise StoreConnectionError(f"Failed to create connection pool: {e}") from e
        return self._pool

    async def execute(
        self,
        query: str,
        *args: Any,
        fetch: bool = False,
        fetch_val: bool = False,
    ) -> Any:
        """Run a query, wrapping driver failures in ``StoreQueryError``."""
        pool = await self.get_pool()
        try:
            async with pool.acquire() as conn:
                if fetch_val:
                    return await conn.fetchval(query, *args)
                if fetch:
                    return await conn.fetch(query, *args)
                return await conn.execute(query, *args)
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error("Query execution failed", query=query, error=str(e))
            raise StoreQueryError(f"Query failed: {e}") from e

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")


class PgNGramStore(NGramStore):
    """N-gram records in a PostgreSQL table."""

    def __init__(self, pool: PgPool, table: str = "ngrams"):
        self.pool = pool
        self.table = _check_identifier(table)

    async def ensure_schema(self) -> None:
        """Create the table and its lookup indexes if missing."""
        t = self.table
        await self.pool.execute(f"""
            CREATE TABLE IF NOT EXISTS {t} (
                id TEXT PRIMARY KEY,
                document_id TEXT NOT NULL,
                collection_name TEXT NOT NULL,
                field TEXT NOT NULL,
                n INTEGER NOT NULL CHECK (n >= 1),
                ngrams TEXT[] NOT NULL
            )
        """)
        await self.pool.execute(
            f"CREATE INDEX IF NOT EXISTS {t}_collection_field_n_idx ON {t} (collection_name, field, n)"
        )
        await self.pool.execute(f"CREATE INDEX IF NOT EXISTS {t}_ngrams_idx ON {t} USING GIN (ngrams)")
        await self.pool.execute(
            f"CREATE INDEX IF NOT EXISTS {t}_document_field_idx ON {t} (document_id, field)"
        )
        logger.info("N-gram schema ensured", table=t)

    @staticmethod
    def _to_record(row: Any) -> NGramRecord:
        return NGramRecord(
            id=row["id"],
            document_id=row["document_id"],
            collection_name=row["collection_name"],
            field=row["field"],
            n=row["n"],
            ngrams=frozenset(row["ngrams"]),
        )

    async def find_by_collection_field_ngrams_and_n(
        self,
        collection_name: str,
        field: str,
        ngrams: Iterable[str],
        n: int,
    ) -> List[NGramRecord]:
        wanted = sorted(set(ngrams))
        if not wanted:
            return []
        rows = await self.pool.execute(
            f"""
            SELECT id, document_id, collection_name, field, n, ngrams
            FROM {self.table}
            WHERE collection_name = $1 AND field = $2 AND n = $3 AND ngrams && $4::text[]
            ORDER BY document_id
            """,
            collection_name,
            field,
            n,
            wanted,
            fetch=True,
        )
        return [self._to_record(row) for row in rows]

    async def find_by_document_id_and_field(self, document_id: str, field: str) -> List[NGramRecord]:
        rows = await self.pool.execute(
            f"""
            SELECT id, document_id, collection_name, field, n, ngrams
            FROM {self.table}
            WHERE document_id = $1 AND field = $2
            """,
            document_id,
            field,
            fetch=True,
        )
        return [self._to_record(row) for row in rows]

    async def delete_by_collection_name(self, collection_name: str) -> int:
        status = await self.pool.execute(
            f"DELETE FROM {self.table} WHERE collection_name = $1", collection_name
        )
        return _affected_rows(status)

    @staticmethod
    def _to_row(record: NGramRecord) -> tuple:
        return (
            record.id,
            record.document_id,
            record.collection_name,
            record.field,
            record.n,
            sorted(record.ngrams),
        )

    def _insert_sql(self) -> str:
        return (
            f"INSERT INTO {self.table} (id, document_id, collection_name, field, n, ngrams) "
            "VALUES ($1, $2, $3, $4, $5, $6)"
        )

    async def save_all(self, records: Sequence[NGramRecord]) -> int:
        if not records:
            return 0
        pool = await self.pool.get_pool()
        try:
            async with pool.acquire() as conn:
                await conn.executemany(self._insert_sql(), [self._to_row(r) for r in records])
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error("Bulk insert failed", table=self.table, count=len(records), error=str(e))
            raise StoreQueryError(f"Bulk insert failed: {e}") from e
        return len(records)

    async def replace_collection(self, collection_name: str, records: Sequence[NGramRecord]) -> int:
        pool = await self.pool.get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        f"DELETE FROM {self.table} WHERE collection_name = $1", collection_name
                    )
                    if records:
                        await conn.executemany(self._insert_sql(), [self._to_row(r) for r in records])
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error("Collection replace failed", collection=collection_name, error=str(e))
            raise StoreQueryError(
                f"Collection replace failed: {e}", document_type=collection_name
            ) from e

        logger.info("Replaced n-gram records", collection=collection_name, count=len(records))
        return len(records)

    async def count(self, collection_name: Optional[str] = None) -> int:
        if collection_name is None:
            return await self.pool.execute(f"SELECT count(*) FROM {self.table}", fetch_val=True)
        return await self.pool.execute(
            f"SELECT count(*) FROM {self.table} WHERE collection_name = $1",
            collection_name,
            fetch_val=True,
        )

    async def health_check(self) -> bool:
        try:
            return await self.pool.execute("SELECT 1", fetch_val=True) == 1
        except (StoreConnectionError, StoreQueryError) as e:
            logger.warning("N-gram store health check failed", error=str(e))
            return False

    async def close(self) -> None:
        await self.pool.close()


class PgDocumentRepository(DocumentRepository):
    """Documents of one type read from a PostgreSQL table as dicts."""

    def __init__(
        self,
        pool: PgPool,
        document_type: str,
        table: str,
        id_field: str = "id",
        id_type: Any = str,
    ):
        super().__init__(document_type, id_field=id_field, id_type=id_type)
        self.pool = pool
        self.table = _check_identifier(table)
        _check_identifier(id_field)

    async def find_all_by_id(self, ids: Iterable[Any]) -> List[Dict[str, Any]]:
        id_list = list(ids)
        if not id_list:
            return []
        array_type = "uuid[]" if self.id_type is uuid.UUID else "text[]"
        rows = await self.pool.execute(
            f"SELECT * FROM {self.table} WHERE {self.id_field} = ANY($1::{array_type})",
            id_list,
            fetch=True,
        )
        return [dict(row) for row in rows]

    async def find_all(self) -> List[Dict[str, Any]]:
        rows = await self.pool.execute(f"SELECT * FROM {self.table}", fetch=True)
        return [dict(row) for row in rows]


def _affected_rows(status: str) -> int:
    """Parse the row count from an asyncpg command status such as ``DELETE 3``."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0
