"""N-gram store factory for creating different implementations.

Centralizes creation of concrete ``NGramStore`` backends and document
repositories so callers don't depend on implementation details.
"""

from enum import Enum
from typing import Any, Dict, Iterable, Optional

import structlog

from ..schema import DocumentTypeSpec
from .base import DocumentRepository, NGramStore
from .memory import InMemoryDocumentRepository, InMemoryNGramStore
from .postgres import PgDocumentRepository, PgNGramStore, PgPool

logger = structlog.get_logger("store.factory")


class NGramStoreType(Enum):
    """Supported n-gram store types."""
    MEMORY = "memory"
    POSTGRES = "postgres"


class NGramStoreFactory:
    """Factory for creating n-gram store instances."""

    @staticmethod
    def create(store_type: NGramStoreType, config: Dict[str, Any]) -> NGramStore:
        """Create an n-gram store.

        Parameters
        - store_type: A ``NGramStoreType`` enum value
        - config: Backend-specific parameters (``dsn``, ``pool_size``,
          ``command_timeout``, ``table`` for postgres; ``pool`` may pass a
          shared ``PgPool``)
        """
        if store_type == NGramStoreType.MEMORY:
            return InMemoryNGramStore()

        elif store_type == NGramStoreType.POSTGRES:
            pool = config.get("pool")
            if pool is None:
                dsn = config.get("dsn")
                if not dsn:
                    raise ValueError("Postgres n-gram store requires 'dsn' in config")
                pool = PgPool(
                    dsn=dsn,
                    pool_size=config.get("pool_size", 10),
                    command_timeout=config.get("command_timeout", 60),
                )
            return PgNGramStore(pool=pool, table=config.get("table", "ngrams"))

        else:
            raise ValueError(f"Unsupported n-gram store type: {store_type}")

    @staticmethod
    def create_from_config(config: Dict[str, Any]) -> NGramStore:
        """Create a store from a dict with a ``type`` key plus backend fields."""
        store_type_str = config.get("type", NGramStoreType.MEMORY.value)
        try:
            store_type = NGramStoreType(store_type_str)
        except ValueError:
            raise ValueError(f"Unsupported n-gram store type: {store_type_str}") from None
        return NGramStoreFactory.create(store_type, config)


def create_ngram_store_from_env(env_config: Dict[str, str], pool: Optional[PgPool] = None) -> NGramStore:
    """Create an n-gram store from a flat mapping of ``FM_*`` settings."""
    backend = env_config.get("FM_STORE_BACKEND", NGramStoreType.MEMORY.value)

    if backend == NGramStoreType.POSTGRES.value:
        config: Dict[str, Any] = {
            "type": backend,
            "dsn": env_config.get("FM_DB_DSN"),
            "pool_size": int(env_config.get("FM_DB_POOL_SIZE", "10")),
            "command_timeout": int(env_config.get("FM_DB_COMMAND_TIMEOUT", "60")),
            "table": env_config.get("FM_NGRAM_TABLE", "ngrams"),
            "pool": pool,
        }
        if pool is None and not config["dsn"]:
            raise ValueError("FM_DB_DSN environment variable is required")
        logger.info("Creating postgres n-gram store", table=config["table"])
        return NGramStoreFactory.create_from_config(config)

    return NGramStoreFactory.create_from_config({"type": backend})


def create_document_repository(
    spec: DocumentTypeSpec,
    backend: str = NGramStoreType.MEMORY.value,
    pool: Optional[PgPool] = None,
    documents: Optional[Iterable[Any]] = None,
) -> DocumentRepository:
    """Create the repository for one document type."""
    if backend == NGramStoreType.POSTGRES.value:
        if pool is None:
            raise ValueError("Postgres document repository requires a PgPool")
        if not spec.table:
            raise ValueError(f"Document type '{spec.name}' has no table configured")
        return PgDocumentRepository(
            pool=pool,
            document_type=spec.name,
            table=spec.table,
            id_field=spec.id_field,
            id_type=spec.id_type,
        )
    if backend == NGramStoreType.MEMORY.value:
        return InMemoryDocumentRepository(
            spec.name,
            documents=documents,
            id_field=spec.id_field,
            id_type=spec.id_type,
        )
    raise ValueError(f"Unsupported document repository backend: {backend}")
