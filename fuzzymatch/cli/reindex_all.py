#!/usr/bin/env python3
"""Script to validate and regenerate n-gram records for document types."""

import argparse
import asyncio
import json
import sys
import time
from typing import Any, Dict, List, Optional

import structlog

from fuzzymatch.common.config import FuzzyMatchConfig
from fuzzymatch.common.logging import configure_from_config, log_performance
from fuzzymatch.common.metrics import get_metrics_collector
from fuzzymatch.errors import FuzzyMatchError
from fuzzymatch.indexing.indexer import NGramIndexer
from fuzzymatch.schema import SchemaRegistry
from fuzzymatch.store.factory import (
    NGramStoreType,
    create_document_repository,
    create_ngram_store_from_env,
)
from fuzzymatch.store.postgres import PgNGramStore, PgPool

logger = structlog.get_logger("reindex_all")


async def reindex_document_types(
    indexer: NGramIndexer,
    document_types: Optional[List[str]] = None,
) -> bool:
    """Run validate-and-reindex; returns ``True`` when every type succeeded."""
    start_time = time.time()
    if not document_types:
        reports = await indexer.validate_all(raise_on_error=False)
        failed = [name for name, report in reports.items() if report.error]
    else:
        failed = []
        for document_type in document_types:
            try:
                report = await indexer.validate_and_reindex(document_type)
            except FuzzyMatchError as e:
                logger.error("Reindexing failed", document_type=document_type, error=str(e))
                failed.append(document_type)
                continue
            logger.info(
                "Reindex finished",
                document_type=document_type,
                regenerated=report.regenerated,
                records_written=report.records_written,
                states=report.summary(),
            )

    log_performance(
        "reindex_all",
        round((time.time() - start_time) * 1000, 2),
        failed=len(failed),
    )
    if failed:
        logger.error("Reindexing failed for document types", document_types=failed)
        return False
    return True


def load_documents(path: str) -> Dict[str, List[Dict[str, Any]]]:
    """Load ``{"DocumentType": [{...}, ...]}`` for the in-memory backend."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


async def run(args: argparse.Namespace, config: FuzzyMatchConfig) -> bool:
    schema_path = args.schema or config.fm_schema_path
    if not schema_path:
        raise ValueError("A schema file is required (--schema or FM_SCHEMA_PATH)")
    registry = SchemaRegistry.load(schema_path)

    pool: Optional[PgPool] = None
    if config.fm_store_backend == NGramStoreType.POSTGRES.value:
        if not config.fm_db_dsn:
            raise ValueError("FM_DB_DSN environment variable is required")
        pool = PgPool(
            dsn=config.fm_db_dsn,
            pool_size=config.fm_db_pool_size,
            command_timeout=config.fm_db_command_timeout,
        )

    store = create_ngram_store_from_env(config.store_env(), pool=pool)
    documents = load_documents(args.documents) if args.documents else {}
    repositories = {
        spec.name: create_document_repository(
            spec,
            backend=config.fm_store_backend,
            pool=pool,
            documents=documents.get(spec.name),
        )
        for spec in registry
    }

    try:
        if isinstance(store, PgNGramStore):
            await store.ensure_schema()
        indexer = NGramIndexer(
            schema=registry,
            ngram_store=store,
            repositories=repositories,
            metrics=get_metrics_collector("reindex_all"),
        )
        return await reindex_document_types(indexer, args.type)
    finally:
        await store.close()


def main():
    """Main function for CLI."""
    parser = argparse.ArgumentParser(description="Validate and regenerate n-gram records")
    parser.add_argument("--schema", help="JSON schema file (defaults to FM_SCHEMA_PATH)")
    parser.add_argument("--type", action="append", help="Document type to reindex (repeatable; default: all)")
    parser.add_argument("--documents", help="JSON documents file for the in-memory backend")

    args = parser.parse_args()

    config = FuzzyMatchConfig()
    configure_from_config(config, "reindex_all")

    try:
        success = asyncio.run(run(args, config))
    except Exception as e:
        logger.error("Reindex run aborted", error=str(e))
        success = False

    if success:
        print("Reindexing completed successfully")
        sys.exit(0)
    else:
        print("Reindexing failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
