"""Multi-field n-gram search and ranking.

For each requested field the query is decomposed into n-grams of the
field's configured size, candidate records sharing at least one n-gram are
fetched from the n-gram store, and each candidate is scored with the
selected similarity strategy. Fields are OR-combined: a document's merged
score is the maximum over the fields it matched, so a document strong in
one field ranks by that field.

Results are ordered by merged score descending, ties broken by document id
ascending. Documents that matched no field are absent, not scored as zero.
"""

import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import structlog

from ..cache.cache_manager import SearchCacheManager, create_search_cache_manager
from ..common.config import FuzzyMatchConfig, get_config
from ..common.logging import search_context
from ..common.metrics import MetricsCollector
from ..errors import InvalidFieldConfigurationError, StoreError
from ..models import SearchHit
from ..schema import FieldSpec, SchemaRegistry
from ..similarity.base import SimilarityStrategy
from ..similarity.factory import StrategyRegistry, create_strategy_registry
from ..store.base import DocumentRepository, NGramStore

logger = structlog.get_logger("search.ranker")


def rank_scores(scores: Mapping[str, float]) -> List[Tuple[str, float]]:
    """Order ``(document_id, score)`` pairs by score desc, then id asc."""
    return sorted(scores.items(), key=lambda item: (-item[1], item[0]))


class SearchRanker:
    """Ranks documents of a registered type against a free-text query.

    Parameters
    - schema: Registered document types and their n-gram fields
    - ngram_store: Source of candidate ``NGramRecord``s
    - repositories: Document repository per document type name
    - cache_manager: Query n-gram and similarity caches (created if omitted)
    - strategies: Similarity strategy registry (built-ins if omitted)
    - metrics: Optional metrics collector
    """

    def __init__(
        self,
        schema: SchemaRegistry,
        ngram_store: NGramStore,
        repositories: Mapping[str, DocumentRepository],
        cache_manager: Optional[SearchCacheManager] = None,
        strategies: Optional[StrategyRegistry] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.schema = schema
        self.ngram_store = ngram_store
        self.repositories = dict(repositories)
        self.cache_manager = cache_manager or create_search_cache_manager(metrics=metrics)
        self.strategies = strategies or create_strategy_registry()
        self.metrics = metrics

    def repository(self, document_type: str) -> DocumentRepository:
        try:
            return self.repositories[document_type]
        except KeyError:
            raise InvalidFieldConfigurationError(
                "No document repository registered", document_type=document_type
            ) from None

    def _resolve_fields(self, document_type: str, fields: Sequence[str]) -> List[FieldSpec]:
        spec = self.schema.get(document_type)
        return [spec.field(name) for name in fields]

    async def _score_field(
        self,
        document_type: str,
        field_spec: FieldSpec,
        query: str,
        strategy: SimilarityStrategy,
        scores: Dict[str, float],
    ) -> int:
        """Merge one field's similarities into ``scores``; returns the candidate count."""
        query_ngrams = await self.cache_manager.query_cache.get_ngrams(query, field_spec.n)
        if not query_ngrams:
            return 0

        try:
            candidates = await self.ngram_store.find_by_collection_field_ngrams_and_n(
                document_type, field_spec.name, query_ngrams, field_spec.n
            )
        except StoreError as e:
            logger.error(
                "Failed to fetch n-gram candidates",
                document_type=document_type,
                field=field_spec.name,
                error=str(e),
            )
            raise

        similarity_cache = self.cache_manager.similarity_cache
        for record in candidates:
            similarity = await similarity_cache.get_score(
                document_type,
                record.document_id,
                field_spec.name,
                strategy,
                query_ngrams,
                record.ngrams,
            )
            previous = scores.get(record.document_id)
            if previous is None or similarity > previous:
                scores[record.document_id] = similarity
        return len(candidates)

    async def score_documents(
        self,
        document_type: str,
        fields: Sequence[str],
        query: str,
        strategy_name: Optional[str] = None,
    ) -> Dict[str, float]:
        """Merged (max across fields) similarity per matching document id."""
        field_specs = self._resolve_fields(document_type, fields)
        strategy = self.strategies.get(strategy_name)

        scores: Dict[str, float] = {}
        for field_spec in field_specs:
            await self._score_field(document_type, field_spec, query, strategy, scores)
        return scores

    async def search_ids(
        self,
        document_type: str,
        fields: Sequence[str],
        query: str,
        strategy_name: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, float]]:
        """Ranked ``(document_id, score)`` pairs without loading documents."""
        ranked = rank_scores(await self.score_documents(document_type, fields, query, strategy_name))
        return ranked[:limit] if limit is not None else ranked

    async def search(
        self,
        document_type: str,
        fields: Sequence[str],
        query: str,
        strategy_name: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[SearchHit]:
        """Search ``fields`` of ``document_type`` and return ranked documents.

        Raises
        - ``InvalidFieldConfigurationError`` for an unknown type or field
        - ``UnsupportedIdentifierTypeError`` when the repository key type is
          neither ``str`` nor ``UUID``
        - ``StoreError`` for any store failure (not retried)
        """
        start_time = time.time()
        field_specs = self._resolve_fields(document_type, fields)
        repository = self.repository(document_type)
        strategy = self.strategies.get(strategy_name)

        with search_context(document_type=document_type, strategy=strategy.name):
            scores: Dict[str, float] = {}
            candidate_count = 0
            for field_spec in field_specs:
                candidate_count += await self._score_field(document_type, field_spec, query, strategy, scores)

            ranked = rank_scores(scores)
            documents = await self._fetch_documents(repository, [document_id for document_id, _ in ranked])

            hits: List[SearchHit] = []
            for document_id, score in ranked:
                document = documents.get(document_id)
                if document is None:
                    # Indexed but no longer present in the document store.
                    continue
                hits.append(SearchHit(document_id=document_id, score=score, document=document))
            if limit is not None:
                hits = hits[:limit]

            duration = time.time() - start_time
            if self.metrics:
                self.metrics.record_search(document_type, strategy.name, duration)
            logger.info(
                "N-gram search completed",
                fields=list(fields),
                candidates=candidate_count,
                matched=len(scores),
                returned=len(hits),
                duration_ms=round(duration * 1000, 2),
            )
            return hits

    async def _fetch_documents(self, repository: DocumentRepository, document_ids: List[str]) -> Dict[str, Any]:
        if not document_ids:
            return {}
        ids = [repository.convert_id(document_id) for document_id in document_ids]
        try:
            documents = await repository.find_all_by_id(ids)
        except StoreError as e:
            logger.error(
                "Failed to fetch original documents",
                document_type=repository.document_type,
                count=len(ids),
                error=str(e),
            )
            raise
        return {repository.document_id(document): document for document in documents}


def create_search_ranker(
    schema: SchemaRegistry,
    ngram_store: NGramStore,
    repositories: Mapping[str, DocumentRepository],
    config: Optional[FuzzyMatchConfig] = None,
    metrics: Optional[MetricsCollector] = None,
) -> SearchRanker:
    """Build a ranker whose caches and default strategy follow ``config``."""
    config = config or get_config()
    return SearchRanker(
        schema=schema,
        ngram_store=ngram_store,
        repositories=repositories,
        cache_manager=create_search_cache_manager(config, metrics=metrics),
        strategies=create_strategy_registry(default=config.fm_default_strategy),
        metrics=metrics,
    )
