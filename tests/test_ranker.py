"""Tests for multi-field search and ranking."""

import math
import uuid

import pytest
import structlog

from fuzzymatch.cache import create_search_cache_manager
from fuzzymatch.common.config import FuzzyMatchConfig
from fuzzymatch.common.metrics import MetricsCollector
from fuzzymatch.errors import InvalidFieldConfigurationError, StoreQueryError, UnsupportedIdentifierTypeError
from fuzzymatch.indexing import NGramIndexer
from fuzzymatch.models import NGramRecord
from fuzzymatch.schema import DocumentTypeSpec, FieldSpec, SchemaRegistry
from fuzzymatch.search import SearchRanker, create_search_ranker, rank_scores
from fuzzymatch.similarity import JaccardSimilarity, SimilarityStrategy, create_strategy_registry
from fuzzymatch.store import InMemoryDocumentRepository, InMemoryNGramStore


class TableSimilarity(SimilarityStrategy):
    """Scores a record by looking up its (single) n-gram in a fixed table."""

    name = "table"

    def __init__(self, table):
        self.table = table

    def calculate(self, query_ngrams, doc_ngrams):
        return self.table[next(iter(doc_ngrams))]


class FailingStore(InMemoryNGramStore):
    async def find_by_collection_field_ngrams_and_n(self, collection_name, field, ngrams, n):
        raise StoreQueryError("connection reset", document_type=collection_name, field=field)


def _index(spec, documents, id_type="str"):
    repository = InMemoryDocumentRepository(spec.name, documents=documents, id_type=id_type)
    indexer = NGramIndexer(schema=SchemaRegistry([spec]), ngram_store=InMemoryNGramStore(), repositories={})
    store = InMemoryNGramStore(indexer.build_records(spec, repository, documents))
    return repository, store


@pytest.mark.asyncio
async def test_exact_title_match_ranks_first(ranker):
    hits = await ranker.search("Product", ["title"], "apple pie")

    assert [hit.document_id for hit in hits] == ["p1", "p2"]
    assert hits[0].score == pytest.approx(1.0)
    assert hits[1].score == pytest.approx(4 / math.sqrt(7 * 8))
    assert hits[0].document["title"] == "apple pie"


@pytest.mark.asyncio
async def test_strategy_is_selected_by_name(ranker):
    hits = await ranker.search("Product", ["title"], "apple pie", strategy_name="jaccard")

    assert hits[1].document_id == "p2"
    assert hits[1].score == pytest.approx(4 / 11)


@pytest.mark.asyncio
async def test_unknown_strategy_falls_back_to_cosine(ranker):
    fallback = await ranker.search_ids("Product", ["title"], "apple pie", strategy_name="levenshtein")
    cosine = await ranker.search_ids("Product", ["title"], "apple pie", strategy_name="cosine")
    assert fallback == cosine


@pytest.mark.asyncio
async def test_fields_are_or_combined(ranker):
    """A document matching only the brand field still appears."""
    hits = await ranker.search("Product", ["title", "brand"], "apple")

    assert [hit.document_id for hit in hits] == ["p1", "p2", "p3"]
    assert hits[0].score == pytest.approx(4 / math.sqrt(4 * 7))
    assert hits[2].score == pytest.approx(3 / math.sqrt(3 * 8))


@pytest.mark.asyncio
async def test_merged_score_is_max_across_fields():
    spec = DocumentTypeSpec(name="Doc", fields=[FieldSpec(name="a"), FieldSpec(name="b")])
    store = InMemoryNGramStore([
        NGramRecord.create("X", "Doc", "a", 2, ["xa"]),
        NGramRecord.create("X", "Doc", "b", 2, ["xb"]),
        NGramRecord.create("Y", "Doc", "a", 2, ["ya"]),
        NGramRecord.create("Y", "Doc", "b", 2, ["yb"]),
    ])
    repository = InMemoryDocumentRepository("Doc", documents=[{"id": "X"}, {"id": "Y"}])
    strategies = create_strategy_registry()
    strategies.register(TableSimilarity({"xa": 0.9, "xb": 0.2, "ya": 0.5, "yb": 0.5}))
    ranker = SearchRanker(
        schema=SchemaRegistry([spec]),
        ngram_store=store,
        repositories={"Doc": repository},
        strategies=strategies,
    )

    hits = await ranker.search("Doc", ["a", "b"], "xaxbyayb", strategy_name="table")

    assert [(hit.document_id, hit.score) for hit in hits] == [("X", 0.9), ("Y", 0.5)]


@pytest.mark.asyncio
async def test_documents_without_shared_ngrams_are_absent(ranker):
    hits = await ranker.search("Product", ["title"], "cherry")

    assert [hit.document_id for hit in hits] == ["p4"]


@pytest.mark.asyncio
async def test_equal_scores_are_ordered_by_document_id():
    spec = DocumentTypeSpec(name="Product", fields=[FieldSpec(name="title")])
    documents = [{"id": doc_id, "title": "apple pie"} for doc_id in ("c", "a", "b")]
    repository, store = _index(spec, documents)
    ranker = SearchRanker(SchemaRegistry([spec]), store, {"Product": repository})

    hits = await ranker.search("Product", ["title"], "Apple Pie")

    assert [hit.document_id for hit in hits] == ["a", "b", "c"]


def test_rank_scores_orders_by_score_then_id():
    ranked = rank_scores({"b": 0.5, "a": 0.5, "c": 0.9, "d": 0.1})
    assert ranked == [("c", 0.9), ("a", 0.5), ("b", 0.5), ("d", 0.1)]


@pytest.mark.asyncio
async def test_unknown_field_fails_before_touching_store(schema, repositories):
    ranker = SearchRanker(schema, FailingStore(), repositories)

    with pytest.raises(InvalidFieldConfigurationError) as exc_info:
        await ranker.search("Product", ["title", "color"], "apple")

    assert exc_info.value.field == "color"


@pytest.mark.asyncio
async def test_unknown_document_type(ranker):
    with pytest.raises(InvalidFieldConfigurationError):
        await ranker.search("Order", ["title"], "apple")


@pytest.mark.asyncio
async def test_missing_repository(schema, indexed_store):
    ranker = SearchRanker(schema, indexed_store, repositories={})
    with pytest.raises(InvalidFieldConfigurationError):
        await ranker.search("Product", ["title"], "apple")


@pytest.mark.asyncio
async def test_query_without_ngrams_returns_nothing(ranker):
    assert await ranker.search("Product", ["title"], "!!!") == []
    assert await ranker.search("Product", ["brand"], "ap") == []
    assert await ranker.search("Product", ["title"], "") == []


@pytest.mark.asyncio
async def test_store_failure_propagates(schema, repositories):
    ranker = SearchRanker(schema, FailingStore(), repositories)

    with pytest.raises(StoreQueryError):
        await ranker.search("Product", ["title"], "apple")


@pytest.mark.asyncio
async def test_indexed_documents_missing_from_repository_are_dropped(schema, indexed_store, product_repository):
    remaining = [doc for doc in await product_repository.find_all() if doc["id"] != "p1"]
    repository = InMemoryDocumentRepository("Product", documents=remaining)
    ranker = SearchRanker(schema, indexed_store, {"Product": repository})

    hits = await ranker.search("Product", ["title"], "apple pie")

    assert [hit.document_id for hit in hits] == ["p2"]


@pytest.mark.asyncio
async def test_uuid_document_ids_are_converted_for_lookup():
    spec = DocumentTypeSpec(name="Store", id_type="uuid", fields=[FieldSpec(name="name", n=3)])
    first, second = uuid.uuid4(), uuid.uuid4()
    documents = [{"id": first, "name": "Downtown Market"}, {"id": second, "name": "Uptown Market"}]
    repository, store = _index(spec, documents, id_type="uuid")
    ranker = SearchRanker(SchemaRegistry([spec]), store, {"Store": repository})

    hits = await ranker.search("Store", ["name"], "downtown")

    assert hits[0].document_id == str(first)
    assert hits[0].document["id"] == first
    assert {hit.document_id for hit in hits} == {str(first), str(second)}


@pytest.mark.asyncio
async def test_unsupported_repository_id_type(schema, indexed_store, product_repository):
    repository = InMemoryDocumentRepository(
        "Product", documents=await product_repository.find_all(), id_type=int
    )
    ranker = SearchRanker(schema, indexed_store, {"Product": repository})

    with pytest.raises(UnsupportedIdentifierTypeError):
        await ranker.search("Product", ["title"], "apple pie")


@pytest.mark.asyncio
async def test_limit_and_search_ids(ranker):
    hits = await ranker.search("Product", ["title"], "apple pie", limit=1)
    ids = await ranker.search_ids("Product", ["title"], "apple pie")

    assert [hit.document_id for hit in hits] == ["p1"]
    assert [document_id for document_id, _ in ids] == ["p1", "p2"]
    assert await ranker.search_ids("Product", ["title"], "apple pie", limit=1) == ids[:1]


@pytest.mark.asyncio
async def test_results_do_not_depend_on_cache_state(schema, indexed_store, repositories, cache_manager):
    ranker = SearchRanker(schema, indexed_store, repositories, cache_manager=cache_manager)

    cold = await ranker.search_ids("Product", ["title", "brand"], "apple bakery")
    warm = await ranker.search_ids("Product", ["title", "brand"], "apple bakery")
    cache_manager.clear()
    cleared = await ranker.search_ids("Product", ["title", "brand"], "apple bakery")

    assert cold == warm == cleared
    assert cache_manager.get_cache_stats()["similarity"]["hits"] > 0


@pytest.mark.asyncio
async def test_search_records_metrics(schema, indexed_store, repositories):
    metrics = MetricsCollector("test-service")
    ranker = SearchRanker(
        schema,
        indexed_store,
        repositories,
        cache_manager=create_search_cache_manager(metrics=metrics),
        metrics=metrics,
    )

    await ranker.search("Product", ["title"], "apple pie")

    output = metrics.get_metrics()
    assert 'fm_search_requests_total{document_type="Product",strategy="cosine"} 1.0' in output
    assert 'fm_cache_misses_total{cache_type="similarity"} 2.0' in output


@pytest.mark.asyncio
async def test_ranker_factory_follows_config(schema, indexed_store, repositories):
    config = FuzzyMatchConfig(FM_DEFAULT_STRATEGY="jaccard", FM_SIMILARITY_CACHE_SIZE=3)
    ranker = create_search_ranker(schema, indexed_store, repositories, config=config)

    ids = await ranker.search_ids("Product", ["title"], "apple pie")

    assert ids[1] == ("p2", pytest.approx(4 / 11))
    assert ranker.cache_manager.get_cache_stats()["similarity"]["maxsize"] == 3


@pytest.mark.asyncio
async def test_search_binds_log_context(schema, indexed_store, repositories):
    """Logs emitted while scoring carry the document type and strategy."""
    seen = []

    class RecordingJaccard(JaccardSimilarity):
        name = "recording"

        def calculate(self, query_ngrams, doc_ngrams):
            seen.append(dict(structlog.contextvars.get_contextvars()))
            return super().calculate(query_ngrams, doc_ngrams)

    strategies = create_strategy_registry()
    strategies.register(RecordingJaccard())
    ranker = SearchRanker(schema, indexed_store, repositories, strategies=strategies)

    await ranker.search("Product", ["title"], "apple pie", strategy_name="recording")

    assert seen
    assert all(c["document_type"] == "Product" and c["strategy"] == "recording" for c in seen)
    assert "document_type" not in structlog.contextvars.get_contextvars()
