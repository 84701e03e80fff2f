"""Shared fixtures: a small product catalogue and its n-gram index."""

import pytest

from fuzzymatch.cache.cache_manager import create_search_cache_manager
from fuzzymatch.indexing.indexer import NGramIndexer
from fuzzymatch.schema import DocumentTypeSpec, FieldSpec, SchemaRegistry
from fuzzymatch.search.ranker import SearchRanker
from fuzzymatch.store.memory import InMemoryDocumentRepository, InMemoryNGramStore


class FakeClock:
    """Manually advanced time source for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


PRODUCTS = [
    {"id": "p1", "title": "apple pie", "brand": "Granny Bakery"},
    {"id": "p2", "title": "apple tart", "brand": "Orchard"},
    {"id": "p3", "title": "banana bread", "brand": "Apple Farms"},
    {"id": "p4", "title": "cherry cake", "brand": None},
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def product_spec():
    return DocumentTypeSpec(
        name="Product",
        fields=[
            FieldSpec(name="title", n=2),
            FieldSpec(name="brand", n=3, fail_on_mismatch=False),
        ],
    )


@pytest.fixture
def schema(product_spec):
    return SchemaRegistry([product_spec])


@pytest.fixture
def product_repository():
    return InMemoryDocumentRepository("Product", documents=[dict(p) for p in PRODUCTS])


@pytest.fixture
def repositories(product_repository):
    return {"Product": product_repository}


@pytest.fixture
def empty_store():
    return InMemoryNGramStore()


@pytest.fixture
def indexed_store(schema, product_spec, product_repository):
    """Store pre-populated with records for every product field."""
    builder = NGramIndexer(schema=schema, ngram_store=InMemoryNGramStore(), repositories={})
    records = builder.build_records(product_spec, product_repository, [dict(p) for p in PRODUCTS])
    return InMemoryNGramStore(records)


@pytest.fixture
def cache_manager():
    return create_search_cache_manager()


@pytest.fixture
def ranker(schema, indexed_store, repositories, cache_manager):
    return SearchRanker(
        schema=schema,
        ngram_store=indexed_store,
        repositories=repositories,
        cache_manager=cache_manager,
    )
