"""Tests for similarity strategies and strategy selection."""

import math

import pytest

from fuzzymatch.similarity import (
    CosineSimilarity,
    JaccardSimilarity,
    SimilarityStrategy,
    SimilarityType,
    create_strategy_registry,
    get_strategy,
)

PAIRS = [
    ({"ap", "pp"}, {"ap", "pp", "le"}),
    ({"ab", "bc", "cd"}, {"cd", "de"}),
    ({"xy"}, {"zz"}),
    ({"a", "b", "c", "d"}, {"a"}),
]


def test_jaccard_example():
    assert JaccardSimilarity().calculate({"ap", "pp"}, {"ap", "pp", "le"}) == pytest.approx(2 / 3)


def test_cosine_example():
    expected = 2 / (math.sqrt(2) * math.sqrt(3))
    assert CosineSimilarity().calculate({"ap", "pp"}, {"ap", "pp", "le"}) == pytest.approx(expected)
    assert expected == pytest.approx(0.816, abs=1e-3)


def test_cosine_is_more_lenient_than_jaccard_on_partial_overlap():
    a, b = {"ab", "bc", "cd"}, {"bc", "cd", "de"}
    assert CosineSimilarity().calculate(a, b) > JaccardSimilarity().calculate(a, b)


@pytest.mark.parametrize("strategy", [JaccardSimilarity(), CosineSimilarity()])
@pytest.mark.parametrize("a,b", PAIRS)
def test_strategies_are_symmetric_and_bounded(strategy, a, b):
    forward = strategy.calculate(a, b)
    assert forward == pytest.approx(strategy.calculate(b, a))
    assert 0.0 <= forward <= 1.0


@pytest.mark.parametrize("strategy", [JaccardSimilarity(), CosineSimilarity()])
def test_empty_sets_score_zero(strategy):
    assert strategy.calculate(set(), {"ab"}) == 0.0
    assert strategy.calculate({"ab"}, set()) == 0.0
    assert strategy.calculate(set(), set()) == 0.0


@pytest.mark.parametrize("strategy", [JaccardSimilarity(), CosineSimilarity()])
@pytest.mark.parametrize("ngrams", [{"ab"}, {"ab", "bc", "cd"}, {str(i) for i in range(17)}])
def test_identical_sets_score_one(strategy, ngrams):
    assert strategy.calculate(ngrams, set(ngrams)) == pytest.approx(1.0)


@pytest.mark.parametrize("strategy", [JaccardSimilarity(), CosineSimilarity()])
def test_disjoint_sets_score_zero(strategy):
    assert strategy.calculate({"ab", "cd"}, {"ef"}) == 0.0


def test_default_strategy_is_cosine():
    assert isinstance(get_strategy(None), CosineSimilarity)
    assert isinstance(get_strategy(""), CosineSimilarity)
    assert isinstance(get_strategy("levenshtein"), CosineSimilarity)


def test_strategy_lookup_by_name():
    assert isinstance(get_strategy("jaccard"), JaccardSimilarity)
    assert isinstance(get_strategy("JACCARD"), JaccardSimilarity)
    assert isinstance(get_strategy(SimilarityType.COSINE.value), CosineSimilarity)


def test_strategy_lookup_accepts_bean_name_aliases():
    assert isinstance(get_strategy("jaccardSimilarity"), JaccardSimilarity)
    assert isinstance(get_strategy("cosineSimilarity"), CosineSimilarity)


def test_registry_accepts_additional_strategy():
    class OverlapCoefficient(SimilarityStrategy):
        name = "overlap"

        def calculate(self, query_ngrams, doc_ngrams):
            if not query_ngrams or not doc_ngrams:
                return 0.0
            return len(query_ngrams & doc_ngrams) / min(len(query_ngrams), len(doc_ngrams))

    registry = create_strategy_registry()
    registry.register(OverlapCoefficient())

    assert registry.names() == ["cosine", "jaccard", "overlap"]
    assert registry.get("overlap").calculate({"ab"}, {"ab", "cd"}) == 1.0
    assert isinstance(registry.get("missing"), CosineSimilarity)


def test_registry_rejects_nameless_strategy():
    class Nameless(SimilarityStrategy):
        def calculate(self, query_ngrams, doc_ngrams):
            return 0.0

    with pytest.raises(ValueError):
        create_strategy_registry().register(Nameless())


def test_registry_with_jaccard_default():
    registry = create_strategy_registry(default="jaccard")
    assert isinstance(registry.get(None), JaccardSimilarity)
