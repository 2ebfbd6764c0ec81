import numpy as np
import pytest

from core.errors import NumericError, ShapeError
from core.ranker import ScoreEntry, rank
from storage.embedding_store import EmbeddingStore


@pytest.fixture
def axis_store():
    return EmbeddingStore(np.array([[1.0, 0.0], [0.0, 1.0], [-1.0, 0.0]]))


def make_store(n=5, dim=8, seed=0):
    vecs = np.random.default_rng(seed).normal(size=(n, dim)).astype(np.float32)
    return EmbeddingStore(vecs / np.linalg.norm(vecs, axis=1, keepdims=True))


def test_scores_against_unit_axes(axis_store):
    results = rank(axis_store, np.array([1.0, 0.0]), top_k=3)
    assert results == [(0, 1.0), (1, 0.0), (2, -1.0)]


def test_top_k_truncates(axis_store):
    results = rank(axis_store, np.array([1.0, 0.0]), top_k=2)
    assert results == [ScoreEntry(0, 1.0), ScoreEntry(1, 0.0)]
    assert results[0].index == 0
    assert results[0].score == pytest.approx(1.0)


def test_top_k_zero_returns_empty(axis_store):
    assert rank(axis_store, np.array([1.0, 0.0]), top_k=0) == []


def test_top_k_larger_than_store_returns_every_row_once():
    store = make_store(n=5)
    query = store.matrix[3]
    results = rank(store, query, top_k=50)
    assert len(results) == 5
    assert sorted(r.index for r in results) == [0, 1, 2, 3, 4]
    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)
    assert results[0].index == 3


def test_ties_keep_index_order():
    store = EmbeddingStore(np.array([[0.0, 1.0], [1.0, 0.0], [0.0, 1.0], [1.0, 0.0]]))
    results = rank(store, np.array([1.0, 0.0]), top_k=4)
    assert [r.index for r in results] == [1, 3, 0, 2]


def test_accepts_row_shaped_query(axis_store):
    results = rank(axis_store, np.array([[0.0, 1.0]]), top_k=1)
    assert results == [(1, 1.0)]


def test_dimension_mismatch_is_shape_error(axis_store):
    with pytest.raises(ShapeError, match="Dimension mismatch"):
        rank(axis_store, np.array([1.0, 0.0, 0.0]), top_k=1)


def test_batch_query_is_shape_error(axis_store):
    with pytest.raises(ShapeError):
        rank(axis_store, np.eye(2), top_k=1)


def test_nan_scores_fail_fast(axis_store):
    with pytest.raises(NumericError):
        rank(axis_store, np.array([np.nan, 0.0]), top_k=3)


def test_negative_top_k_is_rejected(axis_store):
    with pytest.raises(ValueError):
        rank(axis_store, np.array([1.0, 0.0]), top_k=-1)


def test_placeholder_store_scores_zero():
    store = EmbeddingStore.placeholder(2)
    assert rank(store, np.array([0.6, 0.8]), top_k=5) == [(0, 0.0)]


def test_scores_are_python_types(axis_store):
    entry = rank(axis_store, np.array([1.0, 0.0]), top_k=1)[0]
    assert type(entry.index) is int
    assert type(entry.score) is float


def test_concurrent_ranking_on_shared_store():
    from concurrent.futures import ThreadPoolExecutor

    store = make_store(n=200, dim=16)
    queries = [store.matrix[i] for i in range(0, 200, 5)]
    expected = [rank(store, q, top_k=10) for q in queries]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda q: rank(store, q, top_k=10), queries * 5))

    assert results == expected * 5
    assert not store.matrix.flags.writeable
