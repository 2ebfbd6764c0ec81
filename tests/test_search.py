import numpy as np
import pytest
from unittest.mock import MagicMock

from core.embedder import Embedder
from core.errors import ShapeError
from core.search import run_search
from storage.embedding_store import EmbeddingStore


def test_run_search_returns_results():
    """run_search embeds query through the single-sentence path and ranks it."""
    mock_embedder = MagicMock()
    mock_embedder.embed_sentence.return_value = np.array([[0.0, 1.0]], dtype=np.float32)
    store = EmbeddingStore(np.array([[1.0, 0.0], [0.0, 1.0]]))

    results = run_search("test query", mock_embedder, store, top_k=5)

    assert results == [(1, 1.0), (0, 0.0)]
    mock_embedder.embed_sentence.assert_called_once_with("test query")


def test_run_search_finds_stored_sentence(tokenizer, encoder):
    embedder = Embedder(tokenizer, encoder)
    sentences = ["a", "bb ccc", "dddd eeeee ffffff", "gg"]
    store = EmbeddingStore(embedder.embed(sentences))

    results = run_search("bb ccc", embedder, store, top_k=2)

    assert len(results) == 2
    assert results[0].index == 1
    assert results[0].score == pytest.approx(1.0, abs=1e-5)


def test_run_search_propagates_shape_error():
    mock_embedder = MagicMock()
    mock_embedder.embed_sentence.return_value = np.ones((1, 3), dtype=np.float32)
    store = EmbeddingStore(np.eye(2))

    with pytest.raises(ShapeError):
        run_search("query", mock_embedder, store, top_k=5)
