# core/ranker.py
from typing import NamedTuple

import numpy as np

from core.errors import NumericError, ShapeError
from storage.embedding_store import EmbeddingStore


class ScoreEntry(NamedTuple):
    index: int  # row offset into the embedding store
    score: float  # cosine similarity in [-1, 1]


def rank(store: EmbeddingStore, query: np.ndarray, top_k: int) -> list[ScoreEntry]:
    """
    Exact brute-force cosine similarity search.

    Both the stored rows and the query must already be L2-normalized: the score
    is a plain dot product, which equals cosine similarity only for unit vectors.
    Neither side is re-normalized here.

    Results are sorted by score descending; equal scores keep ascending index
    order. At most top_k entries are returned (all rows if the store is smaller).
    """
    if top_k < 0:
        raise ValueError(f"top_k must be non-negative, got {top_k}")

    query = np.asarray(query)
    if query.ndim == 2 and query.shape[0] == 1:
        query = query[0]
    if query.ndim != 1:
        raise ShapeError(f"query must be (hidden,) or (1, hidden), got shape {query.shape}")
    if query.shape[0] != store.hidden_dim:
        raise ShapeError(f"Dimension mismatch: stored={store.hidden_dim}, query={query.shape[0]}")

    if top_k == 0:
        return []

    scores: np.ndarray = store.matrix @ query.astype(store.matrix.dtype, copy=False)  # (N,)
    if np.isnan(scores).any():
        bad = np.flatnonzero(np.isnan(scores))
        raise NumericError(f"similarity scores are not comparable (NaN) at rows {bad[:10].tolist()}")

    order = np.argsort(-scores, kind="stable")[:top_k]
    return [ScoreEntry(int(i), float(scores[i])) for i in order]
