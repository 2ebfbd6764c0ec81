from __future__ import annotations

from core.embedder import Embedder
from core.ranker import ScoreEntry, rank
from storage.embedding_store import EmbeddingStore


def run_search(
    query: str,
    embedder: Embedder,
    store: EmbeddingStore,
    top_k: int,
) -> list[ScoreEntry]:
    """Embed query through the single-sentence path and rank it against the store."""
    query_emb = embedder.embed_sentence(query)[0]
    return rank(store, query_emb, top_k)
