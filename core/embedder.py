import logging
import time

import numpy as np

from core.backend import Encoder, Tokenizer
from core.errors import EmbeddingError, ShapeError, UpstreamError
from core.normalize import l2_normalize
from core.pooling import PoolingStrategy, get_pooling

logger = logging.getLogger(__name__)


class Embedder:
    """
    Turns sentences into L2-normalized vectors: tokenize -> encode -> pool -> normalize.
    Tokenizer and encoder are injected; the pipeline is synchronous and keeps no
    per-call state on the instance.
    """

    def __init__(
        self,
        tokenizer: Tokenizer,
        encoder: Encoder,
        pooling: str | PoolingStrategy = "max",
        eps: float | None = None,
    ) -> None:
        self._tokenizer = tokenizer
        self._encoder = encoder
        self._pooling = get_pooling(pooling) if isinstance(pooling, str) else pooling
        self._eps = eps

    @property
    def hidden_size(self) -> int:
        return self._encoder.hidden_size

    @property
    def pooling(self) -> PoolingStrategy:
        return self._pooling

    def embed_sentence(self, text: str) -> np.ndarray:
        """
        Args:
            text: a single sentence
        Returns:
            np.ndarray shape (1, hidden), L2-normalized float32 vector
        """
        try:
            ids = self._tokenizer.encode_one(text)
        except Exception as e:
            raise UpstreamError(f"tokenizer failed: {e}") from e
        token_ids = _as_token_batch(np.asarray(ids)[np.newaxis, ...])
        return self._run(token_ids)

    def embed(self, texts: list[str]) -> np.ndarray:
        """
        Args:
            texts: list of sentences, encoded in one forward pass
        Returns:
            np.ndarray shape (N, hidden), L2-normalized float32 vectors
        """
        if not texts:
            return np.empty((0, self.hidden_size), dtype=np.float32)

        try:
            ids = self._tokenizer.encode_batch(texts)
        except Exception as e:
            raise UpstreamError(f"tokenizer failed: {e}") from e
        token_ids = _as_token_batch(ids)
        if token_ids.shape[0] != len(texts):
            raise ShapeError(
                f"tokenizer returned {token_ids.shape[0]} sequences for {len(texts)} texts"
            )
        return self._run(token_ids)

    def _run(self, token_ids: np.ndarray) -> np.ndarray:
        # Token type ids are all zero and no attention mask is sent, padded
        # positions therefore take part in pooling.
        token_type_ids = np.zeros_like(token_ids)
        logger.debug("token_ids shape: %s", token_ids.shape)

        start = time.perf_counter()
        try:
            hidden_states = self._encoder.forward(token_ids, token_type_ids)
        except EmbeddingError:
            raise
        except Exception as e:
            raise UpstreamError(f"encoder forward pass failed: {e}") from e
        logger.debug("forward pass took %.1fms", (time.perf_counter() - start) * 1000)

        hidden_states = np.asarray(hidden_states)
        if hidden_states.ndim != 3 or hidden_states.shape[:2] != token_ids.shape:
            raise ShapeError(
                f"encoder returned shape {hidden_states.shape} for token batch {token_ids.shape}"
            )

        pooled = self._pooling(hidden_states)
        embeddings = l2_normalize(pooled, eps=self._eps)
        logger.debug("embeddings shape: %s", embeddings.shape)
        return embeddings.astype(np.float32)


def _as_token_batch(ids) -> np.ndarray:
    """Validate that ids form a rectangular (batch, seq_len) integer matrix."""
    try:
        token_ids = np.asarray(ids)
    except ValueError as e:  # ragged nested sequences
        raise ShapeError(f"token batch is not rectangular: {e}") from e
    if token_ids.ndim != 2:
        raise ShapeError(f"token batch must be 2-D (batch, seq_len), got shape {token_ids.shape}")
    if token_ids.size and not np.issubdtype(token_ids.dtype, np.integer):
        raise ShapeError(f"token ids must be integers, got dtype {token_ids.dtype}")
    if token_ids.shape[1] == 0:
        raise ShapeError("token batch has zero-length sequences")
    return token_ids.astype(np.int64, copy=False)
