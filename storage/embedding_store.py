# storage/embedding_store.py
import json
import logging
import os
from pathlib import Path

import numpy as np
from safetensors import SafetensorError
from safetensors.numpy import load_file, save_file

from core.errors import ShapeError, UpstreamError

logger = logging.getLogger(__name__)


class EmbeddingStore:
    """
    Immutable (corpus_size, hidden_dim) matrix of reference vectors.

    Rows are expected to be L2-normalized by whoever produced them; the store
    never re-normalizes. The backing array is a private read-only copy, so a
    store can be shared between threads without locking.
    """

    def __init__(self, matrix: np.ndarray, is_placeholder: bool = False) -> None:
        matrix = np.array(matrix, dtype=np.float32, copy=True)
        if matrix.ndim != 2:
            raise ShapeError(
                f"embedding store must be 2-D (corpus_size, hidden_dim), got shape {matrix.shape}"
            )
        matrix.setflags(write=False)
        self._matrix = matrix
        self.is_placeholder = is_placeholder

    @classmethod
    def placeholder(cls, hidden_dim: int) -> "EmbeddingStore":
        """Single zero row, used when no store source is configured."""
        return cls(np.zeros((1, hidden_dim), dtype=np.float32), is_placeholder=True)

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix

    @property
    def corpus_size(self) -> int:
        return self._matrix.shape[0]

    @property
    def hidden_dim(self) -> int:
        return self._matrix.shape[1]

    def __len__(self) -> int:
        return self.corpus_size


def load_store(source: str | Path | None, key: str, hidden_dim: int) -> EmbeddingStore:
    """
    Load the matrix stored under key in a safetensors file.
    An empty source yields EmbeddingStore.placeholder(hidden_dim).
    Raises FileNotFoundError if the file is missing.
    """
    if not source:
        logger.info("No embeddings file configured, using a placeholder store")
        return EmbeddingStore.placeholder(hidden_dim)

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"Embeddings file not found: {path}")
    try:
        tensors = load_file(str(path))
    except (SafetensorError, OSError) as e:
        raise UpstreamError(f"cannot read embeddings file {path}: {e}") from e
    if key not in tensors:
        raise UpstreamError(f"key {key!r} not found in {path}, available: {sorted(tensors)}")

    store = EmbeddingStore(tensors[key])
    logger.info("Loaded embedding store %s[%s]: shape %s", path, key, store.matrix.shape)
    return store


def save_store(path: str | Path, key: str, embeddings: np.ndarray) -> None:
    """Write embeddings under key, atomically using temp-file-then-rename."""
    embeddings = np.asarray(embeddings, dtype=np.float32)
    if embeddings.ndim != 2:
        raise ShapeError(f"embeddings must be 2-D, got shape {embeddings.shape}")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    try:
        save_file({key: np.ascontiguousarray(embeddings)}, str(tmp))
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def sentences_path(store_path: str | Path) -> Path:
    path = Path(store_path)
    return path.with_name(path.stem + ".sentences.json")


def save_sentences(store_path: str | Path, sentences: list[str]) -> None:
    path = sentences_path(store_path)
    tmp = path.with_name(path.name + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(sentences, f, ensure_ascii=False, indent=2)
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def load_sentences(store_path: str | Path) -> list[str] | None:
    """Return the sentence text of each row, or None if there is no sidecar file."""
    path = sentences_path(store_path)
    if not path.exists():
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)
