# core/backend.py
"""
Tokenizer and encoder contracts plus their Hugging Face implementations.

The transformer is an opaque forward function here: the pipeline only relies
on the documented input/output shapes, never on the model internals.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

import numpy as np
import torch
from sentence_transformers import SentenceTransformer

from core.errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 128


class Tokenizer(Protocol):
    """Maps raw strings to token ids. Padding policy belongs to the implementation."""

    def encode_one(self, text: str) -> Sequence[int]:
        ...

    def encode_batch(self, texts: list[str]) -> np.ndarray:
        """Return a rectangular (batch, seq_len) integer matrix."""
        ...


class Encoder(Protocol):
    """Pure forward pass: (batch, seq_len) ids -> (batch, seq_len, hidden) states."""

    hidden_size: int

    def forward(self, token_ids: np.ndarray, token_type_ids: np.ndarray) -> np.ndarray:
        ...


class HFTokenizer:
    """
    Wraps a Hugging Face tokenizer.
    Special tokens are added, sequences truncated to max_length and a batch
    padded to its longest member.
    """

    def __init__(self, tokenizer: Any, max_length: int = DEFAULT_MAX_LENGTH) -> None:
        self._tokenizer = tokenizer
        self.max_length = max_length

    def encode_one(self, text: str) -> list[int]:
        encoded = self._tokenizer(
            text,
            add_special_tokens=True,
            truncation=True,
            max_length=self.max_length,
        )
        return list(encoded["input_ids"])

    def encode_batch(self, texts: list[str]) -> np.ndarray:
        encoded = self._tokenizer(
            texts,
            add_special_tokens=True,
            padding=True,
            truncation=True,
            max_length=self.max_length,
            return_tensors="np",
        )
        return np.asarray(encoded["input_ids"], dtype=np.int64)


class HFEncoder:
    """
    Runs a transformer module on CPU and returns its last hidden state.
    Only input_ids and token_type_ids are passed, no attention mask.
    """

    def __init__(self, model: torch.nn.Module) -> None:
        self._model = model
        self._model.eval()
        self.hidden_size = int(model.config.hidden_size)

    def forward(self, token_ids: np.ndarray, token_type_ids: np.ndarray) -> np.ndarray:
        input_ids = torch.as_tensor(np.asarray(token_ids, dtype=np.int64))
        type_ids = torch.as_tensor(np.asarray(token_type_ids, dtype=np.int64))
        with torch.no_grad():
            output = self._model(input_ids=input_ids, token_type_ids=type_ids)
        return output[0].detach().cpu().numpy().astype(np.float32)


def load_backend(
    model_name: str,
    revision: str = "main",
    max_length: int = DEFAULT_MAX_LENGTH,
) -> tuple[HFTokenizer, HFEncoder]:
    """
    Download (or reuse from the local cache) a model from the Hugging Face Hub.
    Weights, config and tokenizer are fetched at the given revision; the
    sentence-transformers pooling head is ignored, only the transformer
    module is used.
    """
    logger.info("Loading model %s@%s", model_name, revision)
    try:
        st_model = SentenceTransformer(model_name, device="cpu", revision=revision)
    except Exception as e:
        raise UpstreamError(f"cannot load model {model_name}@{revision}: {e}") from e
    transformer = st_model[0]
    tokenizer = HFTokenizer(transformer.tokenizer, max_length=max_length)
    encoder = HFEncoder(transformer.auto_model)
    logger.info("Model loaded: hidden size %d, max length %d", encoder.hidden_size, max_length)
    return tokenizer, encoder
