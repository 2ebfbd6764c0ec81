# core/pooling.py
from typing import Protocol

import numpy as np

from core.errors import ShapeError


class PoolingStrategy(Protocol):
    """
    Reduces hidden states (batch, seq_len, hidden) to (batch, hidden).
    Implementations: MaxPooling, MeanPooling.
    """

    name: str

    def __call__(self, hidden_states: np.ndarray) -> np.ndarray:
        ...


def _check_hidden_states(hidden_states: np.ndarray) -> np.ndarray:
    hidden_states = np.asarray(hidden_states)
    if hidden_states.ndim != 3:
        raise ShapeError(
            f"hidden states must be 3-D (batch, seq_len, hidden), got shape {hidden_states.shape}"
        )
    if hidden_states.shape[1] == 0:
        raise ShapeError("cannot pool an empty sequence (seq_len == 0)")
    return hidden_states


class MaxPooling:
    """Element-wise maximum over the sequence axis."""

    name = "max"

    def __call__(self, hidden_states: np.ndarray) -> np.ndarray:
        return _check_hidden_states(hidden_states).max(axis=1)


class MeanPooling:
    """
    Arithmetic mean over the sequence axis.

    No attention mask is applied: padding positions are averaged in, which
    pulls the mean of short sentences in a padded batch towards the padding
    hidden states.
    """

    name = "mean"

    def __call__(self, hidden_states: np.ndarray) -> np.ndarray:
        hidden_states = _check_hidden_states(hidden_states)
        n_tokens = hidden_states.shape[1]
        acc_dtype = np.result_type(hidden_states.dtype, np.float32)
        return hidden_states.sum(axis=1, dtype=acc_dtype) / n_tokens


_STRATEGIES: dict[str, type] = {
    MaxPooling.name: MaxPooling,
    MeanPooling.name: MeanPooling,
}


def get_pooling(name: str) -> PoolingStrategy:
    try:
        return _STRATEGIES[name.lower()]()
    except KeyError:
        raise ValueError(
            f"unknown pooling strategy {name!r}, expected one of {sorted(_STRATEGIES)}"
        ) from None
