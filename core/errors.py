# core/errors.py


class EmbeddingError(Exception):
    """Base class for failures raised by the embedding and ranking pipeline."""


class ShapeError(EmbeddingError):
    """Dimensionality or size mismatch between pipeline stages."""


class NumericError(EmbeddingError):
    """Zero-norm division, NaN propagation or non-comparable scores."""


class UpstreamError(EmbeddingError):
    """Tokenizer, encoder or store loader failed. Never retried."""
