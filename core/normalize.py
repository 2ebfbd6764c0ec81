# core/normalize.py
import numpy as np

from core.errors import NumericError, ShapeError


def l2_normalize(embeddings: np.ndarray, eps: float | None = None) -> np.ndarray:
    """
    Rescale every row of a (batch, hidden) matrix to unit L2 norm.

    Args:
        embeddings: pooled sentence vectors, shape (batch, hidden)
        eps: optional floor for the divisor. When None (default) a zero-norm
            row raises NumericError instead of producing NaN or a zero vector.
    Returns:
        np.ndarray of the same shape whose rows have norm 1 (within 1e-5)
    """
    embeddings = np.asarray(embeddings)
    if embeddings.ndim != 2:
        raise ShapeError(f"expected a 2-D (batch, hidden) matrix, got shape {embeddings.shape}")
    if embeddings.shape[1] == 0:
        raise ShapeError("cannot normalize zero-dimensional rows")
    if not np.all(np.isfinite(embeddings)):
        raise NumericError("embeddings contain NaN or infinite values")

    out_dtype = np.result_type(embeddings.dtype, np.float32)
    values = embeddings.astype(np.float64)
    # scale by the row max-abs before squaring so huge or tiny rows neither overflow nor underflow
    scale = np.max(np.abs(values), axis=1, keepdims=True)  # (batch, 1)
    safe_scale = np.where(scale > 0, scale, 1.0)
    norms = scale * np.sqrt(np.sum(np.square(values / safe_scale), axis=1, keepdims=True))
    if not np.all(np.isfinite(norms)):
        raise NumericError("row norm overflowed")
    if eps is None:
        zero_rows = np.flatnonzero(norms[:, 0] == 0.0)
        if zero_rows.size:
            raise NumericError(f"cannot normalize zero-norm rows: {zero_rows.tolist()}")
    else:
        norms = np.maximum(norms, eps)
    return (values / norms).astype(out_dtype)
