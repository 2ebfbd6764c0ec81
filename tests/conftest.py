import logging

import numpy as np
import pytest

PAD_ID = 0
HIDDEN = 4


class FakeTokenizer:
    """Whitespace tokenizer: token id = word length, batch padded with PAD_ID."""

    def encode_one(self, text):
        return [len(w) for w in text.split()]

    def encode_batch(self, texts):
        seqs = [self.encode_one(t) for t in texts]
        width = max(len(s) for s in seqs)
        return np.array([s + [PAD_ID] * (width - len(s)) for s in seqs], dtype=np.int64)


class FakeEncoder:
    """
    Looks each token up in a fixed table, independent of position.
    Row 0 (padding) is all zeros, every other entry is positive, so padding
    never raises a max-pooled value.
    """

    hidden_size = HIDDEN

    def __init__(self, vocab_size=32):
        rng = np.random.default_rng(0)
        self.table = rng.uniform(0.1, 1.0, size=(vocab_size, HIDDEN)).astype(np.float32)
        self.table[PAD_ID] = 0.0
        self.calls = []

    def forward(self, token_ids, token_type_ids):
        self.calls.append((token_ids.copy(), token_type_ids.copy()))
        return self.table[token_ids]


@pytest.fixture
def tokenizer():
    return FakeTokenizer()


@pytest.fixture
def encoder():
    return FakeEncoder()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """CLI commands reconfigure the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
