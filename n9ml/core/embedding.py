# ═══════════════════════════════════════════════════════════════════════════════
# EMBEDDING STRATEGIES
# ═══════════════════════════════════════════════════════════════════════════════

"""
Embedding generation behind an abstract interface.

The agent never computes embeddings itself. It asks whatever Embedder it was
given, so a real model can replace the synthetic ones without touching the
decision loop.
"""

from __future__ import annotations

import hashlib
import threading
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

DEFAULT_EMBEDDING_DIM = 384


class Embedder(ABC):
    """Abstract embedding source."""

    dim: int = DEFAULT_EMBEDDING_DIM

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        """Return a float32 vector of length self.dim."""


class RandomEmbedder(Embedder):
    """
    Synthetic embedder: uniform noise in [-1, 1], unrelated to the text.

    Two calls with the same text give different vectors. Retrieval against
    these embeddings will rarely clear a 0.7 threshold.
    """

    def __init__(self, dim: int = DEFAULT_EMBEDDING_DIM, seed: Optional[int] = None):
        self.dim = dim
        self._rng = np.random.RandomState(seed)
        self._lock = threading.Lock()

    def embed(self, text: str) -> np.ndarray:
        with self._lock:
            return self._rng.uniform(-1.0, 1.0, self.dim).astype(np.float32)


class HashEmbedder(Embedder):
    """
    Deterministic synthetic embedder seeded from the text's SHA-256.

    Same text -> same vector, so identical text has similarity 1.0.
    Used for tests and reproducible sessions.
    """

    def __init__(self, dim: int = DEFAULT_EMBEDDING_DIM):
        self.dim = dim

    def embed(self, text: str) -> np.ndarray:
        seed = int(hashlib.sha256(text.encode("utf-8")).hexdigest()[:8], 16) % (2**31)
        rng = np.random.RandomState(seed)
        return rng.uniform(-1.0, 1.0, self.dim).astype(np.float32)
