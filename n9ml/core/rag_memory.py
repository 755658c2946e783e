# ═══════════════════════════════════════════════════════════════════════════════
# PART 5: BOUNDED RAG MEMORY
# ═══════════════════════════════════════════════════════════════════════════════

"""
Keyed embeddings with an insertion-ordered context window.

The window holds at most max_window keys. The insert that pushes it past
that limit evicts the oldest (len - retain_window) keys, and their embeddings
go in the same step, so every stored embedding has a key in the window.

Alongside sits a semantic graph (node id -> related labels). It only ever
grows; eviction does not touch it, so it can name keys that are gone.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

import numpy as np

from n9ml.core.embedding import DEFAULT_EMBEDDING_DIM, Embedder

logger = logging.getLogger(__name__)


@dataclass
class RAGMemoryConfig:
    """Configuration for the bounded memory store."""
    embedding_dim: int = DEFAULT_EMBEDDING_DIM
    max_window: int = 100
    retain_window: int = 50
    retrieval_threshold: float = 0.7
    max_results: int = 5

    def __post_init__(self) -> None:
        if not 0 < self.retain_window <= self.max_window:
            raise ValueError("retain_window must be in (0, max_window]")


@dataclass
class RetrievedEntry:
    """One retrieval hit."""
    content: str
    relevance: float
    source: str


@dataclass
class RetrievalResult:
    """Hits sorted by relevance, plus the query embedding used."""
    results: List[RetrievedEntry] = field(default_factory=list)
    query_embedding: Optional[np.ndarray] = None


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity. 0.0 when either vector has zero norm."""
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def embedding_source(key: str) -> str:
    """Where an entry came from, by key prefix."""
    if key.startswith("repo:"):
        return "spawned-repository"
    if key.startswith("self-model:"):
        return "self-model"
    if key.startswith("execution:"):
        return "execution-result"
    return "conversation-context"


class RAGMemory:
    """
    Bounded embedding store with similarity retrieval.

    Writes are serialized by one lock. retrieve() copies the embeddings under
    the lock and scores them outside it.
    """

    def __init__(self, embedder: Embedder, config: Optional[RAGMemoryConfig] = None) -> None:
        self.embedder = embedder
        self.config = config or RAGMemoryConfig()

        self._embeddings: Dict[str, np.ndarray] = {}
        self._window: List[str] = []
        self._graph: Dict[str, Set[str]] = {}

        self._lock = threading.RLock()

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def context_window(self) -> List[str]:
        with self._lock:
            return list(self._window)

    @property
    def semantic_graph(self) -> Dict[str, FrozenSet[str]]:
        with self._lock:
            return {k: frozenset(v) for k, v in self._graph.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._embeddings)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._embeddings

    # ── Public Methods ───────────────────────────────────────────────────────

    def embed(self, text: str) -> np.ndarray:
        return self.embedder.embed(text)

    def as_vector(self, key: str, embedding: np.ndarray) -> np.ndarray:
        """embedding as a float32 vector. ValueError if its shape is wrong."""
        vector = np.asarray(embedding, dtype=np.float32)
        if vector.shape != (self.config.embedding_dim,):
            raise ValueError(
                f"Embedding for {key!r} has shape {vector.shape}, "
                f"expected ({self.config.embedding_dim},)"
            )
        return vector

    def insert(self, key: str, embedding: np.ndarray) -> List[str]:
        """
        Store embedding under key and append key to the window.

        A key already present is moved to the newest window position.
        Returns the keys evicted by this insert (usually none).
        """
        vector = self.as_vector(key, embedding)

        with self._lock:
            if key in self._embeddings:
                self._window.remove(key)
            self._embeddings[key] = vector
            self._window.append(key)

            evicted: List[str] = []
            if len(self._window) > self.config.max_window:
                cut = len(self._window) - self.config.retain_window
                evicted = self._window[:cut]
                del self._window[:cut]
                for old_key in evicted:
                    del self._embeddings[old_key]

        logger.debug("Inserted %s", key)
        if evicted:
            logger.warning(
                "Context window overflow: evicted %d entries", len(evicted)
            )
        return evicted

    def get(self, key: str) -> Optional[np.ndarray]:
        with self._lock:
            return self._embeddings.get(key)

    def retrieve(
        self,
        query: str,
        max_results: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> RetrievalResult:
        """
        Entries with similarity strictly above threshold, best first.

        At most max_results entries are returned.
        """
        cfg = self.config
        max_results = cfg.max_results if max_results is None else max_results
        threshold = cfg.retrieval_threshold if threshold is None else threshold

        query_embedding = self.embedder.embed(query)

        with self._lock:
            snapshot = list(self._embeddings.items())

        hits = []
        for key, vector in snapshot:
            similarity = cosine_similarity(query_embedding, vector)
            if similarity > threshold:
                hits.append(RetrievedEntry(key, similarity, embedding_source(key)))

        hits.sort(key=lambda e: e.relevance, reverse=True)
        return RetrievalResult(
            results=hits[:max(max_results, 0)],
            query_embedding=query_embedding,
        )

    def link(self, node_id: str, labels: Iterable[str]) -> int:
        """Add labels to a graph node. Returns how many were new."""
        with self._lock:
            related = self._graph.setdefault(node_id, set())
            before = len(related)
            related.update(labels)
            return len(related) - before

    def get_state(self) -> dict:
        with self._lock:
            return {
                "size": len(self._embeddings),
                "window_length": len(self._window),
                "graph_nodes": len(self._graph),
                "retrieval_threshold": self.config.retrieval_threshold,
            }
