# src/rag/embeddings/base_embedder.py
"""Query embedding interface for semantic search.

Item vectors are precomputed in the entity store; only search queries
are embedded at request time, so a provider must produce vectors in the
same space as those item vectors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class QueryEmbeddingError(RuntimeError):
    """Raised when a provider returns an unusable query vector."""


class BaseEmbedder(ABC):
    """A provider of query vectors."""

    @abstractmethod
    async def embed_query(self, query: str) -> list[float]:
        """Vector for one search query.

        Raises:
            QueryEmbeddingError: If the provider answer has the wrong shape.
        """

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Length of every returned vector."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier."""
