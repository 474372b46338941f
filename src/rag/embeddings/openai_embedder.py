# src/rag/embeddings/openai_embedder.py
"""OpenAI query embedder (EMBEDDING_PROVIDER=openai).

Requires 'openai' package: pip install openai.
Recent query vectors are kept in a small LRU memo: persona builds issue
the same few queries through search many times.
"""

from __future__ import annotations

import logging
from collections import OrderedDict

from sevenpools.rag.embeddings.base_embedder import BaseEmbedder, QueryEmbeddingError

logger = logging.getLogger(__name__)

DEFAULT_MEMO_SIZE = 256


class OpenAIEmbedder(BaseEmbedder):
    """Query vectors from the OpenAI embeddings endpoint."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        dimensions: int = 1536,
        memo_size: int = DEFAULT_MEMO_SIZE,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._dimensions = dimensions
        self._memo_size = memo_size
        self._memo: OrderedDict[str, list[float]] = OrderedDict()
        self.__client = None

    @property
    def _client(self):
        if self.__client is None:
            try:
                import openai
            except ImportError as e:
                raise ImportError(
                    "openai package required: pip install openai"
                ) from e
            self.__client = openai.AsyncOpenAI(api_key=self._api_key or "")
        return self.__client

    async def embed_query(self, query: str) -> list[float]:
        text = " ".join(query.split())
        if text in self._memo:
            self._memo.move_to_end(text)
            return list(self._memo[text])

        response = await self._client.embeddings.create(
            input=[text], model=self._model, dimensions=self._dimensions
        )
        if not response.data:
            raise QueryEmbeddingError(f"{self._model} returned no embedding")
        vector = list(response.data[0].embedding)
        if len(vector) != self._dimensions:
            raise QueryEmbeddingError(
                f"{self._model} returned {len(vector)} dimensions, expected {self._dimensions}"
            )
        logger.debug("Embedded query %r with %s", text, self._model)

        self._memo[text] = vector
        if len(self._memo) > self._memo_size:
            self._memo.popitem(last=False)
        return list(vector)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model
