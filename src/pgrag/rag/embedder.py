"""
RAG Embedder
============

Generates embeddings using OpenAI text-embedding-3-small.
1536 dimensions by default, optimized for cost/latency.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional
from dataclasses import dataclass

from ..config import get_settings

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Embedding could not be produced (bad input or provider failure)."""

    def __init__(self, message: str, model: Optional[str] = None):
        self.message = message
        self.model = model
        super().__init__(self.message)


@dataclass
class EmbeddingResult:
    """Result of embedding generation."""
    embedding: List[float]
    token_count: int
    model: str


class Embedder(ABC):
    """Anything that can turn text into an embedding vector."""

    @abstractmethod
    def embed_query(self, query: str) -> List[float]:
        """Embed a search query."""

    def embed_batch(self, texts: List[str], batch_size: int = 100) -> List[EmbeddingResult]:
        """Embed several texts. Default implementation embeds one at a time."""
        return [
            EmbeddingResult(embedding=self.embed_query(t), token_count=0, model="unknown")
            for t in texts
        ]


class OpenAIEmbedder(Embedder):
    """
    Generates embeddings using the OpenAI embeddings API.

    Cost: ~$0.00002 per 1K tokens (text-embedding-3-small)
    Max tokens: 8191
    """

    MODEL = "text-embedding-3-small"
    DIMENSIONS = 1536
    MAX_TOKENS = 8191

    # USD per 1K tokens
    PRICING = {
        "text-embedding-3-small": 0.00002,
        "text-embedding-3-large": 0.00013,
        "text-embedding-ada-002": 0.0001,
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
    ):
        config = get_settings().embedding
        self.api_key = api_key or config.api_key
        if not self.api_key:
            raise ValueError("OpenAI API key required for embeddings")

        self.model = model or config.model or self.MODEL
        self.dimensions = dimensions or config.dimensions or self.DIMENSIONS

        self._client = None
        self._total_tokens = 0
        self._total_requests = 0

    @property
    def client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def _create(self, payload):
        import openai

        try:
            return self.client.embeddings.create(
                model=self.model,
                input=payload,
                dimensions=self.dimensions,
            )
        except openai.OpenAIError as e:
            logger.error(f"Embedding request failed: {e}")
            raise EmbeddingError(f"Embedding request failed: {e}", model=self.model) from e

    def embed(self, text: str) -> EmbeddingResult:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed (max 8191 tokens)

        Returns:
            EmbeddingResult with embedding vector

        Raises:
            EmbeddingError: On empty text or provider failure
        """
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text", model=self.model)

        response = self._create(text)

        embedding = response.data[0].embedding
        token_count = response.usage.total_tokens

        self._total_tokens += token_count
        self._total_requests += 1

        logger.debug(f"Embedded {token_count} tokens")

        return EmbeddingResult(
            embedding=embedding,
            token_count=token_count,
            model=self.model,
        )

    def embed_batch(self, texts: List[str], batch_size: int = 100) -> List[EmbeddingResult]:
        """
        Generate embeddings for multiple texts, preserving input order.

        Args:
            texts: List of texts to embed
            batch_size: Max texts per API call (default 100)

        Returns:
            List of EmbeddingResult, one per input text

        Raises:
            EmbeddingError: If any text is empty, or on provider failure
        """
        if any(not t or not t.strip() for t in texts):
            raise EmbeddingError("Cannot embed empty text", model=self.model)

        results = []

        for i in range(0, len(texts), batch_size):
            batch = texts[i:i + batch_size]

            response = self._create(batch)

            for data in sorted(response.data, key=lambda d: d.index):
                results.append(EmbeddingResult(
                    embedding=data.embedding,
                    token_count=response.usage.total_tokens // len(batch),  # Approx per text
                    model=self.model,
                ))

            self._total_tokens += response.usage.total_tokens
            self._total_requests += 1

            logger.debug(f"Embedded batch of {len(batch)} texts ({response.usage.total_tokens} tokens)")

        return results

    def embed_query(self, query: str) -> List[float]:
        """
        Embed a search query.

        Same as embed() but returns just the vector for convenience.
        """
        result = self.embed(query)
        return result.embedding

    @property
    def total_tokens(self) -> int:
        return self._total_tokens

    @property
    def total_requests(self) -> int:
        return self._total_requests

    @property
    def estimated_cost(self) -> float:
        """Estimated cost in USD."""
        per_1k = self.PRICING.get(self.model, 0.00002)
        return (self._total_tokens / 1000) * per_1k
