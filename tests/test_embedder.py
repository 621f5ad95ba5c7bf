"""
Tests for the OpenAI embedder.

Note: These tests mock the OpenAI client; no API calls are made.
"""

import pytest
from unittest.mock import MagicMock, patch

import httpx
import openai

from pgrag.rag.embedder import EmbeddingError, OpenAIEmbedder


def embedding_response(vectors, total_tokens=8):
    response = MagicMock()
    response.data = [MagicMock(embedding=v, index=i) for i, v in enumerate(vectors)]
    response.usage.total_tokens = total_tokens
    return response


class TestOpenAIEmbedderInit:
    """Tests for embedder initialization."""

    @patch.dict('os.environ', {'OPENAI_API_KEY': 'sk-test'}, clear=True)
    def test_init_from_env(self):
        embedder = OpenAIEmbedder()
        assert embedder.api_key == 'sk-test'
        assert embedder.model == 'text-embedding-3-small'
        assert embedder.dimensions == 1536

    @patch.dict('os.environ', {'GPT_API_KEY': 'sk-gpt'}, clear=True)
    def test_gpt_api_key_fallback(self):
        assert OpenAIEmbedder().api_key == 'sk-gpt'

    @patch.dict('os.environ', {}, clear=True)
    def test_missing_key(self):
        with pytest.raises(ValueError):
            OpenAIEmbedder()


class TestOpenAIEmbedderCalls:
    """Tests for embedding calls (mocked)."""

    def setup_method(self):
        """Set up test fixtures."""
        self.embedder = OpenAIEmbedder(api_key="sk-test", dimensions=2)
        self.embedder._client = MagicMock()
        self.create = self.embedder._client.embeddings.create

    def test_embed_query(self):
        self.create.return_value = embedding_response([[0.1, 0.2]], total_tokens=3)

        vector = self.embedder.embed_query("test")

        assert vector == [0.1, 0.2]
        self.create.assert_called_once_with(model="text-embedding-3-small", input="test", dimensions=2)
        assert self.embedder.total_tokens == 3
        assert self.embedder.total_requests == 1

    def test_empty_text_raises_embedding_error(self):
        with pytest.raises(EmbeddingError):
            self.embedder.embed_query("   ")
        self.create.assert_not_called()

    def test_provider_failure_raises_embedding_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
        self.create.side_effect = openai.APIConnectionError(request=request)

        with pytest.raises(EmbeddingError) as exc_info:
            self.embedder.embed_query("test")

        assert isinstance(exc_info.value.__cause__, openai.APIConnectionError)

    def test_embed_batch_preserves_order(self):
        response = embedding_response([[0.1, 0.1], [0.2, 0.2], [0.3, 0.3]], total_tokens=9)
        response.data = list(reversed(response.data))
        self.create.return_value = response

        results = self.embedder.embed_batch(["a", "b", "c"])

        assert [r.embedding for r in results] == [[0.1, 0.1], [0.2, 0.2], [0.3, 0.3]]
        assert all(r.token_count == 3 for r in results)

    def test_embed_batch_splits_batches(self):
        self.create.side_effect = [
            embedding_response([[0.1, 0.1], [0.2, 0.2]]),
            embedding_response([[0.3, 0.3]]),
        ]

        results = self.embedder.embed_batch(["a", "b", "c"], batch_size=2)

        assert len(results) == 3
        assert self.create.call_count == 2

    def test_embed_batch_rejects_empty_text(self):
        with pytest.raises(EmbeddingError):
            self.embedder.embed_batch(["a", ""])

    def test_estimated_cost(self):
        self.create.return_value = embedding_response([[0.1, 0.2]], total_tokens=1000)
        self.embedder.embed("test")
        assert self.embedder.estimated_cost == pytest.approx(0.00002)
