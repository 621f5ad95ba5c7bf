"""
Tests for the ingestion pipeline.
"""

import pytest
from unittest.mock import MagicMock

from pgrag.rag.embedder import EmbeddingError, OpenAIEmbedder
from pgrag.rag.ingestion import RAGIngestion

from conftest import FakeEmbedder


class TestRAGIngestion:
    """Tests for add/update/remove of texts."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = MagicMock()
        self.embedder = FakeEmbedder([0.5, 0.5])
        self.ingestion = RAGIngestion(store=self.store, embedder=self.embedder)

    def test_add_texts(self):
        self.store.add.return_value = [1, 2]

        ids = self.ingestion.add_texts(["first", "second"], metadatas=[{"a": 1}, {"b": 2}])

        assert ids == [1, 2]
        self.store.add.assert_called_once_with(
            ["first", "second"], [[0.5, 0.5], [0.5, 0.5]], [{"a": 1}, {"b": 2}]
        )
        assert self.ingestion.stats["texts_added"] == 2

    def test_add_nothing(self):
        assert self.ingestion.add_texts([]) == []
        self.store.add.assert_not_called()

    def test_metadata_length_mismatch(self):
        with pytest.raises(ValueError):
            self.ingestion.add_texts(["a", "b"], metadatas=[{}])

    def test_update_texts(self):
        self.store.update.return_value = 1

        updated = self.ingestion.update_texts([7], ["new text"])

        assert updated == 1
        self.store.update.assert_called_once_with([7], ["new text"], [[0.5, 0.5]])
        assert self.ingestion.stats["texts_updated"] == 1

    def test_update_length_mismatch(self):
        with pytest.raises(ValueError):
            self.ingestion.update_texts([1, 2], ["only one"])

    def test_remove_texts(self):
        self.store.remove.return_value = 3

        assert self.ingestion.remove_texts([1, 2, 3]) == 3
        assert self.ingestion.stats["texts_removed"] == 3

    def test_embedding_failure_writes_nothing(self):
        embedder = MagicMock()
        embedder.embed_batch.side_effect = EmbeddingError("Cannot embed empty text")
        ingestion = RAGIngestion(store=self.store, embedder=embedder)

        with pytest.raises(EmbeddingError):
            ingestion.add_texts(["ok", " "])
        self.store.add.assert_not_called()

    def test_stats_include_embedding_cost(self):
        embedder = OpenAIEmbedder(api_key="sk-test", model="text-embedding-3-small")
        embedder._client = MagicMock()
        response = MagicMock()
        response.data = [
            MagicMock(embedding=[0.2, 0.2], index=1),
            MagicMock(embedding=[0.1, 0.1], index=0),
        ]
        response.usage.total_tokens = 50_000
        embedder._client.embeddings.create.return_value = response
        self.store.add.return_value = [10, 11]
        ingestion = RAGIngestion(store=self.store, embedder=embedder)

        ingestion.add_texts(["first", "second"])

        self.store.add.assert_called_once_with(["first", "second"], [[0.1, 0.1], [0.2, 0.2]], None)
        stats = ingestion.stats
        assert stats["texts_added"] == 2
        assert stats["embedding_tokens"] == 50_000
        assert stats["embedding_cost_usd"] == pytest.approx(0.001)
